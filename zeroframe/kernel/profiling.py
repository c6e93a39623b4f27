# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Dataset profiling - basic column statistics computed from sample rows.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from zeroframe.kernel.types import ColumnProfile, Dataset, DatasetColumnType, DatasetProfile

MAX_EXAMPLE_VALUES = 5


def _is_null(value: Any) -> bool:
    return value is None or value == ""


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if number != number else number  # NaN


def _to_datetime(value: Any) -> Optional[datetime]:
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def profile_column(name: str, column_type: DatasetColumnType, values: List[Any]) -> ColumnProfile:
    """Statistics for one column's values"""
    non_null = [v for v in values if not _is_null(v)]
    profile = ColumnProfile(
        column_name=name,
        type=DatasetColumnType(column_type),
        null_count=len(values) - len(non_null),
        example_values=[str(v) for v in non_null[:MAX_EXAMPLE_VALUES]],
    )
    if not non_null:
        return profile

    profile.distinct_count = len({str(v) for v in non_null})

    if profile.type == DatasetColumnType.NUMBER:
        numbers = [n for n in (_to_number(v) for v in non_null) if n is not None]
        if numbers:
            profile.min_value = _format_number(min(numbers))
            profile.max_value = _format_number(max(numbers))
            profile.avg = sum(numbers) / len(numbers)
    elif profile.type == DatasetColumnType.DATE:
        dates = [d for d in (_to_datetime(v) for v in non_null) if d is not None]
        if dates:
            profile.min_value = min(dates).isoformat()
            profile.max_value = max(dates).isoformat()
    else:
        strings = sorted(str(v) for v in non_null)
        profile.min_value = strings[0]
        profile.max_value = strings[-1]

    return profile


def compute_dataset_profile(dataset: Dataset, now_iso: Optional[str] = None) -> Optional[DatasetProfile]:
    """
    Profile a dataset from its sample rows.

    Returns None when the dataset has no columns or no sample rows.
    """
    if not dataset.sample_rows or not dataset.columns:
        return None

    rows = dataset.sample_rows
    column_profiles = [
        profile_column(col.name, col.type, [row.get(col.name) for row in rows])
        for col in dataset.columns
    ]
    return DatasetProfile(
        column_profiles=column_profiles,
        last_profiled_at=now_iso or datetime.now(timezone.utc).isoformat(),
        row_count=dataset.row_count if dataset.row_count is not None else len(rows),
    )
