# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
App capability registry - which syscalls each app may use.

The registry is built once (from the built-in table or a YAML file) and is
read-only afterwards.

YAML format::

    apps:
      - app_id: reporting
        allowed_syscalls: [jobs.list, audit.log]
        allowed_workspaces: [DEV, UAT]   # optional, default: all
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

import yaml

from zeroframe.core.exceptions import ConfigError
from zeroframe.kernel.syscalls import Syscall
from zeroframe.kernel.types import Workspace

logger = logging.getLogger("zeroframe.capabilities")

S = Syscall


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Per-app capability grant"""
    app_id: str
    allowed_syscalls: FrozenSet[Syscall]
    allowed_workspaces: Optional[FrozenSet[Workspace]] = None  # None = all workspaces

    def permits_workspace(self, workspace: Optional[Workspace]) -> bool:
        if self.allowed_workspaces is None or workspace is None:
            return True
        return Workspace(workspace) in self.allowed_workspaces


def _grant(app_id: str, *syscalls: Syscall) -> CapabilityDescriptor:
    return CapabilityDescriptor(app_id=app_id, allowed_syscalls=frozenset(syscalls))


_IDENTITY = (S.SECURITY_WHOAMI, S.SECURITY_WORKSPACE, S.SECURITY_ORG)

APP_CAPABILITIES: List[CapabilityDescriptor] = [
    _grant(
        "jobs",
        S.JOBS_LIST, S.JOBS_SUBMIT, S.JOBS_TICK, S.JOBS_RETRY, S.JOBS_CANCEL,
        S.AUDIT_LOG, S.AUDIT_LIST, *_IDENTITY,
    ),
    _grant("dashboard", S.JOBS_LIST, S.AUDIT_LIST, S.DATASETS_LIST, *_IDENTITY),
    _grant(
        "ghost-abend",
        S.JOBS_LIST, S.JOBS_RETRY, S.JOBS_UPDATE, S.DATASETS_LIST, S.AUDIT_LOG,
        S.AUDIT_LIST, S.MESSAGING_SEND, S.MESSAGING_CONSUME, *_IDENTITY,
    ),
    _grant(
        "shadowasm",
        S.JOBS_LIST, S.JOBS_SUBMIT, S.DATASETS_LIST, S.AUDIT_LOG,
        S.MESSAGING_SEND, S.MESSAGING_CONSUME, *_IDENTITY,
    ),
    _grant("audit", S.AUDIT_LIST, *_IDENTITY),
    _grant("datasets", S.DATASETS_LIST, S.AUDIT_LOG, *_IDENTITY),
    _grant("security", S.AUDIT_LIST, S.AUDIT_LOG, *_IDENTITY),
    _grant(
        "console",
        S.JOBS_LIST, S.JOBS_SUBMIT, S.JOBS_RETRY, S.JOBS_CANCEL, S.JOBS_TICK,
        S.DATASETS_LIST, S.AUDIT_LIST, S.AUDIT_LOG, S.MESSAGING_SEND,
        S.MESSAGING_CONSUME, S.PROCESSES_LIST, S.KERNEL_METRICS, S.VFS_LIST,
        S.VFS_READ_FILE, S.SNAPSHOTS_LIST, S.SNAPSHOTS_CREATE, S.SNAPSHOTS_RESTORE,
        *_IDENTITY,
    ),
    _grant("process-manager", S.PROCESSES_LIST, S.AUDIT_LOG, S.KERNEL_METRICS, *_IDENTITY),
    _grant("docs", S.AUDIT_LOG, *_IDENTITY),
    _grant("desktop", S.AUDIT_LOG, *_IDENTITY),
    _grant(
        "data-onboarding",
        S.DATASETS_LIST, S.DATASETS_CREATE, S.JOBS_SUBMIT, S.JOBS_LIST, S.JOBS_TICK,
        S.AUDIT_LOG, *_IDENTITY,
    ),
]


class CapabilityRegistry:
    """Static lookup from app id to its capability descriptor"""

    def __init__(self, descriptors: Iterable[CapabilityDescriptor] = APP_CAPABILITIES):
        self._descriptors: Dict[str, CapabilityDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.app_id in self._descriptors:
                raise ConfigError(
                    f"Duplicate capability descriptor for app {descriptor.app_id}"
                )
            self._descriptors[descriptor.app_id] = descriptor

    def get(self, app_id: str) -> Optional[CapabilityDescriptor]:
        return self._descriptors.get(app_id)

    def allows(self, app_id: str, syscall: Any, workspace: Optional[Workspace] = None) -> bool:
        """
        Check if an app may call a syscall.

        Unknown app, unknown syscall, syscall missing from the allow-list or a
        workspace outside the descriptor's allowed set: False.
        """
        descriptor = self._descriptors.get(app_id)
        if descriptor is None:
            return False
        resolved = Syscall.parse(syscall)
        if resolved is None or resolved not in descriptor.allowed_syscalls:
            return False
        return descriptor.permits_workspace(workspace)

    @property
    def app_ids(self) -> List[str]:
        return list(self._descriptors)

    def descriptors(self) -> List[CapabilityDescriptor]:
        return list(self._descriptors.values())

    @classmethod
    def from_file(cls, file_path: Path) -> "CapabilityRegistry":
        """Load a registry from YAML, rejecting syscalls outside the closed set"""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load capabilities file {file_path}", cause=e)

        apps = data.get("apps") if isinstance(data, dict) else None
        if not isinstance(apps, list):
            raise ConfigError(
                f"Capabilities file {file_path} must contain an 'apps' list"
            )

        registry = cls(parse_descriptor(entry, source=str(file_path)) for entry in apps)
        logger.info(f"Loaded {len(registry.app_ids)} capability descriptors from {file_path}")
        return registry


def parse_descriptor(entry: Any, source: str = "<memory>") -> CapabilityDescriptor:
    """Build a descriptor from a mapping"""
    if not isinstance(entry, dict) or not entry.get("app_id"):
        raise ConfigError(f"Invalid capability entry in {source}", details={"entry": entry})

    app_id = str(entry["app_id"])
    syscalls = []
    unknown = []
    for name in entry.get("allowed_syscalls") or []:
        resolved = Syscall.parse(name)
        if resolved is None:
            unknown.append(name)
        else:
            syscalls.append(resolved)
    if unknown:
        raise ConfigError(
            f"Unknown syscalls for app {app_id} in {source}",
            details={"unknown": unknown},
        )

    workspaces = entry.get("allowed_workspaces")
    allowed_workspaces = None
    if workspaces is not None:
        try:
            allowed_workspaces = frozenset(Workspace(str(w).upper()) for w in workspaces)
        except ValueError as e:
            raise ConfigError(f"Invalid workspace for app {app_id} in {source}", cause=e)

    return CapabilityDescriptor(
        app_id=app_id,
        allowed_syscalls=frozenset(syscalls),
        allowed_workspaces=allowed_workspaces,
    )
