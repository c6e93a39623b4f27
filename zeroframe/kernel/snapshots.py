# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Snapshot Manager - capture and restore one tenant's kernel state.

A snapshot holds deep copies of the tenant's jobs, datasets and audit
trail together with the session (active user and workspace) and the
metrics at capture time. Restoring replaces the tenant's collections and
session but never rewinds metrics. Pending job completions of the tenant
are cancelled, and jobs restored as RUNNING get a fresh completion timer.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, List, Optional

from zeroframe.kernel.errors import KernelFault
from zeroframe.kernel.metrics import MetricsRecorder
from zeroframe.kernel.store import KernelStore
from zeroframe.kernel.types import KernelSnapshot, ResourceType, SnapshotState, User

if TYPE_CHECKING:
    from zeroframe.kernel.jobs import JobEngine

logger = logging.getLogger("zeroframe.snapshots")


class SnapshotManager:
    def __init__(
        self,
        store: KernelStore,
        metrics: MetricsRecorder,
        jobs: Optional[JobEngine] = None,
    ):
        self.store = store
        self.metrics = metrics
        self.jobs = jobs
        self._counter = 0

    def list(self, org_id: str) -> List[KernelSnapshot]:
        return self.store.snapshots_for(org_id)

    def create(self, user: User, org_id: str, label: Optional[str] = None) -> KernelSnapshot:
        """Capture the tenant's state, then audit the capture"""
        self._counter += 1
        store = self.store
        state = SnapshotState(
            jobs=copy.deepcopy(store.jobs_for(org_id)),
            datasets=copy.deepcopy(store.datasets_for(org_id)),
            audit_entries=list(store.audit_for(org_id)),
            active_user_id=store.active_user_id,
            active_workspace=store.active_workspace,
            metrics=self.metrics.snapshot(),
        )
        snapshot = KernelSnapshot(
            id=f"snap-{store.now_ms()}-{self._counter}",
            org_id=org_id,
            label=label or f"Snapshot {len(store.snapshots_for(org_id)) + 1}",
            created_at=store.now_iso(),
            state=state,
        )
        store.snapshots.append(snapshot)

        store.log_audit(
            user.id, "SNAPSHOT_CREATED", ResourceType.SYSTEM_APP, snapshot.id,
            f'Snapshot "{snapshot.label}" created', org_id=org_id,
        )
        logger.info(f"Snapshot created: {snapshot.id} ({snapshot.label})")
        return snapshot

    def restore(self, user: User, org_id: str, snapshot_id: str) -> KernelSnapshot:
        """
        Restore a snapshot of the tenant.

        Raises:
            KernelFault: NOT_FOUND if the tenant has no such snapshot
        """
        snapshot = self.store.find_snapshot(org_id, snapshot_id)
        if snapshot is None:
            raise KernelFault.not_found("Snapshot", snapshot_id)

        state = snapshot.state
        store = self.store
        # Validate before mutating anything
        store.find_user(state.active_user_id)

        if self.jobs is not None:
            self.jobs.revoke_tenant(org_id)
        store.replace_tenant_state(
            org_id,
            jobs=copy.deepcopy(state.jobs),
            datasets=copy.deepcopy(state.datasets),
            audit_entries=list(state.audit_entries),
        )
        store.active_user_id = state.active_user_id
        store.active_workspace = state.active_workspace
        if self.jobs is not None:
            resumed = self.jobs.resume_running(org_id)
            if resumed:
                logger.debug(f"Rescheduled {len(resumed)} running job(s) after restore")

        store.log_audit(
            user.id, "SNAPSHOT_RESTORED", ResourceType.SYSTEM_APP, snapshot.id,
            f'Snapshot "{snapshot.label}" restored', org_id=org_id,
        )
        logger.info(f"Snapshot restored: {snapshot.id} ({snapshot.label})")
        return snapshot
