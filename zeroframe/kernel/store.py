# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
KernelStore - the single owner of kernel state.

Handlers receive the store through their SyscallContext and mutate it only
through the methods below. Collections hold every tenant; the ``*_for``
accessors return the slice belonging to one org.
"""

from __future__ import annotations

import itertools
import logging
import uuid
from typing import List, Optional

from zeroframe.core.exceptions import SessionError
from zeroframe.kernel.scheduler import SystemClock
from zeroframe.kernel.seed import SeedData
from zeroframe.kernel.types import (
    AuditEntry,
    Dataset,
    Job,
    KernelMessage,
    KernelSnapshot,
    Org,
    OrgPlan,
    OrgRole,
    ResourceType,
    User,
    Workspace,
)

logger = logging.getLogger("zeroframe.store")


class KernelStore:
    def __init__(
        self,
        seed: SeedData,
        clock: SystemClock,
        active_org_id: str,
        active_workspace: Workspace = Workspace.DEV,
        active_user_id: Optional[str] = None,
    ):
        if not seed.users:
            raise SessionError("Seed data has no users")
        self.clock = clock

        # Identity (read-only after boot)
        self.users: List[User] = list(seed.users)
        self.orgs: List[Org] = list(seed.orgs)
        self.plans: List[OrgPlan] = list(seed.plans)
        self.org_users = list(seed.org_users)

        # Tenant data
        self.jobs: List[Job] = list(seed.jobs)
        self.datasets: List[Dataset] = list(seed.datasets)
        self.audit_entries: List[AuditEntry] = list(seed.audit_entries)
        self.messages: List[KernelMessage] = []
        self.snapshots: List[KernelSnapshot] = []
        self._dataset_seq = itertools.count(1)

        # Session
        self.active_user_id = active_user_id or self.users[0].id
        self.active_workspace = Workspace(active_workspace)
        self.active_org_id = active_org_id
        self.find_user(self.active_user_id)
        self.find_org(self.active_org_id)

    # =========================================================================
    # Identity
    # =========================================================================

    def find_user(self, user_id: str) -> User:
        for user in self.users:
            if user.id == user_id:
                return user
        raise SessionError(f"Unknown user {user_id}", field="user_id", value=user_id)

    def find_org(self, org_id: str) -> Org:
        for org in self.orgs:
            if org.id == org_id:
                return org
        raise SessionError(f"Unknown org {org_id}", field="org_id", value=org_id)

    @property
    def active_user(self) -> User:
        return self.find_user(self.active_user_id)

    @property
    def active_org(self) -> Org:
        return self.find_org(self.active_org_id)

    def plan_for(self, org: Org) -> Optional[OrgPlan]:
        return next((p for p in self.plans if p.id == org.plan_id), None)

    def org_role_for(self, user_id: str, org_id: str) -> Optional[OrgRole]:
        for org_user in self.org_users:
            if org_user.id == user_id and org_user.org_id == org_id:
                return org_user.org_role
        return None

    # =========================================================================
    # Tenant slices
    # =========================================================================

    def jobs_for(self, org_id: str) -> List[Job]:
        return [j for j in self.jobs if j.org_id == org_id]

    def datasets_for(self, org_id: str) -> List[Dataset]:
        return [d for d in self.datasets if d.org_id == org_id]

    def audit_for(self, org_id: str) -> List[AuditEntry]:
        return [e for e in self.audit_entries if e.org_id == org_id]

    def snapshots_for(self, org_id: str) -> List[KernelSnapshot]:
        return [s for s in self.snapshots if s.org_id == org_id]

    def find_job(self, org_id: str, job_id: str) -> Optional[Job]:
        return next((j for j in self.jobs if j.id == job_id and j.org_id == org_id), None)

    def find_job_any_tenant(self, job_id: str) -> Optional[Job]:
        return next((j for j in self.jobs if j.id == job_id), None)

    def find_dataset(self, org_id: str, dataset_id: str) -> Optional[Dataset]:
        return next(
            (d for d in self.datasets if d.id == dataset_id and d.org_id == org_id), None
        )

    def find_snapshot(self, org_id: str, snapshot_id: str) -> Optional[KernelSnapshot]:
        return next(
            (s for s in self.snapshots if s.id == snapshot_id and s.org_id == org_id), None
        )

    def replace_tenant_state(
        self,
        org_id: str,
        jobs: List[Job],
        datasets: List[Dataset],
        audit_entries: List[AuditEntry],
    ):
        """Swap one org's jobs, datasets and audit trail; other orgs keep theirs"""
        self.jobs = [j for j in self.jobs if j.org_id != org_id] + jobs
        self.datasets = [d for d in self.datasets if d.org_id != org_id] + datasets
        self.audit_entries = [e for e in self.audit_entries if e.org_id != org_id] + audit_entries

    # =========================================================================
    # Audit
    # =========================================================================

    def log_audit(
        self,
        user_id: str,
        action: str,
        resource_type: ResourceType,
        resource_id: Optional[str] = None,
        details: Optional[str] = None,
        org_id: Optional[str] = None,
    ) -> AuditEntry:
        """Append one audit entry (to the active org unless told otherwise)"""
        entry = AuditEntry(
            id=f"a{self.now_ms()}-{uuid.uuid4().hex[:9]}",
            org_id=org_id or self.active_org_id,
            timestamp=self.clock.now_iso(),
            user_id=user_id,
            action=action,
            resource_type=ResourceType(resource_type),
            resource_id=resource_id,
            details=details,
        )
        self.audit_entries.append(entry)
        logger.debug(f"audit {entry.action} {entry.resource_type.value}:{entry.resource_id}")
        return entry

    # =========================================================================
    # Helpers
    # =========================================================================

    def next_dataset_number(self) -> int:
        """Monotonic; restores never hand out a number twice"""
        return next(self._dataset_seq)

    def now_ms(self) -> int:
        return int(self.clock.now() * 1000)

    def now_iso(self) -> str:
        return self.clock.now_iso()
