# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Fixture data a fresh kernel boots with."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from zeroframe.kernel.types import (
    AuditEntry,
    Dataset,
    DatasetSource,
    DatasetType,
    Job,
    Org,
    OrgPlan,
    OrgPlanId,
    OrgRole,
    OrgUser,
    Role,
    User,
    Workspace,
)


@dataclass
class SeedData:
    users: List[User]
    orgs: List[Org]
    plans: List[OrgPlan]
    org_users: List[OrgUser]
    jobs: List[Job] = field(default_factory=list)
    datasets: List[Dataset] = field(default_factory=list)
    audit_entries: List[AuditEntry] = field(default_factory=list)


def default_seed(with_datasets: bool = True) -> SeedData:
    """Build a fresh copy of the demo tenants, users and datasets"""
    users = [
        User(id="u-ada", name="Ada", role=Role.ADMIN),
        User(id="u-dev", name="Devon", role=Role.DEV),
        User(id="u-ops", name="Olivia", role=Role.OPERATOR),
        User(id="u-aud", name="Ari", role=Role.AUDITOR),
    ]
    plans = [
        OrgPlan(
            id=OrgPlanId.FREE,
            name="Free",
            description="Single workspace exploration",
            max_jobs_per_day=20,
            max_snapshots=1,
            max_datasets=5,
        ),
        OrgPlan(
            id=OrgPlanId.TEAM,
            name="Team",
            description="Shared workspaces for small teams",
            max_jobs_per_day=500,
            max_snapshots=10,
            max_datasets=50,
            enable_scheduler=True,
        ),
        OrgPlan(
            id=OrgPlanId.ENTERPRISE,
            name="Enterprise",
            description="Everything, including advanced system apps",
            enable_scheduler=True,
            enable_workflows=True,
            enable_advanced_apps=True,
        ),
    ]
    orgs = [
        Org(id="org-acme", name="Acme Corp", plan_id=OrgPlanId.ENTERPRISE,
            created_at="2024-01-15T09:00:00+00:00"),
        Org(id="org-globex", name="Globex", plan_id=OrgPlanId.TEAM,
            created_at="2024-06-01T09:00:00+00:00"),
    ]
    org_users = [
        OrgUser(id="u-ada", org_id="org-acme", org_role=OrgRole.ORG_ADMIN),
        OrgUser(id="u-dev", org_id="org-acme", org_role=OrgRole.ORG_DEVELOPER),
        OrgUser(id="u-ops", org_id="org-acme", org_role=OrgRole.ORG_OPERATOR),
        OrgUser(id="u-aud", org_id="org-acme", org_role=OrgRole.ORG_AUDITOR),
        OrgUser(id="u-ada", org_id="org-globex", org_role=OrgRole.ORG_ADMIN),
        OrgUser(id="u-ops", org_id="org-globex", org_role=OrgRole.ORG_OPERATOR),
    ]

    datasets: List[Dataset] = []
    if with_datasets:
        datasets = [
            Dataset(id="ds-customers", org_id="org-acme", name="customers",
                    type=DatasetType.TABLE, workspace=Workspace.DEV,
                    description="Customer master data", record_count=1200,
                    source=DatasetSource.SYSTEM),
            Dataset(id="ds-transactions", org_id="org-acme", name="transactions",
                    type=DatasetType.STREAM, workspace=Workspace.PROD,
                    description="Card transactions feed", record_count=250000,
                    source=DatasetSource.SYSTEM),
            Dataset(id="ds-inventory", org_id="org-globex", name="inventory",
                    type=DatasetType.FILE, workspace=Workspace.DEV,
                    description="Warehouse stock levels", record_count=800,
                    source=DatasetSource.SYSTEM),
        ]

    return SeedData(users=users, orgs=orgs, plans=plans, org_users=org_users, datasets=datasets)
