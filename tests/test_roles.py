# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Tests for the role permission table"""

import pytest

from zeroframe.core.exceptions import ConfigError
from zeroframe.kernel.roles import (
    ROLE_RULES,
    PermissionAction,
    check_role_table,
    has_permission,
    role_allows,
)
from zeroframe.kernel.syscalls import Syscall
from zeroframe.kernel.types import Role

OPEN_SYSCALLS = [
    "audit.log", "security.whoami", "security.workspace", "security.org",
    "messaging.send", "messaging.consume", "vfs.list", "vfs.readFile",
]


class TestPermissions:
    def test_admin_has_everything(self):
        for action in PermissionAction:
            assert has_permission(Role.ADMIN, action)

    def test_dev_cannot_manage_jobs(self):
        assert has_permission(Role.DEV, PermissionAction.SUBMIT_JOB)
        assert not has_permission(Role.DEV, PermissionAction.MANAGE_JOBS)

    def test_unknown_role(self):
        assert not has_permission("INTERN", PermissionAction.VIEW_JOBS)


class TestRoleRules:
    def test_table_is_complete(self):
        check_role_table()
        assert set(ROLE_RULES) == set(Syscall)

    def test_incomplete_table_rejected(self):
        partial = {Syscall.JOBS_LIST: ROLE_RULES[Syscall.JOBS_LIST]}
        with pytest.raises(ConfigError):
            check_role_table(partial)

    def test_admin_allowed_everything(self):
        for syscall in Syscall:
            assert role_allows(Role.ADMIN, syscall)

    @pytest.mark.parametrize("role", list(Role))
    def test_open_syscalls(self, role):
        for syscall in OPEN_SYSCALLS:
            assert role_allows(role, syscall)

    def test_dev(self):
        assert role_allows(Role.DEV, "jobs.submit")
        assert role_allows(Role.DEV, "datasets.create")
        assert not role_allows(Role.DEV, "jobs.retry")
        assert not role_allows(Role.DEV, "jobs.tick")
        assert not role_allows(Role.DEV, "audit.list")
        assert not role_allows(Role.DEV, "snapshots.create")

    def test_operator(self):
        assert role_allows(Role.OPERATOR, "jobs.tick")
        assert role_allows(Role.OPERATOR, "jobs.cancel")
        assert role_allows(Role.OPERATOR, "snapshots.restore")
        assert role_allows(Role.OPERATOR, "kernel.metrics")
        assert not role_allows(Role.OPERATOR, "audit.list")

    def test_auditor(self):
        assert role_allows(Role.AUDITOR, "audit.list")
        assert role_allows(Role.AUDITOR, "kernel.metrics")
        assert role_allows(Role.AUDITOR, "processes.list")
        assert not role_allows(Role.AUDITOR, "jobs.submit")
        assert not role_allows(Role.AUDITOR, "snapshots.create")

    def test_unknown_inputs_denied(self):
        assert not role_allows("INTERN", "jobs.list")
        assert not role_allows(Role.ADMIN, "jobs.nuke")
        assert not role_allows(None, None)
