# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Tests for the app client and kernel session switching"""

import pytest

from zeroframe.core.exceptions import SessionError
from zeroframe.kernel.errors import ErrorKind, KernelFault
from zeroframe.kernel.types import OrgPlanId, OrgRole, Workspace


class TestAppClient:
    def test_fault_carries_error(self, kernel):
        with pytest.raises(KernelFault) as exc_info:
            kernel.app("docs").list_jobs()

        fault = exc_info.value
        assert fault.kind == ErrorKind.FORBIDDEN_CALLER
        assert fault.error.syscall == "jobs.list"
        assert fault.error.caller_id == "docs"

    def test_can(self, kernel):
        assert kernel.app("jobs").can("jobs.submit")
        assert not kernel.app("dashboard").can("jobs.submit")

    def test_identity(self, jobs_app):
        assert jobs_app.whoami().name == "Ada"
        assert jobs_app.workspace() == Workspace.DEV

        info = jobs_app.org()
        assert info.org.id == "org-acme"
        assert info.plan.id == OrgPlanId.ENTERPRISE
        assert info.org_role == OrgRole.ORG_ADMIN

    def test_org_role_missing(self, kernel, jobs_app):
        kernel.set_active_org("org-globex")
        kernel.set_active_user("u-dev")
        assert jobs_app.org().org_role is None

    def test_metrics(self, kernel, console_app):
        console_app.whoami()
        metrics = console_app.get_metrics()
        # kernel.metrics counts itself
        assert metrics.total_syscalls == 2


class TestSession:
    def test_switch_user(self, kernel):
        kernel.set_active_user("u-ops")
        entry = kernel.store.audit_for("org-acme")[-1]

        assert kernel.store.active_user.name == "Olivia"
        assert entry.action == "USER_SWITCHED"
        assert entry.user_id == "u-ops"

    def test_unknown_user(self, kernel):
        with pytest.raises(SessionError):
            kernel.set_active_user("u-ghost")
        assert kernel.store.active_user_id == "u-ada"

    def test_switch_workspace(self, kernel):
        kernel.set_active_workspace(Workspace.UAT)
        assert kernel.store.active_workspace == Workspace.UAT
        assert kernel.store.audit_for("org-acme")[-1].action == "WORKSPACE_SWITCHED"

    def test_unknown_workspace(self, kernel):
        with pytest.raises(SessionError):
            kernel.set_active_workspace("STAGING")
        assert kernel.store.active_workspace == Workspace.DEV

    def test_switch_org(self, kernel):
        kernel.set_active_org("org-globex")
        assert kernel.store.active_org.name == "Globex"
        assert kernel.store.audit_for("org-globex")[-1].action == "ORG_SWITCHED"

    def test_unknown_org(self, kernel):
        with pytest.raises(SessionError):
            kernel.set_active_org("org-nope")

    def test_advance_needs_manual_clock(self):
        from zeroframe.kernel import Kernel

        with pytest.raises(TypeError):
            Kernel().advance(1)
