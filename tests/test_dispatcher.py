# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Tests for the syscall dispatcher

These tests verify:
- Capability denials (with audit, before anything else runs)
- Role denials (audit configurable) leave state untouched
- Reads are repeatable and results are detached from kernel state
- Metrics are recorded only for authorized calls
- Argument validation and handler lookup
- Handler faults and crashes are turned into Err values
- Kernel panic and reboot
"""

import pytest

from zeroframe.core.config import KernelConfig
from zeroframe.core.exceptions import ConfigError
from zeroframe.kernel import Kernel
from zeroframe.kernel.capabilities import CapabilityDescriptor, CapabilityRegistry
from zeroframe.kernel.dispatcher import Dispatcher
from zeroframe.kernel.errors import ErrorKind, KernelFault
from zeroframe.kernel.syscalls import Syscall
from zeroframe.kernel.types import JobStatus, Workspace


def actions(kernel, org_id="org-acme"):
    return [e.action for e in kernel.store.audit_for(org_id)]


def tenant_state(kernel, org_id="org-acme"):
    store = kernel.store
    return (
        [(j.id, j.status) for j in store.jobs_for(org_id)],
        [d.id for d in store.datasets_for(org_id)],
        [s.id for s in store.snapshots_for(org_id)],
    )


class TestCapabilityCheck:
    """Step 1: capability check"""

    def test_forbidden_caller(self, kernel):
        result = kernel.invoke("dashboard", "jobs.submit", {"name": "x", "type": "BATCH"})

        assert not result.ok
        assert result.error.kind == ErrorKind.FORBIDDEN_CALLER
        assert result.error.syscall == "jobs.submit"
        assert result.error.caller_id == "dashboard"
        # Handler never ran
        assert kernel.store.jobs == []

    def test_forbidden_caller_is_audited(self, kernel):
        kernel.invoke("docs", "jobs.list")

        entry = kernel.store.audit_for("org-acme")[-1]
        assert entry.action == "FORBIDDEN_SYSCALL"
        assert entry.resource_id == "docs"
        assert entry.details == "Forbidden syscall: jobs.list"
        assert entry.user_id == "u-ada"

    def test_forbidden_caller_not_counted(self, kernel):
        kernel.invoke("docs", "jobs.list")
        assert kernel.metrics.total == 0

    @pytest.mark.parametrize("user_id", ["u-ada", "u-dev", "u-ops", "u-aud"])
    def test_forbidden_caller_for_every_role(self, kernel, user_id):
        kernel.set_active_user(user_id)
        before = tenant_state(kernel)

        result = kernel.invoke("dashboard", "jobs.cancel", {"job_id": "j-any"})

        assert result.error.kind == ErrorKind.FORBIDDEN_CALLER
        assert actions(kernel)[-1] == "FORBIDDEN_SYSCALL"
        assert kernel.store.audit_for("org-acme")[-1].user_id == user_id
        assert tenant_state(kernel) == before

    def test_unknown_app(self, kernel):
        result = kernel.invoke("rogue", "security.whoami")
        assert result.error.kind == ErrorKind.FORBIDDEN_CALLER

    def test_unknown_syscall(self, kernel):
        result = kernel.invoke("console", "kernel.shutdown")
        assert result.error.kind == ErrorKind.FORBIDDEN_CALLER
        assert result.error.syscall == "kernel.shutdown"

    def test_capability_checked_before_role(self, kernel):
        kernel.set_active_user("u-aud")
        result = kernel.invoke("dashboard", "jobs.submit", {"name": "x", "type": "BATCH"})
        assert result.error.kind == ErrorKind.FORBIDDEN_CALLER

    def test_workspace_restricted_app(self, clock, kernel_config):
        registry = CapabilityRegistry([
            CapabilityDescriptor(
                "dev-tool",
                frozenset({Syscall.JOBS_LIST}),
                allowed_workspaces=frozenset({Workspace.DEV}),
            )
        ])
        kernel = Kernel(config=kernel_config, clock=clock, registry=registry)

        assert kernel.invoke("dev-tool", "jobs.list").ok
        kernel.set_active_workspace("PROD")
        result = kernel.invoke("dev-tool", "jobs.list")
        assert result.error.kind == ErrorKind.FORBIDDEN_CALLER


class TestRoleCheck:
    """Step 2: role check"""

    def test_forbidden_role(self, kernel):
        kernel.set_active_user("u-dev")
        result = kernel.invoke("jobs", "jobs.tick")

        assert result.error.kind == ErrorKind.FORBIDDEN_ROLE
        assert "DEV" in result.error.message
        assert kernel.metrics.total == 0

    def test_role_denial_audited_by_default(self, kernel):
        kernel.set_active_user("u-aud")
        kernel.invoke("jobs", "jobs.submit", {"name": "x", "type": "BATCH"})

        entry = kernel.store.audit_for("org-acme")[-1]
        assert entry.action == "FORBIDDEN_ROLE"
        assert entry.user_id == "u-aud"

    def test_role_denial_audit_can_be_disabled(self, clock):
        kernel = Kernel(config=KernelConfig(audit_role_denials=False), clock=clock)
        kernel.set_active_user("u-aud")
        before = len(kernel.store.audit_entries)

        result = kernel.invoke("jobs", "jobs.submit", {"name": "x", "type": "BATCH"})

        assert result.error.kind == ErrorKind.FORBIDDEN_ROLE
        assert len(kernel.store.audit_entries) == before

    @pytest.mark.parametrize(
        "user_id,app_id,syscall,args",
        [
            ("u-aud", "jobs", "jobs.submit", {"name": "x", "type": "BATCH"}),
            ("u-aud", "data-onboarding", "datasets.create", {"name": "d", "workspace": "DEV"}),
            ("u-dev", "console", "snapshots.create", {}),
            ("u-dev", "jobs", "jobs.tick", {}),
        ],
    )
    def test_role_denial_changes_nothing(self, kernel, jobs_app, user_id, app_id, syscall, args):
        jobs_app.submit_job(name="existing", type="BATCH")
        kernel.set_active_user(user_id)
        before = tenant_state(kernel)

        result = kernel.invoke(app_id, syscall, args)

        assert result.error.kind == ErrorKind.FORBIDDEN_ROLE
        assert tenant_state(kernel) == before
        assert kernel.scheduler.pending() == 0


class TestMetrics:
    """Step 3: metrics"""

    def test_authorized_calls_counted(self, kernel, clock):
        kernel.invoke("jobs", "jobs.list")
        clock.advance(5)
        kernel.invoke("jobs", "jobs.list")
        kernel.invoke("jobs", "security.whoami")

        metrics = kernel.kernel_metrics()
        assert metrics.total_syscalls == 3
        assert metrics.syscalls_by_name == {"jobs.list": 2, "security.whoami": 1}
        assert metrics.last_syscall_time == clock.now_iso()

    def test_total_matches_sum(self, kernel):
        for syscall in ("jobs.list", "audit.list", "jobs.tick", "security.org"):
            kernel.invoke("jobs", syscall)
        metrics = kernel.kernel_metrics()
        assert metrics.total_syscalls == sum(metrics.syscalls_by_name.values())

    def test_metrics_copy_is_detached(self, kernel):
        kernel.invoke("jobs", "jobs.list")
        snapshot = kernel.invoke("console", "kernel.metrics").value
        snapshot.syscalls_by_name["jobs.list"] = 999
        assert kernel.metrics.count("jobs.list") == 1

    def test_invalid_args_still_counted(self, kernel):
        kernel.invoke("jobs", "jobs.submit", {"name": "x"})
        assert kernel.metrics.count(Syscall.JOBS_SUBMIT) == 1


class TestHandlerLookup:
    """Step 4: handler lookup"""

    def test_missing_handler(self, kernel):
        dispatcher = Dispatcher(
            kernel.registry, kernel.store, kernel.jobs, kernel.snapshots,
            kernel.vfs, kernel.metrics, handlers={}, strict=False,
        )
        result = dispatcher.invoke("jobs", "jobs.list")

        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert "No handler" in result.error.message
        assert kernel.metrics.count("jobs.list") == 1

    def test_strict_table_check(self, kernel):
        with pytest.raises(ConfigError) as exc_info:
            Dispatcher(
                kernel.registry, kernel.store, kernel.jobs, kernel.snapshots,
                kernel.vfs, kernel.metrics, handlers={},
            )
        assert "jobs.list" in exc_info.value.details["missing_handlers"]


class TestExecution:
    """Step 5: argument validation and execution"""

    def test_ok_result(self, kernel):
        result = kernel.invoke("jobs", "security.whoami")
        assert result.ok
        assert result.value.id == "u-ada"

    def test_reads_are_repeatable(self, kernel, jobs_app):
        jobs_app.submit_job(name="a", type="BATCH")
        jobs_app.submit_job(name="b", type="ETL", dataset_id="ds-customers")

        first = kernel.invoke("dashboard", "jobs.list").value
        second = kernel.invoke("dashboard", "jobs.list").value

        assert first == second
        assert [j.name for j in first] == ["a", "b"]

    def test_result_mutation_does_not_reach_kernel(self, kernel, jobs_app):
        jobs_app.submit_job(name="x", type="BATCH")
        dashboard = kernel.app("dashboard")
        audit_before = len(kernel.store.audit_entries)

        listed = dashboard.list_jobs()
        listed[0].status = JobStatus.COMPLETED
        listed[0].events.clear()
        listed.clear()

        stored = kernel.store.jobs_for("org-acme")[0]
        assert stored.status == JobStatus.PENDING
        assert len(stored.events) == 2
        assert len(kernel.store.audit_entries) == audit_before
        assert dashboard.list_jobs()[0].status == JobStatus.PENDING

    def test_missing_required_field(self, kernel):
        result = kernel.invoke("jobs", "jobs.submit", {"name": "x"})
        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert any(err["loc"] == ("type",) for err in result.error.details)

    def test_extra_field_rejected(self, kernel):
        result = kernel.invoke("jobs", "jobs.submit", {"name": "x", "type": "BATCH", "owner_id": "u-dev"})
        assert result.error.kind == ErrorKind.INVALID_ARGUMENT

    def test_wrong_args_type(self, kernel):
        result = kernel.invoke("jobs", "jobs.retry", "j-123")
        assert result.error.kind == ErrorKind.INVALID_ARGUMENT

    def test_typed_fault_keeps_kind(self, kernel):
        result = kernel.invoke("jobs", "jobs.retry", {"job_id": "j-missing"})
        assert result.error.kind == ErrorKind.NOT_FOUND
        assert result.error.details == {"id": "j-missing"}

    def test_typed_fault_not_audited(self, kernel):
        before = len(kernel.store.audit_entries)
        kernel.invoke("jobs", "jobs.cancel", {"job_id": "j-missing"})
        assert len(kernel.store.audit_entries) == before

    def test_handler_crash(self, kernel):
        error = RuntimeError("disk on fire")

        def boom(ctx, args):
            raise error

        kernel.dispatcher.register_handler(Syscall.JOBS_LIST, boom)
        result = kernel.invoke("jobs", "jobs.list")

        assert result.error.kind == ErrorKind.INTERNAL_ERROR
        assert result.error.details is error
        assert "disk on fire" in result.error.message
        assert actions(kernel)[-1] == "KERNEL_SYSCALL_ERROR"

    def test_handler_raising_fault_directly(self, kernel):
        def picky(ctx, args):
            raise KernelFault.invalid_argument("nope", field="x")

        kernel.dispatcher.register_handler(Syscall.JOBS_LIST, picky)
        result = kernel.invoke("jobs", "jobs.list")
        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert result.error.details == {"field": "x"}

    def test_error_to_dict(self, kernel):
        result = kernel.invoke("docs", "jobs.list")
        data = result.error.to_dict()
        assert data["kind"] == "FORBIDDEN_CALLER"
        assert data["caller_id"] == "docs"


class TestPanic:
    """Kernel panic and reboot"""

    def test_panic_blocks_everything(self, kernel):
        kernel.panic("test")
        result = kernel.invoke("jobs", "security.whoami")

        assert result.error.kind == ErrorKind.INTERNAL_ERROR
        assert result.error.message == "kernel panic"
        assert actions(kernel)[-1] == "KERNEL_PANIC"

    def test_reboot_clears_panic_and_metrics(self, kernel, clock):
        kernel.invoke("jobs", "jobs.list")
        kernel.panic()
        clock.advance(60)
        kernel.reboot()

        assert kernel.invoke("jobs", "jobs.list").ok
        metrics = kernel.kernel_metrics()
        assert metrics.total_syscalls == 1
        assert metrics.boot_time == clock.now_iso()
