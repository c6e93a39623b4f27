# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Tests for the app capability registry

These tests verify:
- The built-in allow-lists
- Unknown apps and syscalls are denied
- Workspace restrictions
- Loading descriptors from YAML
"""

import pytest

from zeroframe.core.exceptions import ConfigError
from zeroframe.kernel.capabilities import (
    APP_CAPABILITIES,
    CapabilityDescriptor,
    CapabilityRegistry,
    parse_descriptor,
)
from zeroframe.kernel.syscalls import Syscall
from zeroframe.kernel.types import Workspace


@pytest.fixture
def registry():
    return CapabilityRegistry()


class TestDefaultTable:
    """Built-in capability table"""

    def test_all_apps_present(self, registry):
        assert set(registry.app_ids) == {
            "jobs", "dashboard", "ghost-abend", "shadowasm", "audit", "datasets",
            "security", "console", "process-manager", "docs", "desktop", "data-onboarding",
        }

    def test_jobs_app_can_submit(self, registry):
        assert registry.allows("jobs", Syscall.JOBS_SUBMIT)
        assert registry.allows("jobs", "jobs.submit")

    def test_dashboard_is_read_only(self, registry):
        assert registry.allows("dashboard", "jobs.list")
        assert not registry.allows("dashboard", "jobs.submit")
        assert not registry.allows("dashboard", "jobs.cancel")

    def test_unknown_app_allowed_nothing(self, registry):
        for syscall in Syscall:
            assert not registry.allows("rogue-app", syscall)

    def test_unknown_syscall_denied(self, registry):
        assert not registry.allows("console", "kernel.shutdown")
        assert not registry.allows("console", None)

    def test_identity_grants_include_org(self):
        for descriptor in APP_CAPABILITIES:
            if Syscall.SECURITY_WHOAMI in descriptor.allowed_syscalls:
                assert Syscall.SECURITY_ORG in descriptor.allowed_syscalls

    def test_only_ghost_abend_updates_jobs(self, registry):
        updaters = [a for a in registry.app_ids if registry.allows(a, "jobs.update")]
        assert updaters == ["ghost-abend"]


class TestRegistry:
    """Registry construction and workspace restrictions"""

    def test_duplicate_descriptor_rejected(self):
        descriptor = CapabilityDescriptor("a", frozenset({Syscall.JOBS_LIST}))
        with pytest.raises(ConfigError):
            CapabilityRegistry([descriptor, descriptor])

    def test_workspace_restriction(self):
        registry = CapabilityRegistry([
            CapabilityDescriptor(
                "dev-only",
                frozenset({Syscall.JOBS_LIST}),
                allowed_workspaces=frozenset({Workspace.DEV}),
            )
        ])
        assert registry.allows("dev-only", "jobs.list", Workspace.DEV)
        assert not registry.allows("dev-only", "jobs.list", Workspace.PROD)
        # No workspace given: only the allow-list matters
        assert registry.allows("dev-only", "jobs.list")

    def test_descriptors_are_immutable(self, registry):
        descriptor = registry.get("jobs")
        with pytest.raises(AttributeError):
            descriptor.app_id = "other"


class TestFromFile:
    """YAML capability files"""

    def test_load_file(self, tmp_path):
        path = tmp_path / "caps.yaml"
        path.write_text(
            "apps:\n"
            "  - app_id: reporting\n"
            "    allowed_syscalls: [jobs.list, audit.log]\n"
            "    allowed_workspaces: [dev, uat]\n"
            "  - app_id: viewer\n"
            "    allowed_syscalls: [datasets.list]\n",
            encoding="utf-8",
        )
        registry = CapabilityRegistry.from_file(path)

        assert registry.app_ids == ["reporting", "viewer"]
        assert registry.allows("reporting", "audit.log", Workspace.UAT)
        assert not registry.allows("reporting", "audit.log", Workspace.PROD)
        assert registry.get("viewer").allowed_workspaces is None

    def test_unknown_syscall_in_file(self, tmp_path):
        path = tmp_path / "caps.yaml"
        path.write_text(
            "apps:\n  - app_id: x\n    allowed_syscalls: [jobs.list, jobs.nuke]\n",
            encoding="utf-8",
        )
        with pytest.raises(ConfigError) as exc_info:
            CapabilityRegistry.from_file(path)
        assert exc_info.value.details["unknown"] == ["jobs.nuke"]

    def test_missing_apps_list(self, tmp_path):
        path = tmp_path / "caps.yaml"
        path.write_text("apps: nope\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            CapabilityRegistry.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            CapabilityRegistry.from_file(tmp_path / "absent.yaml")

    def test_invalid_workspace(self):
        with pytest.raises(ConfigError):
            parse_descriptor({"app_id": "x", "allowed_workspaces": ["MARS"]})

    def test_entry_without_app_id(self):
        with pytest.raises(ConfigError):
            parse_descriptor({"allowed_syscalls": ["jobs.list"]})
