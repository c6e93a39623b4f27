# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Role-based access control at the kernel level.

Two layers:
- ROLE_PERMISSIONS maps a user role to coarse permission actions.
- ROLE_RULES maps every syscall to a predicate over the role.

``role_allows`` is total: an unknown role or syscall is denied.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, FrozenSet

from zeroframe.core.exceptions import ConfigError
from zeroframe.kernel.syscalls import Syscall
from zeroframe.kernel.types import Role


class PermissionAction(str, Enum):
    VIEW_JOBS = "VIEW_JOBS"
    SUBMIT_JOB = "SUBMIT_JOB"
    MANAGE_JOBS = "MANAGE_JOBS"  # retry, cancel, tick, update
    VIEW_DATASETS = "VIEW_DATASETS"
    MANAGE_DATASETS = "MANAGE_DATASETS"
    VIEW_SECURITY = "VIEW_SECURITY"
    MANAGE_SECURITY = "MANAGE_SECURITY"
    VIEW_AUDIT = "VIEW_AUDIT"
    MANAGE_APPS = "MANAGE_APPS"


A = PermissionAction

ROLE_PERMISSIONS: Dict[Role, FrozenSet[PermissionAction]] = {
    Role.DEV: frozenset({A.VIEW_JOBS, A.SUBMIT_JOB, A.VIEW_DATASETS}),
    Role.OPERATOR: frozenset({A.VIEW_JOBS, A.SUBMIT_JOB, A.MANAGE_JOBS, A.VIEW_DATASETS}),
    Role.AUDITOR: frozenset({A.VIEW_JOBS, A.VIEW_DATASETS, A.VIEW_SECURITY, A.VIEW_AUDIT}),
    Role.ADMIN: frozenset(PermissionAction),
}


def _coerce_role(role: Any):
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def has_permission(role: Any, action: PermissionAction) -> bool:
    """Check if a role grants a permission action"""
    resolved = _coerce_role(role)
    if resolved is None:
        return False
    return action in ROLE_PERMISSIONS.get(resolved, frozenset())


RoleRule = Callable[[Role], bool]


def _always(role: Role) -> bool:
    return True


def _any_of(*actions: PermissionAction) -> RoleRule:
    def rule(role: Role) -> bool:
        return any(has_permission(role, action) for action in actions)

    rule.__name__ = "any_of(" + ", ".join(a.value for a in actions) + ")"
    return rule


ROLE_RULES: Dict[Syscall, RoleRule] = {
    Syscall.JOBS_LIST: _any_of(A.VIEW_JOBS),
    Syscall.JOBS_SUBMIT: _any_of(A.SUBMIT_JOB),
    Syscall.JOBS_RETRY: _any_of(A.MANAGE_JOBS),
    Syscall.JOBS_CANCEL: _any_of(A.MANAGE_JOBS),
    Syscall.JOBS_TICK: _any_of(A.MANAGE_JOBS),
    Syscall.JOBS_UPDATE: _any_of(A.MANAGE_JOBS),
    Syscall.DATASETS_LIST: _any_of(A.VIEW_DATASETS),
    # Developers create datasets while onboarding data for their jobs
    Syscall.DATASETS_CREATE: _any_of(A.MANAGE_DATASETS, A.SUBMIT_JOB),
    Syscall.AUDIT_LIST: _any_of(A.VIEW_AUDIT),
    # Apps log their own actions
    Syscall.AUDIT_LOG: _always,
    Syscall.SECURITY_WHOAMI: _always,
    Syscall.SECURITY_WORKSPACE: _always,
    Syscall.SECURITY_ORG: _always,
    # IPC is gated by capability only
    Syscall.MESSAGING_SEND: _always,
    Syscall.MESSAGING_CONSUME: _always,
    Syscall.PROCESSES_LIST: _any_of(A.VIEW_JOBS, A.VIEW_AUDIT),
    Syscall.KERNEL_METRICS: _any_of(A.MANAGE_JOBS, A.VIEW_AUDIT),
    Syscall.SNAPSHOTS_LIST: _any_of(A.MANAGE_JOBS, A.MANAGE_SECURITY),
    Syscall.SNAPSHOTS_CREATE: _any_of(A.MANAGE_JOBS, A.MANAGE_SECURITY),
    Syscall.SNAPSHOTS_RESTORE: _any_of(A.MANAGE_JOBS, A.MANAGE_SECURITY),
    Syscall.VFS_LIST: _always,
    Syscall.VFS_READ_FILE: _always,
}


def role_allows(role: Any, syscall: Any) -> bool:
    """Check if a role may call a syscall. Unknown role or syscall: deny."""
    resolved_role = _coerce_role(role)
    resolved_syscall = Syscall.parse(syscall)
    if resolved_role is None or resolved_syscall is None:
        return False
    rule = ROLE_RULES.get(resolved_syscall)
    if rule is None:
        return False
    return rule(resolved_role)


def check_role_table(rules: Dict[Syscall, RoleRule] = ROLE_RULES):
    """Raise ConfigError if any syscall lacks a role rule"""
    missing = [s.value for s in Syscall if s not in rules]
    if missing:
        raise ConfigError("Syscalls without a role rule", details={"missing": missing})
