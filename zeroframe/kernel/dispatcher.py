# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Syscall Dispatcher - the single entry point apps use to reach the kernel.

Every invocation passes, in order:
1. Capability check (caller's allow-list, optional workspace restriction)
2. Role check (active user's role)
3. Metrics
4. Handler lookup
5. Argument validation and handler execution

The result is always ``Ok`` or ``Err``; nothing raised by a handler leaves
``invoke``. ``Ok`` values are deep copies, so a caller cannot change kernel
state by mutating what it got back.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from zeroframe.core.config import KernelConfig
from zeroframe.core.exceptions import ConfigError
from zeroframe.kernel.capabilities import CapabilityRegistry
from zeroframe.kernel.errors import DispatchResult, ErrorKind, KernelFault, Ok, make_error
from zeroframe.kernel.handlers import SYSCALL_HANDLERS, Handler, SyscallContext
from zeroframe.kernel.jobs import JobEngine
from zeroframe.kernel.metrics import MetricsRecorder
from zeroframe.kernel.roles import ROLE_RULES, RoleRule
from zeroframe.kernel.snapshots import SnapshotManager
from zeroframe.kernel.store import KernelStore
from zeroframe.kernel.syscalls import Syscall, parse_args
from zeroframe.kernel.types import ResourceType
from zeroframe.kernel.vfs import VirtualFileSystem

logger = logging.getLogger("zeroframe.dispatcher")


class Dispatcher:
    """Capability- and role-gated syscall dispatch"""

    def __init__(
        self,
        registry: CapabilityRegistry,
        store: KernelStore,
        jobs: JobEngine,
        snapshots: SnapshotManager,
        vfs: VirtualFileSystem,
        metrics: MetricsRecorder,
        config: Optional[KernelConfig] = None,
        handlers: Optional[Dict[Syscall, Handler]] = None,
        role_rules: Optional[Dict[Syscall, RoleRule]] = None,
        strict: bool = True,
    ):
        self.registry = registry
        self.store = store
        self.jobs = jobs
        self.snapshots = snapshots
        self.vfs = vfs
        self.metrics = metrics
        self.config = config or KernelConfig()

        # Handler registry
        self._handlers: Dict[Syscall, Handler] = dict(
            SYSCALL_HANDLERS if handlers is None else handlers
        )
        self._role_rules: Dict[Syscall, RoleRule] = dict(
            ROLE_RULES if role_rules is None else role_rules
        )

        if strict:
            self._check_tables()

    def _check_tables(self):
        """Every syscall must have a handler and a role rule"""
        missing_handlers = [s.value for s in Syscall if s not in self._handlers]
        missing_rules = [s.value for s in Syscall if s not in self._role_rules]
        if missing_handlers or missing_rules:
            raise ConfigError(
                "Syscall table is incomplete",
                details={"missing_handlers": missing_handlers, "missing_role_rules": missing_rules},
            )

    def register_handler(self, syscall: Syscall, handler: Handler):
        """Register (or replace) a syscall handler"""
        self._handlers[Syscall(syscall)] = handler

    def _role_allows(self, syscall: Syscall) -> bool:
        rule = self._role_rules.get(syscall)
        if rule is None:
            return False
        return rule(self.store.active_user.role)

    def invoke(self, caller_id: str, syscall: Any, args: Any = None) -> DispatchResult:
        """
        Execute a syscall on behalf of an app.

        Args:
            caller_id: App id of the caller
            syscall: Syscall member or its dotted name
            args: Args model instance, mapping, or None

        Returns:
            Ok(value) or Err(KernelError)
        """
        store = self.store
        user = store.active_user
        name = getattr(syscall, "value", syscall)
        resolved = Syscall.parse(syscall)

        # 1. Capability check
        if resolved is None or not self.registry.allows(caller_id, resolved, store.active_workspace):
            store.log_audit(
                user.id, "FORBIDDEN_SYSCALL", ResourceType.SYSTEM_APP, caller_id,
                f"Forbidden syscall: {name}",
            )
            logger.warning(f"Forbidden syscall: {caller_id} -> {name}")
            return make_error(
                ErrorKind.FORBIDDEN_CALLER,
                f"App {caller_id} is not allowed to call {name}",
                syscall=name, caller_id=caller_id,
            )

        # 2. Role check
        if not self._role_allows(resolved):
            if self.config.audit_role_denials:
                store.log_audit(
                    user.id, "FORBIDDEN_ROLE", ResourceType.SECURITY, caller_id,
                    f"Role {user.role.value} not allowed to call {name}",
                )
            logger.warning(f"Role forbidden: {user.role.value} -> {name}")
            return make_error(
                ErrorKind.FORBIDDEN_ROLE,
                f"User role {user.role.value} not allowed to call {name}",
                syscall=resolved, caller_id=caller_id,
            )

        # 3. Metrics
        self.metrics.record(resolved)

        # 4. Handler lookup
        handler = self._handlers.get(resolved)
        if handler is None:
            return make_error(
                ErrorKind.INVALID_ARGUMENT,
                f"No handler for syscall {name}",
                syscall=resolved, caller_id=caller_id,
            )

        # 5. Execute
        try:
            parsed = parse_args(resolved, args)
        except ValidationError as e:
            return make_error(
                ErrorKind.INVALID_ARGUMENT,
                f"Invalid arguments for {name}",
                syscall=resolved, caller_id=caller_id,
                details=e.errors(include_url=False),
            )
        except TypeError as e:
            return make_error(
                ErrorKind.INVALID_ARGUMENT, str(e), syscall=resolved, caller_id=caller_id,
            )

        ctx = self._context(caller_id)
        try:
            value = handler(ctx, parsed)
        except KernelFault as fault:
            logger.debug(f"{name} rejected: {fault.message}")
            return make_error(
                fault.kind, fault.message,
                syscall=resolved, caller_id=caller_id, details=fault.details or None,
            )
        except Exception as e:
            logger.error(f"Syscall {name} failed for {caller_id}: {e}", exc_info=True)
            store.log_audit(
                user.id, "KERNEL_SYSCALL_ERROR", ResourceType.SYSTEM_APP, caller_id,
                f"Syscall {name} failed: {e}",
            )
            return make_error(
                ErrorKind.INTERNAL_ERROR,
                f"Syscall {name} failed: {e}",
                syscall=resolved, caller_id=caller_id, details=e,
            )

        # Callers get detached values; state only changes through handlers
        return Ok(copy.deepcopy(value))

    def _context(self, caller_id: str) -> SyscallContext:
        store = self.store
        return SyscallContext(
            caller_id=caller_id,
            user=store.active_user,
            org_id=store.active_org_id,
            workspace=store.active_workspace,
            store=store,
            jobs=self.jobs,
            snapshots=self.snapshots,
            vfs=self.vfs,
            metrics=self.metrics,
        )
