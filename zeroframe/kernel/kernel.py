# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe Kernel - wires the store, job engine, dispatcher and session.

Usage:
    kernel = Kernel.from_config(get_config())
    result = kernel.invoke("jobs", "jobs.list")
    if result.ok:
        print(result.value)

    jobs_app = kernel.app("jobs")
    job = jobs_app.submit_job(name="nightly", type="BATCH")
"""

from __future__ import annotations

import logging
import random
from typing import Any, Optional

from zeroframe.core.config import KernelConfig, ZeroframeConfig
from zeroframe.core.exceptions import SessionError
from zeroframe.kernel.capabilities import CapabilityRegistry
from zeroframe.kernel.client import AppClient
from zeroframe.kernel.dispatcher import Dispatcher
from zeroframe.kernel.errors import DispatchResult, ErrorKind, make_error
from zeroframe.kernel.jobs import JobEngine
from zeroframe.kernel.metrics import MetricsRecorder
from zeroframe.kernel.scheduler import DeferredScheduler, ManualClock, SystemClock
from zeroframe.kernel.seed import SeedData, default_seed
from zeroframe.kernel.snapshots import SnapshotManager
from zeroframe.kernel.store import KernelStore
from zeroframe.kernel.types import KernelMetrics, ResourceType, Workspace
from zeroframe.kernel.vfs import VirtualFileSystem

logger = logging.getLogger("zeroframe.kernel")


class Kernel:
    """The running kernel: one store, one dispatcher, one session"""

    def __init__(
        self,
        config: Optional[KernelConfig] = None,
        registry: Optional[CapabilityRegistry] = None,
        seed: Optional[SeedData] = None,
        clock: Optional[SystemClock] = None,
        rng: Optional[random.Random] = None,
        strict: bool = True,
    ):
        self.config = config or KernelConfig()
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random(self.config.random_seed)
        self.registry = registry or CapabilityRegistry()

        self.store = KernelStore(
            seed or default_seed(),
            self.clock,
            active_org_id=self.config.default_org_id,
            active_workspace=Workspace(self.config.default_workspace),
        )
        self.scheduler = DeferredScheduler(self.clock)
        self.metrics = MetricsRecorder(self.clock)
        self.jobs = JobEngine(self.store, self.scheduler, self.config, self.rng)
        self.snapshots = SnapshotManager(self.store, self.metrics, self.jobs)
        self.vfs = VirtualFileSystem(self.store, self.rng)
        self.dispatcher = Dispatcher(
            registry=self.registry,
            store=self.store,
            jobs=self.jobs,
            snapshots=self.snapshots,
            vfs=self.vfs,
            metrics=self.metrics,
            config=self.config,
            strict=strict,
        )

        self.panicked = False
        self.panic_reason: Optional[str] = None
        logger.info(
            f"Kernel booted (org={self.store.active_org_id}, "
            f"workspace={self.store.active_workspace.value}, apps={len(self.registry.app_ids)})"
        )

    @classmethod
    def from_config(cls, config: ZeroframeConfig, **kwargs: Any) -> "Kernel":
        """Build a kernel from the full config, loading the capability file if set"""
        kernel_config = config.kernel
        if "registry" not in kwargs and kernel_config.capabilities_file is not None:
            kwargs["registry"] = CapabilityRegistry.from_file(kernel_config.capabilities_file)
        return cls(config=kernel_config, **kwargs)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def invoke(self, caller_id: str, syscall: Any, args: Any = None) -> DispatchResult:
        """Dispatch a syscall; a panicked kernel refuses everything"""
        if self.panicked:
            return make_error(
                ErrorKind.INTERNAL_ERROR, "kernel panic",
                syscall=syscall, caller_id=caller_id,
                details={"reason": self.panic_reason},
            )
        return self.dispatcher.invoke(caller_id, syscall, args)

    def app(self, app_id: str):
        """Client bound to one app id"""
        return AppClient(self, app_id)

    # =========================================================================
    # Session
    # =========================================================================

    def set_active_user(self, user_id: str):
        store = self.store
        user = store.find_user(user_id)
        previous = store.active_user_id
        store.active_user_id = user.id
        store.log_audit(
            user.id, "USER_SWITCHED", ResourceType.SECURITY, user.id,
            f"Active user changed from {previous} to {user.id}",
        )
        logger.info(f"Active user: {user.name} ({user.role.value})")

    def set_active_workspace(self, workspace: Any):
        try:
            resolved = Workspace(str(getattr(workspace, "value", workspace)).upper())
        except ValueError:
            raise SessionError(f"Unknown workspace {workspace}", field="workspace", value=workspace)
        store = self.store
        previous = store.active_workspace
        store.active_workspace = resolved
        store.log_audit(
            store.active_user_id, "WORKSPACE_SWITCHED", ResourceType.SECURITY, resolved.value,
            f"Workspace changed from {previous.value} to {resolved.value}",
        )
        logger.info(f"Active workspace: {resolved.value}")

    def set_active_org(self, org_id: str):
        store = self.store
        org = store.find_org(org_id)
        previous = store.active_org_id
        store.active_org_id = org.id
        store.log_audit(
            store.active_user_id, "ORG_SWITCHED", ResourceType.SECURITY, org.id,
            f"Active org changed from {previous} to {org.id}",
        )
        logger.info(f"Active org: {org.name}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def panic(self, reason: Optional[str] = None):
        """Halt dispatch until reboot"""
        self.panicked = True
        self.panic_reason = reason or "Kernel panic triggered"
        logger.critical(f"KERNEL PANIC: {self.panic_reason}")
        self.store.log_audit(
            self.store.active_user_id, "KERNEL_PANIC", ResourceType.SYSTEM_APP, "kernel",
            self.panic_reason,
        )

    def reboot(self):
        """Reset metrics and clear the panic flag. State is kept."""
        self.metrics.reset()
        self.panicked = False
        self.panic_reason = None
        logger.info("Kernel rebooted")

    # =========================================================================
    # Time
    # =========================================================================

    def run_pending(self) -> int:
        """Fire due job completions"""
        return self.scheduler.run_pending()

    def advance(self, seconds: float) -> int:
        """Move a ManualClock forward and fire what became due"""
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() needs a kernel built with a ManualClock")
        self.clock.advance(seconds)
        return self.run_pending()

    def kernel_metrics(self) -> KernelMetrics:
        return self.metrics.snapshot()
