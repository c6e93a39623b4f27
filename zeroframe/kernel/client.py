# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
AppClient - the SDK system apps use to talk to the kernel.

Every method routes through the dispatcher as the bound app id, so an app
can only do what its capability descriptor allows. Errors come back as
``KernelFault`` exceptions instead of ``Err`` values.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from zeroframe.kernel.errors import KernelFault
from zeroframe.kernel.syscalls import Syscall
from zeroframe.kernel.types import (
    AuditEntry,
    Dataset,
    Job,
    KernelMessage,
    KernelMetrics,
    KernelSnapshot,
    OrgInfo,
    OsProcess,
    ResourceType,
    User,
    VfsNode,
    Workspace,
)

if TYPE_CHECKING:
    from zeroframe.kernel.kernel import Kernel

logger = logging.getLogger("zeroframe.client")


class AppClient:
    def __init__(self, kernel: "Kernel", app_id: str):
        self.kernel = kernel
        self.app_id = app_id

    def call(self, syscall: Any, args: Any = None) -> Any:
        """
        Invoke a syscall and unwrap the result.

        Raises:
            KernelFault: If the dispatcher returned Err
        """
        result = self.kernel.invoke(self.app_id, syscall, args)
        if not result.ok:
            logger.warning(f"Syscall failed: {self.app_id} -> {result.error.syscall}: {result.error.message}")
            raise KernelFault.from_error(result.error)
        return result.value

    def can(self, syscall: Any) -> bool:
        """Whether the capability table grants this app the syscall"""
        return self.kernel.registry.allows(self.app_id, syscall)

    # Jobs

    def list_jobs(self) -> List[Job]:
        return self.call(Syscall.JOBS_LIST)

    def submit_job(self, **fields: Any) -> Job:
        return self.call(Syscall.JOBS_SUBMIT, fields)

    def retry_job(self, job_id: str) -> Job:
        return self.call(Syscall.JOBS_RETRY, {"job_id": job_id})

    def cancel_job(self, job_id: str) -> Job:
        return self.call(Syscall.JOBS_CANCEL, {"job_id": job_id})

    def run_worker_tick(self) -> Optional[Job]:
        return self.call(Syscall.JOBS_TICK)

    def update_job(self, job_id: str, **changes: Any) -> Job:
        return self.call(Syscall.JOBS_UPDATE, {"job_id": job_id, "changes": changes})

    # Datasets

    def list_datasets(self) -> List[Dataset]:
        return self.call(Syscall.DATASETS_LIST)

    def create_dataset(self, **fields: Any) -> Dataset:
        return self.call(Syscall.DATASETS_CREATE, fields)

    # Audit

    def list_audit(self) -> List[AuditEntry]:
        return self.call(Syscall.AUDIT_LIST)

    def log_app_audit(
        self,
        action: str,
        resource_type: ResourceType = ResourceType.SYSTEM_APP,
        resource_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> AuditEntry:
        """Log an app action; resource and details default to the app itself"""
        return self.call(Syscall.AUDIT_LOG, {
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id or self.app_id,
            "details": details or f"App {self.app_id} action: {action}",
        })

    # Identity

    def whoami(self) -> User:
        return self.call(Syscall.SECURITY_WHOAMI)

    def workspace(self) -> Workspace:
        return self.call(Syscall.SECURITY_WORKSPACE)

    def org(self) -> OrgInfo:
        return self.call(Syscall.SECURITY_ORG)

    # Messaging

    def send_message(self, to_app_id: str, type: str, payload: Any = None) -> KernelMessage:
        return self.call(Syscall.MESSAGING_SEND, {
            "from_app_id": self.app_id,
            "to_app_id": to_app_id,
            "type": type,
            "payload": payload,
        })

    def consume_messages(self) -> List[KernelMessage]:
        return self.call(Syscall.MESSAGING_CONSUME, {"app_id": self.app_id})

    # Introspection

    def list_processes(self) -> List[OsProcess]:
        return self.call(Syscall.PROCESSES_LIST)

    def get_metrics(self) -> KernelMetrics:
        return self.call(Syscall.KERNEL_METRICS)

    # VFS

    def list_vfs_path(self, path: str = "/") -> Optional[VfsNode]:
        return self.call(Syscall.VFS_LIST, {"path": path})

    def read_vfs_file(self, path: str) -> Optional[str]:
        return self.call(Syscall.VFS_READ_FILE, {"path": path})

    # Snapshots

    def list_snapshots(self) -> List[KernelSnapshot]:
        return self.call(Syscall.SNAPSHOTS_LIST)

    def create_snapshot(self, label: Optional[str] = None) -> KernelSnapshot:
        args: Dict[str, Any] = {"label": label} if label else {}
        return self.call(Syscall.SNAPSHOTS_CREATE, args)

    def restore_snapshot(self, snapshot_id: str) -> KernelSnapshot:
        return self.call(Syscall.SNAPSHOTS_RESTORE, {"snapshot_id": snapshot_id})
