# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Syscall handlers.

One function per syscall, registered with ``@syscall_handler``. A handler
gets the SyscallContext and the already-validated args model and returns
the syscall's value. Expected failures are raised as ``KernelFault``.
Every read and write is scoped to ``ctx.org_id``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from zeroframe.kernel.jobs import JobEngine
from zeroframe.kernel.metrics import MetricsRecorder
from zeroframe.kernel.processes import list_processes
from zeroframe.kernel.profiling import compute_dataset_profile
from zeroframe.kernel.snapshots import SnapshotManager
from zeroframe.kernel.store import KernelStore
from zeroframe.kernel.syscalls import (
    ConsumeMessagesArgs,
    CreateDatasetArgs,
    CreateSnapshotArgs,
    EmptyArgs,
    JobRefArgs,
    LogAuditArgs,
    SendMessageArgs,
    SnapshotRefArgs,
    SubmitJobArgs,
    Syscall,
    UpdateJobArgs,
    VfsPathArgs,
)
from zeroframe.kernel.types import (
    AuditEntry,
    Dataset,
    DatasetColumn,
    DatasetType,
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
from zeroframe.kernel.vfs import VirtualFileSystem

logger = logging.getLogger("zeroframe.handlers")


@dataclass
class SyscallContext:
    """Everything a handler may touch during one invocation"""
    caller_id: str
    user: User
    org_id: str
    workspace: Workspace
    store: KernelStore
    jobs: JobEngine
    snapshots: SnapshotManager
    vfs: VirtualFileSystem
    metrics: MetricsRecorder


Handler = Callable[[SyscallContext, Any], Any]

SYSCALL_HANDLERS: Dict[Syscall, Handler] = {}


def syscall_handler(syscall: Syscall):
    """Decorator to register a syscall handler"""
    def decorator(func: Handler) -> Handler:
        if syscall in SYSCALL_HANDLERS:
            raise ValueError(f"Handler for {syscall.value} already registered")
        SYSCALL_HANDLERS[syscall] = func
        return func

    return decorator


# =============================================================================
# Jobs
# =============================================================================


@syscall_handler(Syscall.JOBS_LIST)
def list_jobs(ctx: SyscallContext, args: EmptyArgs) -> List[Job]:
    return ctx.store.jobs_for(ctx.org_id)


@syscall_handler(Syscall.JOBS_SUBMIT)
def submit_job(ctx: SyscallContext, args: SubmitJobArgs) -> Job:
    return ctx.jobs.submit(ctx.user, ctx.org_id, args)


@syscall_handler(Syscall.JOBS_RETRY)
def retry_job(ctx: SyscallContext, args: JobRefArgs) -> Job:
    return ctx.jobs.retry(ctx.user, ctx.org_id, args.job_id)


@syscall_handler(Syscall.JOBS_CANCEL)
def cancel_job(ctx: SyscallContext, args: JobRefArgs) -> Job:
    return ctx.jobs.cancel(ctx.user, ctx.org_id, args.job_id)


@syscall_handler(Syscall.JOBS_TICK)
def tick_jobs(ctx: SyscallContext, args: EmptyArgs) -> Optional[Job]:
    return ctx.jobs.tick(ctx.org_id)


@syscall_handler(Syscall.JOBS_UPDATE)
def update_job(ctx: SyscallContext, args: UpdateJobArgs) -> Job:
    return ctx.jobs.update(ctx.user, ctx.org_id, args.job_id, args.changes)


# =============================================================================
# Datasets
# =============================================================================


@syscall_handler(Syscall.DATASETS_LIST)
def list_datasets(ctx: SyscallContext, args: EmptyArgs) -> List[Dataset]:
    return ctx.store.datasets_for(ctx.org_id)


@syscall_handler(Syscall.DATASETS_CREATE)
def create_dataset(ctx: SyscallContext, args: CreateDatasetArgs) -> Dataset:
    store = ctx.store
    now = store.now_iso()
    columns = None
    if args.columns is not None:
        columns = [
            DatasetColumn(
                name=c.name, type=c.type, nullable=c.nullable,
                sample_values=list(c.sample_values),
            )
            for c in args.columns
        ]
    dataset = Dataset(
        id=f"ds-{store.now_ms()}-{store.next_dataset_number()}",
        org_id=ctx.org_id,
        name=args.name,
        type=DatasetType.FILE,
        workspace=args.workspace,
        description=args.description,
        record_count=args.row_count,
        last_updated=now,
        source=args.source,
        columns=columns,
        row_count=args.row_count,
        sample_rows=[dict(row) for row in args.sample_rows] if args.sample_rows is not None else None,
    )
    dataset.profile = compute_dataset_profile(dataset, now)
    store.datasets.append(dataset)

    store.log_audit(
        ctx.user.id, "DATASET_CREATED", ResourceType.DATASET, dataset.id,
        f'Dataset "{dataset.name}" created via {dataset.source.value} in workspace {dataset.workspace.value}',
        org_id=ctx.org_id,
    )
    logger.info(f"Dataset created: {dataset.id} ({dataset.name})")
    return dataset


# =============================================================================
# Audit
# =============================================================================


@syscall_handler(Syscall.AUDIT_LIST)
def list_audit(ctx: SyscallContext, args: EmptyArgs) -> List[AuditEntry]:
    return ctx.store.audit_for(ctx.org_id)


@syscall_handler(Syscall.AUDIT_LOG)
def log_audit(ctx: SyscallContext, args: LogAuditArgs) -> AuditEntry:
    return ctx.store.log_audit(
        user_id=args.user_id or ctx.user.id,
        action=args.action,
        resource_type=args.resource_type,
        resource_id=args.resource_id,
        details=args.details,
        org_id=ctx.org_id,
    )


# =============================================================================
# Identity
# =============================================================================


@syscall_handler(Syscall.SECURITY_WHOAMI)
def whoami(ctx: SyscallContext, args: EmptyArgs) -> User:
    return ctx.user


@syscall_handler(Syscall.SECURITY_WORKSPACE)
def current_workspace(ctx: SyscallContext, args: EmptyArgs) -> Workspace:
    return ctx.workspace


@syscall_handler(Syscall.SECURITY_ORG)
def current_org(ctx: SyscallContext, args: EmptyArgs) -> OrgInfo:
    org = ctx.store.find_org(ctx.org_id)
    return OrgInfo(
        org=org,
        plan=ctx.store.plan_for(org),
        org_role=ctx.store.org_role_for(ctx.user.id, org.id),
    )


# =============================================================================
# Messaging
# =============================================================================


@syscall_handler(Syscall.MESSAGING_SEND)
def send_message(ctx: SyscallContext, args: SendMessageArgs) -> KernelMessage:
    store = ctx.store
    message = KernelMessage(
        id=f"msg-{store.now_ms()}-{len(store.messages) + 1}",
        org_id=ctx.org_id,
        from_app_id=args.from_app_id or ctx.caller_id,
        to_app_id=args.to_app_id,
        type=args.type,
        payload=args.payload,
        timestamp=store.now_iso(),
        consumed=False,
    )
    store.messages.append(message)
    store.log_audit(
        ctx.user.id, "MESSAGE_SENT", ResourceType.SYSTEM_APP, message.id,
        f"{message.from_app_id} -> {message.to_app_id}: {message.type}",
        org_id=ctx.org_id,
    )
    return message


@syscall_handler(Syscall.MESSAGING_CONSUME)
def consume_messages(ctx: SyscallContext, args: ConsumeMessagesArgs) -> List[KernelMessage]:
    app_id = args.app_id or ctx.caller_id
    consumed = []
    for message in ctx.store.messages:
        if not message.consumed and message.to_app_id == app_id and message.org_id == ctx.org_id:
            message.consumed = True
            consumed.append(message)

    if consumed:
        ctx.store.log_audit(
            ctx.user.id, "MESSAGES_CONSUMED", ResourceType.SYSTEM_APP, app_id,
            f"{len(consumed)} message(s) consumed by {app_id}",
            org_id=ctx.org_id,
        )
    return consumed


# =============================================================================
# Introspection
# =============================================================================


@syscall_handler(Syscall.PROCESSES_LIST)
def list_os_processes(ctx: SyscallContext, args: EmptyArgs) -> List[OsProcess]:
    return list_processes(ctx.store.jobs_for(ctx.org_id), ctx.metrics.snapshot())


@syscall_handler(Syscall.KERNEL_METRICS)
def kernel_metrics(ctx: SyscallContext, args: EmptyArgs) -> KernelMetrics:
    return ctx.metrics.snapshot()


# =============================================================================
# Snapshots
# =============================================================================


@syscall_handler(Syscall.SNAPSHOTS_LIST)
def list_snapshots(ctx: SyscallContext, args: EmptyArgs) -> List[KernelSnapshot]:
    return ctx.snapshots.list(ctx.org_id)


@syscall_handler(Syscall.SNAPSHOTS_CREATE)
def create_snapshot(ctx: SyscallContext, args: CreateSnapshotArgs) -> KernelSnapshot:
    return ctx.snapshots.create(ctx.user, ctx.org_id, args.label)


@syscall_handler(Syscall.SNAPSHOTS_RESTORE)
def restore_snapshot(ctx: SyscallContext, args: SnapshotRefArgs) -> KernelSnapshot:
    return ctx.snapshots.restore(ctx.user, ctx.org_id, args.snapshot_id)


# =============================================================================
# VFS
# =============================================================================


@syscall_handler(Syscall.VFS_LIST)
def vfs_list(ctx: SyscallContext, args: VfsPathArgs) -> Optional[VfsNode]:
    return ctx.vfs.resolve(args.path, ctx.org_id)


@syscall_handler(Syscall.VFS_READ_FILE)
def vfs_read_file(ctx: SyscallContext, args: VfsPathArgs) -> Optional[str]:
    return ctx.vfs.read_file(args.path, ctx.org_id)

