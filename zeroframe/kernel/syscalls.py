# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe syscall set and per-syscall argument models.

The set is closed: the capability registry, the role table and the handler
map are all keyed by ``Syscall``. Each syscall has exactly one pydantic
model describing its arguments (``EmptyArgs`` for syscalls without any).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from zeroframe.kernel.types import (
    DatasetColumnType,
    DatasetSource,
    JobPriority,
    JobType,
    ResourceType,
    Workspace,
)


class Syscall(str, Enum):
    """All operations apps can perform through the kernel"""

    # Jobs
    JOBS_LIST = "jobs.list"
    JOBS_SUBMIT = "jobs.submit"
    JOBS_RETRY = "jobs.retry"
    JOBS_CANCEL = "jobs.cancel"
    JOBS_TICK = "jobs.tick"
    JOBS_UPDATE = "jobs.update"

    # Datasets
    DATASETS_LIST = "datasets.list"
    DATASETS_CREATE = "datasets.create"

    # Audit
    AUDIT_LIST = "audit.list"
    AUDIT_LOG = "audit.log"

    # Identity
    SECURITY_WHOAMI = "security.whoami"
    SECURITY_WORKSPACE = "security.workspace"
    SECURITY_ORG = "security.org"

    # IPC
    MESSAGING_SEND = "messaging.send"
    MESSAGING_CONSUME = "messaging.consume"

    # Introspection
    PROCESSES_LIST = "processes.list"
    KERNEL_METRICS = "kernel.metrics"

    # Snapshots
    SNAPSHOTS_LIST = "snapshots.list"
    SNAPSHOTS_CREATE = "snapshots.create"
    SNAPSHOTS_RESTORE = "snapshots.restore"

    # VFS
    VFS_LIST = "vfs.list"
    VFS_READ_FILE = "vfs.readFile"

    @classmethod
    def parse(cls, name: Any) -> Optional["Syscall"]:
        """Return the Syscall for a name, or None if it is not in the set"""
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            return None


# =============================================================================
# Argument models
# =============================================================================


class SyscallArgs(BaseModel):
    """Base for all syscall argument models"""
    model_config = ConfigDict(extra="forbid")


class EmptyArgs(SyscallArgs):
    """Syscall takes no arguments"""


class SubmitJobArgs(SyscallArgs):
    name: str = Field(min_length=1)
    type: JobType
    workspace: Optional[Workspace] = None
    description: Optional[str] = None
    priority: JobPriority = JobPriority.NORMAL
    script_summary: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    dataset_id: Optional[str] = None
    input_dataset_ids: Optional[List[str]] = None
    output_dataset_ids: Optional[List[str]] = None


class JobRefArgs(SyscallArgs):
    job_id: str = Field(min_length=1)


class JobPatch(SyscallArgs):
    """Fields an app may change on an existing job"""
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[JobPriority] = None
    script_summary: Optional[str] = None
    rca_note: Optional[str] = None
    last_error: Optional[str] = None


class UpdateJobArgs(SyscallArgs):
    job_id: str = Field(min_length=1)
    changes: JobPatch


class ColumnSpec(SyscallArgs):
    name: str = Field(min_length=1)
    type: DatasetColumnType
    nullable: bool = True
    sample_values: List[str] = Field(default_factory=list)


class CreateDatasetArgs(SyscallArgs):
    name: str = Field(min_length=1)
    workspace: Workspace
    description: Optional[str] = None
    source: DatasetSource = DatasetSource.UPLOAD
    columns: Optional[List[ColumnSpec]] = None
    row_count: Optional[int] = Field(default=None, ge=0)
    sample_rows: Optional[List[Dict[str, Any]]] = None


class LogAuditArgs(SyscallArgs):
    action: str = Field(min_length=1)
    resource_type: ResourceType
    resource_id: Optional[str] = None
    details: Optional[str] = None
    user_id: Optional[str] = None


class SendMessageArgs(SyscallArgs):
    to_app_id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    payload: Any = None
    from_app_id: Optional[str] = None


class ConsumeMessagesArgs(SyscallArgs):
    app_id: Optional[str] = None


class CreateSnapshotArgs(SyscallArgs):
    label: Optional[str] = None


class SnapshotRefArgs(SyscallArgs):
    snapshot_id: str = Field(min_length=1)


class VfsPathArgs(SyscallArgs):
    path: str = "/"


ARGS_MODELS: Dict[Syscall, Type[SyscallArgs]] = {
    Syscall.JOBS_LIST: EmptyArgs,
    Syscall.JOBS_SUBMIT: SubmitJobArgs,
    Syscall.JOBS_RETRY: JobRefArgs,
    Syscall.JOBS_CANCEL: JobRefArgs,
    Syscall.JOBS_TICK: EmptyArgs,
    Syscall.JOBS_UPDATE: UpdateJobArgs,
    Syscall.DATASETS_LIST: EmptyArgs,
    Syscall.DATASETS_CREATE: CreateDatasetArgs,
    Syscall.AUDIT_LIST: EmptyArgs,
    Syscall.AUDIT_LOG: LogAuditArgs,
    Syscall.SECURITY_WHOAMI: EmptyArgs,
    Syscall.SECURITY_WORKSPACE: EmptyArgs,
    Syscall.SECURITY_ORG: EmptyArgs,
    Syscall.MESSAGING_SEND: SendMessageArgs,
    Syscall.MESSAGING_CONSUME: ConsumeMessagesArgs,
    Syscall.PROCESSES_LIST: EmptyArgs,
    Syscall.KERNEL_METRICS: EmptyArgs,
    Syscall.SNAPSHOTS_LIST: EmptyArgs,
    Syscall.SNAPSHOTS_CREATE: CreateSnapshotArgs,
    Syscall.SNAPSHOTS_RESTORE: SnapshotRefArgs,
    Syscall.VFS_LIST: VfsPathArgs,
    Syscall.VFS_READ_FILE: VfsPathArgs,
}


def parse_args(syscall: Syscall, args: Any) -> SyscallArgs:
    """
    Coerce raw args into the syscall's model.

    Accepts None, a mapping, or an instance of the right model.

    Raises:
        pydantic.ValidationError: If the args do not fit the model
        TypeError: If args is neither a mapping nor the right model
    """
    model = ARGS_MODELS[syscall]
    if args is None:
        return model()
    if isinstance(args, model):
        return args
    if isinstance(args, BaseModel):
        args = args.model_dump()
    if not isinstance(args, dict):
        raise TypeError(
            f"{syscall.value} expects {model.__name__} or a mapping, got {type(args).__name__}"
        )
    return model.model_validate(args)
