# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe domain records.

Everything the kernel store holds (jobs, datasets, audit entries, messages,
snapshots) plus the identity model (users, orgs, plans) and the derived
views (processes, VFS nodes, metrics).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Workspace/technical role of a user"""
    DEV = "DEV"
    OPERATOR = "OPERATOR"
    AUDITOR = "AUDITOR"
    ADMIN = "ADMIN"


class Workspace(str, Enum):
    DEV = "DEV"
    UAT = "UAT"
    PROD = "PROD"


class OrgPlanId(str, Enum):
    FREE = "FREE"
    TEAM = "TEAM"
    ENTERPRISE = "ENTERPRISE"


class OrgRole(str, Enum):
    ORG_ADMIN = "ORG_ADMIN"
    ORG_OPERATOR = "ORG_OPERATOR"
    ORG_DEVELOPER = "ORG_DEVELOPER"
    ORG_AUDITOR = "ORG_AUDITOR"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    RETRYING = "RETRYING"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class JobType(str, Enum):
    BATCH = "BATCH"
    REPORT = "REPORT"
    ETL = "ETL"
    SIMULATION = "SIMULATION"


class JobPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return {"LOW": 1, "NORMAL": 2, "HIGH": 3}[self.value]


class JobEventType(str, Enum):
    JOB_CREATED = "JOB_CREATED"
    JOB_SUBMITTED = "JOB_SUBMITTED"
    JOB_STARTED = "JOB_STARTED"
    JOB_COMPLETED = "JOB_COMPLETED"
    JOB_FAILED = "JOB_FAILED"
    JOB_RETRY_SCHEDULED = "JOB_RETRY_SCHEDULED"
    JOB_CANCELLED = "JOB_CANCELLED"
    JOB_STATUS_CHANGED = "JOB_STATUS_CHANGED"


class DatasetType(str, Enum):
    FILE = "FILE"
    TABLE = "TABLE"
    STREAM = "STREAM"


class DatasetColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


class DatasetSource(str, Enum):
    UPLOAD = "upload"
    SYSTEM = "system"
    SYNTHETIC = "synthetic"


class ResourceType(str, Enum):
    """What an audit entry is about"""
    JOB = "JOB"
    DATASET = "DATASET"
    SECURITY = "SECURITY"
    SYSTEM_APP = "SYSTEM_APP"
    CUSTOM = "CUSTOM"


class ProcessType(str, Enum):
    JOB = "JOB"
    SERVICE = "SERVICE"


class ProcessStatus(str, Enum):
    RUNNING = "RUNNING"
    SLEEPING = "SLEEPING"
    STOPPED = "STOPPED"


class VfsNodeType(str, Enum):
    FILE = "FILE"
    DIR = "DIR"
    DEVICE = "DEVICE"


# =============================================================================
# Identity & tenancy
# =============================================================================


@dataclass
class User:
    id: str
    name: str
    role: Role


@dataclass
class OrgPlan:
    """Feature toggles and soft limits of an org plan"""
    id: OrgPlanId
    name: str
    description: str
    max_jobs_per_day: Optional[int] = None
    max_snapshots: Optional[int] = None
    max_datasets: Optional[int] = None
    enable_scheduler: bool = False
    enable_workflows: bool = False
    enable_advanced_apps: bool = False


@dataclass
class Org:
    id: str
    name: str
    plan_id: OrgPlanId
    created_at: str
    is_active: bool = True


@dataclass
class OrgUser:
    id: str  # User.id
    org_id: str
    org_role: OrgRole


@dataclass
class OrgInfo:
    """Answer to security.org"""
    org: Org
    plan: Optional[OrgPlan]
    org_role: Optional[OrgRole]


# =============================================================================
# Jobs
# =============================================================================


@dataclass
class JobEvent:
    id: str
    timestamp: str
    type: JobEventType
    message: str
    previous_status: Optional[JobStatus] = None
    new_status: Optional[JobStatus] = None
    actor_user_id: Optional[str] = None


@dataclass
class Job:
    id: str
    org_id: str
    name: str
    owner_id: str
    workspace: Workspace
    type: JobType
    status: JobStatus
    created_at: str
    updated_at: str
    attempts: int
    max_attempts: int
    priority: JobPriority = JobPriority.NORMAL
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    script_summary: Optional[str] = None
    events: List[JobEvent] = field(default_factory=list)
    last_error: Optional[str] = None
    rca_note: Optional[str] = None
    dataset_id: Optional[str] = None
    input_dataset_ids: List[str] = field(default_factory=list)
    output_dataset_ids: List[str] = field(default_factory=list)


# =============================================================================
# Datasets
# =============================================================================


@dataclass
class DatasetColumn:
    name: str
    type: DatasetColumnType
    nullable: bool = True
    sample_values: List[str] = field(default_factory=list)


@dataclass
class ColumnProfile:
    column_name: str
    type: DatasetColumnType
    distinct_count: Optional[int] = None
    null_count: Optional[int] = None
    min_value: Optional[str] = None
    max_value: Optional[str] = None
    avg: Optional[float] = None
    example_values: List[str] = field(default_factory=list)


@dataclass
class DatasetProfile:
    column_profiles: List[ColumnProfile]
    last_profiled_at: Optional[str] = None
    row_count: Optional[int] = None


@dataclass
class Dataset:
    id: str
    org_id: str
    name: str
    type: DatasetType
    workspace: Workspace
    description: Optional[str] = None
    record_count: Optional[int] = None
    last_updated: Optional[str] = None
    source: DatasetSource = DatasetSource.UPLOAD
    columns: Optional[List[DatasetColumn]] = None
    row_count: Optional[int] = None
    sample_rows: Optional[List[Dict[str, Any]]] = None
    profile: Optional[DatasetProfile] = None
    lineage_job_ids: List[str] = field(default_factory=list)


# =============================================================================
# Audit, messaging, processes, VFS
# =============================================================================


@dataclass(frozen=True)
class AuditEntry:
    """A single entry in the append-only audit trail"""
    id: str
    org_id: str
    timestamp: str
    user_id: str
    action: str
    resource_type: ResourceType
    resource_id: Optional[str] = None
    details: Optional[str] = None


@dataclass
class KernelMessage:
    """IPC message between apps, scoped to one org"""
    id: str
    org_id: str
    from_app_id: str
    to_app_id: str
    type: str
    payload: Any
    timestamp: str
    consumed: bool = False


@dataclass
class OsProcess:
    pid: str
    name: str
    type: ProcessType
    status: ProcessStatus
    cpu_usage: int
    mem_usage: int
    started_at: str
    last_activity_at: str
    workspace: Optional[Workspace] = None
    related_job_id: Optional[str] = None
    related_app_id: Optional[str] = None


@dataclass
class VfsNode:
    path: str
    type: VfsNodeType
    content: Optional[str] = None
    children: Optional[List[str]] = None


# =============================================================================
# Metrics & snapshots
# =============================================================================


@dataclass
class KernelMetrics:
    """Uptime and syscall counters"""
    boot_time: str
    last_syscall_time: Optional[str] = None
    total_syscalls: int = 0
    syscalls_by_name: Dict[str, int] = field(default_factory=dict)


@dataclass
class SnapshotState:
    jobs: List[Job]
    datasets: List[Dataset]
    audit_entries: List[AuditEntry]
    active_user_id: str
    active_workspace: Workspace
    metrics: KernelMetrics


@dataclass
class KernelSnapshot:
    id: str
    org_id: str
    label: str
    created_at: str
    state: SnapshotState


def to_dict(record: Any) -> Any:
    """Convert a record (or a list of records) to plain JSON-friendly data"""
    if isinstance(record, list):
        return [to_dict(item) for item in record]
    if hasattr(record, "__dataclass_fields__"):
        return asdict(record)
    return record
