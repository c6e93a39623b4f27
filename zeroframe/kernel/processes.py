# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Process table derived from kernel services and the tenant's jobs."""

from __future__ import annotations

from typing import List

from zeroframe.kernel.types import (
    Job,
    JobStatus,
    KernelMetrics,
    OsProcess,
    ProcessStatus,
    ProcessType,
)

# (pid, name, related app, cpu, mem)
SERVICES = [
    ("svc-worker", "Worker Daemon", "jobs", 5, 64),
    ("svc-ghost-abend", "Ghost ABEND Service", "ghost-abend", 3, 48),
    ("svc-shadowasm", "ShadowASM Service", "shadowasm", 2, 40),
    ("svc-console", "Command Console", "console", 1, 32),
]


def job_process_status(status: JobStatus) -> ProcessStatus:
    if status == JobStatus.RUNNING:
        return ProcessStatus.RUNNING
    if status in (JobStatus.PENDING, JobStatus.RETRYING):
        return ProcessStatus.SLEEPING
    return ProcessStatus.STOPPED


def job_process(job: Job) -> OsProcess:
    status = job_process_status(job.status)
    last_event = job.events[-1] if job.events else None
    return OsProcess(
        pid=f"job-{job.id}",
        name=job.name,
        type=ProcessType.JOB,
        status=status,
        cpu_usage=min(90, 10 + job.attempts * 10) if status == ProcessStatus.RUNNING else 0,
        mem_usage=32 + job.attempts * 8,
        started_at=job.created_at,
        last_activity_at=last_event.timestamp if last_event else (job.updated_at or job.created_at),
        workspace=job.workspace,
        related_job_id=job.id,
    )


def service_processes(metrics: KernelMetrics) -> List[OsProcess]:
    last_activity = metrics.last_syscall_time or metrics.boot_time
    return [
        OsProcess(
            pid=pid,
            name=name,
            type=ProcessType.SERVICE,
            status=ProcessStatus.RUNNING,
            cpu_usage=cpu,
            mem_usage=mem,
            started_at=metrics.boot_time,
            last_activity_at=last_activity,
            related_app_id=app_id,
        )
        for pid, name, app_id, cpu, mem in SERVICES
    ]


def list_processes(jobs: List[Job], metrics: KernelMetrics) -> List[OsProcess]:
    """Services first, then one process per job"""
    return service_processes(metrics) + [job_process(job) for job in jobs]
