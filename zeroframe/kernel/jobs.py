# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Job Engine - submission, the worker tick and simulated execution.

Lifecycle::

    PENDING -> RUNNING -> COMPLETED
                       -> RETRYING -> RUNNING ...   (attempts < max_attempts)
                       -> FAILED    -> PENDING      (manual retry)
    PENDING / RUNNING / RETRYING -> CANCELLED

A tick moves one job to RUNNING and schedules its completion on the
DeferredScheduler. Cancelling a RUNNING job revokes that timer.
"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Dict, List, Optional

from zeroframe.core.config import KernelConfig
from zeroframe.kernel.errors import KernelFault
from zeroframe.kernel.profiling import compute_dataset_profile
from zeroframe.kernel.scheduler import DeferredScheduler, TimerHandle
from zeroframe.kernel.store import KernelStore
from zeroframe.kernel.syscalls import JobPatch, SubmitJobArgs
from zeroframe.kernel.types import (
    Job,
    JobEvent,
    JobEventType,
    JobStatus,
    JobType,
    ResourceType,
    User,
)

logger = logging.getLogger("zeroframe.jobs")

FAILURE_MESSAGES = [
    "Timeout: Job execution exceeded time limit",
    "Permission denied: Unable to access required resource",
    "Authentication failed: Invalid credentials",
    "Data validation error: Invalid input format",
]

# Any job whose name or tags mention this always fails
FORCED_FAILURE_MARKER = "fail"


class JobEngine:
    """Owns every job state transition"""

    def __init__(
        self,
        store: KernelStore,
        scheduler: DeferredScheduler,
        config: Optional[KernelConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.config = config or KernelConfig()
        self.rng = rng or random.Random(self.config.random_seed)
        self._in_flight: Dict[str, TimerHandle] = {}

    # =========================================================================
    # Events
    # =========================================================================

    def _append_event(
        self,
        job: Job,
        event_type: JobEventType,
        message: str,
        previous_status: Optional[JobStatus] = None,
        new_status: Optional[JobStatus] = None,
        actor_user_id: Optional[str] = None,
    ) -> JobEvent:
        event = JobEvent(
            id=f"{job.id}-evt-{len(job.events) + 1}-{self.store.now_ms()}",
            timestamp=self.store.now_iso(),
            type=event_type,
            message=message,
            previous_status=previous_status,
            new_status=new_status,
            actor_user_id=actor_user_id,
        )
        job.events.append(event)
        return event

    def _set_status(
        self,
        job: Job,
        new_status: JobStatus,
        message: Optional[str] = None,
        actor_user_id: Optional[str] = None,
    ):
        previous = job.status
        job.status = new_status
        job.updated_at = self.store.now_iso()
        self._append_event(
            job,
            JobEventType.JOB_STATUS_CHANGED,
            message or f"Status changed from {previous.value} to {new_status.value}",
            previous_status=previous,
            new_status=new_status,
            actor_user_id=actor_user_id,
        )

    def _require_job(self, org_id: str, job_id: str) -> Job:
        job = self.store.find_job(org_id, job_id)
        if job is None:
            raise KernelFault.not_found("Job", job_id)
        return job

    # =========================================================================
    # Operations
    # =========================================================================

    def submit(self, user: User, org_id: str, args: SubmitJobArgs) -> Job:
        """Create a PENDING job owned by the user"""
        now = self.store.now_iso()
        job_id = f"j{self.store.now_ms()}-{uuid.uuid4().hex[:9]}"

        if args.input_dataset_ids is not None:
            input_ids = list(args.input_dataset_ids)
        else:
            input_ids = [args.dataset_id] if args.dataset_id else []

        job = Job(
            id=job_id,
            org_id=org_id,
            name=args.name,
            owner_id=user.id,
            workspace=args.workspace or self.store.active_workspace,
            type=args.type,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
            attempts=0,
            max_attempts=self.config.job_max_attempts,
            priority=args.priority,
            description=args.description,
            tags=list(args.tags),
            script_summary=args.script_summary,
            dataset_id=args.dataset_id,
            input_dataset_ids=input_ids,
            output_dataset_ids=list(args.output_dataset_ids or []),
            events=[
                JobEvent(id=f"{job_id}-e1", timestamp=now, type=JobEventType.JOB_CREATED,
                         message="Job created", actor_user_id=user.id),
                JobEvent(id=f"{job_id}-e2", timestamp=now, type=JobEventType.JOB_SUBMITTED,
                         message="Job submitted to queue", actor_user_id=user.id),
            ],
        )
        self.store.jobs.append(job)

        details = f'Submitted job "{job.name}" ({job.type.value}) in workspace {job.workspace.value}'
        if job.dataset_id:
            details += f" for dataset {job.dataset_id}"
        self.store.log_audit(user.id, "JOB_SUBMITTED", ResourceType.JOB, job.id, details, org_id=org_id)

        logger.info(f"Job submitted: {job.id} ({job.name})")
        return job

    def tick(self, org_id: str) -> Optional[Job]:
        """
        Run one worker tick.

        Picks the highest-priority eligible job of the tenant (oldest first
        among equals), moves it to RUNNING and schedules its completion.
        Returns the picked job, or None when nothing is eligible.
        """
        eligible = [
            j for j in self.store.jobs_for(org_id)
            if j.status in (JobStatus.PENDING, JobStatus.RETRYING)
        ]
        if not eligible:
            logger.debug("Worker tick: no jobs to process")
            return None

        eligible.sort(key=lambda j: (-j.priority.rank, j.created_at))
        job = eligible[0]
        logger.info(f"Worker tick: processing job {job.id} ({job.name})")

        self._set_status(job, JobStatus.RUNNING, "Worker picked job for execution")
        self.store.log_audit(
            job.owner_id, "JOB_STARTED", ResourceType.JOB, job.id,
            f'Worker started job "{job.name}"', org_id=org_id,
        )

        self._schedule_completion(job)
        return job

    def _schedule_completion(self, job: Job):
        """Arm the completion timer for this run, replacing any earlier one"""
        previous = self._in_flight.pop(job.id, None)
        if previous is not None:
            previous.cancel()

        def fire():
            self._complete(job.id, handle)

        handle = self.scheduler.call_later(
            self.config.job_completion_delay_s, fire, label=f"complete:{job.id}"
        )
        self._in_flight[job.id] = handle

    def _should_fail(self, job: Job) -> bool:
        haystack = f"{job.name} {' '.join(job.tags)}".lower()
        if FORCED_FAILURE_MARKER in haystack:
            return True
        return self.rng.random() < self.config.job_failure_rate

    def _complete(self, job_id: str, handle: TimerHandle):
        """Deferred completion. A job that is no longer RUNNING is left alone."""
        if self._in_flight.get(job_id) is not handle:
            logger.debug(f"Stale completion for {job_id} ignored")
            return
        del self._in_flight[job_id]
        job = self.store.find_job_any_tenant(job_id)
        if job is None or job.status != JobStatus.RUNNING:
            logger.debug(f"Completion skipped for {job_id}: job gone or not running")
            return

        if self._should_fail(job):
            self._fail(job)
        else:
            self._succeed(job)

    def _succeed(self, job: Job):
        job.status = JobStatus.COMPLETED
        job.updated_at = self.store.now_iso()
        self._append_event(
            job, JobEventType.JOB_COMPLETED, "Job completed successfully",
            previous_status=JobStatus.RUNNING, new_status=JobStatus.COMPLETED,
        )
        self.store.log_audit(
            job.owner_id, "JOB_COMPLETED", ResourceType.JOB, job.id,
            f'Job "{job.name}" completed successfully', org_id=job.org_id,
        )

        related = set(job.input_dataset_ids) | set(job.output_dataset_ids)
        for dataset in self.store.datasets_for(job.org_id):
            if dataset.id in related and job.id not in dataset.lineage_job_ids:
                dataset.lineage_job_ids.append(job.id)

        if job.type == JobType.REPORT and "profile" in job.tags and job.dataset_id:
            dataset = self.store.find_dataset(job.org_id, job.dataset_id)
            if dataset is not None:
                profile = compute_dataset_profile(dataset, self.store.now_iso())
                if profile is not None:
                    dataset.profile = profile
                    logger.info(f"Dataset {dataset.id} re-profiled by job {job.id}")

        logger.info(f"Job completed: {job.id}")

    def _fail(self, job: Job):
        attempts = job.attempts + 1
        error_message = self.rng.choice(FAILURE_MESSAGES)
        job.attempts = attempts
        job.last_error = error_message
        job.updated_at = self.store.now_iso()

        if attempts < job.max_attempts:
            job.status = JobStatus.RETRYING
            self._append_event(
                job, JobEventType.JOB_FAILED, f"Job failed: {error_message}",
                previous_status=JobStatus.RUNNING, new_status=JobStatus.RETRYING,
            )
            self._append_event(
                job, JobEventType.JOB_RETRY_SCHEDULED,
                f"Retry scheduled (attempt {attempts + 1}/{job.max_attempts})",
            )
            self.store.log_audit(
                job.owner_id, "JOB_RETRYING", ResourceType.JOB, job.id,
                f'Job "{job.name}" failed, retrying (attempt {attempts + 1}/{job.max_attempts})',
                org_id=job.org_id,
            )
            logger.warning(f"Job {job.id} failed ({error_message}), will retry")
            return

        job.status = JobStatus.FAILED
        self._append_event(
            job, JobEventType.JOB_FAILED, "Job failed permanently: Max attempts reached",
            previous_status=JobStatus.RUNNING, new_status=JobStatus.FAILED,
        )
        self.store.log_audit(
            job.owner_id, "JOB_FAILED", ResourceType.JOB, job.id,
            f'Job "{job.name}" failed permanently after {attempts} attempts',
            org_id=job.org_id,
        )
        logger.warning(f"Job {job.id} failed permanently after {attempts} attempts")

    def retry(self, user: User, org_id: str, job_id: str) -> Job:
        """Send a FAILED job back to the queue"""
        job = self._require_job(org_id, job_id)
        if job.status != JobStatus.FAILED:
            raise KernelFault.invalid_argument(
                f"Only FAILED jobs can be retried (job is {job.status.value})",
                job_id=job_id, status=job.status.value,
            )

        job.status = JobStatus.PENDING
        job.updated_at = self.store.now_iso()
        job.last_error = None
        self._append_event(
            job, JobEventType.JOB_RETRY_SCHEDULED, "Job manually retried by user",
            actor_user_id=user.id,
        )
        self.store.log_audit(
            user.id, "JOB_RETRY_REQUESTED", ResourceType.JOB, job.id,
            f'Manually retried job "{job.name}"', org_id=org_id,
        )
        return job

    def cancel(self, user: User, org_id: str, job_id: str) -> Job:
        """Cancel a job that has not finished"""
        job = self._require_job(org_id, job_id)
        if job.status.is_terminal:
            raise KernelFault.invalid_argument(
                f"Job is already {job.status.value}", job_id=job_id, status=job.status.value
            )

        handle = self._in_flight.pop(job.id, None)
        if handle is not None:
            handle.cancel()

        self._set_status(
            job, JobStatus.CANCELLED, f"Job cancelled by {user.name}", actor_user_id=user.id
        )
        self.store.log_audit(
            user.id, "JOB_CANCELLED", ResourceType.JOB, job.id,
            f'Cancelled job "{job.name}"', org_id=org_id,
        )
        logger.info(f"Job cancelled: {job.id}")
        return job

    def update(self, user: User, org_id: str, job_id: str, changes: JobPatch) -> Job:
        """Patch the editable fields of a job"""
        job = self._require_job(org_id, job_id)
        patch = changes.model_dump(exclude_unset=True)
        for field_name, value in patch.items():
            if field_name == "tags":
                value = list(value or [])
            elif field_name == "priority" and value is None:
                continue
            setattr(job, field_name, value)
        job.updated_at = self.store.now_iso()

        self.store.log_audit(
            user.id, "JOB_UPDATED", ResourceType.JOB, job.id,
            f"Updated fields: {', '.join(sorted(patch)) or 'none'}", org_id=org_id,
        )
        return job

    # =========================================================================
    # Introspection
    # =========================================================================

    def in_flight(self) -> List[str]:
        """Ids of jobs with a pending completion"""
        return [job_id for job_id, handle in self._in_flight.items() if handle.active]

    # =========================================================================
    # Restore hooks
    # =========================================================================

    def revoke_tenant(self, org_id: str):
        """Cancel every pending completion for the tenant's jobs"""
        for job in self.store.jobs_for(org_id):
            handle = self._in_flight.pop(job.id, None)
            if handle is not None:
                handle.cancel()

    def resume_running(self, org_id: str) -> List[Job]:
        """Give each RUNNING job of the tenant a fresh completion timer"""
        running = [j for j in self.store.jobs_for(org_id) if j.status == JobStatus.RUNNING]
        for job in running:
            self._schedule_completion(job)
        return running
