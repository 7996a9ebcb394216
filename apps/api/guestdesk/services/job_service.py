"""Job service - background job scheduling and processing state."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from guestdesk.core.config import settings
from guestdesk.db.base import utcnow
from guestdesk.db.enums import JobStatus, JobType
from guestdesk.db.models import Job

logger = logging.getLogger(__name__)


def get_job_by_idempotency_key(db: Session, idempotency_key: str) -> Job | None:
    return db.query(Job).filter(Job.idempotency_key == idempotency_key).first()


def schedule_job(
    db: Session,
    job_type: JobType,
    payload: dict,
    run_at: datetime | None = None,
    idempotency_key: str | None = None,
) -> Job:
    """
    Schedule a new background job and commit it.

    If run_at is None, the job runs immediately. With an idempotency_key,
    an existing job for the same key is returned instead of a duplicate.
    """
    if idempotency_key:
        existing = get_job_by_idempotency_key(db, idempotency_key)
        if existing:
            return existing

    job = Job(
        job_type=job_type.value,
        payload=payload,
        run_at=run_at or utcnow(),
        status=JobStatus.PENDING.value,
        max_attempts=settings.JOB_MAX_ATTEMPTS,
        idempotency_key=idempotency_key,
    )
    db.add(job)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent scheduler inserted the same key first
        db.rollback()
        existing = get_job_by_idempotency_key(db, idempotency_key) if idempotency_key else None
        if existing is None:
            raise
        return existing
    db.refresh(job)
    return job


def get_pending_jobs(db: Session, limit: int = 10) -> list[Job]:
    """
    Get pending jobs that are due to run.

    Returns jobs where status='pending' and run_at <= now, ordered by run_at.
    """
    return (
        db.query(Job)
        .filter(
            Job.status == JobStatus.PENDING.value,
            Job.run_at <= utcnow(),
        )
        .order_by(Job.run_at)
        .limit(limit)
        .all()
    )


def claim_pending_jobs(db: Session, limit: int = 10) -> list[Job]:
    """
    Claim due jobs for this worker.

    Rows are locked with SKIP LOCKED (PostgreSQL) and moved to running
    before the lock is released, so concurrent workers never pick up
    the same job.
    """
    jobs = (
        db.query(Job)
        .filter(
            Job.status == JobStatus.PENDING.value,
            Job.run_at <= utcnow(),
        )
        .order_by(Job.run_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
        .all()
    )
    now = utcnow()
    for job in jobs:
        job.status = JobStatus.RUNNING.value
        job.attempts += 1
        job.started_at = now
    db.commit()
    return jobs


def requeue_stale_jobs(db: Session, stale_after_seconds: int | None = None) -> int:
    """
    Recover jobs left running by a worker that died mid-handler.

    A running job started more than stale_after_seconds ago goes back to
    pending while it has attempts left, otherwise it is marked failed.
    Returns the number of jobs recovered.
    """
    timeout = stale_after_seconds or settings.JOB_STALE_AFTER_SECONDS
    cutoff = utcnow() - timedelta(seconds=timeout)
    jobs = (
        db.query(Job)
        .filter(
            Job.status == JobStatus.RUNNING.value,
            Job.started_at.is_not(None),
            Job.started_at < cutoff,
        )
        .with_for_update(skip_locked=True)
        .all()
    )
    for job in jobs:
        job.last_error = "Worker lost while running job"
        if job.attempts < job.max_attempts:
            job.status = JobStatus.PENDING.value
            job.run_at = utcnow()
        else:
            job.status = JobStatus.FAILED.value
        logger.warning("Recovered stale job %s (attempt %s)", job.id, job.attempts)
    db.commit()
    return len(jobs)


def get_job(db: Session, job_id: UUID) -> Job | None:
    return db.query(Job).filter(Job.id == job_id).first()


def list_jobs(
    db: Session,
    status: JobStatus | None = None,
    job_type: JobType | None = None,
    limit: int = 50,
) -> list[Job]:
    """List jobs newest first with optional filters."""
    query = db.query(Job)
    if status:
        query = query.filter(Job.status == status.value)
    if job_type:
        query = query.filter(Job.job_type == job_type.value)
    return query.order_by(Job.created_at.desc()).limit(limit).all()


def mark_job_running(db: Session, job: Job) -> Job:
    """Mark a job as running (increment attempts)."""
    job.status = JobStatus.RUNNING.value
    job.attempts += 1
    job.started_at = utcnow()
    db.commit()
    db.refresh(job)
    return job


def mark_job_completed(db: Session, job: Job) -> Job:
    job.status = JobStatus.COMPLETED.value
    job.completed_at = utcnow()
    job.last_error = None
    db.commit()
    db.refresh(job)
    return job


def mark_job_failed(db: Session, job: Job, error: str) -> Job:
    """
    Mark a job as failed.

    If attempts < max_attempts, reset to pending for retry.
    """
    job.last_error = error[:2000]
    if job.attempts < job.max_attempts:
        job.status = JobStatus.PENDING.value
    else:
        job.status = JobStatus.FAILED.value
        logger.warning("Job %s exhausted %s attempts", job.id, job.attempts)
    db.commit()
    db.refresh(job)
    return job
