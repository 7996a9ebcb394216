"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from guestdesk.db.enums import JobType
from guestdesk.jobs.handlers import messages

JobHandler = Callable[[object, object], Awaitable[None]]

JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.ANALYZE_MESSAGE.value: messages.process_analyze_message,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
