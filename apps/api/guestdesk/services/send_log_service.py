"""Send log service - records and lists outbound replies."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from guestdesk.core.config import settings
from guestdesk.db.base import utcnow
from guestdesk.db.models import SendLog
from guestdesk.utils.pagination import PaginationParams, like_pattern, paginate_query


def record_send(
    db: Session,
    message_id: UUID,
    thread_id: UUID,
    final_reply: str,
    sent_by_user_id: UUID | None,
    approval_id: UUID | None = None,
    sent_at: datetime | None = None,
) -> SendLog:
    """
    Add a send log to the caller's transaction.

    Delivery itself is out of scope; provider_response is a stub
    recording when the reply was handed off.
    """
    provider_response = {
        "success": True,
        "sentAt": (sent_at or utcnow()).isoformat(),
        "note": "Reply recorded for delivery",
    }
    log = SendLog(
        message_id=message_id,
        thread_id=thread_id,
        approval_id=approval_id,
        final_reply=final_reply,
        channel=settings.SEND_CHANNEL,
        provider_response=provider_response,
        sent_by_user_id=sent_by_user_id,
    )
    db.add(log)
    db.flush()
    return log


def list_send_logs(
    db: Session,
    pagination: PaginationParams,
    thread_id: UUID | None = None,
    user_id: UUID | None = None,
    channel: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = None,
) -> tuple[list[SendLog], int]:
    """List send logs newest first with optional filters."""
    query = db.query(SendLog).options(joinedload(SendLog.sent_by))

    if thread_id:
        query = query.filter(SendLog.thread_id == thread_id)
    if user_id:
        query = query.filter(SendLog.sent_by_user_id == user_id)
    if channel:
        query = query.filter(SendLog.channel == channel)
    if start:
        query = query.filter(SendLog.created_at >= start)
    if end:
        query = query.filter(SendLog.created_at <= end)
    if search:
        query = query.filter(SendLog.final_reply.ilike(like_pattern(search), escape="\\"))

    query = query.order_by(SendLog.created_at.desc(), SendLog.id.desc())
    return paginate_query(query, pagination)
