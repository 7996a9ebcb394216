"""Thread service - conversations and their operator-visible status."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from guestdesk.core.errors import NotFoundError, ValidationError
from guestdesk.db.base import utcnow
from guestdesk.db.enums import (
    OPERATOR_THREAD_STATUSES,
    ApprovalStatus,
    AuditAction,
    ThreadStatus,
)
from guestdesk.db.models import Property, Thread
from guestdesk.services import audit_service
from guestdesk.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

# Approval outcome -> thread status
APPROVAL_THREAD_STATUS = {
    ApprovalStatus.APPROVED.value: ThreadStatus.SENT.value,
    ApprovalStatus.REJECTED.value: ThreadStatus.DECLINED.value,
}


def create_thread(
    db: Session,
    client_id: UUID,
    property_id: UUID,
    guest_name: str,
    guest_email: str | None = None,
) -> Thread:
    prop = db.get(Property, property_id)
    if prop is None or prop.client_id != client_id:
        raise ValidationError("Property does not belong to this client")

    thread = Thread(
        client_id=client_id,
        property_id=property_id,
        guest_name=guest_name.strip(),
        guest_email=(guest_email or "").strip() or None,
        status=ThreadStatus.PENDING.value,
    )
    db.add(thread)
    db.commit()
    db.refresh(thread)
    return thread


def get_thread(db: Session, thread_id: UUID) -> Thread:
    thread = db.get(Thread, thread_id)
    if thread is None:
        raise NotFoundError("Thread not found")
    return thread


def list_threads(
    db: Session,
    pagination: PaginationParams,
    client_id: UUID | None = None,
    property_id: UUID | None = None,
    status: str | None = None,
) -> tuple[list[Thread], int]:
    """List threads, most recent guest activity first."""
    query = db.query(Thread)
    if client_id:
        query = query.filter(Thread.client_id == client_id)
    if property_id:
        query = query.filter(Thread.property_id == property_id)
    if status:
        query = query.filter(Thread.status == status)
    query = query.order_by(
        Thread.last_received_at.desc().nulls_last(), Thread.created_at.desc()
    )
    return paginate_query(query, pagination)


def record_guest_activity(thread: Thread, received_at: datetime | None = None) -> None:
    """Bump last_received_at; status is left alone (no automatic reopening)."""
    thread.last_received_at = received_at or utcnow()


def mirror_approval_outcome(db: Session, thread_id: UUID, approval_status: str) -> Thread | None:
    """
    Project a decided approval onto its thread.

    approved -> sent, rejected -> declined; any other value is a no-op.
    Does not commit: the approval decision owns the transaction.
    """
    target = APPROVAL_THREAD_STATUS.get(approval_status)
    if target is None:
        return None
    thread = db.get(Thread, thread_id)
    if thread is None:
        return None
    thread.status = target
    db.flush()
    return thread


def set_status(db: Session, thread_id: UUID, status: str, actor_id: UUID | None = None) -> Thread:
    """
    Operator status change.

    sent/declined are reserved for approval decisions.
    """
    if status not in OPERATOR_THREAD_STATUSES:
        raise ValidationError(f"Status cannot be set directly: {status}")

    thread = get_thread(db, thread_id)
    previous = thread.status
    thread.status = status
    audit_service.log_event(
        db,
        action=AuditAction.THREAD_STATUS_CHANGED,
        entity_type="thread",
        entity_id=thread.id,
        actor_user_id=actor_id,
        meta={"from": previous, "to": status},
    )
    db.commit()
    db.refresh(thread)
    return thread
