"""Audit logging service - operator and system event trail.

Guidelines:
- Entries are added to the caller's unit of work (flush only, no commit)
  so a decision and its audit entry persist or roll back together.
- meta carries identifiers, counts and short reasons; never guest text,
  reply text or e-mail addresses.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from guestdesk.db.enums import AuditAction
from guestdesk.db.models import AuditLog
from guestdesk.utils.pagination import PaginationParams, like_pattern, paginate_query


def log_event(
    db: Session,
    action: AuditAction,
    entity_type: str,
    entity_id: UUID | str,
    actor_user_id: UUID | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Record an audit entry in the current transaction.

    Args:
        db: Database session (caller commits)
        action: Audit action
        entity_type: Kind of entity affected ('message', 'auto_rule', ...)
        entity_id: ID of the affected entity
        actor_user_id: Operator who acted (None for system)
        meta: Redacted details
    """
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action.value,
        entity_type=entity_type,
        entity_id=str(entity_id),
        meta=meta or {},
    )
    db.add(entry)
    db.flush()
    return entry


def log_approval_decided(
    db: Session,
    approval_id: UUID,
    message_id: UUID,
    thread_id: UUID,
    approved: bool,
    reviewer_id: UUID | None,
    send_log_id: UUID | None = None,
    superseded_ids: list[UUID] | None = None,
) -> AuditLog:
    meta: dict[str, Any] = {
        "approval_id": str(approval_id),
        "thread_id": str(thread_id),
    }
    if send_log_id:
        meta["send_log_id"] = str(send_log_id)
    if superseded_ids:
        meta["superseded_approval_ids"] = [str(i) for i in superseded_ids]
    return log_event(
        db,
        action=AuditAction.MESSAGE_APPROVED_AND_SENT if approved else AuditAction.MESSAGE_REJECTED,
        entity_type="message",
        entity_id=message_id,
        actor_user_id=reviewer_id,
        meta=meta,
    )


def log_bulk_decision(
    db: Session,
    approved: bool,
    reviewer_id: UUID | None,
    requested: int,
    processed: int,
    reason: str | None = None,
) -> AuditLog:
    meta: dict[str, Any] = {"requested": requested, "processed": processed}
    if reason:
        meta["reason"] = reason[:500]
    return log_event(
        db,
        action=AuditAction.BULK_APPROVE if approved else AuditAction.BULK_REJECT,
        entity_type="approval_request",
        entity_id="bulk",
        actor_user_id=reviewer_id,
        meta=meta,
    )


def list_audit_logs(
    db: Session,
    pagination: PaginationParams,
    user_id: UUID | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = None,
) -> tuple[list[AuditLog], int]:
    """List audit entries newest first with optional filters."""
    query = db.query(AuditLog).options(joinedload(AuditLog.actor))

    if user_id:
        query = query.filter(AuditLog.actor_user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if start:
        query = query.filter(AuditLog.created_at >= start)
    if end:
        query = query.filter(AuditLog.created_at <= end)
    if search:
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                AuditLog.action.ilike(pattern, escape="\\"),
                AuditLog.entity_type.ilike(pattern, escape="\\"),
                AuditLog.entity_id.ilike(pattern, escape="\\"),
            )
        )

    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    return paginate_query(query, pagination)
