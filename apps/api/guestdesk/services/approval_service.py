"""Approval state machine.

pending -> approved | rejected. Both outcomes are terminal. The status
write is a compare-and-swap on status = 'pending' so that of two
concurrent decisions exactly one wins; the loser sees ConflictError.

A decision and its effects (send log, thread status, audit entry) are
written in one transaction. Approving one approval of a message
supersedes its other pending approvals, so a message is sent at most once
per review round.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, joinedload

from guestdesk.core.errors import ConflictError, NotFoundError, ValidationError
from guestdesk.core.structured_logging import build_log_context
from guestdesk.db.base import utcnow
from guestdesk.db.enums import ApprovalDecision, ApprovalStatus, AuditAction, SenderType
from guestdesk.db.models import ApprovalRequest, Message, Thread
from guestdesk.services import audit_service, send_log_service, thread_service
from guestdesk.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

THREAD_WRITE_ATTEMPTS = 3
MANUAL_REVIEW_NOTE = "Manual review requested"
SUPERSEDED_NOTE = "Superseded by approval"


def parse_decision(action: str) -> ApprovalDecision:
    try:
        return ApprovalDecision((action or "").lower())
    except ValueError:
        raise ValidationError(f"Invalid action: {action}") from None


def resolve_reply(final_reply: str | None, message: Message) -> str | None:
    """Reviewer text wins; otherwise the analysis suggestion, if any."""
    if final_reply and final_reply.strip():
        return final_reply.strip()
    analysis = message.analysis
    if analysis and analysis.suggested_reply and analysis.suggested_reply.strip():
        return analysis.suggested_reply.strip()
    return None


def _compare_and_swap(
    db: Session,
    approval_id: UUID,
    status: ApprovalStatus,
    reviewer_id: UUID | None,
    notes: str | None,
) -> bool:
    """Move a pending approval to its decided status; False if it was no longer pending."""
    values: dict = {
        "status": status.value,
        "reviewer_id": reviewer_id,
        "updated_at": utcnow(),
    }
    if notes is not None:
        values["notes"] = notes
    result = db.execute(
        update(ApprovalRequest)
        .where(
            ApprovalRequest.id == approval_id,
            ApprovalRequest.status == ApprovalStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _supersede_siblings(
    db: Session, approval: ApprovalRequest, reviewer_id: UUID | None
) -> list[UUID]:
    """Reject the other pending approvals of an approved message."""
    sibling_ids = list(
        db.scalars(
            select(ApprovalRequest.id).where(
                ApprovalRequest.message_id == approval.message_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
                ApprovalRequest.id != approval.id,
            )
        )
    )
    if sibling_ids:
        db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id.in_(sibling_ids),
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(
                status=ApprovalStatus.REJECTED.value,
                reviewer_id=reviewer_id,
                notes=f"{SUPERSEDED_NOTE} {approval.id}",
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
    return sibling_ids


def _mirror_thread_status(db: Session, thread_id: UUID, status: ApprovalStatus) -> None:
    """Write the thread status, retrying transient lock failures inside a savepoint."""
    for attempt in range(1, THREAD_WRITE_ATTEMPTS + 1):
        try:
            with db.begin_nested():
                thread_service.mirror_approval_outcome(db, thread_id, status.value)
            return
        except OperationalError:
            if attempt == THREAD_WRITE_ATTEMPTS:
                raise
            logger.warning(
                "Thread status write failed (attempt %s/%s), retrying",
                attempt,
                THREAD_WRITE_ATTEMPTS,
                extra=build_log_context(thread_id=str(thread_id)),
            )


def _apply_decision(
    db: Session,
    approval: ApprovalRequest,
    decision: ApprovalDecision,
    reviewer_id: UUID | None,
    notes: str | None,
    reply: str | None,
) -> bool:
    """
    CAS the approval and write its effects into the open transaction.

    Returns False without side effects when the approval was decided
    concurrently. Caller commits or rolls back.
    """
    status = decision.resulting_status
    if not _compare_and_swap(db, approval.id, status, reviewer_id, notes):
        return False

    message = approval.message
    send_log_id = None
    superseded: list[UUID] = []
    if decision is ApprovalDecision.APPROVE:
        superseded = _supersede_siblings(db, approval, reviewer_id)
        send_log = send_log_service.record_send(
            db,
            message_id=message.id,
            thread_id=message.thread_id,
            final_reply=reply or "",
            sent_by_user_id=reviewer_id,
            approval_id=approval.id,
        )
        send_log_id = send_log.id

    _mirror_thread_status(db, message.thread_id, status)
    audit_service.log_approval_decided(
        db,
        approval_id=approval.id,
        message_id=message.id,
        thread_id=message.thread_id,
        approved=decision is ApprovalDecision.APPROVE,
        reviewer_id=reviewer_id,
        send_log_id=send_log_id,
        superseded_ids=superseded,
    )
    return True


def get_approval(db: Session, approval_id: UUID) -> ApprovalRequest:
    approval = (
        db.query(ApprovalRequest)
        .options(joinedload(ApprovalRequest.message).joinedload(Message.analysis))
        .filter(ApprovalRequest.id == approval_id)
        .first()
    )
    if approval is None:
        raise NotFoundError("Approval not found")
    return approval


def decide(
    db: Session,
    approval_id: UUID,
    action: str,
    reviewer_id: UUID | None,
    notes: str | None = None,
    final_reply: str | None = None,
) -> ApprovalRequest:
    """
    Approve or reject a pending approval.

    Raises:
        ValidationError: invalid action, or approve without a resolvable reply
        NotFoundError: approval does not exist
        ConflictError: approval already decided (including a lost race)
    """
    decision = parse_decision(action)
    approval = get_approval(db, approval_id)
    if approval.status != ApprovalStatus.PENDING.value:
        raise ConflictError("Approval already processed")

    reply = None
    if decision is ApprovalDecision.APPROVE:
        reply = resolve_reply(final_reply, approval.message)
        if reply is None:
            raise ValidationError("Reply required")

    log_context = build_log_context(
        user_id=str(reviewer_id) if reviewer_id else None,
        message_id=str(approval.message_id),
    )
    try:
        applied = _apply_decision(db, approval, decision, reviewer_id, notes, reply)
        if not applied:
            db.rollback()
            raise ConflictError("Approval already processed")
        db.commit()
    except ConflictError:
        raise
    except Exception:
        db.rollback()
        logger.exception("Approval decision failed", extra=log_context)
        raise

    db.refresh(approval)
    logger.info("Approval %s %s", approval.id, approval.status, extra=log_context)
    return approval


def bulk_decide(
    db: Session,
    message_ids: list[UUID],
    action: str,
    reviewer_id: UUID | None,
    reason: str | None = None,
) -> int:
    """
    Decide every pending approval of the listed messages.

    Each item commits on its own. Non-pending items, approvals without a
    resolvable reply and lost races are skipped. Approving a message's
    oldest approval supersedes the rest, so each message sends once.
    Returns the number of approvals transitioned.
    """
    if not message_ids:
        raise ValidationError("message_ids must not be empty")
    decision = parse_decision(action)

    approvals = (
        db.query(ApprovalRequest)
        .options(joinedload(ApprovalRequest.message).joinedload(Message.analysis))
        .filter(
            ApprovalRequest.message_id.in_(message_ids),
            ApprovalRequest.status == ApprovalStatus.PENDING.value,
        )
        .order_by(ApprovalRequest.created_at, ApprovalRequest.id)
        .all()
    )

    processed = 0
    for approval in approvals:
        reply = None
        if decision is ApprovalDecision.APPROVE:
            reply = resolve_reply(None, approval.message)
            if reply is None:
                continue
        try:
            applied = _apply_decision(db, approval, decision, reviewer_id, reason, reply)
        except Exception:
            db.rollback()
            raise
        if not applied:
            db.rollback()
            continue
        db.commit()
        processed += 1

    audit_service.log_bulk_decision(
        db,
        approved=decision is ApprovalDecision.APPROVE,
        reviewer_id=reviewer_id,
        requested=len(message_ids),
        processed=processed,
        reason=reason,
    )
    db.commit()
    logger.info(
        "Bulk %s processed %s of %s",
        decision.value,
        processed,
        len(message_ids),
        extra=build_log_context(user_id=str(reviewer_id) if reviewer_id else None),
    )
    return processed


def request_review(
    db: Session,
    message_id: UUID,
    notes: str | None = None,
    actor_id: UUID | None = None,
) -> ApprovalRequest:
    """Manually escalate a guest message for human review."""
    message = db.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_type != SenderType.GUEST.value:
        raise ValidationError("Only guest messages can be reviewed")
    if get_pending_for_message(db, message_id) is not None:
        raise ConflictError("A pending approval already exists for this message")

    approval = ApprovalRequest(
        message_id=message_id,
        status=ApprovalStatus.PENDING.value,
        notes=notes or MANUAL_REVIEW_NOTE,
    )
    db.add(approval)
    db.flush()
    audit_service.log_event(
        db,
        action=AuditAction.REVIEW_REQUESTED,
        entity_type="message",
        entity_id=message_id,
        actor_user_id=actor_id,
        meta={"approval_id": str(approval.id)},
    )
    db.commit()
    db.refresh(approval)
    return approval


def get_pending_for_message(db: Session, message_id: UUID) -> ApprovalRequest | None:
    """Oldest pending approval for a message, if any."""
    return (
        db.query(ApprovalRequest)
        .filter(
            ApprovalRequest.message_id == message_id,
            ApprovalRequest.status == ApprovalStatus.PENDING.value,
        )
        .order_by(ApprovalRequest.created_at, ApprovalRequest.id)
        .first()
    )


def list_approvals(
    db: Session,
    pagination: PaginationParams,
    status: str | None = ApprovalStatus.PENDING.value,
    client_id: UUID | None = None,
) -> tuple[list[ApprovalRequest], int]:
    """List approvals newest first with message and analysis loaded."""
    query = db.query(ApprovalRequest).options(
        joinedload(ApprovalRequest.message).joinedload(Message.analysis)
    )
    if status:
        query = query.filter(ApprovalRequest.status == status)
    if client_id:
        query = (
            query.join(Message, ApprovalRequest.message_id == Message.id)
            .join(Thread, Message.thread_id == Thread.id)
            .filter(Thread.client_id == client_id)
        )
    query = query.order_by(ApprovalRequest.created_at.desc(), ApprovalRequest.id.desc())
    return paginate_query(query, pagination)
