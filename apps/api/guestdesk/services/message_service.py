"""Message service - guest/staff messages and background classification handoff."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from guestdesk.core.config import settings
from guestdesk.core.errors import ValidationError
from guestdesk.core.structured_logging import build_log_context
from guestdesk.db.enums import ApprovalDecision, JobType, SenderType
from guestdesk.db.models import ApprovalRequest, Message
from guestdesk.services import approval_service, job_service, thread_service

logger = logging.getLogger(__name__)

RECENT_MESSAGES_LIMIT = 50


def analysis_idempotency_key(message_id: UUID) -> str:
    return f"{JobType.ANALYZE_MESSAGE.value}:{message_id}"


def create_message(
    db: Session,
    thread_id: UUID,
    sender_type: str,
    text: str,
) -> Message:
    """
    Persist a message and hand guest messages off for classification.

    Returns as soon as the message is committed; classification and
    rule evaluation run in the worker.
    """
    thread = thread_service.get_thread(db, thread_id)
    if sender_type not in SenderType._value2member_map_:
        raise ValidationError(f"Invalid sender_type: {sender_type}")
    if not text or not text.strip():
        raise ValidationError("Message text is required")

    message = Message(thread_id=thread.id, sender_type=sender_type, text=text.strip())
    db.add(message)
    if sender_type == SenderType.GUEST.value:
        thread_service.record_guest_activity(thread)
    db.commit()
    db.refresh(message)

    if sender_type == SenderType.GUEST.value:
        schedule_analysis(db, message)
    return message


def schedule_analysis(db: Session, message: Message) -> None:
    """Queue classification for a guest message; skipped when AI is not configured."""
    log_context = build_log_context(thread_id=str(message.thread_id), message_id=str(message.id))
    if not settings.ai_enabled:
        logger.info("AI not configured, message left unclassified", extra=log_context)
        return
    job_service.schedule_job(
        db,
        job_type=JobType.ANALYZE_MESSAGE,
        payload={"message_id": str(message.id)},
        idempotency_key=analysis_idempotency_key(message.id),
    )


def list_messages(db: Session, thread_id: UUID | None = None) -> list[Message]:
    """Thread messages oldest first, or the latest messages across threads."""
    query = db.query(Message).options(joinedload(Message.analysis))
    if thread_id:
        return query.filter(Message.thread_id == thread_id).order_by(Message.received_at).all()
    return query.order_by(Message.received_at.desc()).limit(RECENT_MESSAGES_LIMIT).all()


def send_reply(
    db: Session,
    message_id: UUID,
    final_reply: str,
    user_id: UUID | None,
) -> ApprovalRequest:
    """
    Send an operator reply to a guest message.

    Goes through the approval state machine so the send log, thread
    status and audit entry are written by one code path: the message's
    pending approval is reused, or a review is opened, then approved.
    """
    if not final_reply or not final_reply.strip():
        raise ValidationError("Reply required")

    approval = approval_service.get_pending_for_message(db, message_id)
    if approval is None:
        approval = approval_service.request_review(
            db, message_id, notes="Direct reply", actor_id=user_id
        )
    return approval_service.decide(
        db,
        approval.id,
        ApprovalDecision.APPROVE.value,
        reviewer_id=user_id,
        final_reply=final_reply,
    )
