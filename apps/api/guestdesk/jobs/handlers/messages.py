"""Guest message job handlers."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from guestdesk.core.config import settings
from guestdesk.core.structured_logging import build_log_context
from guestdesk.db.models import Analysis, Message, Thread
from guestdesk.services import classification_service, knowledge_base_service, rule_engine
from guestdesk.services.classification_service import (
    ClassificationContext,
    ContextKbEntry,
    ContextMessage,
)

logger = logging.getLogger(__name__)


def build_context(db, message: Message, thread: Thread) -> ClassificationContext:
    """Guest, property, recent history and knowledge base for one message."""
    previous = (
        db.query(Message)
        .filter(Message.thread_id == thread.id, Message.id != message.id)
        .order_by(Message.received_at.desc())
        .limit(settings.AI_CONTEXT_MESSAGES)
        .all()
    )
    kb_entries = knowledge_base_service.entries_for_context(
        db, thread.client_id, thread.property_id, limit=settings.AI_CONTEXT_KB_ENTRIES
    )
    prop = thread.property
    return ClassificationContext(
        guest_name=thread.guest_name,
        property_name=prop.name if prop else "",
        property_address=prop.address if prop else None,
        previous_messages=[
            ContextMessage(sender_type=m.sender_type, text=m.text) for m in reversed(previous)
        ],
        knowledge_base=[
            ContextKbEntry(title=e.title, content=e.content, tags=list(e.tags or []))
            for e in kb_entries
        ],
    )


async def process_analyze_message(db, job) -> None:
    """
    Classify a guest message, then evaluate auto-rules.

    A degraded classification leaves the message unclassified: no
    Analysis row and no rule evaluation.
    """
    payload = job.payload or {}
    message_id = payload.get("message_id")
    if not message_id:
        raise Exception("Missing message_id in job payload")

    message = db.get(Message, UUID(message_id))
    if message is None:
        logger.info("Message %s no longer exists, skipping analysis", message_id)
        return
    log_context = build_log_context(thread_id=str(message.thread_id), message_id=message_id)
    if message.analysis is not None:
        logger.info("Message already analysed, skipping", extra=log_context)
        return

    thread = message.thread
    context = build_context(db, message, thread)
    result = await classification_service.classify(
        message.text, context, timeout=settings.AI_TIMEOUT_SECONDS
    )
    if result.degraded:
        logger.warning("Classification degraded, message left unclassified", extra=log_context)
        return

    db.add(
        Analysis(
            message_id=message.id,
            thread_id=thread.id,
            intent=result.intent,
            risk=result.risk,
            urgency=result.urgency,
            suggested_reply=result.suggested_reply,
            thread_summary=result.summary,
            confidence=result.confidence,
        )
    )
    try:
        db.commit()
    except IntegrityError:
        # Another attempt already stored the analysis
        db.rollback()
        logger.info("Analysis already stored, skipping rule evaluation", extra=log_context)
        return

    fired = rule_engine.evaluate(db, thread.id, message.id, result.intent, result.risk)
    logger.info(
        "Message analysed (intent=%s risk=%s rules=%s)",
        result.intent,
        result.risk,
        len(fired),
        extra=log_context,
    )
