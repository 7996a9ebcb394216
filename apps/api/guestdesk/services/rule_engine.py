"""Rule matching engine.

Turns a classified guest message into pending approval requests, one per
matching auto-rule. Evaluation is best effort: it runs after the message
is persisted and never raises to its caller.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from guestdesk.core.structured_logging import build_log_context
from guestdesk.db.enums import RISK_ORDER, ApprovalStatus, RiskLevel, RuleAction
from guestdesk.db.models import ApprovalRequest, AutoRule, Thread

logger = logging.getLogger(__name__)

TEMPLATE_ID_KEY = "templateId"


@dataclass
class RuleEvaluationResult:
    rule_id: UUID
    matched: bool
    action: str


def intent_matches(rule_intent: str | None, intent: str | None) -> bool:
    """A rule without an intent is a wildcard; otherwise exact, case-sensitive."""
    if not rule_intent:
        return True
    return rule_intent == intent


def risk_within_ceiling(risk: str | None, risk_max: str | None) -> bool:
    """
    True when risk is at or below the rule's inclusive ceiling.

    Unknown tiers on either side never match.
    """
    if not risk_max:
        return True
    if not risk:
        return False
    risk_key = risk.lower()
    ceiling_key = risk_max.lower()
    if risk_key not in RISK_ORDER or ceiling_key not in RISK_ORDER:
        return False
    return RISK_ORDER.index(risk_key) <= RISK_ORDER.index(ceiling_key)


def rule_template_id(rule: AutoRule) -> str | None:
    conditions = rule.conditions if isinstance(rule.conditions, dict) else {}
    template_id = conditions.get(TEMPLATE_ID_KEY)
    return str(template_id) if template_id else None


def approval_note(rule: AutoRule) -> str:
    """Explanatory note attached to the approval a rule creates."""
    if rule.action == RuleAction.QUEUE.value:
        scope = "scoped" if rule.property_id else "client-wide"
        return f"Auto-flagged by rule: {rule.intent or 'any intent'} (Property: {scope})"

    template_id = rule_template_id(rule)
    if template_id:
        return f"Suggested template: {template_id}"
    return f"Rule triggered ({rule.action})"


def candidate_rules(db: Session, thread: Thread) -> list[AutoRule]:
    """Enabled rules of the thread's client, for its property or client-wide."""
    return (
        db.query(AutoRule)
        .filter(
            AutoRule.client_id == thread.client_id,
            AutoRule.enabled.is_(True),
            or_(
                AutoRule.property_id == thread.property_id,
                AutoRule.property_id.is_(None),
            ),
        )
        .order_by(AutoRule.created_at, AutoRule.id)
        .all()
    )


def matching_rules(
    rules: list[AutoRule], intent: str | None, risk: str | None
) -> list[AutoRule]:
    return [
        rule
        for rule in rules
        if intent_matches(rule.intent, intent) and risk_within_ceiling(risk, rule.risk_max)
    ]


def evaluate(
    db: Session,
    thread_id: UUID,
    message_id: UUID,
    intent: str | None = None,
    risk: str | None = RiskLevel.LOW.value,
) -> list[RuleEvaluationResult]:
    """
    Evaluate auto-rules for a classified message.

    Every matching rule creates one pending ApprovalRequest (no dedup,
    no priority, no short-circuit). Returns the fired rules, or an empty
    list when the thread is missing or evaluation fails.
    """
    log_context = build_log_context(thread_id=str(thread_id), message_id=str(message_id))
    try:
        thread = db.get(Thread, thread_id)
        if thread is None:
            return []

        results: list[RuleEvaluationResult] = []
        for rule in matching_rules(candidate_rules(db, thread), intent, risk or RiskLevel.LOW.value):
            db.add(
                ApprovalRequest(
                    message_id=message_id,
                    rule_id=rule.id,
                    status=ApprovalStatus.PENDING.value,
                    notes=approval_note(rule),
                )
            )
            results.append(RuleEvaluationResult(rule_id=rule.id, matched=True, action=rule.action))

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Rule evaluation failed", extra=log_context)
        return []

    if results:
        logger.info("Auto-rules fired: %s", len(results), extra=log_context)
    return results
