"""Tests for auto-rule matching and approval creation."""

import uuid

import pytest

from guestdesk.db.enums import ApprovalStatus, RuleAction
from guestdesk.db.models import ApprovalRequest, AutoRule
from guestdesk.services import rule_engine


@pytest.fixture
def make_rule(db, test_client_account):
    def _make(
        action: RuleAction = RuleAction.QUEUE,
        intent: str | None = "checkin",
        risk_max: str = "low",
        property_id=None,
        enabled: bool = True,
        conditions: dict | None = None,
    ) -> AutoRule:
        rule = AutoRule(
            client_id=test_client_account.id,
            property_id=property_id,
            intent=intent,
            risk_max=risk_max,
            action=action.value,
            enabled=enabled,
            conditions=conditions or {},
        )
        db.add(rule)
        db.commit()
        return rule

    return _make


def _approvals(db, message_id) -> list[ApprovalRequest]:
    return db.query(ApprovalRequest).filter(ApprovalRequest.message_id == message_id).all()


# =============================================================================
# Matching helpers (no DB required)
# =============================================================================

@pytest.mark.parametrize(
    "risk,ceiling,expected",
    [
        ("low", "low", True),
        ("low", "critical", True),
        ("medium", "low", False),
        ("high", "high", True),
        ("critical", "high", False),
        ("HIGH", "critical", True),
    ],
)
def test_risk_within_ceiling_is_inclusive(risk, ceiling, expected):
    assert rule_engine.risk_within_ceiling(risk, ceiling) is expected


def test_unknown_risk_never_matches():
    assert rule_engine.risk_within_ceiling("severe", "critical") is False
    assert rule_engine.risk_within_ceiling("low", "extreme") is False


def test_rule_without_intent_is_wildcard():
    assert rule_engine.intent_matches(None, "complaint") is True
    assert rule_engine.intent_matches("", "other") is True


def test_intent_match_is_exact_and_case_sensitive():
    assert rule_engine.intent_matches("checkin", "checkin") is True
    assert rule_engine.intent_matches("checkin", "checkout") is False
    assert rule_engine.intent_matches("checkin", "CHECKIN") is False


def test_queue_note_reflects_rule_scope():
    scoped = AutoRule(action="queue", intent="checkin", property_id=uuid.uuid4())
    client_wide = AutoRule(action="queue", intent=None, property_id=None)

    assert rule_engine.approval_note(scoped) == "Auto-flagged by rule: checkin (Property: scoped)"
    assert (
        rule_engine.approval_note(client_wide)
        == "Auto-flagged by rule: any intent (Property: client-wide)"
    )


def test_template_note_names_template():
    template_id = str(uuid.uuid4())
    rule = AutoRule(action="template", conditions={"templateId": template_id})
    assert rule_engine.approval_note(rule) == f"Suggested template: {template_id}"


def test_note_without_template_names_action():
    rule = AutoRule(action="auto_send", conditions={})
    assert rule_engine.approval_note(rule) == "Rule triggered (auto_send)"


# =============================================================================
# Evaluation (DB)
# =============================================================================

def test_property_scoped_queue_rule_creates_pending_approval(
    db, make_rule, make_thread, make_message, test_property
):
    """A low-risk check-in question at the rule's property is queued for review."""
    rule = make_rule(property_id=test_property.id)
    thread = make_thread()
    message = make_message(thread)

    results = rule_engine.evaluate(db, thread.id, message.id, "checkin", "low")

    assert [r.rule_id for r in results] == [rule.id]
    assert results[0].matched is True
    assert results[0].action == "queue"

    approvals = _approvals(db, message.id)
    assert len(approvals) == 1
    assert approvals[0].status == ApprovalStatus.PENDING.value
    assert approvals[0].rule_id == rule.id
    assert approvals[0].notes == "Auto-flagged by rule: checkin (Property: scoped)"


def test_rule_for_other_property_does_not_fire(
    db, make_rule, make_thread, make_message, other_property
):
    make_rule(property_id=other_property.id)
    thread = make_thread()
    message = make_message(thread)

    assert rule_engine.evaluate(db, thread.id, message.id, "checkin", "low") == []
    assert _approvals(db, message.id) == []


def test_risk_above_ceiling_does_not_fire(db, make_rule, make_thread, make_message):
    """A complaint classified high never matches a low-ceiling rule."""
    make_rule(intent="complaint", risk_max="low")
    thread = make_thread()
    message = make_message(thread, text="The heating is broken and nobody answers")

    assert rule_engine.evaluate(db, thread.id, message.id, "complaint", "high") == []
    assert _approvals(db, message.id) == []


def test_every_matching_rule_creates_its_own_approval(
    db, make_rule, make_thread, make_message, test_property
):
    """Scoped and client-wide rules both fire; no dedup, no short-circuit."""
    scoped = make_rule(property_id=test_property.id)
    wildcard = make_rule(intent=None, risk_max="medium", action=RuleAction.TEMPLATE)
    thread = make_thread()
    message = make_message(thread)

    results = rule_engine.evaluate(db, thread.id, message.id, "checkin", "low")

    assert {r.rule_id for r in results} == {scoped.id, wildcard.id}
    approvals = _approvals(db, message.id)
    assert len(approvals) == 2
    assert all(a.status == ApprovalStatus.PENDING.value for a in approvals)


def test_disabled_rules_are_ignored(db, make_rule, make_thread, make_message):
    make_rule(enabled=False)
    thread = make_thread()
    message = make_message(thread)

    assert rule_engine.evaluate(db, thread.id, message.id, "checkin", "low") == []


def test_rules_of_other_clients_are_ignored(db, make_thread, make_message):
    from guestdesk.db.models import Client

    other_client = Client(name="Other Co")
    db.add(other_client)
    db.commit()
    db.add(AutoRule(client_id=other_client.id, intent=None, risk_max="critical", action="queue"))
    db.commit()

    thread = make_thread()
    message = make_message(thread)

    assert rule_engine.evaluate(db, thread.id, message.id, "checkin", "low") == []


def test_auto_send_rule_still_requires_review(db, make_rule, make_thread, make_message):
    """auto_send only creates a pending approval; nothing is sent."""
    from guestdesk.db.models import SendLog

    make_rule(action=RuleAction.AUTO_SEND)
    thread = make_thread()
    message = make_message(thread)

    results = rule_engine.evaluate(db, thread.id, message.id, "checkin", "low")

    assert len(results) == 1
    assert _approvals(db, message.id)[0].status == ApprovalStatus.PENDING.value
    assert db.query(SendLog).count() == 0


def test_missing_risk_defaults_to_low(db, make_rule, make_thread, make_message):
    make_rule(risk_max="low")
    thread = make_thread()
    message = make_message(thread)

    assert len(rule_engine.evaluate(db, thread.id, message.id, "checkin", None)) == 1


def test_missing_thread_returns_empty(db, make_rule):
    make_rule(intent=None, risk_max="critical")
    assert rule_engine.evaluate(db, uuid.uuid4(), uuid.uuid4(), "checkin", "low") == []


def test_evaluation_failure_is_swallowed(db, make_rule, make_thread, make_message, monkeypatch):
    """Storage errors roll back and yield no results instead of raising."""
    make_rule()
    thread = make_thread()
    message = make_message(thread)

    def _boom(*_args, **_kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(rule_engine, "candidate_rules", _boom)

    assert rule_engine.evaluate(db, thread.id, message.id, "checkin", "low") == []
    assert _approvals(db, message.id) == []


def test_client_wide_cancellation_rule_matches_any_property(
    db, make_rule, make_thread, make_message, other_property
):
    make_rule(intent="cancellation", risk_max="critical")
    thread = make_thread(property_=other_property)
    message = make_message(thread, text="I need to cancel my stay")

    results = rule_engine.evaluate(db, thread.id, message.id, "cancellation", "high")

    assert len(results) == 1
    approvals = _approvals(db, message.id)
    assert len(approvals) == 1
    assert approvals[0].status == ApprovalStatus.PENDING.value


def test_cancellation_rule_ignores_other_intents(db, make_rule, make_thread, make_message):
    make_rule(intent="cancellation", risk_max="critical")
    thread = make_thread()
    message = make_message(thread)

    assert rule_engine.evaluate(db, thread.id, message.id, "checkin", "low") == []
    assert _approvals(db, message.id) == []
