"""Tests for auto-rule CRUD and write-time validation."""

import uuid

import pytest

from guestdesk.core.errors import NotFoundError, ValidationError
from guestdesk.db.enums import AuditAction
from guestdesk.db.models import AuditLog, AutoRule, Client, Property
from guestdesk.schemas.rule import AutoRuleCreate, AutoRuleUpdate
from guestdesk.services import rule_service


def _create(db, client, **fields):
    data = AutoRuleCreate(**{"action": "queue", **fields})
    return rule_service.create_rule(db, client.id, data)


def test_create_rule_defaults(db, test_client_account, test_user):
    rule = rule_service.create_rule(
        db, test_client_account.id, AutoRuleCreate(action="queue"), actor_id=test_user.id
    )

    assert rule.intent is None
    assert rule.risk_max == "low"
    assert rule.enabled is True
    assert rule.conditions == {}

    entry = db.query(AuditLog).one()
    assert entry.action == AuditAction.AUTO_RULE_CREATED.value
    assert entry.entity_id == str(rule.id)
    assert entry.actor_user_id == test_user.id


def test_create_rule_normalises_risk_and_blank_intent(db, test_client_account):
    rule = _create(db, test_client_account, risk_max="HIGH", intent="")

    assert rule.risk_max == "high"
    assert rule.intent is None


@pytest.mark.parametrize("fields", [{"action": "send_now"}, {"risk_max": "extreme"}])
def test_create_rule_rejects_invalid_values(db, test_client_account, fields):
    with pytest.raises(ValidationError):
        _create(db, test_client_account, **fields)
    assert db.query(AutoRule).count() == 0


def test_create_rule_rejects_property_of_other_client(db, test_client_account):
    other = Client(name="Other Co")
    db.add(other)
    db.commit()
    foreign = Property(client_id=other.id, name="Elsewhere")
    db.add(foreign)
    db.commit()

    with pytest.raises(ValidationError, match="Property"):
        _create(db, test_client_account, property_id=foreign.id)


def test_template_id_not_allowed_on_queue_rules(db, test_client_account, test_template):
    with pytest.raises(ValidationError, match="queue"):
        _create(db, test_client_account, conditions={"templateId": str(test_template.id)})


@pytest.mark.parametrize("template_id", ["not-a-uuid", str(uuid.uuid4())])
def test_template_id_must_reference_template(db, test_client_account, template_id):
    with pytest.raises(ValidationError, match="template"):
        _create(
            db, test_client_account, action="template", conditions={"templateId": template_id}
        )


def test_template_rule_keeps_extra_conditions(db, test_client_account, test_template):
    rule = _create(
        db,
        test_client_account,
        action="template",
        conditions={"templateId": str(test_template.id), "label": "check-in"},
    )

    assert rule.conditions == {"templateId": str(test_template.id), "label": "check-in"}


def test_update_rule_changes_only_given_fields(db, test_client_account, test_property):
    rule = _create(db, test_client_account, intent="checkin", property_id=test_property.id)

    updated = rule_service.update_rule(db, rule.id, AutoRuleUpdate(enabled=False))

    assert updated.enabled is False
    assert updated.intent == "checkin"
    assert updated.property_id == test_property.id
    assert updated.action == "queue"


def test_update_rule_can_clear_property(db, test_client_account, test_property):
    rule = _create(db, test_client_account, property_id=test_property.id)

    updated = rule_service.update_rule(db, rule.id, AutoRuleUpdate(property_id=None))

    assert updated.property_id is None


def test_update_rule_revalidates_conditions_against_action(
    db, test_client_account, test_template
):
    rule = _create(
        db, test_client_account, action="template", conditions={"templateId": str(test_template.id)}
    )

    with pytest.raises(ValidationError):
        rule_service.update_rule(db, rule.id, AutoRuleUpdate(action="queue"))


def test_update_rule_audits_changed_fields(db, test_client_account, test_user):
    rule = _create(db, test_client_account)

    rule_service.update_rule(
        db, rule.id, AutoRuleUpdate(risk_max="medium", intent="question"), actor_id=test_user.id
    )

    entry = (
        db.query(AuditLog).filter(AuditLog.action == AuditAction.AUTO_RULE_UPDATED.value).one()
    )
    assert entry.meta == {"fields": ["intent", "risk_max"]}


def test_delete_rule(db, test_client_account):
    rule = _create(db, test_client_account)
    rule_id = rule.id

    rule_service.delete_rule(db, rule_id)

    assert db.get(AutoRule, rule_id) is None
    assert (
        db.query(AuditLog).filter(AuditLog.action == AuditAction.AUTO_RULE_DELETED.value).count()
        == 1
    )
    with pytest.raises(NotFoundError):
        rule_service.get_rule(db, rule_id)


def test_list_rules_filters_by_property(db, test_client_account, test_property, other_property):
    scoped = _create(db, test_client_account, property_id=test_property.id)
    _create(db, test_client_account, property_id=other_property.id)

    assert [r.id for r in rule_service.list_rules(db, test_client_account.id, test_property.id)] == [
        scoped.id
    ]
    assert len(rule_service.list_rules(db, test_client_account.id)) == 2


def test_rule_conditions_parse_rejects_non_string_template():
    with pytest.raises(ValidationError):
        rule_service.RuleConditions.parse({"templateId": 42})
