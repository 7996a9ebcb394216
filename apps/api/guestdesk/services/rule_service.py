"""Auto-rule store - CRUD with write-time validation."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from guestdesk.core.errors import NotFoundError, ValidationError
from guestdesk.db.enums import RISK_ORDER, AuditAction, RuleAction
from guestdesk.db.models import AutoRule, Property, Template
from guestdesk.schemas.rule import AutoRuleCreate, AutoRuleUpdate
from guestdesk.services import audit_service
from guestdesk.services.rule_engine import TEMPLATE_ID_KEY


@dataclass
class RuleConditions:
    """
    Parsed rule conditions.

    templateId is the only key the engine understands; everything else
    is kept verbatim for the console.
    """

    template_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: dict[str, Any] | None) -> "RuleConditions":
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValidationError("conditions must be an object")
        extra = dict(raw)
        template_id = extra.pop(TEMPLATE_ID_KEY, None)
        if template_id is not None and not isinstance(template_id, str):
            raise ValidationError("templateId must be a string")
        return cls(template_id=template_id or None, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        if self.template_id:
            data[TEMPLATE_ID_KEY] = self.template_id
        return data


def _validate_action(action: str) -> str:
    if action not in {a.value for a in RuleAction}:
        raise ValidationError(f"Invalid action: {action}")
    return action


def _validate_risk_max(risk_max: str) -> str:
    value = (risk_max or "").lower()
    if value not in RISK_ORDER:
        raise ValidationError(f"Invalid risk_max: {risk_max}")
    return value


def _validate_property(db: Session, client_id: UUID, property_id: UUID | None) -> None:
    if property_id is None:
        return
    prop = db.get(Property, property_id)
    if prop is None or prop.client_id != client_id:
        raise ValidationError("Property does not belong to this client")


def _validate_conditions(
    db: Session, client_id: UUID, action: str, conditions: RuleConditions
) -> None:
    if not conditions.template_id:
        return
    if action == RuleAction.QUEUE.value:
        raise ValidationError("templateId is not allowed on queue rules")
    try:
        template_uuid = UUID(conditions.template_id)
    except ValueError:
        raise ValidationError("templateId must reference an existing template") from None
    template = db.get(Template, template_uuid)
    if template is None or template.client_id != client_id:
        raise ValidationError("templateId must reference an existing template")


def list_rules(db: Session, client_id: UUID, property_id: UUID | None = None) -> list[AutoRule]:
    """List a client's rules newest first, optionally for one property."""
    query = db.query(AutoRule).filter(AutoRule.client_id == client_id)
    if property_id:
        query = query.filter(AutoRule.property_id == property_id)
    return query.order_by(AutoRule.created_at.desc(), AutoRule.id.desc()).all()


def get_rule(db: Session, rule_id: UUID, client_id: UUID | None = None) -> AutoRule:
    rule = db.get(AutoRule, rule_id)
    if rule is None or (client_id and rule.client_id != client_id):
        raise NotFoundError("Rule not found")
    return rule


def create_rule(
    db: Session,
    client_id: UUID,
    data: AutoRuleCreate,
    actor_id: UUID | None = None,
) -> AutoRule:
    action = _validate_action(data.action)
    risk_max = _validate_risk_max(data.risk_max)
    _validate_property(db, client_id, data.property_id)
    conditions = RuleConditions.parse(data.conditions)
    _validate_conditions(db, client_id, action, conditions)

    rule = AutoRule(
        client_id=client_id,
        property_id=data.property_id,
        intent=data.intent or None,
        risk_max=risk_max,
        conditions=conditions.to_dict(),
        action=action,
        enabled=data.enabled,
    )
    db.add(rule)
    db.flush()
    audit_service.log_event(
        db,
        action=AuditAction.AUTO_RULE_CREATED,
        entity_type="auto_rule",
        entity_id=rule.id,
        actor_user_id=actor_id,
        meta={"client_id": str(client_id), "action": action},
    )
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(
    db: Session,
    rule_id: UUID,
    data: AutoRuleUpdate,
    actor_id: UUID | None = None,
) -> AutoRule:
    """Apply a partial update; only fields present in the request change."""
    rule = get_rule(db, rule_id)
    changes = data.model_dump(exclude_unset=True)

    action = _validate_action(changes["action"]) if changes.get("action") else rule.action
    if "risk_max" in changes:
        changes["risk_max"] = _validate_risk_max(changes["risk_max"])
    if "property_id" in changes:
        _validate_property(db, rule.client_id, changes["property_id"])
    if "intent" in changes:
        changes["intent"] = changes["intent"] or None
    if changes.get("enabled") is None:
        changes.pop("enabled", None)

    raw_conditions = changes.get("conditions", rule.conditions)
    conditions = RuleConditions.parse(raw_conditions)
    _validate_conditions(db, rule.client_id, action, conditions)
    if "conditions" in changes:
        changes["conditions"] = conditions.to_dict()
    changes.pop("action", None)

    for field_name, value in changes.items():
        setattr(rule, field_name, value)
    rule.action = action

    audit_service.log_event(
        db,
        action=AuditAction.AUTO_RULE_UPDATED,
        entity_type="auto_rule",
        entity_id=rule.id,
        actor_user_id=actor_id,
        meta={"fields": sorted(data.model_dump(exclude_unset=True).keys())},
    )
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule_id: UUID, actor_id: UUID | None = None) -> None:
    rule = get_rule(db, rule_id)
    audit_service.log_event(
        db,
        action=AuditAction.AUTO_RULE_DELETED,
        entity_type="auto_rule",
        entity_id=rule.id,
        actor_user_id=actor_id,
        meta={"client_id": str(rule.client_id)},
    )
    db.delete(rule)
    db.commit()
