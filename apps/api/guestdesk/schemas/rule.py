"""Pydantic schemas for auto-rules."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from guestdesk.db.enums import RiskLevel


class AutoRuleCreate(BaseModel):
    property_id: UUID | None = None
    intent: str | None = Field(None, max_length=50)
    risk_max: str = RiskLevel.LOW.value
    conditions: dict[str, Any] = Field(default_factory=dict)
    action: str
    enabled: bool = True


class AutoRuleUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    property_id: UUID | None = None
    intent: str | None = Field(None, max_length=50)
    risk_max: str | None = None
    conditions: dict[str, Any] | None = None
    action: str | None = None
    enabled: bool | None = None


class AutoRuleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    property_id: UUID | None
    intent: str | None
    risk_max: str
    conditions: dict[str, Any]
    action: str
    enabled: bool
    created_at: datetime
    updated_at: datetime
