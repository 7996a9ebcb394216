"""Pydantic schemas for send logs and audit logs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SendLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    message_id: UUID
    thread_id: UUID
    approval_id: UUID | None
    final_reply: str
    channel: str
    provider_response: dict[str, Any]
    sent_by_user_id: UUID | None
    created_at: datetime


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_user_id: UUID | None
    action: str
    entity_type: str
    entity_id: str
    meta: dict[str, Any]
    created_at: datetime
