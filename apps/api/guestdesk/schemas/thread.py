"""Pydantic schemas for threads and messages."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from guestdesk.db.enums import SenderType
from guestdesk.schemas.approval import AnalysisRead


class ThreadCreate(BaseModel):
    client_id: UUID
    property_id: UUID
    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_email: str | None = Field(None, max_length=255)


class ThreadStatusUpdate(BaseModel):
    status: str


class ThreadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    property_id: UUID
    guest_name: str
    guest_email: str | None
    status: str
    last_received_at: datetime | None
    created_at: datetime


class MessageCreate(BaseModel):
    thread_id: UUID
    sender_type: SenderType = SenderType.GUEST
    text: str = Field(..., max_length=10000)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    thread_id: UUID
    sender_type: str
    text: str
    received_at: datetime
    analysis: AnalysisRead | None = None


class ThreadDetail(ThreadRead):
    messages: list[MessageRead] = []


class SendReplyRequest(BaseModel):
    final_reply: str = Field(..., max_length=10000)


class ReviewRequest(BaseModel):
    notes: str | None = Field(None, max_length=2000)


class ThreadSummary(BaseModel):
    thread_id: UUID
    summary: str
