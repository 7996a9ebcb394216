"""Pydantic schemas for approvals."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AnalysisRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    intent: str
    risk: str
    urgency: str
    suggested_reply: str
    thread_summary: str
    confidence: float


class ApprovalMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    thread_id: UUID
    sender_type: str
    text: str
    received_at: datetime
    analysis: AnalysisRead | None = None


class ApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    message_id: UUID
    rule_id: UUID | None
    status: str
    reviewer_id: UUID | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class ApprovalDetail(ApprovalRead):
    message: ApprovalMessage


class DecisionRequest(BaseModel):
    action: str = Field(..., description="approve or reject")
    notes: str | None = Field(None, max_length=2000)
    final_reply: str | None = None


class BulkDecisionRequest(BaseModel):
    message_ids: list[UUID] = Field(..., min_length=1, max_length=500)
    action: str
    reason: str | None = Field(None, max_length=2000)


class BulkDecisionResponse(BaseModel):
    processed: int
