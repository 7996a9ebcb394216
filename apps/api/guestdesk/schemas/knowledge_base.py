"""Pydantic schemas for knowledge base entries."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class KbEntryCreate(BaseModel):
    client_id: UUID
    property_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)


class KbEntryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    tags: list[str] | None = None


class KbEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    property_id: UUID | None
    title: str
    content: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class KbTagCount(BaseModel):
    name: str
    count: int
