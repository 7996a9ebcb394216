"""Classification gateway for guest messages.

Wraps the chat provider with a bounded timeout and normalises its JSON
output. Provider failures never propagate: callers receive a degraded
classification and decide what to do with it.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

import anyio
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from guestdesk.core.config import settings
from guestdesk.core.errors import UpstreamUnavailableError
from guestdesk.db.enums import RISK_ORDER, MessageIntent, RiskLevel, UrgencyLevel
from guestdesk.services.ai_provider import AIProvider, ChatMessage, get_provider

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK_CHARS = 200
SUMMARY_UNAVAILABLE = "Conversation summary unavailable."
PROMPT_HISTORY_MESSAGES = 3

SYSTEM_PROMPT = """You are an AI assistant helping vacation rental property managers analyze guest messages.
Your job is to classify the intent, assess risk level, determine urgency, and provide helpful suggestions.

Always respond with valid JSON matching this structure:
{
  "intent": "checkin" | "checkout" | "question" | "complaint" | "cancellation" | "booking_inquiry" | "maintenance" | "amenity_request" | "other",
  "risk": "low" | "medium" | "high" | "critical",
  "urgency": "low" | "normal" | "high" | "urgent",
  "summary": "Brief 1-2 sentence summary of the message",
  "suggestedReply": "Professional, friendly reply suggestion",
  "confidence": 0.0 to 1.0
}"""

ANALYSIS_GUIDANCE = """Analyze this message and provide:
1. Intent classification (what does the guest want?)
2. Risk level (how urgent/serious is this?)
3. Urgency (how quickly does this need a response?)
4. Summary (brief overview)
5. Suggested reply (professional, friendly response)
6. Confidence (how confident are you in this analysis?)

Risk level guidance:
- LOW: Simple questions, routine requests
- MEDIUM: Important questions, minor issues
- HIGH: Complaints, urgent needs, payment issues
- CRITICAL: Emergencies, cancellations, safety concerns

Intent guidance:
- checkin: Questions about arrival, access codes, directions
- checkout: Questions about departure, checkout time
- question: General inquiries about amenities, location, etc.
- complaint: Issues, problems, dissatisfaction
- cancellation: Wants to cancel or modify reservation
- booking_inquiry: Questions before booking
- maintenance: Something broken or not working
- amenity_request: Requesting additional items/services
- other: Doesn't fit other categories"""

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes vacation rental guest conversations. "
    "Provide concise, professional summaries in 2-3 sentences."
)


@dataclass
class ContextMessage:
    sender_type: str
    text: str


@dataclass
class ContextKbEntry:
    title: str
    content: str
    tags: list[str] = field(default_factory=list)


@dataclass
class ClassificationContext:
    """Thread context passed alongside the message being classified."""

    guest_name: str
    property_name: str
    property_address: str | None = None
    previous_messages: list[ContextMessage] = field(default_factory=list)
    knowledge_base: list[ContextKbEntry] = field(default_factory=list)


@dataclass
class MessageClassification:
    intent: str
    risk: str
    urgency: str
    summary: str
    suggested_reply: str
    confidence: float
    degraded: bool = False


class ClassificationPayload(BaseModel):
    """Provider JSON output; missing or malformed fields fall back to defaults."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    intent: str | None = None
    risk: str | None = None
    urgency: str | None = None
    summary: str | None = None
    suggested_reply: str | None = Field(default=None, alias="suggestedReply")
    confidence: float | None = None

    @field_validator("intent", "risk", "urgency", mode="before")
    @classmethod
    def _lower(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return min(max(float(value), 0.0), 1.0)

    @field_validator("summary", "suggested_reply", mode="before")
    @classmethod
    def _text(cls, value):
        return value if isinstance(value, str) else None


def degraded_classification(text: str) -> MessageClassification:
    """Default returned when the provider is unavailable."""
    return MessageClassification(
        intent=MessageIntent.OTHER.value,
        risk=RiskLevel.MEDIUM.value,
        urgency=UrgencyLevel.NORMAL.value,
        summary=text[:SUMMARY_FALLBACK_CHARS],
        suggested_reply="",
        confidence=0.0,
        degraded=True,
    )


def build_analysis_prompt(text: str, context: ClassificationContext) -> str:
    lines = ["Analyze this guest message for a vacation rental property.", ""]

    property_line = f"Property: {context.property_name}"
    if context.property_address:
        property_line += f" ({context.property_address})"
    lines.append(property_line)
    lines.append(f"Guest: {context.guest_name}")
    lines.append("")

    if context.knowledge_base:
        lines.append("Property Information (Knowledge Base):")
        for entry in context.knowledge_base:
            lines.extend(["", f"[{entry.title}]", entry.content])
        lines.append("")

    if context.previous_messages:
        lines.append("Previous conversation:")
        for msg in context.previous_messages[-PROMPT_HISTORY_MESSAGES:]:
            lines.append(f"{msg.sender_type}: {msg.text}")
        lines.append("")

    lines.extend(["Current message:", text, "", ANALYSIS_GUIDANCE])
    return "\n".join(lines)


def _parse_json_object(content: str) -> dict | None:
    content = content.strip()
    if content.startswith("```"):
        body = content.splitlines()[1:]
        if body and body[-1].strip() == "```":
            body = body[:-1]
        content = "\n".join(body).strip()
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", content)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def normalize_classification(data: dict, text: str) -> MessageClassification:
    """Apply field defaults to provider output."""
    try:
        payload = ClassificationPayload.model_validate(data)
    except ValidationError:
        return degraded_classification(text)

    intent = payload.intent or MessageIntent.OTHER.value
    risk = payload.risk if payload.risk in RISK_ORDER else RiskLevel.MEDIUM.value
    urgency = payload.urgency or UrgencyLevel.NORMAL.value
    if urgency not in UrgencyLevel._value2member_map_:
        urgency = UrgencyLevel.NORMAL.value

    return MessageClassification(
        intent=intent,
        risk=risk,
        urgency=urgency,
        summary=(payload.summary or "").strip() or text[:SUMMARY_FALLBACK_CHARS],
        suggested_reply=(payload.suggested_reply or "").strip(),
        confidence=payload.confidence if payload.confidence is not None else 0.5,
    )


async def _request_classification(
    provider: AIProvider, text: str, context: ClassificationContext, timeout: float
) -> MessageClassification:
    messages = [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=build_analysis_prompt(text, context)),
    ]
    try:
        with anyio.fail_after(timeout):
            response = await provider.chat(messages, temperature=0.3, json_response=True)
    except Exception as exc:
        raise UpstreamUnavailableError(type(exc).__name__) from exc

    data = _parse_json_object(response.content or "")
    if data is None:
        raise UpstreamUnavailableError("unparsable classification output")
    return normalize_classification(data, text)


async def classify(
    text: str,
    context: ClassificationContext,
    provider: AIProvider | None = None,
    timeout: float | None = None,
) -> MessageClassification:
    """
    Classify a guest message.

    Never raises: a missing provider, a timeout, an HTTP failure or
    unparsable output all yield the degraded classification.
    """
    provider = provider or get_provider()
    if provider is None:
        return degraded_classification(text)

    try:
        return await _request_classification(
            provider, text, context, timeout or settings.AI_TIMEOUT_SECONDS
        )
    except UpstreamUnavailableError as exc:
        logger.warning("Classification unavailable: %s", exc)
        return degraded_classification(text)


async def summarize_thread(
    messages: list[ContextMessage],
    provider: AIProvider | None = None,
    timeout: float | None = None,
) -> str:
    """Summarize a conversation in 2-3 sentences; same failure policy as classify."""
    provider = provider or get_provider()
    if provider is None or not messages:
        return SUMMARY_UNAVAILABLE

    conversation = "\n\n".join(f"{m.sender_type}: {m.text}" for m in messages)
    try:
        with anyio.fail_after(timeout or settings.AI_TIMEOUT_SECONDS):
            response = await provider.chat(
                [
                    ChatMessage(role="system", content=SUMMARY_SYSTEM_PROMPT),
                    ChatMessage(
                        role="user",
                        content=f"Summarize this conversation:\n\n{conversation}",
                    ),
                ],
                temperature=0.5,
                max_tokens=150,
            )
    except Exception as exc:
        logger.warning("Thread summary unavailable: %s", type(exc).__name__)
        return SUMMARY_UNAVAILABLE

    return (response.content or "").strip() or SUMMARY_UNAVAILABLE
