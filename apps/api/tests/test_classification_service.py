"""Tests for the classification gateway."""

import json

import anyio
import httpx
import pytest

from guestdesk.services import classification_service
from guestdesk.services.ai_provider import AIProvider
from guestdesk.services.classification_service import (
    ClassificationContext,
    ContextKbEntry,
    ContextMessage,
)


@pytest.fixture
def context() -> ClassificationContext:
    return ClassificationContext(
        guest_name="Jane Guest",
        property_name="Beach House",
        property_address="1 Ocean Drive",
        previous_messages=[
            ContextMessage(sender_type="guest", text=f"message {i}") for i in range(5)
        ],
        knowledge_base=[ContextKbEntry(title="Wifi", content="Network: beach / pw: sand")],
    )


class SlowProvider(AIProvider):
    async def chat(self, messages, model=None, temperature=0.3, max_tokens=1000, json_response=False):
        await anyio.sleep(5)


# =============================================================================
# Normalisation (no provider)
# =============================================================================

def test_normalize_applies_defaults():
    result = classification_service.normalize_classification({}, "Hello there")

    assert result.intent == "other"
    assert result.risk == "medium"
    assert result.urgency == "normal"
    assert result.summary == "Hello there"
    assert result.suggested_reply == ""
    assert result.confidence == 0.5
    assert result.degraded is False


def test_normalize_unknown_risk_becomes_medium():
    result = classification_service.normalize_classification({"risk": "severe"}, "x")
    assert result.risk == "medium"


def test_normalize_lowercases_and_clamps():
    result = classification_service.normalize_classification(
        {"intent": "Complaint", "risk": "HIGH", "urgency": "Urgent", "confidence": 1.7},
        "The shower is broken",
    )

    assert result.intent == "complaint"
    assert result.risk == "high"
    assert result.urgency == "urgent"
    assert result.confidence == 1.0


def test_normalize_ignores_non_numeric_confidence():
    result = classification_service.normalize_classification({"confidence": "very"}, "x")
    assert result.confidence == 0.5


def test_normalize_keeps_valid_fields_when_one_is_malformed():
    """A non-string summary falls back on its own; intent and reply survive."""
    result = classification_service.normalize_classification(
        {
            "intent": "cancellation",
            "risk": "high",
            "summary": 123,
            "suggestedReply": "We can help.",
        },
        "Please cancel my booking",
    )

    assert result.degraded is False
    assert result.intent == "cancellation"
    assert result.risk == "high"
    assert result.suggested_reply == "We can help."
    assert result.summary == "Please cancel my booking"


def test_normalize_ignores_non_string_reply():
    result = classification_service.normalize_classification(
        {"intent": "checkin", "suggestedReply": ["not", "text"]}, "x"
    )

    assert result.intent == "checkin"
    assert result.suggested_reply == ""


def test_summary_fallback_is_truncated():
    text = "a" * 500
    result = classification_service.normalize_classification({}, text)
    assert result.summary == "a" * 200


def test_degraded_classification_defaults():
    result = classification_service.degraded_classification("Help!")

    assert result.degraded is True
    assert result.intent == "other"
    assert result.risk == "medium"
    assert result.suggested_reply == ""


def test_parse_json_object_handles_code_fences():
    content = '```json\n{"intent": "checkout"}\n```'
    assert classification_service._parse_json_object(content) == {"intent": "checkout"}


def test_parse_json_object_finds_embedded_object():
    content = 'Sure! Here you go: {"risk": "low"} Hope that helps.'
    assert classification_service._parse_json_object(content) == {"risk": "low"}


def test_parse_json_object_rejects_garbage():
    assert classification_service._parse_json_object("no json here") is None
    assert classification_service._parse_json_object("[1, 2, 3]") is None


def test_prompt_uses_last_three_history_messages(context):
    prompt = classification_service.build_analysis_prompt("When is checkout?", context)

    assert "Property: Beach House (1 Ocean Drive)" in prompt
    assert "[Wifi]" in prompt
    assert "guest: message 1" not in prompt
    assert "guest: message 2" in prompt
    assert "guest: message 4" in prompt
    assert "Current message:\nWhen is checkout?" in prompt


# =============================================================================
# classify()
# =============================================================================

async def test_classify_parses_provider_output(context, fake_provider_factory):
    provider = fake_provider_factory(
        content=json.dumps(
            {
                "intent": "checkout",
                "risk": "low",
                "urgency": "low",
                "summary": "Asks about checkout.",
                "suggestedReply": "Checkout is at 11am.",
                "confidence": 0.8,
            }
        )
    )

    result = await classification_service.classify("When is checkout?", context, provider=provider)

    assert result.degraded is False
    assert result.intent == "checkout"
    assert result.suggested_reply == "Checkout is at 11am."
    assert result.confidence == pytest.approx(0.8)


async def test_classify_without_provider_is_degraded(context, monkeypatch):
    monkeypatch.setattr(classification_service, "get_provider", lambda: None)

    result = await classification_service.classify("Hi", context)

    assert result.degraded is True


async def test_classify_http_failure_is_degraded(context, fake_provider_factory):
    provider = fake_provider_factory(error=httpx.ReadTimeout("timed out"))

    result = await classification_service.classify("Hi", context, provider=provider)

    assert result.degraded is True
    assert result.summary == "Hi"


async def test_classify_timeout_is_degraded(context):
    with anyio.fail_after(2):
        result = await classification_service.classify(
            "Hi", context, provider=SlowProvider(), timeout=0.05
        )

    assert result.degraded is True


async def test_classify_unparsable_output_is_degraded(context, fake_provider_factory):
    provider = fake_provider_factory(content="I am not able to help with that.")

    result = await classification_service.classify("Hi", context, provider=provider)

    assert result.degraded is True


# =============================================================================
# summarize_thread()
# =============================================================================

async def test_summarize_thread_returns_provider_text(fake_provider_factory):
    provider = fake_provider_factory(content="  Guest asked about parking.  ")

    summary = await classification_service.summarize_thread(
        [ContextMessage(sender_type="guest", text="Where do I park?")], provider=provider
    )

    assert summary == "Guest asked about parking."


async def test_summarize_thread_failure_uses_placeholder(fake_provider_factory):
    provider = fake_provider_factory(error=RuntimeError("boom"))

    summary = await classification_service.summarize_thread(
        [ContextMessage(sender_type="guest", text="Hi")], provider=provider
    )

    assert summary == classification_service.SUMMARY_UNAVAILABLE


async def test_summarize_empty_thread(fake_provider_factory):
    provider = fake_provider_factory(content="unused")

    assert (
        await classification_service.summarize_thread([], provider=provider)
        == classification_service.SUMMARY_UNAVAILABLE
    )
    assert provider.calls == []
