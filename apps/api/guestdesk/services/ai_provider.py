"""AI provider abstraction layer.

The classification gateway talks to an OpenAI-compatible chat endpoint
through this interface; tests substitute their own provider.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from guestdesk.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


@dataclass
class ChatResponse:
    """Response from an AI provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        json_response: bool = False,
    ) -> ChatResponse:
        """Send a chat completion request."""


class OpenAIProvider(AIProvider):
    """OpenAI chat completions provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        base_url: str = "https://api.openai.com/v1",
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = base_url

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        json_response: bool = False,
    ) -> ChatResponse:
        model = model or self.default_model
        body: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_response:
            body["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=body,
            )
            response.raise_for_status()
            data = response.json()

        usage = data.get("usage", {})
        return ChatResponse(
            content=data["choices"][0]["message"]["content"] or "",
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            model=model,
        )


def get_provider() -> AIProvider | None:
    """Return the configured provider, or None when no API key is set."""
    if not settings.ai_enabled:
        return None
    return OpenAIProvider(
        api_key=settings.OPENAI_API_KEY,
        default_model=settings.AI_MODEL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
