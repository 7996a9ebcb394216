"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    client_id: str | None = None,
    thread_id: str | None = None,
    message_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (identifiers only, never guest text)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if client_id:
        context["client_id"] = str(client_id)
    if thread_id:
        context["thread_id"] = str(thread_id)
    if message_id:
        context["message_id"] = str(message_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
