"""
Record parsers for provider-specific streaming JSON shapes.

Each parser turns one frame into a ParsedRecord and never raises: malformed
JSON and shape mismatches both come back as ``Unparseable``.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from ..models import ProviderType
from .framing import WireFormat
from .models import ParsedRecord, TextDelta, Unparseable

RecordParser = Callable[[str], ParsedRecord]


def _load_object(frame: str) -> dict[str, Any] | Unparseable:
    try:
        data = json.loads(frame)
    except json.JSONDecodeError as e:
        return Unparseable(f"JSON decode error: {e}")
    if not isinstance(data, dict):
        return Unparseable(f"Expected JSON object, got {type(data).__name__}")
    return data


def parse_ollama_chat(frame: str) -> ParsedRecord:
    """Extract ``message.content`` from an Ollama ``/api/chat`` line."""
    data = _load_object(frame)
    if isinstance(data, Unparseable):
        return data

    message = data.get("message")
    if not isinstance(message, dict):
        return Unparseable("No message object")

    content = message.get("content")
    if not isinstance(content, str) or not content:
        return Unparseable("No message content")
    return TextDelta(content)


def parse_gemini_sse(frame: str) -> ParsedRecord:
    """Extract ``candidates[0].content.parts[*].text`` from a Gemini event.

    Parts are concatenated in array order; later candidates are ignored.
    """
    data = _load_object(frame)
    if isinstance(data, Unparseable):
        return data

    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return Unparseable("No candidates")

    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return Unparseable("No content parts")

    text = "".join(
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
    if not text:
        return Unparseable("No part text")
    return TextDelta(text)


def parse_openai_sse(frame: str) -> ParsedRecord:
    """Extract ``choices[0].delta.content`` from an OpenAI-compatible chunk."""
    data = _load_object(frame)
    if isinstance(data, Unparseable):
        return data

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return Unparseable("No choices")

    choice = choices[0]
    delta = choice.get("delta") if isinstance(choice, dict) else None
    if not isinstance(delta, dict):
        return Unparseable("No delta")

    if content := delta.get("content"):
        if isinstance(content, str):
            return TextDelta(content)
    return Unparseable("No delta content")


PROVIDER_STREAM_FORMATS: dict[ProviderType, tuple[WireFormat, RecordParser]] = {
    ProviderType.OLLAMA: (WireFormat.NDJSON, parse_ollama_chat),
    ProviderType.GEMINI: (WireFormat.SSE, parse_gemini_sse),
    ProviderType.OPENAI: (WireFormat.SSE, parse_openai_sse),
}
