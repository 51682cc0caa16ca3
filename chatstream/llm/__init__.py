"""
Streaming LLM integration.

This package provides:
- A protocol-agnostic streaming response accumulator
- NDJSON and Server-Sent-Events framing
- Provider-specific record parsers (Ollama, Gemini, OpenAI-compatible)
- A thin httpx client that feeds provider streams to the accumulator
"""

from __future__ import annotations

from .client import StreamingChatClient
from .exceptions import (
    CancellationRequested,
    MalformedRecord,
    RequestRejected,
    StreamError,
    TransportFailure,
)
from .models import (
    ChatMessage,
    MessageRole,
    ProviderConfig,
    ProviderType,
    StreamingConfig,
)
from .streaming import StreamAccumulator, StreamResult, StreamStatus, WireFormat

__all__ = [
    "CancellationRequested",
    # Models
    "ChatMessage",
    "MalformedRecord",
    "MessageRole",
    "ProviderConfig",
    "ProviderType",
    # Exceptions
    "RequestRejected",
    # Streaming
    "StreamAccumulator",
    "StreamError",
    "StreamResult",
    "StreamStatus",
    "StreamingChatClient",
    "StreamingConfig",
    "TransportFailure",
    "WireFormat",
]
