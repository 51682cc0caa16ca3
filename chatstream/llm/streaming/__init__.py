"""
Incremental consumption of chunked model-response streams.

This module contains:
- Stateful decoding and line framing (NDJSON, SSE)
- Provider record parsing
- Accumulation with partial-result notifications
"""

from .accumulator import StreamAccumulator
from .framing import TERMINAL, WireFormat, ndjson_framer, sse_framer
from .models import (
    StreamResult,
    StreamState,
    StreamStatus,
    Terminal,
    TextDelta,
    Unparseable,
)
from .parser import (
    PROVIDER_STREAM_FORMATS,
    parse_gemini_sse,
    parse_ollama_chat,
    parse_openai_sse,
)

__all__ = [
    "PROVIDER_STREAM_FORMATS",
    "TERMINAL",
    "StreamAccumulator",
    "StreamResult",
    "StreamState",
    "StreamStatus",
    "Terminal",
    "TextDelta",
    "Unparseable",
    "WireFormat",
    "ndjson_framer",
    "parse_gemini_sse",
    "parse_ollama_chat",
    "parse_openai_sse",
]
