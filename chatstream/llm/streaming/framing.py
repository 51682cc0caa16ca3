"""
Frame extraction for line-oriented streaming wire formats.

A framer is a pure function ``(text, carry) -> (frames, new_carry)``. It
splits newly decoded text, prefixed by the carry from the previous call, into
complete frames and returns the trailing incomplete fragment as the new carry.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

SSE_DATA_PREFIX = "data: "
SSE_DONE_SENTINEL = "[DONE]"


class _TerminalMarker:
    """Singleton surfaced by a framer in place of an end-of-stream frame."""

    _instance: _TerminalMarker | None = None

    def __new__(cls) -> _TerminalMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TERMINAL"


TERMINAL = _TerminalMarker()

Frame = str | _TerminalMarker
Framer = Callable[[str, str], tuple[list[Frame], str]]


def _split_lines(text: str, carry: str) -> tuple[list[str], str]:
    buffer = carry + text
    *lines, new_carry = buffer.split("\n")
    return lines, new_carry


def ndjson_framer(text: str, carry: str = "") -> tuple[list[Frame], str]:
    """Split newline-delimited JSON; every non-blank line is a frame."""
    lines, new_carry = _split_lines(text, carry)
    frames: list[Frame] = [line.strip() for line in lines if line.strip()]
    return frames, new_carry


def sse_framer(text: str, carry: str = "") -> tuple[list[Frame], str]:
    """Split Server-Sent Events, keeping only ``data: `` payloads.

    A payload equal to ``[DONE]`` is surfaced as :data:`TERMINAL`.
    """
    lines, new_carry = _split_lines(text, carry)
    frames: list[Frame] = []
    for raw_line in lines:
        line = raw_line.rstrip("\r")
        if not line.startswith(SSE_DATA_PREFIX):
            continue

        payload = line[len(SSE_DATA_PREFIX):]
        if payload.strip() == SSE_DONE_SENTINEL:
            frames.append(TERMINAL)
        elif payload.strip():
            frames.append(payload)
    return frames, new_carry


class WireFormat(Enum):
    """Supported streaming wire formats."""
    NDJSON = "ndjson"
    SSE = "sse"

    @property
    def framer(self) -> Framer:
        if self is WireFormat.SSE:
            return sse_framer
        return ndjson_framer
