"""
Streaming dataclasses for incremental response accumulation.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass, field
from enum import Enum

from ..exceptions import StreamError


class StreamStatus(Enum):
    """Lifecycle of one streaming session."""
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TextDelta:
    """Text to append to the reply."""
    text: str


@dataclass(frozen=True)
class Terminal:
    """Explicit end-of-stream sentinel."""


@dataclass(frozen=True)
class Unparseable:
    """Frame that did not match the expected record shape."""
    reason: str = ""


ParsedRecord = TextDelta | Terminal | Unparseable


@dataclass
class StreamState:
    """Mutable state owned by a single in-flight accumulation."""
    encoding: str = "utf-8"
    line_carry: str = ""
    accumulated_text: str = ""
    status: StreamStatus = StreamStatus.ACTIVE
    bytes_received: int = 0
    frames: int = 0
    deltas: int = 0
    malformed: int = 0
    decoder: codecs.IncrementalDecoder = field(init=False)

    def __post_init__(self) -> None:
        self.decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")

    def decode(self, chunk: bytes) -> str:
        """Decode a chunk, holding back any incomplete trailing sequence."""
        self.bytes_received += len(chunk)
        return self.decoder.decode(chunk, final=False)

    def flush_decoder(self) -> str:
        """Release whatever the decoder still carries at stream end."""
        return self.decoder.decode(b"", final=True)

    def clear_buffers(self) -> None:
        """Drop carried bytes and characters once the session has ended."""
        self.line_carry = ""
        self.decoder.reset()

    def append(self, text: str) -> str:
        """Append a delta and return the accumulated text."""
        self.accumulated_text += text
        self.deltas += 1
        return self.accumulated_text

    @property
    def is_terminal(self) -> bool:
        return self.status is not StreamStatus.ACTIVE


@dataclass(frozen=True)
class StreamResult:
    """Terminal outcome of one streaming session."""
    text: str
    status: StreamStatus
    error: StreamError | None = None
    frames: int = 0
    deltas: int = 0
    malformed: int = 0
    bytes_received: int = 0

    @property
    def ok(self) -> bool:
        return self.status is StreamStatus.COMPLETED

    def raise_for_error(self) -> None:
        """Raise the carried error, if any."""
        if self.error is not None:
            raise self.error

    @classmethod
    def from_state(
        cls, state: StreamState, error: StreamError | None = None
    ) -> StreamResult:
        return cls(
            text=state.accumulated_text,
            status=state.status,
            error=error,
            frames=state.frames,
            deltas=state.deltas,
            malformed=state.malformed,
            bytes_received=state.bytes_received,
        )
