"""
Error taxonomy for streamed LLM responses.

This module separates failures by when they happen and who sees them:
- RequestRejected: non-success HTTP status before any byte is streamed
- TransportFailure: read error mid-stream, partial text preserved
- MalformedRecord: a single bad frame, recovered and never surfaced
- CancellationRequested: caller stopped the stream, a clean partial stop
"""

from __future__ import annotations


class StreamError(Exception):
    """Base streaming error with provider context and partial output."""

    user_visible = True

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        model: str = "unknown",
        partial_text: str = "",
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.partial_text = partial_text


class RequestRejected(StreamError):
    """Provider answered with a non-success status before streaming began."""

    def __init__(
        self,
        message: str,
        status_code: int,
        response_body: str = "",
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body


class TransportFailure(StreamError):
    """Reading the byte stream failed after streaming began."""
    pass


class MalformedRecord(StreamError):
    """A single frame could not be interpreted."""

    user_visible = False

    def __init__(self, message: str, frame: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.frame = frame


class CancellationRequested(StreamError):
    """The caller abandoned the stream before it finished."""

    user_visible = False
