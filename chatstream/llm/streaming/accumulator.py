"""
Incremental accumulation of a chunked model-response stream.

The accumulator pulls byte chunks, decodes them statefully, hands the text to
a pluggable framer, parses each frame with a pluggable record parser and
grows the reply text. Every real step of progress is reported to the caller,
either through an ``on_update`` callback or by iterating ``updates()``.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterator
from contextlib import aclosing
from typing import Any

import httpx

from ...logging_utils import ContextualLogger, StreamErrorHandler
from ..exceptions import (
    CancellationRequested,
    MalformedRecord,
    StreamError,
    TransportFailure,
)
from .framing import TERMINAL, Framer
from .models import StreamResult, StreamState, StreamStatus, Terminal, TextDelta
from .parser import RecordParser

# Longest frame excerpt written to the log for an unparseable record
MAX_LOGGED_FRAME = 200

UpdateCallback = Callable[[str], Awaitable[Any] | Any]
ReleaseCallback = Callable[[], Awaitable[Any] | Any]


class StreamAccumulator:
    """
    Single-use engine that turns one byte stream into one reply.

    Guarantees:
    - Deltas are applied in arrival order; text only ever grows
    - A malformed frame is skipped without aborting the stream
    - Exactly one terminal outcome, returned as a StreamResult
    - The byte stream is released on every exit path
    """

    def __init__(
        self,
        *,
        encoding: str = "utf-8",
        provider: str = "unknown",
        model: str = "unknown",
    ):
        self.encoding = encoding
        self.provider = provider
        self.model = model
        self.state: StreamState | None = None
        self.result: StreamResult | None = None
        self._cancelled = False
        self._read_task: asyncio.Future[bytes] | None = None
        self._logger = ContextualLogger({"component": "stream_accumulator"}).bind(
            provider=provider, model=model
        )

    def cancel(self) -> None:
        """Stop the session, interrupting a read that is waiting for data."""
        self._cancelled = True
        if self._read_task is not None and not self._read_task.done():
            self._read_task.cancel()

    async def consume(
        self,
        byte_stream: AsyncIterable[bytes],
        framer: Framer,
        record_parser: RecordParser,
        on_update: UpdateCallback | None = None,
        *,
        release: ReleaseCallback | None = None,
    ) -> StreamResult:
        """
        Consume a byte stream to its terminal outcome.

        Args:
            byte_stream: Async iterable of raw byte chunks
            framer: Splits decoded text into frames, carrying the remainder
            record_parser: Interprets one frame as a ParsedRecord
            on_update: Called with the accumulated text after each delta
            release: Extra cleanup run once the stream is finished with

        Returns:
            StreamResult with the final text, or the partial text and error
        """
        updates = self.updates(byte_stream, framer, record_parser, release=release)
        async with aclosing(updates):
            async for text in updates:
                if on_update is None:
                    continue
                outcome = on_update(text)
                if inspect.isawaitable(outcome):
                    await outcome

        if self.result is None:
            raise RuntimeError("Stream finished without a result")
        return self.result

    async def updates(
        self,
        byte_stream: AsyncIterable[bytes],
        framer: Framer,
        record_parser: RecordParser,
        *,
        release: ReleaseCallback | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield the accumulated text after every successfully parsed delta.

        The final StreamResult is stored on ``self.result`` once the
        generator is exhausted or closed.
        """
        if self.state is not None:
            raise RuntimeError("StreamAccumulator is single-use; create a new one")

        state = StreamState(encoding=self.encoding)
        self.state = state
        iterator = aiter(byte_stream)
        error: StreamError | None = None

        try:
            while state.status is StreamStatus.ACTIVE:
                chunk = await self._next_chunk(iterator)
                if chunk is None:
                    for text in self._finish(state, framer, record_parser):
                        yield text
                    break
                if not chunk:
                    continue
                for text in self._feed(state, state.decode(chunk), framer, record_parser):
                    yield text

        except (TransportFailure, CancellationRequested) as e:
            state.status = StreamStatus.FAILED
            e.provider = self.provider
            e.model = self.model
            e.partial_text = state.accumulated_text
            error = e
            log = self._logger.warning if e.user_visible else self._logger.info
            log(
                "Stream stopped before completion",
                error_type=type(e).__name__,
                error_message=str(e),
                partial_length=len(state.accumulated_text),
            )

        finally:
            if state.status is StreamStatus.ACTIVE:
                # Consumer stopped iterating or the task was cancelled
                state.status = StreamStatus.FAILED
                error = CancellationRequested(
                    "Stream abandoned by consumer",
                    provider=self.provider,
                    model=self.model,
                    partial_text=state.accumulated_text,
                )
            state.clear_buffers()
            self.result = StreamResult.from_state(state, error)
            if self.result.ok:
                self._logger.info(
                    "Stream completed",
                    frames=state.frames,
                    deltas=state.deltas,
                    malformed=state.malformed,
                    bytes_received=state.bytes_received,
                )
            await self._release(iterator, release)

    async def _read(self, iterator: AsyncIterator[bytes]) -> bytes:
        return await anext(iterator)

    async def _next_chunk(self, iterator: AsyncIterator[bytes]) -> bytes | None:
        """Read one chunk; None signals end-of-stream."""
        if self._cancelled:
            raise CancellationRequested("Stream cancelled by caller")

        # The read runs as its own task so cancel() can interrupt it
        self._read_task = asyncio.ensure_future(self._read(iterator))
        try:
            return await self._read_task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self._cancelled and (current is None or not current.cancelling()):
                raise CancellationRequested("Stream cancelled by caller") from None
            raise
        except StopAsyncIteration:
            return None
        except StreamError:
            raise
        except httpx.StreamClosed as e:
            raise CancellationRequested(f"Stream closed by caller: {e}") from e
        except Exception as e:
            raise TransportFailure(f"Stream read failed: {e}") from e

    def _feed(
        self,
        state: StreamState,
        text: str,
        framer: Framer,
        record_parser: RecordParser,
    ) -> Iterator[str]:
        """Frame, parse and accumulate one piece of decoded text."""
        frames, state.line_carry = framer(text, state.line_carry)

        for frame in frames:
            state.frames += 1
            if frame is TERMINAL:
                state.status = StreamStatus.COMPLETED
                return

            try:
                record = record_parser(frame)
            except Exception as e:
                record = None
                reason = f"{type(e).__name__}: {e}"
            else:
                reason = getattr(record, "reason", "")

            if isinstance(record, Terminal):
                state.status = StreamStatus.COMPLETED
                return
            if isinstance(record, TextDelta) and record.text:
                yield state.append(record.text)
                continue
            if isinstance(record, TextDelta):
                continue

            state.malformed += 1
            malformed = MalformedRecord(
                reason or "Unrecognised record",
                frame=frame[:MAX_LOGGED_FRAME],
                provider=self.provider,
                model=self.model,
                partial_text=state.accumulated_text,
            )
            self._logger.debug(
                "Skipping unparseable frame",
                error_type=type(malformed).__name__,
                error_category=StreamErrorHandler.classify_error(malformed),
                error_message=str(malformed),
                frame=malformed.frame,
            )

    def _finish(
        self,
        state: StreamState,
        framer: Framer,
        record_parser: RecordParser,
    ) -> Iterator[str]:
        """Flush decoder and line carry at true end-of-stream."""
        # Providers may omit the delimiter after the last record
        tail = state.flush_decoder() + "\n"
        yield from self._feed(state, tail, framer, record_parser)
        state.line_carry = ""
        if state.status is StreamStatus.ACTIVE:
            state.status = StreamStatus.COMPLETED

    async def _release(
        self,
        iterator: AsyncIterator[bytes],
        release: ReleaseCallback | None,
    ) -> None:
        """Close the byte stream and run the caller's release hook."""
        aclose = getattr(iterator, "aclose", None)
        try:
            if aclose is not None:
                await aclose()
        except Exception as e:
            self._logger.warning(
                "Error closing byte stream", error_type=type(e).__name__, error_message=str(e)
            )
        finally:
            self._read_task = None
            if release is not None:
                try:
                    outcome = release()
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception as e:
                    self._logger.error(
                        "Error running release hook",
                        error_type=type(e).__name__,
                        error_category=StreamErrorHandler.classify_error(e),
                        error_message=str(e),
                    )
