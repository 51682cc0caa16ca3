"""
Streaming HTTP chat client.

Builds a provider-specific streaming request, rejects non-success responses
before any body is consumed, and hands the response bytes to a
StreamAccumulator.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Sequence
from typing import Any

import httpx

from ..logging_utils import log_operation, operation_context
from .exceptions import CancellationRequested, RequestRejected, TransportFailure
from .models import ChatMessage, MessageRole, ProviderConfig, ProviderType, StreamingConfig
from .streaming.accumulator import StreamAccumulator, UpdateCallback
from .streaming.models import StreamResult
from .streaming.parser import PROVIDER_STREAM_FORMATS

# Longest response body excerpt kept on a RequestRejected
MAX_ERROR_BODY = 500


async def with_stall_timeout(
    byte_stream: AsyncIterable[bytes], timeout: float
) -> AsyncIterator[bytes]:
    """Race each next-chunk read against a timer; expiry cancels the stream."""
    iterator = aiter(byte_stream)

    async def _read() -> bytes:
        return await anext(iterator)

    try:
        while True:
            try:
                chunk = await asyncio.wait_for(_read(), timeout)
            except StopAsyncIteration:
                return
            except TimeoutError as e:
                raise CancellationRequested(
                    f"No data received for {timeout}s"
                ) from e
            yield chunk
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


class StreamingChatClient:
    """HTTP client that streams one chat reply per call."""

    def __init__(
        self,
        provider_config: ProviderConfig,
        streaming_config: StreamingConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider_config = provider_config
        self.streaming_config = streaming_config or StreamingConfig()

        headers: dict[str, str] = {}
        if provider_config.provider is ProviderType.OPENAI and provider_config.api_key:
            headers["Authorization"] = f"Bearer {provider_config.api_key}"

        self.client: httpx.AsyncClient = http_client or httpx.AsyncClient(
            base_url=provider_config.base_url,
            headers=headers,
            timeout=httpx.Timeout(
                self.streaming_config.read_timeout,
                connect=self.streaming_config.connect_timeout,
            ),
        )

    @property
    def provider(self) -> str:
        return self.provider_config.provider.value

    @property
    def model(self) -> str:
        return self.provider_config.model

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        *,
        system_prompt: str | None = None,
    ) -> httpx.Request:
        """Build the streaming request for the configured provider."""
        config = self.provider_config

        if config.provider is ProviderType.GEMINI:
            payload: dict[str, Any] = {
                "contents": [m.to_gemini() for m in messages if m.role is not MessageRole.SYSTEM],
            }
            # Gemini takes system turns only through systemInstruction
            system_texts = [system_prompt] if system_prompt else []
            system_texts += [m.content for m in messages if m.role is MessageRole.SYSTEM]
            if system_texts:
                payload["systemInstruction"] = {
                    "role": "system",
                    "parts": [{"text": text} for text in system_texts],
                }
            generation_config: dict[str, Any] = {}
            if config.temperature is not None:
                generation_config["temperature"] = config.temperature
            if config.max_tokens is not None:
                generation_config["maxOutputTokens"] = config.max_tokens
            if generation_config:
                payload["generationConfig"] = generation_config

            return self.client.build_request(
                "POST",
                f"{config.base_url}/models/{config.model}:streamGenerateContent",
                params={"alt": "sse", "key": config.api_key or ""},
                json=payload,
            )

        chat_messages = [m.to_ollama() for m in messages]
        if system_prompt:
            chat_messages.insert(0, {"role": "system", "content": system_prompt})

        payload = {"model": config.model, "messages": chat_messages, "stream": True}

        if config.provider is ProviderType.OLLAMA:
            options: dict[str, Any] = {}
            if config.temperature is not None:
                options["temperature"] = config.temperature
            if config.max_tokens is not None:
                options["num_predict"] = config.max_tokens
            if options:
                payload["options"] = options
            return self.client.build_request(
                "POST", f"{config.base_url}/api/chat", json=payload
            )

        if config.temperature is not None:
            payload["temperature"] = config.temperature
        if config.max_tokens is not None:
            payload["max_tokens"] = config.max_tokens
        return self.client.build_request(
            "POST", f"{config.base_url}/chat/completions", json=payload
        )

    def create_accumulator(self) -> StreamAccumulator:
        """Create a fresh accumulator for one call; keep it to cancel()."""
        return StreamAccumulator(
            encoding=self.streaming_config.encoding,
            provider=self.provider,
            model=self.model,
        )

    async def stream_chat(
        self,
        messages: Sequence[ChatMessage],
        on_update: UpdateCallback | None = None,
        *,
        system_prompt: str | None = None,
        accumulator: StreamAccumulator | None = None,
    ) -> StreamResult:
        """
        Stream one reply, reporting the accumulated text after every delta.

        Raises:
            RequestRejected: Provider returned a non-success status
            TransportFailure: The request could not be sent at all

        Returns:
            StreamResult; mid-stream failures are returned, not raised
        """
        request = self.build_request(messages, system_prompt=system_prompt)
        wire_format, record_parser = PROVIDER_STREAM_FORMATS[self.provider_config.provider]
        accumulator = accumulator or self.create_accumulator()

        async with operation_context(
            "stream_chat",
            context={"provider": self.provider, "model": self.model},
        ) as op_logger:
            try:
                response = await self.client.send(request, stream=True)
            except httpx.HTTPError as e:
                raise TransportFailure(
                    f"HTTP error: {e!s}", provider=self.provider, model=self.model
                ) from e

            # FAIL FAST: reject before touching the byte stream
            if not response.is_success:
                try:
                    error_body = (await response.aread()).decode(
                        self.streaming_config.encoding, errors="replace"
                    )
                finally:
                    await response.aclose()
                op_logger.error(
                    "Request rejected",
                    status_code=response.status_code,
                    response_body=error_body[:MAX_ERROR_BODY],
                )
                raise RequestRejected(
                    f"Streaming API error {response.status_code}",
                    status_code=response.status_code,
                    response_body=error_body[:MAX_ERROR_BODY],
                    provider=self.provider,
                    model=self.model,
                )

            byte_stream: AsyncIterable[bytes] = response.aiter_bytes(
                chunk_size=self.streaming_config.chunk_size
            )
            if self.streaming_config.stall_timeout is not None:
                byte_stream = with_stall_timeout(
                    byte_stream, self.streaming_config.stall_timeout
                )

            result = await accumulator.consume(
                byte_stream,
                wire_format.framer,
                record_parser,
                on_update,
                release=response.aclose,
            )
            op_logger.info(
                "Stream finished",
                status=result.status.value,
                deltas=result.deltas,
                malformed=result.malformed,
            )
            return result

    @log_operation("close_chat_client", context={"component": "streaming_chat_client"})
    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> StreamingChatClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
