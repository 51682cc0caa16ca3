"""
Core LLM models for streaming chat requests.

This module provides:
- Provider identification
- Chat message structures
- Provider and streaming configuration, validated from YAML
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ProviderType(Enum):
    """Supported streaming chat providers."""
    OLLAMA = "ollama"
    GEMINI = "gemini"
    OPENAI = "openai"


class MessageRole(Enum):
    """Chat message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One turn of the conversation sent with a request."""
    role: MessageRole
    content: str

    def to_ollama(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    def to_gemini(self) -> dict:
        # Gemini names the assistant role "model"
        role = "model" if self.role is MessageRole.ASSISTANT else self.role.value
        return {"role": role, "parts": [{"text": self.content}]}


class ProviderConfig(BaseModel):
    """Connection and generation settings for one provider."""
    provider: ProviderType
    base_url: str
    model: str
    api_key: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class StreamingConfig(BaseModel):
    """Settings for reading a response stream."""
    encoding: str = "utf-8"
    chunk_size: int | None = Field(default=None, gt=0)
    stall_timeout: float | None = Field(default=None, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float | None = Field(default=None, gt=0)
