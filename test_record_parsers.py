"""
Tests for provider-specific record parsers.
"""

import json

import pytest

from chatstream.llm.models import ProviderType
from chatstream.llm.streaming.framing import WireFormat
from chatstream.llm.streaming.models import TextDelta, Unparseable
from chatstream.llm.streaming.parser import (
    PROVIDER_STREAM_FORMATS,
    parse_gemini_sse,
    parse_ollama_chat,
    parse_openai_sse,
)


def gemini_record(*candidates: list[str]) -> str:
    return json.dumps({
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": t} for t in parts]}}
            for parts in candidates
        ]
    })


class TestParseOllamaChat:
    def test_extracts_message_content(self):
        frame = '{"model":"gemma3:1b","message":{"role":"assistant","content":"Hel"},"done":false}'
        assert parse_ollama_chat(frame) == TextDelta("Hel")

    def test_final_done_record_without_content(self):
        frame = '{"message":{"role":"assistant","content":""},"done":true,"eval_count":12}'
        assert isinstance(parse_ollama_chat(frame), Unparseable)

    def test_missing_message(self):
        assert isinstance(parse_ollama_chat('{"done": true}'), Unparseable)

    def test_non_string_content(self):
        assert isinstance(parse_ollama_chat('{"message": {"content": 5}}'), Unparseable)

    @pytest.mark.parametrize("frame", ['{"message": {"content": "x"', "not json", "[1, 2]", '"text"'])
    def test_malformed_json_is_unparseable(self, frame):
        result = parse_ollama_chat(frame)
        assert isinstance(result, Unparseable)
        assert result.reason


class TestParseGeminiSse:
    def test_extracts_first_part_text(self):
        assert parse_gemini_sse(gemini_record(["Hi"])) == TextDelta("Hi")

    def test_concatenates_parts_in_order(self):
        assert parse_gemini_sse(gemini_record(["a", "b", "c"])) == TextDelta("abc")

    def test_ignores_candidates_beyond_first(self):
        assert parse_gemini_sse(gemini_record(["first"], ["second"])) == TextDelta("first")

    def test_skips_non_text_parts(self):
        frame = json.dumps({
            "candidates": [{"content": {"parts": [
                {"functionCall": {"name": "f"}},
                {"text": "ok"},
            ]}}]
        })
        assert parse_gemini_sse(frame) == TextDelta("ok")

    def test_usage_only_record(self):
        frame = '{"usageMetadata": {"promptTokenCount": 3}}'
        assert isinstance(parse_gemini_sse(frame), Unparseable)

    def test_empty_candidates(self):
        assert isinstance(parse_gemini_sse('{"candidates": []}'), Unparseable)

    def test_candidate_without_parts(self):
        frame = '{"candidates": [{"finishReason": "STOP"}]}'
        assert isinstance(parse_gemini_sse(frame), Unparseable)

    def test_malformed_json(self):
        assert isinstance(parse_gemini_sse('{"candidates": [{'), Unparseable)


class TestParseOpenaiSse:
    def test_extracts_delta_content(self):
        frame = '{"choices": [{"index": 0, "delta": {"content": "Hello"}}]}'
        assert parse_openai_sse(frame) == TextDelta("Hello")

    def test_role_only_delta(self):
        frame = '{"choices": [{"delta": {"role": "assistant"}}]}'
        assert isinstance(parse_openai_sse(frame), Unparseable)

    def test_finish_chunk(self):
        frame = '{"choices": [{"delta": {}, "finish_reason": "stop"}]}'
        assert isinstance(parse_openai_sse(frame), Unparseable)

    def test_no_choices(self):
        assert isinstance(parse_openai_sse('{"choices": []}'), Unparseable)


def test_provider_stream_formats():
    assert PROVIDER_STREAM_FORMATS[ProviderType.OLLAMA] == (WireFormat.NDJSON, parse_ollama_chat)
    assert PROVIDER_STREAM_FORMATS[ProviderType.GEMINI] == (WireFormat.SSE, parse_gemini_sse)
    assert PROVIDER_STREAM_FORMATS[ProviderType.OPENAI] == (WireFormat.SSE, parse_openai_sse)
