"""
Unit Tests for the Chat Completion Client

Tests request shaping, error cases and JSON extraction from replies.
"""

import pytest
import sys
import os
from types import SimpleNamespace

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))

from explorer_portal.chat_completion import (
    ChatCompletionClient,
    ChatCompletionUnavailable,
    clamp_temperature,
    parse_json_payload,
)


class StubCompletions:
    """Records create() kwargs and returns a canned reply."""

    def __init__(self, reply="Hello!"):
        self.reply = reply
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(
            model=kwargs["model"],
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.reply))],
            usage=SimpleNamespace(prompt_tokens=5, completion_tokens=2, total_tokens=7),
        )


def stub_llm(reply="Hello!"):
    completions = StubCompletions(reply)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestChatCompletionClient:
    """Test suite for ChatCompletionClient."""

    @pytest.mark.asyncio
    async def test_complete_builds_messages(self):
        """Test system prompt and user message are sent in order."""
        llm, completions = stub_llm("  Hi there  ")
        client = ChatCompletionClient(model="gpt-4o-mini", llm_client=llm)

        result = await client.complete("Hello", system_prompt="Be brief", max_tokens=50)

        sent = completions.calls[0]
        assert sent["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ]
        assert sent["max_tokens"] == 50
        assert result.response == "Hi there"
        assert result.model == "gpt-4o-mini"
        assert result.usage["total_tokens"] == 7

    @pytest.mark.asyncio
    async def test_temperature_clamped(self):
        """Test out-of-range temperatures are clamped to [0, 2]."""
        llm, completions = stub_llm()
        client = ChatCompletionClient(llm_client=llm)

        await client.complete("Hi", temperature=5)

        assert completions.calls[0]["temperature"] == 2.0
        assert "max_tokens" not in completions.calls[0]

    @pytest.mark.asyncio
    async def test_model_override(self):
        llm, completions = stub_llm()
        client = ChatCompletionClient(model="gpt-4o-mini", llm_client=llm)

        await client.complete("Hi", model="gpt-4o")

        assert completions.calls[0]["model"] == "gpt-4o"

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self):
        llm, _ = stub_llm()
        client = ChatCompletionClient(llm_client=llm)
        with pytest.raises(ValueError):
            await client.complete("   ")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        """Test no key means the client is unavailable."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = ChatCompletionClient()

        assert client.available is False
        with pytest.raises(ChatCompletionUnavailable):
            await client.complete("Hi")

    def test_clamp_temperature(self):
        assert clamp_temperature(-1) == 0.0
        assert clamp_temperature(0.7) == 0.7


class TestParseJsonPayload:
    """Test suite for parse_json_payload."""

    def test_plain_array(self):
        assert parse_json_payload('[{"a": 1}]') == [{"a": 1}]

    def test_fenced_array(self):
        """Test markdown code fences are stripped."""
        text = '```json\n[{"sentence": "x", "answer": "y", "hint": "z"}]\n```'
        assert parse_json_payload(text)[0]["answer"] == "y"

    def test_array_inside_prose(self):
        text = 'Here you go:\n[1, 2, 3]\nHope this helps!'
        assert parse_json_payload(text) == [1, 2, 3]

    def test_object(self):
        text = 'Sure! {"Skeleton": "Bones that support the body"}'
        assert parse_json_payload(text, expect=dict) == {"Skeleton": "Bones that support the body"}

    def test_wrong_type(self):
        with pytest.raises(ValueError):
            parse_json_payload('{"a": 1}', expect=list)

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_json_payload("I cannot help with that.")
