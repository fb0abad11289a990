"""
Chat Completion Client

Thin async wrapper over the OpenAI chat-completions API, used by the admin
chat page and the spelling question generator.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type, Union

from dotenv import load_dotenv
from openai import AsyncOpenAI

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class ChatCompletionUnavailable(RuntimeError):
    """Raised when no API key is configured."""


@dataclass
class ChatCompletionResult:
    response: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


def clamp_temperature(value: float) -> float:
    return max(0.0, min(2.0, float(value)))


class ChatCompletionClient:
    """
    Args:
        api_key: OpenAI key (defaults to OPENAI_API_KEY)
        model: Default model (defaults to OPENAI_MODEL, then gpt-4o-mini)
        llm_client: Pre-built AsyncOpenAI-compatible client
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, llm_client=None):
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        self.llm_client: Optional[AsyncOpenAI] = llm_client

        if self.llm_client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if api_key:
                self.llm_client = AsyncOpenAI(api_key=api_key)

    @property
    def available(self) -> bool:
        return self.llm_client is not None

    async def complete(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 1.0,
        max_tokens: Optional[int] = None
    ) -> ChatCompletionResult:
        """
        Send one user message (plus optional system prompt) and return the reply.

        Raises:
            ValueError: empty message
            ChatCompletionUnavailable: no API key configured
        """
        if not message or not message.strip():
            raise ValueError("Message is required")
        if self.llm_client is None:
            raise ChatCompletionUnavailable("OpenAI API key not configured")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": message})

        kwargs: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": clamp_temperature(temperature),
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            completion = await self.llm_client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"❌ [ChatCompletionClient] OpenAI request failed: {e}")
            raise

        content = completion.choices[0].message.content or ""
        usage = {}
        if getattr(completion, "usage", None) is not None:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens,
            }

        return ChatCompletionResult(
            response=content.strip(),
            model=getattr(completion, "model", None) or kwargs["model"],
            usage=usage,
        )


def parse_json_payload(text: str, expect: Union[Type[list], Type[dict]] = list):
    """
    Pull a JSON array or object out of a model reply.

    Handles replies wrapped in a markdown fence or surrounded by prose.

    Raises:
        ValueError: nothing parseable of the expected type
    """
    content = (text or "").strip()
    fence = _FENCE_RE.match(content)
    if fence:
        content = fence.group(1)

    pattern = _ARRAY_RE if expect is list else _OBJECT_RE
    match = pattern.search(content)
    if match:
        content = match.group(0)

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in model response: {e}") from e

    if not isinstance(payload, expect):
        raise ValueError(f"Expected a JSON {expect.__name__}, got {type(payload).__name__}")
    return payload
