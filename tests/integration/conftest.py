"""
Integration test helper utilities.

Shared fixtures for exercising the HTTP app against a mocked upstream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from guard_proxy.config import GatewayConfig

if TYPE_CHECKING:
    from collections.abc import Callable

UPSTREAM_URL = "https://llm.test/v1/chat/completions"


def mock_openai_chat_response(
    content: str = "Hello from OpenAI!",
    model: str = "gpt-3.5-turbo",
    finish_reason: str = "stop",
    usage: dict | None = None,
) -> dict:
    """Create a mock OpenAI chat response."""
    response = {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1699012345,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
        ],
    }

    if usage:
        response["usage"] = usage

    return response


@pytest.fixture
def chat_response() -> Callable[..., dict]:
    """Factory for upstream chat completion bodies."""
    return mock_openai_chat_response


@pytest.fixture
def upstream_url() -> str:
    return UPSTREAM_URL


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """Configuration pointing at the mocked upstream."""
    return GatewayConfig.model_validate(
        {
            "llm": {"url": UPSTREAM_URL, "api_key": "sk-integration"},
            "guardrails": {
                "banned_words": ["bomb", "attack"],
                "regex_patterns": [r"\b\d{3}-\d{2}-\d{4}\b"],
                "max_prompt_length": 200,
                "custom_rules": [
                    {"name": "word limit", "type": "word_count", "parameters": {"max_words": 20}},
                    {"name": "broken", "type": "sentiment"},
                ],
            },
        }
    )
