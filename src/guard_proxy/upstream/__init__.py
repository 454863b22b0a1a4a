"""
Upstream layer - the text-generation service the gateway fronts.
"""

from guard_proxy.upstream.client import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    Completion,
    ModelParams,
    OpenAIChatClient,
    TextGenerationClient,
)

__all__ = [
    "Completion",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "ModelParams",
    "OpenAIChatClient",
    "TextGenerationClient",
]
