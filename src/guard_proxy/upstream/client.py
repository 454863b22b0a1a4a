"""上游客户端：基于 httpx 的 OpenAI 兼容聊天补全调用。

Upstream text-generation client.

Provides:
- Model parameter resolution with defaults
- A single non-streaming chat-completions call per prompt
- Classification of every failure into an UpstreamError
"""

from __future__ import annotations

import json
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from guard_proxy.errors import UpstreamError, UpstreamFailureKind, classify_status
from guard_proxy.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 256

# Default timeout in seconds
_DEFAULT_TIMEOUT = 30.0

# Upstream bodies are logged, never returned to clients
_MAX_LOGGED_BODY = 500


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class ModelParams:
    """Model parameters sent with each completion request."""

    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None) -> ModelParams:
        """Resolve client-supplied overrides.

        Each override is used only when present with an acceptable type;
        anything else falls back to the default.

        Args:
            raw: ``model_params`` object from the request, may be None

        Returns:
            Resolved ModelParams
        """
        if not raw:
            return cls()

        model = raw.get("model")
        temperature = raw.get("temperature")
        max_tokens = raw.get("max_tokens")

        return cls(
            model=model if isinstance(model, str) and model else DEFAULT_MODEL,
            temperature=float(temperature) if _is_number(temperature) else DEFAULT_TEMPERATURE,
            max_tokens=int(max_tokens) if _is_number(max_tokens) else DEFAULT_MAX_TOKENS,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass(frozen=True)
class Completion:
    """A successful completion.

    Attributes:
        text: Content of the first completion choice
        total_tokens: Tokens reported by the service (0 when not reported)
        model: Model reported by the service
    """

    text: str
    total_tokens: int = 0
    model: str | None = None


class TextGenerationClient(ABC):
    """Interface for the upstream text-generation service."""

    @abstractmethod
    async def query(self, prompt: str, model_params: ModelParams | None = None) -> Completion:
        """Send a prompt and return the completion.

        Raises:
            UpstreamError: On any failure
        """

    async def close(self) -> None:
        """Release resources held by the client."""

    async def __aenter__(self) -> TextGenerationClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class OpenAIChatClient(TextGenerationClient):
    """Client for an OpenAI-compatible chat completions endpoint.

    Example:
        >>> client = OpenAIChatClient("https://api.openai.com/v1/chat/completions", api_key="sk-...")
        >>> completion = await client.query("Tell me a joke")
        >>> completion.text
    """

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            url: Full chat completions URL
            api_key: Bearer token; no Authorization header when empty
            timeout: Request timeout in seconds
        """
        self._url = url
        self._api_key = api_key
        self._timeout = timeout

        # Client instance (lazy initialization)
        self._client: httpx.AsyncClient | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def timeout(self) -> float:
        return self._timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def query(self, prompt: str, model_params: ModelParams | None = None) -> Completion:
        """Send a prompt to the chat completions endpoint.

        Args:
            prompt: User prompt
            model_params: Model parameters, defaults when None

        Returns:
            Completion from the first choice

        Raises:
            UpstreamError: On any failure: an unencodable payload, network
                failure, timeout, non-200 status, unparsable body, or an
                empty choice list. No other exception escapes.
        """
        params = model_params or ModelParams()
        payload = {
            **params.to_payload(),
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            content = json.dumps(payload, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise UpstreamError(
                f"Error encoding request: {e}",
                kind=UpstreamFailureKind.TRANSPORT,
                url=self._url,
                cause=e,
            ) from e

        try:
            response = await self._get_client().post(
                self._url,
                content=content,
                headers=self._build_headers(),
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"Request to LLM timed out: {e}",
                kind=UpstreamFailureKind.TIMEOUT,
                url=self._url,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Error sending request to LLM: {e}",
                kind=UpstreamFailureKind.TRANSPORT,
                url=self._url,
                cause=e,
            ) from e
        except Exception as e:
            raise UpstreamError(
                f"Unexpected error sending request to LLM: {e!r}",
                kind=UpstreamFailureKind.TRANSPORT,
                url=self._url,
                cause=e,
            ) from e

        if response.status_code != 200:
            body = response.text[:_MAX_LOGGED_BODY]
            raise UpstreamError(
                f"LLM API returned non-200 status: {response.status_code} "
                f"({classify_status(response.status_code)})",
                kind=UpstreamFailureKind.HTTP_STATUS,
                status_code=response.status_code,
                body=body,
                url=self._url,
            )

        completion = self._parse_response(response)
        logger.info("LLM query successful", tokens=completion.total_tokens, model=completion.model)
        return completion

    def _parse_response(self, response: httpx.Response) -> Completion:
        """Extract the first choice and token usage from a response body."""
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"Error parsing response: {e}",
                kind=UpstreamFailureKind.MALFORMED_RESPONSE,
                url=self._url,
                cause=e,
            ) from e

        if not isinstance(data, dict):
            raise UpstreamError(
                "Error parsing response: body is not a JSON object",
                kind=UpstreamFailureKind.MALFORMED_RESPONSE,
                url=self._url,
            )

        choices = data.get("choices")
        if choices is not None and not isinstance(choices, list):
            raise UpstreamError(
                "Error parsing response: choices is not a list",
                kind=UpstreamFailureKind.MALFORMED_RESPONSE,
                url=self._url,
            )
        if not choices:
            raise UpstreamError(
                "No completion found in response",
                kind=UpstreamFailureKind.EMPTY_COMPLETION,
                url=self._url,
            )

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if content is None:
            content = ""
        if not isinstance(content, str):
            raise UpstreamError(
                "Error parsing response: message content is not a string",
                kind=UpstreamFailureKind.MALFORMED_RESPONSE,
                url=self._url,
            )

        usage = data.get("usage")
        total_tokens = usage.get("total_tokens") if isinstance(usage, dict) else None
        if not _is_number(total_tokens) or total_tokens < 0:
            total_tokens = 0

        model = data.get("model")
        return Completion(
            text=content,
            total_tokens=int(total_tokens),
            model=model if isinstance(model, str) else None,
        )
