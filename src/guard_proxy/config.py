"""配置加载：YAML 文件与环境变量覆盖。

Gateway configuration.

Configuration is read from a YAML file (if present) and then overridden
from environment variables:

- SERVER_PORT: listening port
- LLM_URL: upstream chat-completions URL
- LLM_API_KEY: upstream API key
- LLM_TIMEOUT_SECS: upstream request timeout in seconds
- BANNED_WORDS: comma-separated banned word list (replaces the file's list)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from guard_proxy.errors import ConfigLoadError
from guard_proxy.telemetry import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    model_config = ConfigDict(extra="ignore")

    port: int = Field(default=8080, description="Listening port")


class UpstreamConfig(BaseModel):
    """Upstream text-generation service configuration."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="Chat completions endpoint",
    )
    api_key: str = Field(default="", description="Bearer token for the upstream API")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class CustomRuleConfig(BaseModel):
    """A custom guardrail rule entry.

    Fields are kept untyped so that one malformed entry cannot fail the
    whole configuration; the rule set builder checks each entry and skips
    the ones it cannot build.
    """

    model_config = ConfigDict(extra="ignore")

    name: Any = Field(default=None, description="Display name used in blocked reasons")
    type: Any = Field(default="", description="Rule kind: word_count, contains_pattern")
    parameters: Any = Field(default_factory=dict, description="Kind-specific parameters")
    entry_error: str | None = Field(default=None, description="Set when the entry is not a mapping")

    @model_validator(mode="before")
    @classmethod
    def _non_mapping_entry(cls, data: Any) -> Any:
        if isinstance(data, (dict, BaseModel)):
            return data
        return {"entry_error": f"custom rule entry must be a mapping, got {type(data).__name__}"}

    @field_validator("parameters", mode="before")
    @classmethod
    def _none_parameters(cls, value: Any) -> Any:
        return {} if value is None else value


class GuardrailsConfig(BaseModel):
    """Guardrail rule configuration."""

    model_config = ConfigDict(extra="ignore")

    banned_words: list[str] = Field(default_factory=list, description="Case-insensitive substrings to block")
    regex_patterns: list[Any] = Field(
        default_factory=list, description="Regular expressions to block; invalid entries are skipped"
    )
    custom_rules: list[CustomRuleConfig] = Field(default_factory=list, description="Custom rule entries")
    max_content_length: int | None = Field(default=10000, description="Maximum content length")
    max_prompt_length: int | None = Field(
        default=4000, description="Maximum prompt characters; null or 0 disables the check"
    )

    @field_validator("banned_words", "regex_patterns", "custom_rules", mode="before")
    @classmethod
    def _none_lists(cls, value: Any) -> Any:
        return [] if value is None else value


class GatewayConfig(BaseModel):
    """Top-level gateway configuration."""

    model_config = ConfigDict(extra="ignore")

    server: ServerConfig = Field(default_factory=ServerConfig)
    llm: UpstreamConfig = Field(default_factory=UpstreamConfig)
    guardrails: GuardrailsConfig = Field(default_factory=GuardrailsConfig)


def _read_file(path: Path) -> dict[str, Any]:
    """Read and parse a YAML configuration file."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadError(f"error reading config file: {e}", path=str(path), cause=e) from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"error parsing config file: {e}", path=str(path), cause=e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError("config file must contain a mapping", path=str(path))
    return data


def _apply_env(config: GatewayConfig) -> None:
    """Override configuration values from environment variables."""
    if port := os.getenv("SERVER_PORT"):
        try:
            config.server.port = int(port)
        except ValueError:
            logger.warning("Ignoring invalid SERVER_PORT", value=port)

    if url := os.getenv("LLM_URL"):
        config.llm.url = url

    if api_key := os.getenv("LLM_API_KEY"):
        config.llm.api_key = api_key

    if timeout := os.getenv("LLM_TIMEOUT_SECS"):
        try:
            value = float(timeout)
        except ValueError:
            value = 0.0
        if value > 0:
            config.llm.timeout_seconds = value
        else:
            logger.warning("Ignoring invalid LLM_TIMEOUT_SECS", value=timeout)

    if banned_words := os.getenv("BANNED_WORDS"):
        config.guardrails.banned_words = [w.strip() for w in banned_words.split(",") if w.strip()]


def load_config(path: str | Path | None = DEFAULT_CONFIG_PATH) -> GatewayConfig:
    """Load gateway configuration.

    A missing file is not an error: defaults are used and environment
    overrides still apply.

    Args:
        path: Path to the YAML configuration file, or None to skip the file

    Returns:
        GatewayConfig

    Raises:
        ConfigLoadError: If the file exists but cannot be read, parsed or validated
    """
    data: dict[str, Any] = {}
    if path:
        config_path = Path(path)
        if config_path.exists():
            data = _read_file(config_path)
            logger.info("Loaded configuration", path=str(config_path))
        else:
            logger.info("Config file not found, using defaults", path=str(config_path))

    try:
        config = GatewayConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigLoadError(f"invalid configuration: {e}", path=str(path), cause=e) from e

    _apply_env(config)

    if not config.llm.api_key:
        logger.warning("LLM API key is not set, requests to LLM will fail")

    return config
