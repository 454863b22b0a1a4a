"""guard-proxy CLI - process entry point for the gateway."""

from __future__ import annotations

import sys

import click

from guard_proxy import __version__
from guard_proxy.config import DEFAULT_CONFIG_PATH, load_config
from guard_proxy.errors import ConfigLoadError
from guard_proxy.guardrails import RuleSetBuilder
from guard_proxy.telemetry import LogLevel, configure_logging, get_logger

logger = get_logger(__name__)

_LEVELS = [level.value for level in LogLevel]


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """guard-proxy - content-screening gateway for a text-generation API."""


@main.command()
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True, help="Path to config file")
@click.option("--log-level", default="INFO", type=click.Choice(_LEVELS, case_sensitive=False))
@click.option("--log-format", default="json", type=click.Choice(["json", "text"]))
def serve(config_path: str, log_level: str, log_format: str) -> None:
    """Start the HTTP gateway."""
    import uvicorn

    from guard_proxy.server import build_app

    configure_logging(level=log_level, fmt=log_format)

    try:
        config = load_config(config_path)
    except ConfigLoadError as e:
        logger.critical("Failed to load configuration", error=e.message)
        click.echo(f"Failed to load configuration: {e}", err=True)
        sys.exit(1)

    app = build_app(config)

    logger.info("Starting server", port=config.server.port)
    uvicorn.run(app, host="0.0.0.0", port=config.server.port, log_level=log_level.lower())


@main.command("check-config")
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True, help="Path to config file")
def check_config(config_path: str) -> None:
    """Build the guardrail rule set and report skipped entries."""
    try:
        config = load_config(config_path)
    except ConfigLoadError as e:
        click.echo(f"Failed to load configuration: {e}", err=True)
        sys.exit(1)

    builder = RuleSetBuilder(config.guardrails)
    rules = builder.build()

    click.echo(f"{len(rules)} guardrail rule(s) built")
    for rule in rules:
        click.echo(f"  - {rule.rule_id}")

    skipped = builder.skipped
    if skipped:
        click.echo(f"{len(skipped)} entr{'y' if len(skipped) == 1 else 'ies'} skipped:")
        for error in skipped:
            click.echo(f"  - {error.context.field_path}: {error.message}")
        sys.exit(2)


if __name__ == "__main__":
    main()
