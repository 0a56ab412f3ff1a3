# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
import httpx
import structlog

from afkbot.config import load_config
from afkbot.errors import ConfigError
from afkbot.logging import configure_logging
from afkbot.settings import Settings


def _load(config_path: Path | None, settings: Settings):
    path = config_path or settings.config
    try:
        return load_config(path, settings)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """afkbot command line interface."""


@cli.command("run")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None, help="YAML/JSON settings file.")
@click.option("--http-host", default=None, help="Status server bind address.")
@click.option("--http-port", type=int, default=None, help="Status server port.")
@click.option("--http/--no-http", "serve_http", default=True, show_default=True)
def run(config_path: Path | None, http_host: str | None, http_port: int | None, serve_http: bool) -> None:
    """Connect and keep the session alive until reconnects are exhausted."""
    settings = Settings()
    if http_host:
        settings.http_host = http_host
    if http_port:
        settings.http_port = http_port
    configure_logging(settings)
    config = _load(config_path, settings)

    from afkbot.app import run as run_app
    structlog.contextvars.bind_contextvars(bot=config.bot_account.username)

    try:
        exit_code = asyncio.run(run_app(config, settings, serve_http=serve_http))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


@cli.command("check-config")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None)
def check_config(config_path: Path | None) -> None:
    """Validate the settings file and print the effective configuration."""
    settings = Settings()
    configure_logging(settings)
    config = _load(config_path, settings)
    click.echo(config.to_yaml(), nl=False)


@cli.command("status")
@click.option("--url", default=None, help="Base URL of a running instance.")
def status(url: str | None) -> None:
    """Print /health from a running instance."""
    settings = Settings()
    base = url or f"http://127.0.0.1:{settings.http_port}"
    try:
        resp = httpx.get(f"{base.rstrip('/')}/health", timeout=5.0)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise click.ClickException(f"Status request failed: {e}") from e
    click.echo(json.dumps(resp.json(), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
