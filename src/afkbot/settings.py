# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from afkbot.constants import DEFAULT_HTTP_HOST, DEFAULT_HTTP_PORT


class Settings(BaseSettings):
    log_level: str = "INFO"
    config: Path = Path("settings.yaml")
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT

    # Overrides applied over the file configuration before a session is created.
    server_host: str | None = None
    server_port: int | None = None
    username: str | None = None
    auth_mode: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="AFKBOT_",
        extra="ignore",
    )
