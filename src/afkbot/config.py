# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration management for the session keeper.

The file layout follows the hyphenated keys of the classic ``settings.json``
(``bot-account``, ``auto-reconnect-delay`` ...). Snake_case names are accepted
as well, so both of these are equivalent::

    utils:
      auto-reconnect-delay: 5000

    utils:
      auto_reconnect_delay: 5000
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from afkbot.constants import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_RECONNECT_BASE_DELAY_MS,
)
from afkbot.errors import ConfigError
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.settings import Settings

logger = get_logger(__name__)


def _hyphenate(name: str) -> str:
    return name.replace("_", "-")


class _Section(BaseModel):
    model_config = ConfigDict(alias_generator=_hyphenate, populate_by_name=True, extra="ignore")


class AccountConfig(_Section):
    """Credentials the game client logs in with."""

    username: str = "AfkBot"
    password: str = ""
    auth_type: str = Field(default="offline", alias="type")


class ServerConfig(_Section):
    """Where to connect."""

    ip: str = "localhost"
    port: int = 25565
    version: str | None = None
    transport: str = "telnet"
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_S

    @property
    def address(self) -> str:
        return f"{self.ip}:{self.port}"


class PositionConfig(_Section):
    """Target coordinates to walk to after spawning."""

    enabled: bool = False
    x: int = 0
    y: int = 0
    z: int = 0


class AutoAuthConfig(_Section):
    enabled: bool = False
    password: str = ""


class AntiAfkConfig(_Section):
    enabled: bool = True


class ChatMessagesConfig(_Section):
    """Scripted chat sent after spawning."""

    enabled: bool = False
    repeat: bool = False
    repeat_delay: float = Field(default=60.0, gt=0)  # seconds
    messages: list[str] = Field(default_factory=list)


class UtilsConfig(_Section):
    auto_auth: AutoAuthConfig = Field(default_factory=AutoAuthConfig)
    anti_afk: AntiAfkConfig = Field(default_factory=AntiAfkConfig)
    chat_messages: ChatMessagesConfig = Field(default_factory=ChatMessagesConfig)
    auto_reconnect: bool = True
    auto_reconnect_delay: float = Field(default=DEFAULT_RECONNECT_BASE_DELAY_MS, ge=0)  # milliseconds
    max_reconnect_attempts: int = Field(default=DEFAULT_MAX_RECONNECT_ATTEMPTS, ge=0)


class BotConfig(_Section):
    """Complete bot configuration."""

    bot_account: AccountConfig = Field(default_factory=AccountConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    position: PositionConfig = Field(default_factory=PositionConfig)
    utils: UtilsConfig = Field(default_factory=UtilsConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> BotConfig:
        path = Path(path)
        logger.info("config_loading", path=str(path))
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except FileNotFoundError as e:
            raise ConfigError(f"Config not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Config is not valid YAML/JSON: {path}: {e}") from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config {path}: {e}") from e

    def to_yaml(self, path: Path | str | None = None) -> str:
        text = yaml.dump(self.model_dump(mode="json", by_alias=True), default_flow_style=False, sort_keys=False)
        if path is not None:
            Path(path).write_text(text)
        return text


def apply_env_overrides(config: BotConfig, settings: Settings) -> BotConfig:
    """Return a copy of *config* with environment overrides applied."""
    server: dict[str, object] = {}
    account: dict[str, object] = {}
    if settings.server_host:
        server["ip"] = settings.server_host
    if settings.server_port:
        server["port"] = settings.server_port
    if settings.username:
        account["username"] = settings.username
    if settings.auth_mode:
        account["auth_type"] = settings.auth_mode

    if not server and not account:
        return config

    logger.info("config_env_overrides", server=sorted(server), account=sorted(account))
    return config.model_copy(
        update={
            "server": config.server.model_copy(update=server),
            "bot_account": config.bot_account.model_copy(update=account),
        }
    )


def load_config(path: Path | str, settings: Settings | None = None) -> BotConfig:
    config = BotConfig.from_yaml(path)
    if settings is not None:
        config = apply_env_overrides(config, settings)
    return config
