# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from afkbot.config import BotConfig

from .fakes import FakeGameClient, SleepRecorder


@pytest.fixture
def fake_client() -> FakeGameClient:
    return FakeGameClient()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def bot_config() -> BotConfig:
    """Config with every optional module off and a fast reconnect policy."""
    return BotConfig.model_validate(
        {
            "bot-account": {"username": "Keeper", "password": "", "type": "offline"},
            "server": {"ip": "127.0.0.1", "port": 25565, "connect-timeout": 5},
            "utils": {
                "anti-afk": {"enabled": False},
                "auto-reconnect": True,
                "auto-reconnect-delay": 1000,
                "max-reconnect-attempts": 3,
            },
        }
    )
