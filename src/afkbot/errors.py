# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy for afkbot."""

from __future__ import annotations

from enum import Enum


class AfkBotError(Exception):
    """Base exception for afkbot."""

    pass


class ConfigError(AfkBotError):
    """Configuration file missing or invalid."""

    pass


class AuthFailure(str, Enum):
    """Why a chat-command authentication exchange failed."""

    INVALID_COMMAND = "invalid_command"
    UNEXPECTED_REPLY = "unexpected_reply"
    BAD_PASSWORD = "bad_password"
    NOT_REGISTERED = "not_registered"
    TIMEOUT = "timeout"


class AuthError(AfkBotError):
    """Register/login exchange did not succeed."""

    def __init__(self, failure: AuthFailure, message: str = "") -> None:
        self.failure = failure
        self.reply = message
        super().__init__(f"{failure.value}: {message}" if message else failure.value)
