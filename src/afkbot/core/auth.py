# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Chat-command register/login exchange.

Servers running an auth plugin expect ``/register <pw> <pw>`` followed by
``/login <pw>``. Replies arrive as free-text chat, so each step consumes the
very next chat line and classifies it by substring. Any unrelated chat that
arrives first is misread as the reply; there is no sender filtering.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from afkbot.constants import DEFAULT_AUTH_REPLY_TIMEOUT_S
from afkbot.errors import AuthError, AuthFailure
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.client.base import GameClient

logger = get_logger(__name__)

REGISTER_OK = ("successfully registered", "already registered")
INVALID_COMMAND = "Invalid command"
LOGIN_OK = "successfully logged in"
BAD_PASSWORD = "Invalid password"
NOT_REGISTERED = "not registered"


class AuthStage(str, Enum):
    AWAITING_REGISTER_REPLY = "awaiting_register_reply"
    AWAITING_LOGIN_REPLY = "awaiting_login_reply"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AuthAttempt:
    password: str
    stage: AuthStage = AuthStage.AWAITING_REGISTER_REPLY


def classify_register_reply(message: str) -> AuthFailure | None:
    """Return None when the register step succeeded, else why it failed."""
    if any(marker in message for marker in REGISTER_OK):
        return None
    if INVALID_COMMAND in message:
        return AuthFailure.INVALID_COMMAND
    return AuthFailure.UNEXPECTED_REPLY


def classify_login_reply(message: str) -> AuthFailure | None:
    """Return None when the login step succeeded, else why it failed."""
    if LOGIN_OK in message:
        return None
    if BAD_PASSWORD in message:
        return AuthFailure.BAD_PASSWORD
    if NOT_REGISTERED in message:
        return AuthFailure.NOT_REGISTERED
    return AuthFailure.UNEXPECTED_REPLY


class AuthFlow:
    """Runs register then login over a client's chat channel."""

    def __init__(self, client: GameClient, *, reply_timeout_s: float = DEFAULT_AUTH_REPLY_TIMEOUT_S) -> None:
        self._client = client
        self._reply_timeout_s = reply_timeout_s
        self.attempt: AuthAttempt | None = None

    async def authenticate(self, password: str) -> None:
        """Register (or confirm registration) and log in.

        Raises:
            AuthError: If either step gets a failing or unexpected reply
        """
        attempt = AuthAttempt(password=password)
        self.attempt = attempt
        try:
            reply = await self._exchange(f"/register {password} {password}", "register")
            failure = classify_register_reply(reply)
            if failure is not None:
                raise AuthError(failure, reply)
            logger.info("auth_registered", already="already registered" in reply)

            attempt.stage = AuthStage.AWAITING_LOGIN_REPLY
            reply = await self._exchange(f"/login {password}", "login")
            failure = classify_login_reply(reply)
            if failure is not None:
                raise AuthError(failure, reply)
        except AuthError:
            attempt.stage = AuthStage.FAILED
            raise

        attempt.stage = AuthStage.DONE
        logger.info("auth_logged_in")

    async def _exchange(self, command: str, step: str) -> str:
        """Send *command* and return the next chat message."""
        reply: asyncio.Future[str] = asyncio.get_running_loop().create_future()

        def _on_chat(username: str, message: str) -> None:
            logger.info("auth_chat", step=step, username=username, message=message)
            if not reply.done():
                reply.set_result(message)

        # Listen before sending so a fast reply cannot slip past.
        self._client.once("chat", _on_chat)
        try:
            await self._client.chat(command)
            logger.info("auth_command_sent", step=step)
            return await asyncio.wait_for(reply, timeout=self._reply_timeout_s)
        except TimeoutError as e:
            raise AuthError(AuthFailure.TIMEOUT, f"no reply to /{step} within {self._reply_timeout_s}s") from e
        finally:
            self._client.off("chat", _on_chat)
