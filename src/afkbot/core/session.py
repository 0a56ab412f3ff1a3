# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""One game client connection plus the timers attached to it."""

from __future__ import annotations

import asyncio
import contextlib
import time

from pydantic import BaseModel, ConfigDict, Field

from afkbot.client.base import GameClient

TIMER_FIELDS = ("keepalive_task", "anti_idle_task", "chat_task", "health_task")


class Session(BaseModel):
    """Represents a single game session with its own timers.

    A timer never outlives the session: ``cancel_timers`` runs on every
    terminating event before the supervisor reports ``disconnected``.
    """

    number: int
    client: GameClient
    created_at: float = Field(default_factory=time.monotonic)

    keepalive_task: asyncio.Task | None = None
    anti_idle_task: asyncio.Task | None = None
    chat_task: asyncio.Task | None = None
    health_task: asyncio.Task | None = None
    auth_task: asyncio.Task | None = None

    closed: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def timers(self) -> dict[str, asyncio.Task | None]:
        return {name: getattr(self, name) for name in TIMER_FIELDS}

    def has_timers(self) -> bool:
        return any(task is not None for task in self.timers().values())

    async def cancel_timers(self) -> None:
        """Cancel every periodic timer and clear its handle."""
        for name in TIMER_FIELDS:
            task = getattr(self, name)
            setattr(self, name, None)
            await _cancel(task)

    async def cancel_auth(self) -> None:
        task = self.auth_task
        self.auth_task = None
        await _cancel(task)


async def _cancel(task: asyncio.Task | None) -> None:
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
