# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Periodic activity that keeps a spawned session from idling out."""

from __future__ import annotations

import asyncio
import math
import random
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from afkbot.constants import (
    ANTI_IDLE_INTERVAL_S,
    HEALTH_LOG_INTERVAL_S,
    JUMP_PULSE_S,
    KEEPALIVE_INTERVAL_S,
    KEEPALIVE_YAW_DELTA,
    MOVE_PULSE_S,
)
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.client.base import GameClient
    from afkbot.config import ChatMessagesConfig
    from afkbot.core.session import Session

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class AntiIdleAction(str, Enum):
    FORWARD = "forward"
    BACK = "back"
    LEFT = "left"
    RIGHT = "right"
    JUMP = "jump"
    LOOK = "look"


ANTI_IDLE_ACTIONS: tuple[AntiIdleAction, ...] = tuple(AntiIdleAction)


class ActivityStatus(BaseModel):
    keepalive: bool
    anti_idle: bool
    chat: bool
    health: bool


class ScriptedChat:
    """Cycles through messages in order, wrapping after the last one."""

    def __init__(self, messages: Sequence[str]) -> None:
        if not messages:
            raise ValueError("ScriptedChat needs at least one message")
        self._messages = list(messages)
        self._index = 0

    def next_message(self) -> str:
        message = self._messages[self._index]
        self._index = (self._index + 1) % len(self._messages)
        return message


class ActivityScheduler:
    """Starts and stops the per-session timers.

    Each sub-task runs as its own asyncio task stored on the Session; the
    supervisor calls ``stop_for_session`` on every terminating event.
    ``rng`` and ``sleep`` are injectable so tests can drive the loops.
    """

    def __init__(
        self,
        *,
        anti_idle: bool = True,
        chat: ChatMessagesConfig | None = None,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
        keepalive_interval_s: float = KEEPALIVE_INTERVAL_S,
        anti_idle_interval_s: float = ANTI_IDLE_INTERVAL_S,
        health_interval_s: float | None = HEALTH_LOG_INTERVAL_S,
    ) -> None:
        self._anti_idle = anti_idle
        self._chat = chat
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._keepalive_interval_s = keepalive_interval_s
        self._anti_idle_interval_s = anti_idle_interval_s
        self._health_interval_s = health_interval_s

    def start_for_session(self, session: Session) -> None:
        client = session.client
        # Keep-alive is unconditional once spawned.
        session.keepalive_task = asyncio.create_task(self._keepalive_loop(client))

        if self._anti_idle:
            logger.info("anti_idle_started", session=session.number)
            session.anti_idle_task = asyncio.create_task(self._anti_idle_loop(client))

        chat = self._chat
        if chat is not None and chat.enabled:
            if not chat.messages:
                logger.warning("chat_messages_empty", session=session.number)
            elif chat.repeat:
                logger.info("chat_loop_started", session=session.number, delay_s=chat.repeat_delay)
                session.chat_task = asyncio.create_task(self._chat_loop(client, chat.messages, chat.repeat_delay))
            else:
                session.chat_task = asyncio.create_task(self._guarded("chat", self.send_messages(client, chat.messages)))

        if self._health_interval_s:
            session.health_task = asyncio.create_task(self._health_loop(client, self._health_interval_s))

    async def stop_for_session(self, session: Session) -> None:
        await session.cancel_timers()

    def status(self, session: Session) -> dict[str, bool]:
        def running(task: asyncio.Task | None) -> bool:
            return task is not None and not task.done()

        return ActivityStatus(
            keepalive=running(session.keepalive_task),
            anti_idle=running(session.anti_idle_task),
            chat=running(session.chat_task),
            health=running(session.health_task),
        ).model_dump()

    # -- actions --------------------------------------------------------

    async def keepalive_once(self, client: GameClient) -> bool:
        entity = client.entity
        if entity is None:
            return False
        await client.look(entity.yaw + KEEPALIVE_YAW_DELTA, entity.pitch)
        return True

    async def anti_idle_once(self, client: GameClient) -> AntiIdleAction | None:
        """Perform one randomly chosen action; None when there is no entity."""
        if client.entity is None:
            return None
        action = self._rng.choice(ANTI_IDLE_ACTIONS)
        if action is AntiIdleAction.LOOK:
            await client.look(self._rng.random() * math.pi * 2, 0.0)
            return action

        duration = JUMP_PULSE_S if action is AntiIdleAction.JUMP else MOVE_PULSE_S
        await client.set_control_state(action.value, True)
        try:
            await self._sleep(duration)
        finally:
            if client.is_connected():
                await client.set_control_state(action.value, False)
        return action

    async def send_messages(self, client: GameClient, messages: Sequence[str]) -> None:
        for message in messages:
            await client.chat(message)

    # -- loops ----------------------------------------------------------

    async def _keepalive_loop(self, client: GameClient) -> None:
        while True:
            await self._sleep(self._keepalive_interval_s)
            await self._guarded("keepalive", self.keepalive_once(client))

    async def _anti_idle_loop(self, client: GameClient) -> None:
        while True:
            await self._sleep(self._anti_idle_interval_s)
            await self._guarded("anti_idle", self.anti_idle_once(client))

    async def _chat_loop(self, client: GameClient, messages: Sequence[str], delay_s: float) -> None:
        script = ScriptedChat(messages)
        while True:
            await self._sleep(delay_s)
            await self._guarded("chat", client.chat(script.next_message()))

    async def _health_loop(self, client: GameClient, interval_s: float) -> None:
        """Log ping and player count; silent for backends that never report a ping."""
        while True:
            await self._sleep(interval_s)
            if client.ping is not None:
                logger.info(
                    "health",
                    ping_ms=client.ping,
                    players_online=len(client.players),
                    connected=client.is_connected(),
                )

    async def _guarded(self, name: str, action: Awaitable[object]) -> None:
        try:
            await action
        except ConnectionError as e:
            # The session is going away; teardown will cancel this timer.
            logger.debug("activity_send_failed", activity=name, error=str(e))
