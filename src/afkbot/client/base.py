# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Abstract base class for game session clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from afkbot.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[..., None]

# Lifecycle events a client emits.
EVENTS = (
    "connect",
    "login",
    "spawn",
    "goal_reached",
    "death",
    "end",
    "kicked",
    "error",
    "chat",
)

CONTROLS = ("forward", "back", "left", "right", "jump", "sprint", "sneak")


@dataclass
class Entity:
    """In-game body of the bot. Exists only while spawned."""

    yaw: float = 0.0
    pitch: float = 0.0
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class _ListenerEntry:
    callback: Listener
    once: bool = False


class GameClient(ABC):
    """Game protocol client: emits lifecycle events and accepts commands.

    Listeners are plain callables invoked synchronously from ``emit``. A
    listener registered with ``once`` is removed before it is invoked, so it
    sees exactly one event.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_ListenerEntry]] = defaultdict(list)
        self.entity: Entity | None = None
        self.ping: int | None = None
        self.players: dict[str, Any] = {}
        self.controls: dict[str, bool] = dict.fromkeys(CONTROLS, False)

    # -- event emitter -------------------------------------------------

    def on(self, event: str, callback: Listener) -> None:
        self._listeners[event].append(_ListenerEntry(callback))

    def once(self, event: str, callback: Listener) -> None:
        self._listeners[event].append(_ListenerEntry(callback, once=True))

    def off(self, event: str, callback: Listener) -> None:
        self._listeners[event] = [e for e in self._listeners[event] if e.callback is not callback]

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> None:
        entries = list(self._listeners.get(event, ()))
        if not entries:
            return
        self._listeners[event] = [e for e in self._listeners[event] if not e.once]
        for entry in entries:
            try:
                entry.callback(*args)
            except Exception:
                logger.exception("client_listener_failed", client_event=event)

    # -- transport ------------------------------------------------------

    @abstractmethod
    async def connect(
        self,
        host: str,
        port: int,
        *,
        username: str,
        password: str = "",
        auth: str = "offline",
        version: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Open the connection and start emitting events.

        Raises:
            ConnectionError: If the connection cannot be established
        """

    @abstractmethod
    async def quit(self, reason: str = "client_quit") -> None:
        """Close the connection. Safe to call more than once."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Return True while the underlying transport is open."""

    # -- commands -------------------------------------------------------

    @abstractmethod
    async def chat(self, text: str) -> None:
        """Send a chat line (commands start with ``/``)."""

    @abstractmethod
    async def set_control_state(self, control: str, state: bool) -> None:
        """Press or release a movement control."""

    @abstractmethod
    async def look(self, yaw: float, pitch: float) -> None:
        """Set the entity orientation."""

    @abstractmethod
    async def navigate_to(self, x: int, y: int, z: int) -> None:
        """Walk to a block; emits ``goal_reached`` on arrival."""


__all__ = ["CONTROLS", "EVENTS", "Entity", "GameClient", "Listener"]
