# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Game session clients."""

from __future__ import annotations

from collections.abc import Callable

from afkbot.client.base import CONTROLS, EVENTS, Entity, GameClient
from afkbot.client.telnet import TelnetGameClient

ClientFactory = Callable[[], GameClient]

_REGISTRY: dict[str, ClientFactory] = {
    "telnet": TelnetGameClient,
}


def register_client(kind: str, factory: ClientFactory) -> None:
    """Register a client backend under *kind* (the ``server.transport`` value)."""
    _REGISTRY[kind] = factory


def create_client(kind: str) -> GameClient:
    """Instantiate the client backend registered for *kind*.

    Raises:
        ValueError: If no backend is registered under that name
    """
    try:
        factory = _REGISTRY[kind]
    except KeyError:
        raise ValueError(f"Unknown transport: {kind}") from None
    return factory()


__all__ = [
    "CONTROLS",
    "EVENTS",
    "ClientFactory",
    "Entity",
    "GameClient",
    "TelnetGameClient",
    "create_client",
    "register_client",
]
