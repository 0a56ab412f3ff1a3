# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Supervisor-owned session state and its read-only snapshot."""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SPAWNED = "spawned"


class StatusSnapshot(BaseModel):
    """What the status endpoint reports."""

    connection_status: ConnectionStatus
    reconnect_attempts: int
    max_reconnect_attempts: int
    uptime_seconds: float
    session_uptime_seconds: float | None = None
    server_address: str
    halted: bool = False
    authenticated: bool = False
    last_disconnect_reason: str | None = None
    last_reconnect_delay_ms: float | None = None


class SessionState(BaseModel):
    """Mutable lifecycle state. Only the SessionSupervisor writes to it."""

    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    reconnect_attempts: int = 0
    max_reconnect_attempts: int
    pending_reconnect: asyncio.Task | None = None
    halted: bool = False
    authenticated: bool = False
    last_disconnect_reason: str | None = None
    last_reconnect_delay_ms: float | None = None
    started_at: float = Field(default_factory=time.monotonic)
    spawned_at: float | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def is_disconnected(self) -> bool:
        return self.connection_status is ConnectionStatus.DISCONNECTED

    def has_pending_reconnect(self) -> bool:
        return self.pending_reconnect is not None and not self.pending_reconnect.done()

    def snapshot(self, server_address: str) -> StatusSnapshot:
        now = time.monotonic()
        session_uptime = None
        if self.connection_status is ConnectionStatus.SPAWNED and self.spawned_at is not None:
            session_uptime = round(now - self.spawned_at, 3)
        return StatusSnapshot(
            connection_status=self.connection_status,
            reconnect_attempts=self.reconnect_attempts,
            max_reconnect_attempts=self.max_reconnect_attempts,
            uptime_seconds=round(now - self.started_at, 3),
            session_uptime_seconds=session_uptime,
            server_address=server_address,
            halted=self.halted,
            authenticated=self.authenticated,
            last_disconnect_reason=self.last_disconnect_reason,
            last_reconnect_delay_ms=self.last_reconnect_delay_ms,
        )
