"""Session supervision core."""

from __future__ import annotations

from afkbot.core.activity import ActivityScheduler, AntiIdleAction, ScriptedChat
from afkbot.core.auth import AuthFlow, AuthStage
from afkbot.core.backoff import reconnect_delay_ms
from afkbot.core.session import Session
from afkbot.core.state import ConnectionStatus, SessionState, StatusSnapshot
from afkbot.core.supervisor import ClientEvent, SessionSupervisor

__all__ = [
    "ActivityScheduler",
    "AntiIdleAction",
    "AuthFlow",
    "AuthStage",
    "ClientEvent",
    "ConnectionStatus",
    "ScriptedChat",
    "Session",
    "SessionState",
    "SessionSupervisor",
    "StatusSnapshot",
    "reconnect_delay_ms",
]
