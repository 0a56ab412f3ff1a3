# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Status API routes.

Read-only endpoints for external uptime monitors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from afkbot.constants import ROOT_STATUS_TEXT
from afkbot.core.state import StatusSnapshot
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.core.supervisor import SessionSupervisor

logger = get_logger(__name__)

router = APIRouter()

_supervisor: SessionSupervisor | None = None


def setup(supervisor: SessionSupervisor) -> APIRouter:
    """Configure router with the supervisor whose state is reported.

    Args:
        supervisor: SessionSupervisor instance

    Returns:
        Configured APIRouter
    """
    global _supervisor  # noqa: PLW0603
    _supervisor = supervisor
    return router


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return ROOT_STATUS_TEXT


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    """Liveness check for uptime pingers."""
    return "pong"


@router.get("/health", response_model=StatusSnapshot)
async def health() -> StatusSnapshot:
    """Current connection status of the supervised session."""
    assert _supervisor is not None
    return _supervisor.snapshot()
