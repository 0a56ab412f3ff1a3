# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runs the session supervisor and the status server in one event loop."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from afkbot import __version__
from afkbot.api import status_routes
from afkbot.core.supervisor import SessionSupervisor
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.config import BotConfig
    from afkbot.settings import Settings

logger = get_logger(__name__)


def create_app(supervisor: SessionSupervisor) -> FastAPI:
    """Create the status FastAPI app for *supervisor*."""
    app = FastAPI(title="afkbot status", version=__version__)
    app.include_router(status_routes.setup(supervisor))
    return app


async def run(config: BotConfig, settings: Settings, *, serve_http: bool = True) -> int:
    """Run until the supervisor halts or the task is cancelled.

    Returns:
        Process exit code: 1 when supervision halted, else 0
    """
    supervisor = SessionSupervisor(config)
    server: uvicorn.Server | None = None
    server_task: asyncio.Task[None] | None = None

    if serve_http:
        server = uvicorn.Server(
            uvicorn.Config(
                create_app(supervisor),
                host=settings.http_host,
                port=settings.http_port,
                log_level=settings.log_level.lower(),
            )
        )
        server_task = asyncio.create_task(server.serve())
        logger.info("status_server_started", host=settings.http_host, port=settings.http_port)

    try:
        state = await supervisor.run()
    finally:
        await supervisor.stop()
        if server is not None and server_task is not None:
            server.should_exit = True
            with contextlib.suppress(asyncio.CancelledError):
                await server_task

    return 1 if state.halted else 0


__all__ = ["create_app", "run"]
