# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Session supervision: connect, keep alive, reconnect with backoff.

Client callbacks never touch state directly. Each listener enqueues a
``ClientEvent`` and the dispatch loop runs one transition per event:

    disconnected -> connecting -> connected -> spawned -> disconnected

Events from a session that has already been torn down are dropped, so only
the current session can move the state machine.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from afkbot.client import create_client
from afkbot.constants import DEFAULT_AUTH_REPLY_TIMEOUT_S
from afkbot.core.activity import ActivityScheduler
from afkbot.core.auth import AuthFlow
from afkbot.core.backoff import reconnect_delay_ms
from afkbot.core.session import Session
from afkbot.core.state import ConnectionStatus, SessionState, StatusSnapshot
from afkbot.errors import AuthError
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.client.base import GameClient
    from afkbot.config import BotConfig

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

SUPERVISED_EVENTS = ("connect", "login", "spawn", "goal_reached", "death", "end", "kicked", "error")


@dataclass(frozen=True)
class ClientEvent:
    session: Session
    name: str
    args: tuple[Any, ...] = ()


class SessionSupervisor:
    """Owns the SessionState for one bot and drives its lifecycle."""

    def __init__(
        self,
        config: BotConfig,
        *,
        client_factory: Callable[[], GameClient] | None = None,
        scheduler: ActivityScheduler | None = None,
        sleep: Sleep = asyncio.sleep,
        auth_reply_timeout_s: float = DEFAULT_AUTH_REPLY_TIMEOUT_S,
    ) -> None:
        self.config = config
        self.state = SessionState(max_reconnect_attempts=config.utils.max_reconnect_attempts)
        self.session: Session | None = None
        self._client_factory = client_factory or functools.partial(create_client, config.server.transport)
        self._scheduler = scheduler or ActivityScheduler(
            anti_idle=config.utils.anti_afk.enabled,
            chat=config.utils.chat_messages,
        )
        self._sleep = sleep
        self._auth_reply_timeout_s = auth_reply_timeout_s
        self._events: asyncio.Queue[ClientEvent | None] = asyncio.Queue()
        self._session_counter = 0
        self._stopped = False
        self._handlers: dict[str, Callable[..., Awaitable[None]]] = {
            "connect": self._on_connect,
            "login": self._on_login,
            "spawn": self._on_spawn,
            "goal_reached": self._on_goal_reached,
            "death": self._on_death,
            "end": self._on_end,
            "kicked": self._on_kicked,
            "error": self._on_error,
        }

    # -- public API -----------------------------------------------------

    async def start(self) -> None:
        """Begin the supervised lifecycle by creating the first session."""
        logger.info(
            "supervisor_starting",
            server=self.config.server.address,
            username=self.config.bot_account.username,
            auto_reconnect=self.config.utils.auto_reconnect,
            max_attempts=self.state.max_reconnect_attempts,
        )
        await self._create_session()

    async def run(self) -> SessionState:
        """Start, then process client events until halted or stopped."""
        await self.start()
        while True:
            event = await self._events.get()
            if event is None:
                break
            await self.dispatch(event)
        logger.info("supervisor_stopped", halted=self.state.halted)
        return self.state

    async def stop(self, reason: str = "shutdown") -> None:
        """Cancel any pending reconnect and close the current session."""
        self._stopped = True
        await self._cancel_pending_reconnect()
        session = self.session
        if session is not None:
            await self._teardown(session, reason)
            self.state.connection_status = ConnectionStatus.DISCONNECTED
        self._events.put_nowait(None)

    def snapshot(self) -> StatusSnapshot:
        return self.state.snapshot(self.config.server.address)

    async def dispatch(self, event: ClientEvent) -> None:
        """Run the transition for one client event. Never raises."""
        if event.session is not self.session or event.session.closed:
            logger.debug("stale_event_dropped", client_event=event.name, session=event.session.number)
            return
        handler = self._handlers.get(event.name)
        if handler is None:
            return
        try:
            await handler(event.session, *event.args)
        except Exception:
            logger.exception("transition_failed", client_event=event.name, session=event.session.number)

    async def drain(self) -> None:
        """Dispatch every event queued so far."""
        while not self._events.empty():
            event = self._events.get_nowait()
            if event is None:
                # Keep the stop marker for run().
                self._events.put_nowait(None)
                return
            await self.dispatch(event)

    # -- session creation -----------------------------------------------

    async def _create_session(self) -> None:
        state = self.state
        if self._stopped or state.halted:
            return
        if not state.is_disconnected:
            logger.info("session_already_live", status=state.connection_status.value)
            return

        self._session_counter += 1
        session = Session(number=self._session_counter, client=self._client_factory())
        self.session = session
        state.connection_status = ConnectionStatus.CONNECTING
        state.authenticated = False
        self._wire(session)

        server = self.config.server
        account = self.config.bot_account
        logger.info(
            "session_creating",
            session=session.number,
            attempt=state.reconnect_attempts + 1,
            max_attempts=state.max_reconnect_attempts,
            server=server.address,
            username=account.username,
        )
        # Connect failures go through the queue like any other client error.
        try:
            await asyncio.wait_for(
                session.client.connect(
                    server.ip,
                    server.port,
                    username=account.username,
                    password=account.password,
                    auth=account.auth_type,
                    version=server.version,
                    timeout=server.connect_timeout,
                ),
                timeout=server.connect_timeout,
            )
        except TimeoutError:
            self._enqueue(session, "error", ConnectionError(f"Connection timeout to {server.address}"))
        except Exception as e:
            self._enqueue(session, "error", e)

    def _wire(self, session: Session) -> None:
        for name in SUPERVISED_EVENTS:
            session.client.on(name, functools.partial(self._enqueue, session, name))

    def _enqueue(self, session: Session, name: str, *args: Any) -> None:
        self._events.put_nowait(ClientEvent(session, name, args))

    # -- transitions ----------------------------------------------------

    async def _on_connect(self, session: Session) -> None:
        if self.state.connection_status is ConnectionStatus.CONNECTING:
            self.state.connection_status = ConnectionStatus.CONNECTED
        logger.info("session_connected", session=session.number, server=self.config.server.address)

    async def _on_login(self, session: Session) -> None:
        self.state.reconnect_attempts = 0
        await self._cancel_pending_reconnect()
        if self.state.connection_status is not ConnectionStatus.SPAWNED:
            self.state.connection_status = ConnectionStatus.CONNECTED
        logger.info("login_succeeded", session=session.number)

    async def _on_spawn(self, session: Session) -> None:
        state = self.state
        if state.connection_status is ConnectionStatus.SPAWNED:
            logger.info("session_respawned", session=session.number)
            return

        state.connection_status = ConnectionStatus.SPAWNED
        state.spawned_at = time.monotonic()
        state.reconnect_attempts = 0
        await self._cancel_pending_reconnect()
        logger.info("session_spawned", session=session.number)

        self._scheduler.start_for_session(session)
        logger.info("activity_started", session=session.number, **self._scheduler.status(session))

        auto_auth = self.config.utils.auto_auth
        if auto_auth.enabled:
            logger.info("auto_auth_started", session=session.number)
            session.auth_task = asyncio.create_task(self._authenticate(session, auto_auth.password))

        position = self.config.position
        if position.enabled:
            logger.info("navigation_started", x=position.x, y=position.y, z=position.z)
            try:
                await session.client.navigate_to(position.x, position.y, position.z)
            except ConnectionError as e:
                logger.warning("navigation_failed", error=str(e))

    async def _on_goal_reached(self, session: Session) -> None:
        entity = session.client.entity
        logger.info("target_reached", position=entity.position if entity else None)

    async def _on_death(self, session: Session) -> None:
        entity = session.client.entity
        logger.warning("bot_died", position=entity.position if entity else None)

    async def _on_end(self, session: Session, reason: str | None = None) -> None:
        await self.on_session_ended(session, "end", reason or "unknown")

    async def _on_kicked(self, session: Session, reason: str | None = None) -> None:
        logger.warning("bot_kicked", session=session.number, reason=reason)
        await self.on_session_ended(session, "kicked", reason or "kicked")

    async def _on_error(self, session: Session, err: BaseException | None = None) -> None:
        logger.error("client_error", session=session.number, error=str(err), error_type=type(err).__name__)
        await self.on_session_ended(session, "error", str(err))

    async def on_session_ended(self, session: Session, cause: str, reason: str) -> None:
        """Tear the session down, then reconnect with backoff or halt."""
        if self.session is not None and session is not self.session:
            logger.debug("stale_session_end_ignored", session=session.number)
            return
        previous = self.state.connection_status
        await self._teardown(session, reason)

        state = self.state
        state.connection_status = ConnectionStatus.DISCONNECTED
        state.spawned_at = None
        state.authenticated = False
        state.last_disconnect_reason = reason
        logger.info(
            "session_disconnected",
            session=session.number,
            cause=cause,
            reason=reason,
            previous_status=previous.value,
            lifetime_s=round(time.monotonic() - session.created_at, 1),
        )
        self._schedule_reconnect()

    # -- reconnect ------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        state = self.state
        utils = self.config.utils
        if self._stopped or state.halted:
            return
        if not utils.auto_reconnect:
            state.halted = True
            logger.warning("auto_reconnect_disabled", action="supervisor stopping")
            self._events.put_nowait(None)
            return
        if state.has_pending_reconnect():
            logger.info("reconnect_already_pending")
            return
        if not state.is_disconnected:
            logger.info("reconnect_not_needed", status=state.connection_status.value)
            return
        if state.reconnect_attempts >= state.max_reconnect_attempts:
            state.halted = True
            logger.error(
                "reconnect_attempts_exhausted",
                attempts=state.reconnect_attempts,
                max_attempts=state.max_reconnect_attempts,
                action="manual restart required",
            )
            self._events.put_nowait(None)
            return

        state.reconnect_attempts += 1
        delay_ms = reconnect_delay_ms(state.reconnect_attempts, utils.auto_reconnect_delay)
        state.last_reconnect_delay_ms = delay_ms
        logger.info(
            "reconnect_scheduled",
            delay_ms=delay_ms,
            attempt=state.reconnect_attempts,
            max_attempts=state.max_reconnect_attempts,
        )
        state.pending_reconnect = asyncio.create_task(self._reconnect_after(delay_ms))

    async def _reconnect_after(self, delay_ms: float) -> None:
        await self._sleep(delay_ms / 1000)
        if self.state.pending_reconnect is asyncio.current_task():
            self.state.pending_reconnect = None
        # Re-check at fire time: something else may have reconnected meanwhile.
        if not self.state.is_disconnected:
            logger.info("reconnect_cancelled", reason="already connected", status=self.state.connection_status.value)
            return
        await self._create_session()

    async def _cancel_pending_reconnect(self) -> None:
        task = self.state.pending_reconnect
        self.state.pending_reconnect = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("pending_reconnect_cancelled")

    # -- teardown -------------------------------------------------------

    async def _teardown(self, session: Session, reason: str) -> None:
        if session.closed:
            return
        session.closed = True
        client = session.client
        client.remove_all_listeners()
        await self._scheduler.stop_for_session(session)
        await session.cancel_auth()
        if self.session is session:
            self.session = None
        try:
            await client.quit(reason)
        except Exception as e:
            logger.debug("client_quit_failed", session=session.number, error=str(e))

    async def _authenticate(self, session: Session, password: str) -> None:
        flow = AuthFlow(session.client, reply_timeout_s=self._auth_reply_timeout_s)
        try:
            await flow.authenticate(password)
        except AuthError as e:
            # Session stays up, unauthenticated; no reconnect for auth failures.
            logger.error("auth_failed", session=session.number, failure=e.failure.value, reply=e.reply)
            return
        except ConnectionError as e:
            logger.warning("auth_interrupted", session=session.number, error=str(e))
            return
        if session is self.session:
            self.state.authenticated = True
