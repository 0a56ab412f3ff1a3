# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Line-oriented game client over telnet.

Speaks to text game servers (MUD-style) that accept a username line after
connecting. Each received line is mapped onto the client event set:

- first line after connect        -> ``login`` then ``spawn``
- ``<name> text``                 -> ``chat(name, text)``
- ``Kicked: reason``              -> ``kicked(reason)``
- ``You died``                    -> ``death``
- ``You arrive ...``              -> ``goal_reached``
- anything else                   -> ``chat("", line)`` (server message)
- remote close                    -> ``end(reason)``
"""

from __future__ import annotations

import asyncio
import contextlib
import re
import time
from typing import TYPE_CHECKING

from afkbot.client.base import Entity, GameClient
from afkbot.constants import DEFAULT_CONNECT_TIMEOUT_S
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

log = get_logger(__name__)

# Telnet protocol constants
IAC = 255  # Interpret As Command
DONT = 254
DO = 253
WONT = 252
WILL = 251
SB = 250  # Subnegotiation Begin
SE = 240  # Subnegotiation End

# Telnet options
OPT_BINARY = 0
OPT_ECHO = 1
OPT_SGA = 3  # Suppress Go Ahead

ENCODING = "utf-8"

_CHAT_RE = re.compile(r"^<(?P<user>[^>]{1,32})>\s?(?P<message>.*)$")
_KICK_PREFIX = "kicked:"


class TelnetGameClient(GameClient):
    """Telnet text-game implementation of GameClient."""

    def __init__(self) -> None:
        super().__init__()
        self._reader: StreamReader | None = None
        self._writer: StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._rx_buf = bytearray()
        self._spawned = False
        self._ended = False
        self.username = ""

    async def connect(
        self,
        host: str,
        port: int,
        *,
        username: str,
        password: str = "",
        auth: str = "offline",
        version: str | None = None,
        timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
    ) -> None:
        """Establish the telnet connection and send credentials.

        Args:
            host: Remote hostname or IP address
            port: Remote port number
            username: Character name sent as the first line
            password: Sent as the second line when ``auth == "password"``
            auth: ``offline`` (name only) or ``password``
            version: Unused; text servers are not versioned
            timeout: Connection timeout in seconds

        Raises:
            ConnectionError: If connection fails or times out
        """
        if self._writer:
            await self.quit("reconnect")

        started = time.monotonic()
        try:
            self._reader, self._writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
        except Exception as e:
            raise ConnectionError(f"Failed to connect to {host}:{port}") from e

        self._ended = False
        self._spawned = False
        # TCP handshake time stands in for ping; text servers have no ping packet.
        self.ping = round((time.monotonic() - started) * 1000)
        self.username = username

        # Announce client capabilities the way plain telnet clients do.
        await self._send_cmd(WILL, OPT_BINARY)
        await self._send_cmd(WILL, OPT_SGA)

        log.info("telnet_connected", host=host, port=port, username=username)
        self.emit("connect")

        self._reader_task = asyncio.create_task(self._reader_loop())

        await self._send_line(username)
        if auth == "password" and password:
            await self._send_line(password)

    async def quit(self, reason: str = "client_quit") -> None:
        task = self._reader_task
        self._reader_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._close()
        self._finish(reason)

    def is_connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def chat(self, text: str) -> None:
        await self._send_line(text)

    async def set_control_state(self, control: str, state: bool) -> None:
        self.controls[control] = state
        await self._send_line(f"/control {control} {'on' if state else 'off'}")

    async def look(self, yaw: float, pitch: float) -> None:
        if self.entity is not None:
            self.entity.yaw = yaw
            self.entity.pitch = pitch
        await self._send_line(f"/look {yaw:.3f} {pitch:.3f}")

    async def navigate_to(self, x: int, y: int, z: int) -> None:
        await self._send_line(f"/goto {x} {y} {z}")

    # -- internals ------------------------------------------------------

    async def _send_line(self, text: str) -> None:
        if not self._writer:
            raise ConnectionError("Not connected")
        # Escape IAC bytes per RFC 854: 0xFF -> 0xFF 0xFF
        payload = (text + "\r\n").encode(ENCODING, errors="replace").replace(b"\xff", b"\xff\xff")
        try:
            self._writer.write(payload)
            await self._writer.drain()
        except (ConnectionResetError, BrokenPipeError) as e:
            await self._close()
            raise ConnectionError("Send failed") from e

    async def _reader_loop(self) -> None:
        reason = "socket_closed"
        try:
            while self._reader is not None:
                chunk = await self._reader.read(4096)
                if not chunk:
                    break
                self._rx_buf.extend(self._strip_telnet(chunk))
                while (idx := self._rx_buf.find(b"\n")) != -1:
                    raw = bytes(self._rx_buf[:idx])
                    del self._rx_buf[: idx + 1]
                    line = raw.decode(ENCODING, errors="replace").rstrip("\r")
                    if line:
                        self._handle_line(line)
        except asyncio.CancelledError:
            return
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            reason = "connection_lost"
            self.emit("error", e)
        await self._close()
        self._finish(reason)

    def _handle_line(self, line: str) -> None:
        if not self._spawned:
            self._spawned = True
            self.entity = Entity()
            self.players = {self.username: self.entity}
            self.emit("login")
            self.emit("spawn")

        lowered = line.lower()
        if lowered.startswith(_KICK_PREFIX):
            self.emit("kicked", line[len(_KICK_PREFIX) :].strip())
            return
        if lowered.startswith("you died"):
            self.emit("death")
            return
        if lowered.startswith("you arrive"):
            self.emit("goal_reached")
            return

        match = _CHAT_RE.match(line)
        if match:
            self.emit("chat", match["user"], match["message"])
        else:
            self.emit("chat", "", line)

    def _finish(self, reason: str) -> None:
        self.entity = None
        self.players = {}
        if self._ended:
            return
        self._ended = True
        log.info("telnet_disconnected", reason=reason)
        self.emit("end", reason)

    async def _close(self) -> None:
        writer = self._writer
        self._writer = None
        self._reader = None
        self._rx_buf.clear()
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError, RuntimeError):
            pass

    def _strip_telnet(self, data: bytes) -> bytes:
        """Strip IAC sequences, refusing every option except BINARY/SGA/ECHO."""
        result = bytearray()
        i = 0
        while i < len(data):
            if data[i] == IAC and i + 1 < len(data):
                cmd = data[i + 1]
                if cmd in (DO, DONT, WILL, WONT) and i + 2 < len(data):
                    asyncio.create_task(self._negotiate(cmd, data[i + 2]))
                    i += 3
                    continue
                if cmd == SB:
                    end = data.find(bytes([IAC, SE]), i + 2)
                    i = len(data) if end == -1 else end + 2
                    continue
                if cmd == IAC:
                    # Escaped IAC (0xFF 0xFF) -> single 0xFF
                    result.append(IAC)
                    i += 2
                    continue
            result.append(data[i])
            i += 1
        return bytes(result)

    async def _negotiate(self, cmd: int, opt: int) -> None:
        accepted = opt in (OPT_BINARY, OPT_SGA, OPT_ECHO)
        reply: dict[int, int] = {
            DO: WILL if accepted else WONT,
            DONT: WONT,
            WILL: DO if accepted else DONT,
            WONT: DONT,
        }
        with contextlib.suppress(ConnectionResetError, BrokenPipeError):
            await self._send_cmd(reply[cmd], opt)

    async def _send_cmd(self, cmd: int, opt: int) -> None:
        if not self._writer or self._writer.is_closing():
            return
        self._writer.write(bytes([IAC, cmd, opt]))
        with contextlib.suppress(ConnectionResetError, BrokenPipeError):
            await self._writer.drain()
