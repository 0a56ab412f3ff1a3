"""Tests for the periodic activity scheduler."""

from __future__ import annotations

import asyncio
import random

import pytest
from structlog.testing import capture_logs

from afkbot.config import ChatMessagesConfig
from afkbot.constants import JUMP_PULSE_S, KEEPALIVE_YAW_DELTA, MOVE_PULSE_S
from afkbot.core.activity import ANTI_IDLE_ACTIONS, ActivityScheduler, AntiIdleAction, ScriptedChat
from afkbot.core.session import Session

from .fakes import FakeGameClient, LimitedSleep, LoopExit, SleepRecorder


class FixedChoice(random.Random):
    """Deterministic stand-in for the anti-idle random source."""

    def __init__(self, action: AntiIdleAction, value: float = 0.25) -> None:
        super().__init__(0)
        self.action = action
        self.value = value

    def choice(self, seq):  # noqa: ANN001, ANN201
        assert tuple(seq) == ANTI_IDLE_ACTIONS
        return self.action

    def random(self) -> float:
        return self.value


def _spawned_client() -> FakeGameClient:
    client = FakeGameClient()
    client.connected = True
    client.spawn()
    return client


def test_scripted_chat_cycles_in_order() -> None:
    script = ScriptedChat(["a", "b", "c"])

    assert [script.next_message() for _ in range(10)] == ["a", "b", "c", "a", "b", "c", "a", "b", "c", "a"]


def test_scripted_chat_requires_messages() -> None:
    with pytest.raises(ValueError):
        ScriptedChat([])


@pytest.mark.asyncio
async def test_chat_loop_repeats_messages_with_delay() -> None:
    client = _spawned_client()
    sleep = LimitedSleep(limit=7)
    scheduler = ActivityScheduler(sleep=sleep)

    with pytest.raises(LoopExit):
        await scheduler._chat_loop(client, ["a", "b", "c"], 45.0)

    assert client.sent == ["a", "b", "c", "a", "b", "c", "a"]
    assert sleep.calls == [45.0] * 7


@pytest.mark.asyncio
async def test_keepalive_nudges_yaw() -> None:
    client = _spawned_client()
    scheduler = ActivityScheduler()

    assert await scheduler.keepalive_once(client) is True

    assert client.looks == [(1.0 + KEEPALIVE_YAW_DELTA, 0.5)]


@pytest.mark.asyncio
async def test_keepalive_skipped_without_entity() -> None:
    client = FakeGameClient()
    scheduler = ActivityScheduler()

    assert await scheduler.keepalive_once(client) is False
    assert client.looks == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("action", "duration"),
    [
        (AntiIdleAction.FORWARD, MOVE_PULSE_S),
        (AntiIdleAction.BACK, MOVE_PULSE_S),
        (AntiIdleAction.LEFT, MOVE_PULSE_S),
        (AntiIdleAction.RIGHT, MOVE_PULSE_S),
        (AntiIdleAction.JUMP, JUMP_PULSE_S),
    ],
)
async def test_anti_idle_pulse_presses_then_releases(action: AntiIdleAction, duration: float) -> None:
    client = _spawned_client()
    sleep = SleepRecorder()
    scheduler = ActivityScheduler(rng=FixedChoice(action), sleep=sleep)

    assert await scheduler.anti_idle_once(client) is action

    assert client.control_log == [(action.value, True), (action.value, False)]
    assert sleep.calls == [duration]


@pytest.mark.asyncio
async def test_anti_idle_random_look() -> None:
    client = _spawned_client()
    scheduler = ActivityScheduler(rng=FixedChoice(AntiIdleAction.LOOK, value=0.5), sleep=SleepRecorder())

    assert await scheduler.anti_idle_once(client) is AntiIdleAction.LOOK

    assert client.looks == [(pytest.approx(3.141592653589793), 0.0)]
    assert client.control_log == []


@pytest.mark.asyncio
async def test_anti_idle_skipped_without_entity() -> None:
    client = FakeGameClient()
    scheduler = ActivityScheduler(rng=FixedChoice(AntiIdleAction.FORWARD), sleep=SleepRecorder())

    assert await scheduler.anti_idle_once(client) is None
    assert client.control_log == []


@pytest.mark.asyncio
async def test_anti_idle_uses_uniform_choice_over_all_actions() -> None:
    client = _spawned_client()
    scheduler = ActivityScheduler(rng=random.Random(7), sleep=SleepRecorder())

    seen = {await scheduler.anti_idle_once(client) for _ in range(200)}

    assert seen == set(ANTI_IDLE_ACTIONS)


@pytest.mark.asyncio
async def test_start_and_stop_for_session() -> None:
    client = _spawned_client()
    chat = ChatMessagesConfig(enabled=True, repeat=True, repeat_delay=60, messages=["hi"])
    scheduler = ActivityScheduler(anti_idle=True, chat=chat)
    session = Session(number=1, client=client)

    scheduler.start_for_session(session)

    assert scheduler.status(session) == {"keepalive": True, "anti_idle": True, "chat": True, "health": True}

    await scheduler.stop_for_session(session)

    assert session.keepalive_task is None
    assert session.anti_idle_task is None
    assert session.chat_task is None
    assert session.health_task is None
    assert not session.has_timers()


@pytest.mark.asyncio
async def test_disabled_modules_create_no_timers() -> None:
    client = _spawned_client()
    scheduler = ActivityScheduler(anti_idle=False, chat=ChatMessagesConfig(enabled=False), health_interval_s=None)
    session = Session(number=1, client=client)

    scheduler.start_for_session(session)

    assert session.keepalive_task is not None
    assert session.anti_idle_task is None
    assert session.chat_task is None
    assert session.health_task is None
    await scheduler.stop_for_session(session)


@pytest.mark.asyncio
async def test_one_shot_chat_sends_every_message_once() -> None:
    client = _spawned_client()
    chat = ChatMessagesConfig(enabled=True, repeat=False, messages=["one", "two"])
    scheduler = ActivityScheduler(anti_idle=False, chat=chat, health_interval_s=None)
    session = Session(number=1, client=client)

    scheduler.start_for_session(session)
    assert session.chat_task is not None
    await session.chat_task

    assert client.sent == ["one", "two"]
    await scheduler.stop_for_session(session)


@pytest.mark.asyncio
async def test_send_failure_does_not_kill_the_loop() -> None:
    client = _spawned_client()
    client.connected = False  # chat() now raises ConnectionError
    sleep = LimitedSleep(limit=3)
    scheduler = ActivityScheduler(sleep=sleep)

    with pytest.raises(LoopExit):
        await scheduler._chat_loop(client, ["a"], 1.0)

    assert sleep.calls == [1.0, 1.0, 1.0]


@pytest.mark.asyncio
async def test_timers_are_real_tasks_until_cancelled() -> None:
    client = _spawned_client()
    scheduler = ActivityScheduler(anti_idle=True, keepalive_interval_s=0.001, anti_idle_interval_s=3600)
    session = Session(number=1, client=client)

    scheduler.start_for_session(session)
    await asyncio.sleep(0.02)
    await scheduler.stop_for_session(session)
    looks = len(client.looks)
    await asyncio.sleep(0.01)

    assert looks > 0
    assert len(client.looks) == looks


@pytest.mark.asyncio
async def test_health_loop_logs_when_ping_is_known() -> None:
    client = _spawned_client()
    client.ping = 42
    client.players = {"Keeper": client.entity, "Steve": None}
    sleep = LimitedSleep(limit=2)
    scheduler = ActivityScheduler(sleep=sleep)

    with capture_logs() as logs, pytest.raises(LoopExit):
        await scheduler._health_loop(client, 300.0)

    health = [entry for entry in logs if entry["event"] == "health"]
    assert len(health) == 2
    assert health[0]["ping_ms"] == 42
    assert health[0]["players_online"] == 2
    assert sleep.calls == [300.0, 300.0]


@pytest.mark.asyncio
async def test_health_loop_silent_without_ping() -> None:
    client = _spawned_client()
    scheduler = ActivityScheduler(sleep=LimitedSleep(limit=1))

    with capture_logs() as logs, pytest.raises(LoopExit):
        await scheduler._health_loop(client, 300.0)

    assert [entry for entry in logs if entry["event"] == "health"] == []
