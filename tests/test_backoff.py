"""Tests for reconnect delay computation."""

from __future__ import annotations

import pytest

from afkbot.constants import MAX_RECONNECT_DELAY_MS
from afkbot.core.backoff import reconnect_delay_ms


@pytest.mark.parametrize("base", [250, 1000, 5000, 30_000])
def test_delay_matches_formula_and_never_decreases(base: int) -> None:
    previous = 0.0
    for attempt in range(1, 11):
        delay = reconnect_delay_ms(attempt, base)
        assert delay == min(base * 1.5 ** (attempt - 1), MAX_RECONNECT_DELAY_MS)
        assert delay >= previous
        previous = delay


def test_first_attempts_with_one_second_base() -> None:
    assert [reconnect_delay_ms(n, 1000) for n in (1, 2, 3)] == [1000, 1500, 2250]


def test_delay_is_capped_at_one_minute() -> None:
    assert reconnect_delay_ms(10, 5000) == 60_000
    assert reconnect_delay_ms(50, 5000) == 60_000


def test_attempt_must_be_positive() -> None:
    with pytest.raises(ValueError):
        reconnect_delay_ms(0, 1000)
