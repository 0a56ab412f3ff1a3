# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Reconnect delay policy."""

from __future__ import annotations

from afkbot.constants import MAX_RECONNECT_DELAY_MS, RECONNECT_BACKOFF_FACTOR


def reconnect_delay_ms(
    attempt: int,
    base_delay_ms: float,
    *,
    factor: float = RECONNECT_BACKOFF_FACTOR,
    cap_ms: float = MAX_RECONNECT_DELAY_MS,
) -> float:
    """Delay before reconnect number *attempt* (1-based).

    ``min(base * factor ** (attempt - 1), cap)``; non-decreasing in *attempt*.

    Raises:
        ValueError: If attempt < 1
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(base_delay_ms * factor ** (attempt - 1), cap_ms)
