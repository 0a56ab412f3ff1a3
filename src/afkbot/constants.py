# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared constants for afkbot."""

from __future__ import annotations

# Reconnect policy
DEFAULT_MAX_RECONNECT_ATTEMPTS = 10
DEFAULT_RECONNECT_BASE_DELAY_MS = 5000
MAX_RECONNECT_DELAY_MS = 60_000
RECONNECT_BACKOFF_FACTOR = 1.5

# Default timeouts
DEFAULT_CONNECT_TIMEOUT_S = 30.0
DEFAULT_AUTH_REPLY_TIMEOUT_S = 30.0

# Periodic activity
KEEPALIVE_INTERVAL_S = 30.0
KEEPALIVE_YAW_DELTA = 0.1
ANTI_IDLE_INTERVAL_S = 3.0
MOVE_PULSE_S = 0.5
JUMP_PULSE_S = 0.1
HEALTH_LOG_INTERVAL_S = 300.0

# Status endpoint
DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 8000
ROOT_STATUS_TEXT = "Bot has arrived"
