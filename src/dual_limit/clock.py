# src/dual_limit/clock.py
"""Wall-clock to 15-minute period arithmetic. Integer epoch seconds only."""
from __future__ import annotations

import time

PERIOD_DURATION = 900


def now() -> int:
    return int(time.time())


def current_period(t: int) -> int:
    """Start timestamp of the 15-minute period containing ``t``."""
    return (t // PERIOD_DURATION) * PERIOD_DURATION


def time_remaining(t: int) -> int:
    """Seconds until the next boundary, in (0, 900]."""
    return current_period(t) + PERIOD_DURATION - t


def seconds_until_next_period(t: int) -> int:
    return time_remaining(t)


def remaining_in(period_timestamp: int, t: int) -> int:
    """Seconds left in the period starting at ``period_timestamp``; 0 once over."""
    return max(0, period_timestamp + PERIOD_DURATION - t)
