import math
import time
from typing import Optional


def now() -> float:
    """Wall clock in epoch seconds. Routes call this so tests can pin time."""
    return time.time()


def displayed_remaining(remaining_sec: int, is_running: bool, started_at: Optional[float], now: float) -> int:
    """Reconstruct the countdown from the last stored value and start stamp.

    A stopped clock (or one without a start stamp) shows ``remaining_sec``
    unchanged. A running clock subtracts whole elapsed seconds and never
    goes below zero. Purely cosmetic: it never ends a period by itself.
    """
    if not is_running or started_at is None:
        return max(0, int(remaining_sec))
    elapsed = math.floor(now - started_at)
    return max(0, int(remaining_sec) - elapsed)


def format_clock(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
