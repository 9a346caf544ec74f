# src/now_or_never/core/clock.py

from __future__ import annotations

import time


class SystemClock:
    """Wall-clock time source (POSIX seconds)."""

    def now(self) -> float:
        return time.time()
