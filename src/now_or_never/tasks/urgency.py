# tasks/urgency.py

"""
Urgency classification.

Pure functions of (deadline, now). Nothing here is cached: the tick driver
re-evaluates every active task on every tick.
"""

from __future__ import annotations

from .task_models import UrgencyState

SECOND = 1.0
MINUTE = 60.0
HOUR = 3600.0

TERMINAL_THRESHOLD = 1 * MINUTE
CRITICAL_THRESHOLD = 15 * MINUTE
ELEVATED_THRESHOLD = 2 * HOUR


def classify(deadline: float, now: float) -> UrgencyState:
    remaining = deadline - now
    # The final minute is already terminal even though the task is still active.
    if remaining <= TERMINAL_THRESHOLD:
        return UrgencyState.TERMINAL
    if remaining <= CRITICAL_THRESHOLD:
        return UrgencyState.CRITICAL
    if remaining <= ELEVATED_THRESHOLD:
        return UrgencyState.ELEVATED
    return UrgencyState.STABLE


def remaining_seconds(deadline: float, now: float) -> float:
    return max(0.0, deadline - now)


def progress_percent(deadline: float, created: float, now: float) -> float:
    """Share of the original duration still left, 100 at creation and 0 at the deadline."""
    total = deadline - created
    if total <= 0:
        return 0.0
    elapsed = now - created
    return max(0.0, min(100.0, 100.0 - (elapsed / total) * 100.0))


def format_remaining(deadline: float, now: float) -> str:
    """H:MM:SS when at least an hour is left, otherwise MM:SS."""
    remaining = int(remaining_seconds(deadline, now))
    hours, rest = divmod(remaining, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_retention(remaining_retention: float) -> str:
    remaining = int(max(0.0, remaining_retention))
    hours, rest = divmod(remaining, 3600)
    return f"{hours}h {rest // 60}m left"
