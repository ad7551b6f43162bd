"""
timeline.py - Step transition history for one execution.

Records when the canonical step changes so callers can report where the time
went (e.g. "Reading code: 12s, Testing: 1m 3s"). Consecutive events with the
same step extend the current entry instead of opening a new one.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .models import CanonicalStep


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as a short human-readable duration."""
    seconds = max(duration_ms, 0) // 1000
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


@dataclass
class StepTiming:
    """One contiguous stretch of time spent in a step."""

    step: CanonicalStep
    started_at: float
    ended_at: Optional[float] = None

    def duration_ms(self, now: float) -> int:
        end = self.ended_at if self.ended_at is not None else now
        return int((end - self.started_at) * 1000)


class StepTimeline:
    """Records step transitions for one execution.

    Args:
        initial_step: Step the execution starts in.
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        initial_step: CanonicalStep = CanonicalStep.THINKING,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._started_at = clock()
        self._entries: List[StepTiming] = [StepTiming(initial_step, self._started_at)]

    @property
    def current_step(self) -> CanonicalStep:
        return self._entries[-1].step

    def record(self, step: CanonicalStep) -> bool:
        """Record that the execution is now in ``step``.

        Returns:
            True if this was a transition, False if the step was unchanged.
        """
        if step == self.current_step:
            return False
        now = self._clock()
        self._entries[-1].ended_at = now
        self._entries.append(StepTiming(step, now))
        return True

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._started_at) * 1000)

    def timings(self) -> List[StepTiming]:
        return list(self._entries)

    def summary(self, min_duration_ms: int = 1000) -> str:
        """Comma-separated "step: duration" list, skipping short entries."""
        now = self._clock()
        parts = [
            f"{entry.step.value}: {format_duration(entry.duration_ms(now))}"
            for entry in self._entries
            if entry.duration_ms(now) >= min_duration_ms
        ]
        return ", ".join(parts)
