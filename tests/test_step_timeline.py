"""
Tests for step transition timing.
"""

from stepwatch.runtime.progress.models import CanonicalStep
from stepwatch.runtime.progress.timeline import StepTimeline, format_duration


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestFormatDuration:
    """Tests for format_duration()."""

    def test_seconds(self):
        assert format_duration(0) == "0s"
        assert format_duration(12_999) == "12s"

    def test_minutes(self):
        assert format_duration(63_000) == "1m 3s"

    def test_hours(self):
        assert format_duration(3_723_000) == "1h 2m"

    def test_negative_clamped(self):
        assert format_duration(-5) == "0s"


class TestStepTimeline:
    """Tests for StepTimeline."""

    def test_starts_thinking(self):
        """A new timeline starts in Thinking."""
        assert StepTimeline(clock=FakeClock()).current_step == CanonicalStep.THINKING

    def test_record_transition(self):
        """A different step opens a new entry."""
        clock = FakeClock()
        timeline = StepTimeline(clock=clock)
        clock.advance(2)

        assert timeline.record(CanonicalStep.READING) is True
        assert timeline.current_step == CanonicalStep.READING
        assert len(timeline.timings()) == 2

    def test_same_step_extends(self):
        """Repeating the current step is not a transition."""
        timeline = StepTimeline(clock=FakeClock())
        timeline.record(CanonicalStep.READING)

        assert timeline.record(CanonicalStep.READING) is False
        assert len(timeline.timings()) == 2

    def test_elapsed(self):
        """Elapsed time is measured from construction."""
        clock = FakeClock()
        timeline = StepTimeline(clock=clock)
        clock.advance(1.5)

        assert timeline.elapsed_ms() == 1500

    def test_summary(self):
        """The summary lists durations and skips short entries."""
        clock = FakeClock()
        timeline = StepTimeline(clock=clock)
        clock.advance(0.5)
        timeline.record(CanonicalStep.READING)
        clock.advance(12)
        timeline.record(CanonicalStep.TESTING)
        clock.advance(63)

        assert timeline.summary() == "Reading code: 12s, Testing: 1m 3s"

    def test_summary_threshold(self):
        """A zero threshold includes every entry."""
        clock = FakeClock()
        timeline = StepTimeline(clock=clock)
        timeline.record(CanonicalStep.READING)

        assert timeline.summary(min_duration_ms=0) == "Thinking: 0s, Reading code: 0s"
