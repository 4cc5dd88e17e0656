"""Tests for the pause-aware session timer and the manual clock."""

import pytest

from chopper.timer import ManualClock, SessionTimer


class TestSessionTimer:
    """Tests for SessionTimer."""

    @pytest.fixture
    def timer(self):
        return SessionTimer()

    def test_not_started_reports_zero(self, timer):
        """An unstarted timer has no active time."""
        assert not timer.started
        assert timer.elapsed_active_ms(5000) == 0

    def test_running_elapsed(self, timer):
        """Active time is now minus start while running."""
        timer.start(1000)
        assert timer.elapsed_active_ms(4000) == 3000

    def test_pause_freezes_elapsed(self, timer):
        """While paused the value stays at the pause point."""
        timer.start(0)
        timer.pause(3000)

        assert timer.paused
        assert timer.elapsed_active_ms(3000) == 3000
        assert timer.elapsed_active_ms(10000) == 3000
        assert timer.elapsed_active_ms(99999) == 3000

    def test_resume_excludes_paused_interval(self, timer):
        """Paused for 5000ms: active time trails wall time by exactly 5000."""
        timer.start(0)
        timer.pause(2000)
        timer.resume(7000)

        assert timer.elapsed_active_ms(10000) == 10000 - 5000
        assert timer.paused_accum_ms == 5000

    def test_pause_is_idempotent(self, timer):
        """A second pause keeps the first pause point."""
        timer.start(0)
        timer.pause(3000)
        timer.pause(5000)
        timer.resume(8000)

        assert timer.paused_accum_ms == 5000
        assert timer.elapsed_active_ms(9000) == 4000

    def test_resume_while_running_is_noop(self, timer):
        """Resuming a running timer changes nothing."""
        timer.start(0)
        timer.resume(1000)

        assert timer.paused_accum_ms == 0
        assert timer.elapsed_active_ms(2000) == 2000

    def test_pause_before_start_is_noop(self, timer):
        """Pausing an unstarted timer does not mark it paused."""
        timer.pause(100)
        assert not timer.paused

    def test_multiple_pauses_accumulate(self, timer):
        """Every paused interval is excluded."""
        timer.start(0)
        timer.pause(1000)
        timer.resume(2000)
        timer.pause(3000)
        timer.resume(6000)

        assert timer.paused_accum_ms == 4000
        assert timer.elapsed_active_ms(10000) == 6000

    def test_start_resets(self, timer):
        """Starting again clears paused time."""
        timer.start(0)
        timer.pause(1000)
        timer.start(5000)

        assert not timer.paused
        assert timer.paused_accum_ms == 0
        assert timer.elapsed_active_ms(6000) == 1000


class TestManualClock:
    """Tests for ManualClock."""

    def test_starts_at_given_time(self):
        assert ManualClock()() == 0.0
        assert ManualClock(250)() == 250.0

    def test_advance(self):
        """advance() moves the clock forward and returns the new time."""
        clock = ManualClock()
        assert clock.advance(16) == 16.0
        assert clock.advance(4) == 20.0
        assert clock() == 20.0

    def test_set(self):
        clock = ManualClock(10)
        clock.set(500)
        assert clock() == 500.0

    def test_cannot_go_backwards(self):
        """Negative steps and earlier times are rejected."""
        clock = ManualClock(100)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(50)
