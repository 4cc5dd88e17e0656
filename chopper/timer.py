"""
Pause-aware session clock.

All times are milliseconds on a caller-supplied monotonic clock. The timer
never reads the clock itself, which keeps it deterministic under test.
"""
from typing import Optional


class SessionTimer:
    """Tracks active (unpaused) play time.

    While running, ``elapsed_active_ms(now)`` is
    ``now - started_at - paused_accum_ms``. While paused it is frozen at
    the value it had when the pause began.

    Examples:
        >>> timer = SessionTimer()
        >>> timer.start(1000)
        >>> timer.pause(4000)
        >>> timer.resume(9000)
        >>> timer.elapsed_active_ms(10000)
        4000
    """

    def __init__(self):
        self.started_at: Optional[float] = None
        self.paused_accum_ms: float = 0
        self.pause_began_at: Optional[float] = None

    @property
    def started(self) -> bool:
        return self.started_at is not None

    @property
    def paused(self) -> bool:
        return self.pause_began_at is not None

    def start(self, now: float) -> None:
        """(Re)start the clock at ``now`` with no paused time."""
        self.started_at = now
        self.paused_accum_ms = 0
        self.pause_began_at = None

    def pause(self, now: float) -> None:
        """Freeze the active clock. No-op if already paused or not started."""
        if not self.started or self.paused:
            return
        self.pause_began_at = now

    def resume(self, now: float) -> None:
        """Continue the active clock. No-op if not paused."""
        if not self.paused:
            return
        self.paused_accum_ms += max(0, now - self.pause_began_at)
        self.pause_began_at = None

    def elapsed_active_ms(self, now: float) -> float:
        """Active play time at ``now``, excluding every paused interval."""
        if not self.started:
            return 0
        # While paused, time stops at the moment the pause began
        reference = self.pause_began_at if self.paused else now
        return max(0, reference - self.started_at - self.paused_accum_ms)


class ManualClock:
    """Millisecond clock that only moves when told to.

    Pass it as a session's ``clock`` to run simulations faster than real
    time, or to drive tests step by step.

    Examples:
        >>> clock = ManualClock()
        >>> clock.advance(16)
        16.0
        >>> clock()
        16.0
    """

    def __init__(self, start: float = 0.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        if ms < 0:
            raise ValueError(f'Cannot move the clock backwards ({ms}ms)')
        self.now += ms
        return self.now

    def set(self, now: float) -> float:
        if now < self.now:
            raise ValueError(f'Cannot move the clock backwards ({self.now} -> {now})')
        self.now = float(now)
        return self.now
