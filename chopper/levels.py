"""
Level progression.

Derives the difficulty level and spawn cadence from active play time.
"""
import math

from chopper.config import EngineConfig


def level_for_elapsed(elapsed_active_ms: float, level_period_ms: float) -> int:
    """Level reached after ``elapsed_active_ms`` of play (starts at 1).

    Examples:
        >>> level_for_elapsed(0, 30000)
        1
        >>> level_for_elapsed(59999, 30000)
        2
        >>> level_for_elapsed(60000, 30000)
        3
    """
    return int(math.floor(max(0, elapsed_active_ms) / level_period_ms)) + 1


def spawn_interval_for_level(
    level: int,
    base_interval_ms: float,
    interval_step_ms: float,
    min_interval_ms: float,
) -> float:
    """Milliseconds between spawns at a level, floored at ``min_interval_ms``.

    Examples:
        >>> spawn_interval_for_level(1, 2000, 100, 500)
        1900
        >>> spawn_interval_for_level(40, 2000, 100, 500)
        500
    """
    return max(min_interval_ms, base_interval_ms - level * interval_step_ms)


class LevelProgression:
    """Level and spawn interval for one session.

    ``update()`` is called once per tick with the current active time.
    The level only ever goes up, even if an earlier active time is passed.
    """

    def __init__(self, config: EngineConfig):
        self.config = config
        self.level = 1
        self.spawn_interval_ms = self._interval(1)

    def _interval(self, level: int) -> float:
        return spawn_interval_for_level(
            level,
            self.config.base_interval_ms,
            self.config.interval_step_ms,
            self.config.min_interval_ms,
        )

    def reset(self) -> None:
        self.level = 1
        self.spawn_interval_ms = self._interval(1)

    def update(self, elapsed_active_ms: float) -> int:
        """Recompute level and interval.

        Returns:
            Number of levels gained by this update (0 if none)
        """
        expected = level_for_elapsed(elapsed_active_ms, self.config.level_period_ms)
        if expected <= self.level:
            return 0
        gained = expected - self.level
        self.level = expected
        self.spawn_interval_ms = self._interval(expected)
        return gained
