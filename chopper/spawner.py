"""
Target spawner with level-weighted category and size draws.

Handles spawn cadence (in active milliseconds) and builds new targets from
the size profiles and category modifiers in EngineConfig.
"""
import random
from typing import Optional

from models import SizeClass, TargetCategory
from chopper.config import EngineConfig
from chopper.targets import Target


class Spawner:
    """Creates one target each time the spawn interval elapses."""

    def __init__(self, config: EngineConfig, rng: Optional[random.Random] = None):
        """Initialize the spawner.

        Args:
            config: Engine tunables (distribution tables, field size)
            rng: Random source; pass a seeded instance for reproducible runs
        """
        self.config = config
        self.rng = rng or random.Random()
        self.last_spawn_ms = 0.0

    def reset(self) -> None:
        self.last_spawn_ms = 0.0

    def is_due(self, elapsed_active_ms: float, spawn_interval_ms: float) -> bool:
        """Check whether a spawn interval has passed since the last spawn."""
        return elapsed_active_ms - self.last_spawn_ms >= spawn_interval_ms

    def reinforced_chance(self, level: int) -> float:
        """Reinforced probability, growing linearly with level up to the cap."""
        return min(
            self.config.reinforced_max_chance,
            self.config.reinforced_base_chance + level * self.config.reinforced_level_step,
        )

    def choose_category(self, level: int) -> TargetCategory:
        """Weighted draw: hazard, then bonus, then reinforced, rest ordinary."""
        roll = self.rng.random()

        threshold = self.config.hazard_chance
        if roll < threshold:
            return TargetCategory.HAZARD

        threshold += self.config.bonus_chance
        if roll < threshold:
            return TargetCategory.BONUS

        threshold += self.reinforced_chance(level)
        if roll < threshold:
            return TargetCategory.REINFORCED

        return TargetCategory.ORDINARY

    def choose_size(self) -> SizeClass:
        return self.rng.choices(list(SizeClass), weights=self.config.size_weights)[0]

    def fall_speed(self, level: int) -> float:
        """Fall speed in px/s; the upper bound widens with level."""
        upper = self.config.fall_speed_max + level * self.config.fall_speed_level_step
        return self.rng.uniform(self.config.fall_speed_min, upper)

    def build(
        self,
        category: TargetCategory,
        size: SizeClass,
        level: int,
        spawned_at_ms: float = 0.0,
    ) -> Target:
        """Build a target of a given category and size.

        Size sets the base hits and points; the category then rewrites them
        (hazard: negative points, bonus: large payout, reinforced: +1 hit).
        """
        profile = self.config.size_profiles[size]
        modifier = self.config.category_modifiers[category]

        max_hits = modifier.hits if modifier.hits else profile.max_hits + modifier.extra_hits
        point_value = profile.point_value * modifier.point_multiplier

        half_width = profile.width / 2
        x = self.rng.uniform(half_width, max(half_width, self.config.field_width - half_width))

        return Target(
            category=category,
            size=size,
            max_hits=max_hits,
            point_value=point_value,
            x=x,
            y=-profile.height / 2,  # just above the top edge
            width=profile.width,
            height=profile.height,
            fall_speed=self.fall_speed(level),
            spawned_at_ms=spawned_at_ms,
        )

    def spawn(self, level: int, elapsed_active_ms: float) -> Target:
        """Create a new target and restart the cadence."""
        self.last_spawn_ms = elapsed_active_ms
        return self.build(
            self.choose_category(level),
            self.choose_size(),
            level,
            spawned_at_ms=elapsed_active_ms,
        )
