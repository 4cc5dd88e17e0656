"""
Chopper - Configuration loader.

Module constants are read from the environment (a ``.env`` file next to
this package is loaded first) and bundled per session into EngineConfig.
"""
import os
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import SizeClass, TargetCategory

# Load .env from package directory
_env_path = Path(__file__).parent / '.env'
load_dotenv(_env_path)


def _get_int(key: str, default: int) -> int:
    """Get integer from environment."""
    return int(os.getenv(key, str(default)))


def _get_float(key: str, default: float) -> float:
    """Get float from environment."""
    return float(os.getenv(key, str(default)))


# Play field
FIELD_WIDTH = _get_int('FIELD_WIDTH', 800)
FIELD_HEIGHT = _get_int('FIELD_HEIGHT', 600)
OFF_FIELD_MARGIN = _get_float('OFF_FIELD_MARGIN', 50.0)

# Level progression
LEVEL_PERIOD_MS = _get_float('LEVEL_PERIOD_MS', 30000.0)
BASE_INTERVAL_MS = _get_float('BASE_INTERVAL_MS', 2000.0)
INTERVAL_STEP_MS = _get_float('INTERVAL_STEP_MS', 100.0)
MIN_INTERVAL_MS = _get_float('MIN_INTERVAL_MS', 500.0)

# Spawn distribution
HAZARD_CHANCE = _get_float('HAZARD_CHANCE', 0.02)
BONUS_CHANCE = _get_float('BONUS_CHANCE', 0.05)
REINFORCED_BASE_CHANCE = _get_float('REINFORCED_BASE_CHANCE', 0.18)
REINFORCED_LEVEL_STEP = _get_float('REINFORCED_LEVEL_STEP', 0.05)
REINFORCED_MAX_CHANCE = _get_float('REINFORCED_MAX_CHANCE', 0.6)

# Fall speed (pixels/second), upper bound widens with level
FALL_SPEED_MIN = _get_float('FALL_SPEED_MIN', 100.0)
FALL_SPEED_MAX = _get_float('FALL_SPEED_MAX', 150.0)
FALL_SPEED_LEVEL_STEP = _get_float('FALL_SPEED_LEVEL_STEP', 10.0)

# Scoring
COMBO_STEP = _get_int('COMBO_STEP', 5)
MAX_COMBO_MULTIPLIER = _get_int('MAX_COMBO_MULTIPLIER', 5)

# How many destroys between achievement checks in the runner
ACHIEVEMENT_CHECK_EVERY = _get_int('ACHIEVEMENT_CHECK_EVERY', 5)


class SizeProfile(BaseModel):
    """Base hits, base points and footprint for a size class."""
    max_hits: int = Field(..., ge=1)
    point_value: int
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)


class CategoryModifier(BaseModel):
    """How a category rewrites the size profile.

    ``hits`` replaces the size's hit count when set; otherwise
    ``extra_hits`` is added to it.
    """
    point_multiplier: int
    extra_hits: int = 0
    hits: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


SIZE_PROFILES: Dict[SizeClass, SizeProfile] = {
    SizeClass.SMALL: SizeProfile(max_hits=1, point_value=10, width=50, height=34),
    SizeClass.MEDIUM: SizeProfile(max_hits=2, point_value=20, width=60, height=40),
    SizeClass.LARGE: SizeProfile(max_hits=3, point_value=40, width=70, height=45),
    SizeClass.GIANT: SizeProfile(max_hits=5, point_value=80, width=90, height=55),
}

CATEGORY_MODIFIERS: Dict[TargetCategory, CategoryModifier] = {
    TargetCategory.ORDINARY: CategoryModifier(point_multiplier=1),
    TargetCategory.REINFORCED: CategoryModifier(point_multiplier=2, extra_hits=1),
    TargetCategory.BONUS: CategoryModifier(point_multiplier=5, hits=1),
    TargetCategory.HAZARD: CategoryModifier(point_multiplier=-10, hits=1),
}

# Size draw weights (small, medium, large, giant)
SIZE_WEIGHTS: Tuple[float, ...] = (0.35, 0.35, 0.22, 0.08)


class EngineConfig(BaseModel):
    """All tunables for one session.

    Defaults come from the module constants above, so environment
    overrides apply to every session that does not pass its own values.

    Examples:
        >>> EngineConfig().level_period_ms
        30000.0
        >>> EngineConfig(min_interval_ms=250).min_interval_ms
        250.0
    """
    field_width: int = Field(default=FIELD_WIDTH, gt=0)
    field_height: int = Field(default=FIELD_HEIGHT, gt=0)
    off_field_margin: float = Field(default=OFF_FIELD_MARGIN, ge=0)

    level_period_ms: float = Field(default=LEVEL_PERIOD_MS, gt=0)
    base_interval_ms: float = Field(default=BASE_INTERVAL_MS, gt=0)
    interval_step_ms: float = Field(default=INTERVAL_STEP_MS, ge=0)
    min_interval_ms: float = Field(default=MIN_INTERVAL_MS, gt=0)

    hazard_chance: float = Field(default=HAZARD_CHANCE, ge=0, le=1)
    bonus_chance: float = Field(default=BONUS_CHANCE, ge=0, le=1)
    reinforced_base_chance: float = Field(default=REINFORCED_BASE_CHANCE, ge=0, le=1)
    reinforced_level_step: float = Field(default=REINFORCED_LEVEL_STEP, ge=0, le=1)
    reinforced_max_chance: float = Field(default=REINFORCED_MAX_CHANCE, ge=0, le=1)

    fall_speed_min: float = Field(default=FALL_SPEED_MIN, ge=0)
    fall_speed_max: float = Field(default=FALL_SPEED_MAX, ge=0)
    fall_speed_level_step: float = Field(default=FALL_SPEED_LEVEL_STEP, ge=0)

    combo_step: int = Field(default=COMBO_STEP, ge=1)
    max_combo_multiplier: int = Field(default=MAX_COMBO_MULTIPLIER, ge=1)

    size_profiles: Dict[SizeClass, SizeProfile] = Field(default_factory=lambda: dict(SIZE_PROFILES))
    size_weights: Tuple[float, ...] = SIZE_WEIGHTS
    category_modifiers: Dict[TargetCategory, CategoryModifier] = Field(
        default_factory=lambda: dict(CATEGORY_MODIFIERS)
    )

    @model_validator(mode='after')
    def validate_distribution(self) -> 'EngineConfig':
        """Check the spawn tables are complete and the probabilities fit in [0, 1]."""
        total = self.hazard_chance + self.bonus_chance + self.reinforced_max_chance
        if total > 1:
            raise ValueError(
                f'hazard + bonus + reinforced cap must not exceed 1, got {total:.3f}'
            )
        if self.fall_speed_max < self.fall_speed_min:
            raise ValueError('fall_speed_max must be >= fall_speed_min')
        missing_sizes = set(SizeClass) - set(self.size_profiles)
        if missing_sizes:
            raise ValueError(f'size_profiles missing {sorted(s.value for s in missing_sizes)}')
        missing_categories = set(TargetCategory) - set(self.category_modifiers)
        if missing_categories:
            raise ValueError(
                f'category_modifiers missing {sorted(c.value for c in missing_categories)}'
            )
        if (len(self.size_weights) != len(SizeClass) or sum(self.size_weights) <= 0
                or any(w < 0 for w in self.size_weights)):
            raise ValueError('size_weights needs one non-negative weight per size class')
        return self

    model_config = ConfigDict(frozen=True)
