"""
Scoring and combo rules.

Scoring is a pure function of (event, current ScoreState): every call
returns a new ScoreState plus the list of effects the event produced,
and never mutates its input. This keeps the rules trivially testable and
lets the session decide what to do with the effects (telemetry, achievement
checks, persistence updates).

Examples:
    >>> engine = ScoringEngine()
    >>> update = engine.apply(ScoreState(), Destroy(TargetCategory.ORDINARY, 50))
    >>> update.state.score, update.state.combo_count
    (50, 1)
    >>> engine.apply(update.state, Miss()).state.combo_count
    0
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from models import ScoreState, TargetCategory


def combo_multiplier(combo_count: int, step: int = 5, cap: int = 5) -> int:
    """Multiplier for a combo count: one extra step every ``step`` destroys, capped.

    Examples:
        >>> [combo_multiplier(c) for c in (0, 4, 5, 19, 20, 99)]
        [1, 1, 2, 4, 5, 5]
    """
    return min(combo_count // step + 1, cap)


class MissReason(str, Enum):
    """Why a miss was recorded."""
    POINTER = "pointer"        # pointer-down hit nothing
    OFF_FIELD = "off_field"    # target fell past the far boundary


class ScoreEffect(str, Enum):
    """Side effects reported alongside a new ScoreState."""
    CHOP = "chop"
    HAZARD_HIT = "hazard_hit"
    COMBO_BROKEN = "combo_broken"
    NEW_BEST_COMBO = "new_best_combo"
    FASTEST_RESOLUTION = "fastest_resolution"
    SCORE_CHANGED = "score_changed"


@dataclass(frozen=True)
class Miss:
    """A pointer miss or a target lost off the field."""
    reason: MissReason = MissReason.POINTER


@dataclass(frozen=True)
class Destroy:
    """A target's last hit landed."""
    category: TargetCategory
    point_value: int
    reaction_ms: Optional[float] = None


ScoringEvent = Union[Miss, Destroy]


@dataclass(frozen=True)
class ScoreUpdate:
    """Result of applying one scoring event.

    Attributes:
        state: New score state
        points: Score delta actually applied (after clamping)
        multiplier: Multiplier used for the award (0 for misses and hazards)
        effects: What happened, in the order it happened
    """
    state: ScoreState
    points: int = 0
    multiplier: int = 0
    effects: List[ScoreEffect] = field(default_factory=list)

    def has(self, effect: ScoreEffect) -> bool:
        return effect in self.effects


class ScoringEngine:
    """Applies scoring events to score states.

    Args:
        combo_step: Destroys needed for each multiplier step
        max_multiplier: Multiplier cap
    """

    def __init__(self, combo_step: int = 5, max_multiplier: int = 5):
        self.combo_step = combo_step
        self.max_multiplier = max_multiplier

    def multiplier(self, combo_count: int) -> int:
        return combo_multiplier(combo_count, self.combo_step, self.max_multiplier)

    def apply(self, state: ScoreState, event: ScoringEvent) -> ScoreUpdate:
        """Apply an event and return the new state with its effects."""
        if isinstance(event, Miss):
            return self.record_miss(state)
        if isinstance(event, Destroy):
            if event.category == TargetCategory.HAZARD:
                return self.record_hazard(state, event.point_value)
            return self.record_destroy(state, event)
        raise TypeError(f"Unsupported scoring event: {event!r}")

    def record_miss(self, state: ScoreState) -> ScoreUpdate:
        """Combo resets to 0; score is untouched."""
        effects = [ScoreEffect.COMBO_BROKEN] if state.combo_count > 0 else []
        return ScoreUpdate(
            state=state.model_copy(update={'combo_count': 0}),
            effects=effects,
        )

    def record_hazard(self, state: ScoreState, point_value: int) -> ScoreUpdate:
        """Hazards always break the combo and subtract points, clamped at 0."""
        new_score = max(0, state.score + point_value)
        effects = [ScoreEffect.HAZARD_HIT]
        if state.combo_count > 0:
            effects.append(ScoreEffect.COMBO_BROKEN)
        if new_score != state.score:
            effects.append(ScoreEffect.SCORE_CHANGED)

        return ScoreUpdate(
            state=state.model_copy(update={
                'score': new_score,
                'combo_count': 0,
                'chopped_by_category': _bump(state.chopped_by_category, TargetCategory.HAZARD),
            }),
            points=new_score - state.score,
            effects=effects,
        )

    def record_destroy(self, state: ScoreState, event: Destroy) -> ScoreUpdate:
        """Non-hazard destroy: extend the combo and award points times multiplier."""
        combo = state.combo_count + 1
        multiplier = self.multiplier(combo)
        points = event.point_value * multiplier
        new_score = max(0, state.score + points)
        best = max(state.best_combo, combo)

        effects = [ScoreEffect.CHOP]
        if new_score != state.score:
            effects.append(ScoreEffect.SCORE_CHANGED)
        if best > state.best_combo:
            effects.append(ScoreEffect.NEW_BEST_COMBO)

        fastest = state.fastest_resolution_ms
        if event.reaction_ms is not None and (fastest is None or event.reaction_ms < fastest):
            fastest = event.reaction_ms
            effects.append(ScoreEffect.FASTEST_RESOLUTION)

        return ScoreUpdate(
            state=state.model_copy(update={
                'score': new_score,
                'combo_count': combo,
                'best_combo': best,
                'total_chops': state.total_chops + 1,
                'fastest_resolution_ms': fastest,
                'chopped_by_category': _bump(state.chopped_by_category, event.category),
            }),
            points=new_score - state.score,
            multiplier=multiplier,
            effects=effects,
        )


def _bump(counts, category: TargetCategory):
    updated = dict(counts)
    updated[category.value] = updated.get(category.value, 0) + 1
    return updated
