"""
Tests for scoring and combo rules.

Covers the ScoreState model, the multiplier formula and every
ScoringEngine transition, including the worked scoring scenarios.
"""

import random

import pytest
from pydantic import ValidationError

from models import ScoreState, TargetCategory
from chopper.scoring import (
    Destroy,
    Miss,
    MissReason,
    ScoreEffect,
    ScoringEngine,
    combo_multiplier,
)


def ordinary(points=50, reaction_ms=None):
    return Destroy(TargetCategory.ORDINARY, points, reaction_ms)


def hazard(points=-100):
    return Destroy(TargetCategory.HAZARD, points)


@pytest.fixture
def engine():
    return ScoringEngine()


# ============================================================================
# ScoreState Model Tests
# ============================================================================


class TestScoreStateValidation:
    """Test ScoreState model validation."""

    def test_defaults(self):
        state = ScoreState()
        assert state.score == 0
        assert state.combo_count == 0
        assert state.best_combo == 0
        assert state.total_chops == 0
        assert state.fastest_resolution_ms is None
        assert state.chopped_by_category == {}

    def test_negative_score_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            ScoreState(score=-1)
        assert 'non-negative' in str(exc_info.value).lower()

    def test_best_combo_cannot_trail_combo(self):
        with pytest.raises(ValidationError):
            ScoreState(combo_count=5, best_combo=3)

    def test_frozen(self):
        state = ScoreState()
        with pytest.raises(ValidationError):
            state.score = 10


# ============================================================================
# Multiplier
# ============================================================================


@pytest.mark.parametrize("combo", range(0, 40))
def test_multiplier_formula(combo):
    """multiplier(c) = min(floor(c / 5) + 1, 5)."""
    assert combo_multiplier(combo) == min(combo // 5 + 1, 5)


def test_multiplier_custom_table():
    engine = ScoringEngine(combo_step=3, max_multiplier=2)
    assert [engine.multiplier(c) for c in (0, 2, 3, 10)] == [1, 1, 2, 2]


# ============================================================================
# Scenarios
# ============================================================================


class TestScoringScenarios:
    """Worked scoring examples."""

    def test_four_ordinary_destroys(self, engine):
        """Four destroys of 50: combo 4, score 200, multiplier 1 throughout."""
        state = ScoreState()
        for _ in range(4):
            update = engine.apply(state, ordinary(50))
            assert update.multiplier == 1
            state = update.state

        assert state.combo_count == 4
        assert state.score == 200

    def test_fifth_destroy_doubles(self, engine):
        """The fifth destroy in a row scores at 2x: 300 total."""
        state = ScoreState()
        for _ in range(4):
            state = engine.apply(state, ordinary(50)).state

        update = engine.apply(state, ordinary(50))

        assert update.state.combo_count == 5
        assert update.multiplier == 2
        assert update.points == 100
        assert update.state.score == 300

    def test_miss_resets_combo_keeps_best(self, engine):
        """From combo 10 a miss resets combo; best stays 10."""
        state = ScoreState(score=500, combo_count=10, best_combo=10)
        update = engine.apply(state, Miss())

        assert update.state.combo_count == 0
        assert update.state.best_combo == 10
        assert update.state.score == 500
        assert update.has(ScoreEffect.COMBO_BROKEN)

    def test_hazard_clamps_score_at_zero(self, engine):
        """Hazard of -100 at score 40 leaves 0, not -60."""
        state = ScoreState(score=40, combo_count=3, best_combo=3)
        update = engine.apply(state, hazard(-100))

        assert update.state.score == 0
        assert update.points == -40
        assert update.state.combo_count == 0


# ============================================================================
# Transitions
# ============================================================================


class TestMiss:
    """Tests for misses."""

    def test_miss_without_combo_has_no_effects(self, engine):
        update = engine.apply(ScoreState(score=10), Miss())
        assert update.effects == []
        assert update.points == 0

    def test_off_field_miss_same_as_pointer_miss(self, engine):
        state = ScoreState(combo_count=4, best_combo=4)
        pointer = engine.apply(state, Miss(MissReason.POINTER))
        off_field = engine.apply(state, Miss(MissReason.OFF_FIELD))
        assert pointer.state == off_field.state


class TestHazard:
    """Tests for hazard destroys."""

    @pytest.mark.parametrize("score, combo", [(0, 0), (40, 3), (100, 9), (5000, 42)])
    def test_hazard_always_resets_combo(self, engine, score, combo):
        state = ScoreState(score=score, combo_count=combo, best_combo=combo)
        update = engine.apply(state, hazard(-100))

        assert update.state.combo_count == 0
        assert update.state.score == max(0, score - 100)
        assert update.state.score >= 0
        assert update.state.best_combo == combo

    def test_hazard_is_not_a_chop(self, engine):
        update = engine.apply(ScoreState(score=500), hazard())
        assert update.state.total_chops == 0
        assert update.state.chopped_by_category == {'hazard': 1}
        assert update.has(ScoreEffect.HAZARD_HIT)
        assert update.multiplier == 0

    def test_hazard_ignores_reaction_time(self, engine):
        update = engine.apply(ScoreState(), Destroy(TargetCategory.HAZARD, -100, 50.0))
        assert update.state.fastest_resolution_ms is None


class TestDestroy:
    """Tests for non-hazard destroys."""

    def test_destroy_counts(self, engine):
        update = engine.apply(ScoreState(), Destroy(TargetCategory.BONUS, 250))

        assert update.state.total_chops == 1
        assert update.state.best_combo == 1
        assert update.state.chopped_by_category == {'bonus': 1}
        assert update.has(ScoreEffect.CHOP)
        assert update.has(ScoreEffect.NEW_BEST_COMBO)

    def test_input_state_not_mutated(self, engine):
        state = ScoreState()
        engine.apply(state, ordinary())
        assert state == ScoreState()

    def test_multiplier_capped(self, engine):
        state = ScoreState(combo_count=30, best_combo=30)
        update = engine.apply(state, ordinary(10))
        assert update.multiplier == 5
        assert update.points == 50

    def test_reaction_time_keeps_fastest(self, engine):
        state = engine.apply(ScoreState(), ordinary(reaction_ms=400)).state
        assert state.fastest_resolution_ms == 400

        update = engine.apply(state, ordinary(reaction_ms=250))
        assert update.state.fastest_resolution_ms == 250
        assert update.has(ScoreEffect.FASTEST_RESOLUTION)

        update = engine.apply(update.state, ordinary(reaction_ms=300))
        assert update.state.fastest_resolution_ms == 250
        assert not update.has(ScoreEffect.FASTEST_RESOLUTION)

    def test_missing_reaction_time_leaves_fastest(self, engine):
        state = ScoreState(fastest_resolution_ms=300)
        update = engine.apply(state, ordinary())
        assert update.state.fastest_resolution_ms == 300

    def test_unsupported_event(self, engine):
        with pytest.raises(TypeError):
            engine.apply(ScoreState(), object())


def test_best_combo_never_decreases(engine):
    """Over a random event sequence best_combo is non-decreasing and >= combo."""
    rng = random.Random(5)
    state = ScoreState()
    best = 0
    for _ in range(500):
        roll = rng.random()
        if roll < 0.2:
            event = Miss()
        elif roll < 0.25:
            event = hazard(-rng.randint(10, 200))
        else:
            event = ordinary(rng.choice((10, 20, 40, 80)))
        state = engine.apply(state, event).state

        assert state.best_combo >= best
        assert state.best_combo >= state.combo_count
        assert state.score >= 0
        best = state.best_combo
