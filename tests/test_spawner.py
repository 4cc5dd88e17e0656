"""Tests for the spawner."""

import random
from collections import Counter
from unittest.mock import Mock

import pytest

from models import SizeClass, TargetCategory
from chopper.config import EngineConfig
from chopper.spawner import Spawner


def _fixed_roll(value):
    rng = Mock()
    rng.random.return_value = value
    return rng


class TestSpawnCadence:
    """Tests for spawn timing."""

    def test_is_due(self):
        spawner = Spawner(EngineConfig(), random.Random(0))
        assert not spawner.is_due(1899, 1900)
        assert spawner.is_due(1900, 1900)

    def test_spawn_restarts_cadence(self):
        spawner = Spawner(EngineConfig(), random.Random(0))
        target = spawner.spawn(level=1, elapsed_active_ms=1900)

        assert spawner.last_spawn_ms == 1900
        assert target.spawned_at_ms == 1900
        assert not spawner.is_due(3000, 1900)
        assert spawner.is_due(3800, 1900)

    def test_reset(self):
        spawner = Spawner(EngineConfig(), random.Random(0))
        spawner.spawn(1, 5000)
        spawner.reset()
        assert spawner.last_spawn_ms == 0


class TestCategoryDraw:
    """Tests for the weighted category draw."""

    @pytest.mark.parametrize("roll, expected", [
        (0.0, TargetCategory.HAZARD),
        (0.019, TargetCategory.HAZARD),
        (0.02, TargetCategory.BONUS),
        (0.069, TargetCategory.BONUS),
        (0.071, TargetCategory.REINFORCED),
        (0.299, TargetCategory.REINFORCED),
        (0.301, TargetCategory.ORDINARY),
        (0.99, TargetCategory.ORDINARY),
    ])
    def test_thresholds_at_level_one(self, roll, expected):
        """hazard 0.02, bonus 0.05, reinforced 0.18 + 0.05 at level 1."""
        spawner = Spawner(EngineConfig(), _fixed_roll(roll))
        assert spawner.choose_category(level=1) == expected

    def test_reinforced_grows_with_level(self):
        spawner = Spawner(EngineConfig())
        assert spawner.reinforced_chance(1) == pytest.approx(0.23)
        assert spawner.reinforced_chance(4) == pytest.approx(0.38)

    def test_reinforced_capped(self):
        spawner = Spawner(EngineConfig())
        assert spawner.reinforced_chance(9) == pytest.approx(0.6)
        assert spawner.reinforced_chance(100) == pytest.approx(0.6)

    def test_distribution_roughly_matches(self):
        """Over many draws the hazard and bonus rates are near their constants."""
        spawner = Spawner(EngineConfig(), random.Random(42))
        counts = Counter(spawner.choose_category(1) for _ in range(20000))

        assert counts[TargetCategory.HAZARD] / 20000 == pytest.approx(0.02, abs=0.01)
        assert counts[TargetCategory.BONUS] / 20000 == pytest.approx(0.05, abs=0.015)
        assert counts[TargetCategory.ORDINARY] > counts[TargetCategory.REINFORCED]


class TestBuild:
    """Tests for building targets from size profiles and category modifiers."""

    @pytest.fixture
    def spawner(self):
        return Spawner(EngineConfig(), random.Random(7))

    def test_small_ordinary(self, spawner):
        target = spawner.build(TargetCategory.ORDINARY, SizeClass.SMALL, level=1)
        assert target.max_hits == 1
        assert target.hits_remaining == 1
        assert target.point_value == 10

    def test_reinforced_adds_a_hit(self, spawner):
        target = spawner.build(TargetCategory.REINFORCED, SizeClass.MEDIUM, level=1)
        assert target.max_hits == 3
        assert target.point_value == 40

    def test_bonus_single_hit_large_payout(self, spawner):
        target = spawner.build(TargetCategory.BONUS, SizeClass.GIANT, level=1)
        assert target.max_hits == 1
        assert target.point_value == 400

    def test_hazard_negative_single_hit(self, spawner):
        target = spawner.build(TargetCategory.HAZARD, SizeClass.SMALL, level=1)
        assert target.max_hits == 1
        assert target.point_value == -100
        assert target.is_hazard

    def test_starts_above_field_within_width(self, spawner):
        config = EngineConfig()
        for _ in range(50):
            target = spawner.build(TargetCategory.ORDINARY, SizeClass.GIANT, level=1)
            assert target.y == -target.height / 2
            assert target.width / 2 <= target.x <= config.field_width - target.width / 2

    def test_fall_speed_widens_with_level(self, spawner):
        for level in (1, 5, 10):
            for _ in range(50):
                speed = spawner.fall_speed(level)
                assert 100 <= speed <= 150 + 10 * level

    def test_size_weights(self):
        """A zero weight means that size is never drawn."""
        spawner = Spawner(EngineConfig(size_weights=(1, 0, 0, 0)), random.Random(3))
        assert {spawner.choose_size() for _ in range(100)} == {SizeClass.SMALL}

    def test_spawn_with_seed_is_reproducible(self):
        a = Spawner(EngineConfig(), random.Random(99))
        b = Spawner(EngineConfig(), random.Random(99))
        ta = [a.spawn(2, i * 1000) for i in range(10)]
        tb = [b.spawn(2, i * 1000) for i in range(10)]
        assert [(t.category, t.size, t.x, t.fall_speed) for t in ta] == \
               [(t.category, t.size, t.x, t.fall_speed) for t in tb]
