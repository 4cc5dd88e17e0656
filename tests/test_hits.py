"""Tests for hit resolution."""

import pytest

from models import Point2D, TargetId
from chopper.hits import HitKind, HitResolver
from chopper.targets import TargetPool


class TestHitResolver:
    """Tests for HitResolver."""

    @pytest.fixture
    def pool(self):
        return TargetPool()

    @pytest.fixture
    def resolver(self, pool):
        return HitResolver(pool)

    def test_miss(self, resolver):
        outcome = resolver.resolve(Point2D(x=10, y=10))
        assert outcome.kind == HitKind.MISS
        assert outcome.target is None
        assert outcome.target_id is None

    def test_damage_keeps_target(self, resolver, pool, make_target):
        target_id = pool.add(make_target(hits=2))
        outcome = resolver.resolve(Point2D(x=100, y=100))

        assert outcome.kind == HitKind.DAMAGE
        assert outcome.target_id == target_id
        assert outcome.target.hits_remaining == 1
        assert target_id in pool

    def test_destroy_removes_target(self, resolver, pool, make_target):
        target_id = pool.add(make_target(hits=1))
        outcome = resolver.resolve(Point2D(x=100, y=100))

        assert outcome.kind == HitKind.DESTROY
        assert outcome.target.destroyed
        assert target_id not in pool

    def test_one_target_per_pointer(self, resolver, pool, make_target):
        """Overlapping targets: only the front-most one takes the hit."""
        back = make_target(x=100, y=100, hits=2)
        front = make_target(x=110, y=100, hits=2)
        pool.add(back)
        pool.add(front)

        resolver.resolve(Point2D(x=105, y=100))

        assert front.hits_remaining == 1
        assert back.hits_remaining == 2

    def test_hit_by_id(self, resolver, pool, make_target):
        target_id = pool.add(make_target(hits=2))
        assert resolver.hit(target_id).kind == HitKind.DAMAGE
        assert resolver.hit(target_id).kind == HitKind.DESTROY

    def test_hit_removed_id_is_ignored(self, resolver, pool, make_target):
        """An id whose target is gone is not an error."""
        target_id = pool.add(make_target(hits=1))
        resolver.hit(target_id)

        outcome = resolver.hit(target_id)
        assert outcome.kind == HitKind.IGNORED

    def test_stale_id_does_not_hit_slot_reuser(self, resolver, pool, make_target):
        """A stale id never lands on the target reusing its slot."""
        old_id = pool.add(make_target(hits=1))
        pool.remove(old_id)
        newcomer = make_target(hits=1)
        pool.add(newcomer)

        assert resolver.hit(old_id).kind == HitKind.IGNORED
        assert newcomer.hits_remaining == 1

    def test_unknown_id(self, resolver):
        assert resolver.hit(TargetId(42, 0)).kind == HitKind.IGNORED
