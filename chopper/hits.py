"""
Hit resolution.

Maps a pointer position to at most one target and applies one hit to it.
Scoring is not done here; the outcome tells the session which scoring
event (if any) to apply.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models import Point2D, TargetId
from chopper.targets import Target, TargetPool


class HitKind(str, Enum):
    """Outcome of a single pointer-down."""
    MISS = "miss"          # nothing under the pointer
    DAMAGE = "damage"      # target hit but still standing
    DESTROY = "destroy"    # last hit landed; target removed from the pool
    IGNORED = "ignored"    # id-addressed hit on a target that is already gone


@dataclass(frozen=True)
class HitOutcome:
    kind: HitKind
    target: Optional[Target] = None

    @property
    def target_id(self) -> Optional[TargetId]:
        return self.target.target_id if self.target is not None else None


class HitResolver:
    """Applies pointer hits to the targets in a pool."""

    def __init__(self, pool: TargetPool):
        self.pool = pool

    def resolve(self, point: Point2D) -> HitOutcome:
        """Hit the front-most target under ``point``, if any.

        Scans most-recently-spawned first and stops at the first match, so
        overlapping targets are never both damaged by one pointer-down.
        """
        target = self.pool.find_at(point)
        if target is None:
            return HitOutcome(HitKind.MISS)
        return self._apply(target)

    def hit(self, target_id: TargetId) -> HitOutcome:
        """Hit a specific target by id.

        A target removed since the caller saw it (destroyed, or fallen off
        the field on an earlier tick) is not an error: the hit is ignored.
        """
        target = self.pool.get(target_id)
        if target is None or target.destroyed:
            return HitOutcome(HitKind.IGNORED)
        return self._apply(target)

    def _apply(self, target: Target) -> HitOutcome:
        if target.take_hit():
            self.pool.remove(target.target_id)
            return HitOutcome(HitKind.DESTROY, target)
        return HitOutcome(HitKind.DAMAGE, target)
