"""
Targets and the target pool.

Targets fall straight down the field at a constant speed. The pool stores
them in a generation-tagged slot map: removal is O(1), a freed slot is
reused for the next spawn, and a stale TargetId can never resolve to the
newer target occupying its old slot.
"""
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from models import (
    Point2D,
    Rectangle,
    SizeClass,
    TargetCategory,
    TargetId,
    TargetView,
)


@dataclass
class Target:
    """A hittable object on the play field.

    Position is the center of the target. ``fall_speed`` is in pixels per
    second; the pool advances positions by active milliseconds.
    """
    category: TargetCategory
    size: SizeClass
    max_hits: int
    point_value: int
    x: float
    y: float
    width: float
    height: float
    fall_speed: float
    hits_remaining: int = -1
    spawned_at_ms: float = 0.0
    target_id: Optional[TargetId] = None
    destroyed: bool = False

    def __post_init__(self):
        if self.hits_remaining < 0:
            self.hits_remaining = self.max_hits
        if self.max_hits < 1:
            raise ValueError(f'max_hits must be at least 1, got {self.max_hits}')
        if not 1 <= self.hits_remaining <= self.max_hits:
            raise ValueError(
                f'hits_remaining must be between 1 and max_hits ({self.max_hits}), '
                f'got {self.hits_remaining}'
            )

    @property
    def is_hazard(self) -> bool:
        return self.category == TargetCategory.HAZARD

    @property
    def bounds(self) -> Rectangle:
        return Rectangle.centered(Point2D(x=self.x, y=self.y), self.width, self.height)

    def contains_point(self, point: Point2D) -> bool:
        """Check if a pointer position falls inside this target."""
        return self.bounds.contains_point(point)

    def advance(self, dt_ms: float) -> None:
        """Move the target down by ``dt_ms`` of active time."""
        if self.destroyed:
            return
        self.y += self.fall_speed * dt_ms / 1000.0

    def is_off_field(self, field_height: float, margin: float) -> bool:
        """True once the target's top edge has passed the far boundary."""
        return self.y - self.height / 2 > field_height + margin

    def take_hit(self) -> bool:
        """Remove one hit.

        Returns:
            True if this hit destroyed the target
        """
        if self.destroyed:
            return False
        self.hits_remaining = max(0, self.hits_remaining - 1)
        if self.hits_remaining == 0:
            self.destroyed = True
        return self.destroyed

    def age_ms(self, elapsed_active_ms: float) -> float:
        """Active time since this target spawned."""
        return max(0.0, elapsed_active_ms - self.spawned_at_ms)

    def to_view(self) -> TargetView:
        return TargetView(
            target_id=self.target_id,
            category=self.category,
            size=self.size,
            hits_remaining=self.hits_remaining,
            max_hits=self.max_hits,
            point_value=self.point_value,
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
        )


class TargetPool:
    """Owns the active targets of a session.

    Iteration yields the most recently spawned target first, which matches
    front-most visual stacking when targets overlap.
    """

    def __init__(self):
        self._slots: List[Optional[Target]] = []
        self._generations: List[int] = []
        self._free: List[int] = []
        # Insertion-ordered set of live ids (dict keeps order, O(1) delete)
        self._order: Dict[TargetId, None] = {}

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, target_id: TargetId) -> bool:
        return self.get(target_id) is not None

    def __iter__(self) -> Iterator[Target]:
        return iter(self.active())

    def add(self, target: Target) -> TargetId:
        """Insert a target, assigning it a fresh id."""
        if self._free:
            index = self._free.pop()
        else:
            index = len(self._slots)
            self._slots.append(None)
            self._generations.append(0)

        target_id = TargetId(index, self._generations[index])
        target.target_id = target_id
        self._slots[index] = target
        self._order[target_id] = None
        return target_id

    def get(self, target_id: TargetId) -> Optional[Target]:
        """Look up a live target; stale or unknown ids return None."""
        index, generation = target_id
        if not 0 <= index < len(self._slots):
            return None
        if self._generations[index] != generation:
            return None
        return self._slots[index]

    def remove(self, target_id: TargetId) -> Optional[Target]:
        """Remove a target. Returns it, or None if the id was already gone."""
        target = self.get(target_id)
        if target is None:
            return None
        index = target_id.index
        self._slots[index] = None
        self._generations[index] += 1
        self._free.append(index)
        del self._order[target_id]
        return target

    def active(self) -> List[Target]:
        """Live targets, most recently spawned first."""
        return [self._slots[tid.index] for tid in reversed(self._order)]

    def find_at(self, point: Point2D) -> Optional[Target]:
        """Front-most non-destroyed target containing ``point``."""
        for target in self.active():
            if not target.destroyed and target.contains_point(point):
                return target
        return None

    def advance(self, dt_ms: float) -> None:
        """Integrate fall distance for every live target."""
        if dt_ms <= 0:
            return
        for target in self.active():
            target.advance(dt_ms)

    def collect_off_field(self, field_height: float, margin: float) -> List[Target]:
        """Remove and return every target that has fallen off the field."""
        fallen = [t for t in self.active() if t.is_off_field(field_height, margin)]
        for target in fallen:
            self.remove(target.target_id)
        return fallen

    def clear(self) -> None:
        for target_id in list(self._order):
            self.remove(target_id)

    def views(self) -> List[TargetView]:
        return [t.to_view() for t in self.active()]
