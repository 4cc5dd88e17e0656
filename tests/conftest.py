"""Shared fixtures for the chopper tests."""
import random

import pytest

from models import SizeClass, TargetCategory
from chopper.session import Session
from chopper.targets import Target
from chopper.timer import ManualClock


@pytest.fixture
def clock():
    """Manual millisecond clock starting at 0."""
    return ManualClock()


@pytest.fixture
def rng():
    """Seeded random source for reproducible spawns."""
    return random.Random(1234)


@pytest.fixture
def make_target():
    """Factory for hand-placed targets."""
    def _make(
        category=TargetCategory.ORDINARY,
        x=100.0,
        y=100.0,
        hits=1,
        points=50,
        size=SizeClass.SMALL,
        width=50.0,
        height=40.0,
        fall_speed=100.0,
    ) -> Target:
        return Target(
            category=category,
            size=size,
            max_hits=hits,
            point_value=points,
            x=x,
            y=y,
            width=width,
            height=height,
            fall_speed=fall_speed,
        )
    return _make


@pytest.fixture
def session(clock, rng):
    """A session driven by the manual clock, not started yet."""
    return Session(player_id='player-1', rng=rng, clock=clock, session_key='s-1')


@pytest.fixture
def running(session):
    """A session started at t=0."""
    session.start(now=0)
    return session
