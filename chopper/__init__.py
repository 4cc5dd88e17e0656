"""
Chopper - arcade target-chopping session engine.

Targets fall down a play field; the player chops them by clicking. The
engine owns one session at a time (spawning, hit resolution, combos,
levels, achievements) and hands persistence and telemetry to an outbox
that is delivered off the game loop.

Usage:
    >>> from chopper import Session
    >>> session = Session(player_id='p1')
    >>> session.start(now=0)
    >>> session.tick(now=16).level
    1
"""

from chopper.errors import CatalogError, ChopperError, InvalidSessionState
from chopper.session import Session

__all__ = ['Session', 'ChopperError', 'InvalidSessionState', 'CatalogError']
