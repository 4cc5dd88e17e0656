"""
Data models for the chopping game.

This package provides all Pydantic data models used across the system:
- Primitives: Basic geometry (Point2D, Rectangle)
- Chop: Target, session, scoring and achievement models

Usage:
    >>> from models import Point2D, SessionSnapshot
    >>> from models.chop import RequirementKind
"""

from .primitives import (
    Point2D,
    Rectangle,
)

from .chop import (
    TargetCategory,
    SizeClass,
    GameMode,
    SessionState,
    RequirementKind,
    parse_requirement_kind,
    TargetId,
    TargetView,
    ScoreState,
    SessionSnapshot,
    PlayerLifetimeStats,
    AchievementDefinition,
    AchievementProgress,
)

__all__ = [
    # Primitives
    'Point2D',
    'Rectangle',
    # Chop
    'TargetCategory',
    'SizeClass',
    'GameMode',
    'SessionState',
    'RequirementKind',
    'parse_requirement_kind',
    'TargetId',
    'TargetView',
    'ScoreState',
    'SessionSnapshot',
    'PlayerLifetimeStats',
    'AchievementDefinition',
    'AchievementProgress',
]
