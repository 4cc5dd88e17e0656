"""
Input Event - A single pointer-down or pause-toggle signal.

Uses Pydantic for validation and immutability.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from models import Point2D


class InputKind(str, Enum):
    """Signals the engine accepts from the input surface."""
    POINTER_DOWN = "pointer_down"
    PAUSE_TOGGLE = "pause_toggle"


class InputEvent(BaseModel):
    """Immutable input event from any source.

    Attributes:
        kind: What the player did
        timestamp: Time of the event in milliseconds (monotonic clock)
        position: Play-field position, required for pointer-down events
    """
    kind: InputKind
    timestamp: float
    position: Optional[Point2D] = None

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v: float) -> float:
        """Validate timestamp is non-negative."""
        if v < 0:
            raise ValueError(f'Timestamp must be non-negative, got {v}')
        return v

    @model_validator(mode='after')
    def validate_position(self) -> 'InputEvent':
        """Pointer events must say where they happened."""
        if self.kind == InputKind.POINTER_DOWN and self.position is None:
            raise ValueError('pointer_down events need a position')
        return self

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.position is None:
            return f"InputEvent({self.kind.value}, t={self.timestamp:.1f})"
        return (f"InputEvent({self.kind.value}, pos=({self.position.x:.1f}, "
                f"{self.position.y:.1f}), t={self.timestamp:.1f})")
