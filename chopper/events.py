"""
Chopper result types.

HitResult is what the session returns for every pointer-down or
id-addressed hit: the outcome, the target involved and the scoring it
caused. Display layers use it for feedback (hit flashes, score popups).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import TargetView
from chopper.hits import HitKind


class HitResult(BaseModel):
    """
    Result of delivering one hit to the session.

    ``points`` is the score delta actually applied (negative for a hazard,
    0 for a miss or damage-only hit).
    """
    kind: HitKind = Field(..., description="miss, damage, destroy or ignored")
    target: Optional[TargetView] = Field(default=None, description="Target that was hit")
    points: int = Field(default=0, description="Score delta applied")
    multiplier: int = Field(default=0, description="Combo multiplier used for the award")
    score: int = Field(default=0, description="Session score after the hit")
    combo_count: int = Field(default=0, description="Combo after the hit")

    model_config = ConfigDict(frozen=True)

    @property
    def destroyed(self) -> bool:
        return self.kind == HitKind.DESTROY
