"""
Chopping game data models.

Enumerations and Pydantic models shared by the engine, the persistence
boundary and anything that displays a session: target categories and
sizes, session states, the score state carried between scoring events,
read-only snapshots and the achievement catalog/progress records.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class TargetCategory(str, Enum):
    """What kind of target fell onto the field.

    Attributes:
        ORDINARY: Plain target, base points
        REINFORCED: Takes one extra hit, worth more
        BONUS: Rare single-hit target with a large payout
        HAZARD: Must not be hit; costs points and breaks the combo
    """
    ORDINARY = "ordinary"
    REINFORCED = "reinforced"
    BONUS = "bonus"
    HAZARD = "hazard"


class SizeClass(str, Enum):
    """Size of a target; determines base hits and base points."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    GIANT = "giant"


class GameMode(str, Enum):
    """Mode label a session is created with."""
    CLASSIC = "classic"
    TIME_ATTACK = "time_attack"
    SURVIVAL = "survival"


class SessionState(str, Enum):
    """Lifecycle states of a session.

    Idle -> Running <-> Paused, and Running/Paused -> Ended (terminal).
    """
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


class RequirementKind(str, Enum):
    """Requirement kinds the achievement evaluator understands.

    UNKNOWN stands in for any kind string this engine does not recognise,
    e.g. definitions written for features that are not implemented yet.
    """
    CUMULATIVE_SCORE = "cumulative_score"
    COMBO_THRESHOLD = "combo_threshold"
    SINGLE_SESSION_CHOPS = "single_session_chop_count"
    LIFETIME_CHOPS = "lifetime_chop_count"
    REACTION_TIME_CEILING = "reaction_time_ceiling"
    UNKNOWN = "unknown"


# Kind names used by the hosted backend's catalog format
_KIND_ALIASES: Dict[str, RequirementKind] = {
    'score': RequirementKind.CUMULATIVE_SCORE,
    'combo': RequirementKind.COMBO_THRESHOLD,
    'chops_single_game': RequirementKind.SINGLE_SESSION_CHOPS,
    'chops': RequirementKind.LIFETIME_CHOPS,
    'total_chops': RequirementKind.LIFETIME_CHOPS,
    'reaction_time': RequirementKind.REACTION_TIME_CEILING,
}


def parse_requirement_kind(raw: str) -> RequirementKind:
    """Map a catalog kind string to a RequirementKind (UNKNOWN if unrecognised).

    Accepts the canonical values, hyphenated spellings and the short
    aliases used by the hosted backend.

    Examples:
        >>> parse_requirement_kind('cumulative-score')
        <RequirementKind.CUMULATIVE_SCORE: 'cumulative_score'>
        >>> parse_requirement_kind('survival_time')
        <RequirementKind.UNKNOWN: 'unknown'>
    """
    key = raw.strip().lower().replace('-', '_')
    if key in _KIND_ALIASES:
        return _KIND_ALIASES[key]
    try:
        kind = RequirementKind(key)
    except ValueError:
        return RequirementKind.UNKNOWN
    return kind


class TargetId(NamedTuple):
    """Stable handle to a target slot.

    The generation is bumped every time a slot is reused, so a handle to a
    removed target never aliases the target that later occupies its slot.
    """
    index: int
    generation: int

    def __str__(self) -> str:
        return f"{self.index}:{self.generation}"


class TargetView(BaseModel):
    """Read-only view of an active target for display."""
    target_id: TargetId
    category: TargetCategory
    size: SizeClass
    hits_remaining: int
    max_hits: int
    point_value: int
    x: float
    y: float
    width: float
    height: float

    model_config = ConfigDict(frozen=True)


class ScoreState(BaseModel):
    """Immutable scoring state carried from one scoring event to the next.

    Attributes:
        score: Total points, never negative
        combo_count: Current streak of non-hazard destroys
        best_combo: Longest streak seen this session
        total_chops: Number of non-hazard destroys
        fastest_resolution_ms: Smallest reaction time reported, if any
        chopped_by_category: Destroy counts keyed by category value
    """
    score: int = 0
    combo_count: int = 0
    best_combo: int = 0
    total_chops: int = 0
    fastest_resolution_ms: Optional[float] = None
    chopped_by_category: Dict[str, int] = Field(default_factory=dict)

    @field_validator('score', 'combo_count', 'best_combo', 'total_chops')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Counters must be non-negative."""
        if v < 0:
            raise ValueError(f'Value must be non-negative, got {v}')
        return v

    @model_validator(mode='after')
    def validate_best_combo(self) -> 'ScoreState':
        """best_combo can never trail the live combo."""
        if self.best_combo < self.combo_count:
            raise ValueError(
                f'best_combo ({self.best_combo}) must be >= combo_count ({self.combo_count})'
            )
        return self

    model_config = ConfigDict(frozen=True)


class SessionSnapshot(BaseModel):
    """Frozen read-only copy of a session's state.

    Produced every tick for display and once more when the session ends,
    when it becomes the record handed to persistence.
    """
    session_key: str
    player_id: str
    mode: GameMode
    state: SessionState
    score: int
    combo_count: int
    best_combo: int
    multiplier: int
    level: int
    total_chops: int
    fastest_resolution_ms: Optional[float] = None
    spawn_interval_ms: float
    elapsed_active_ms: float
    chopped_by_category: Dict[str, int] = Field(default_factory=dict)
    targets: List[TargetView] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class PlayerLifetimeStats(BaseModel):
    """Aggregates a player has accumulated over all finished sessions."""
    total_chops: int = Field(default=0, ge=0)
    total_score: int = Field(default=0, ge=0)
    high_score: int = Field(default=0, ge=0)
    games_played: int = Field(default=0, ge=0)
    total_play_time_ms: float = Field(default=0.0, ge=0)
    longest_combo: int = Field(default=0, ge=0)
    fastest_resolution_ms: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class AchievementDefinition(BaseModel):
    """One entry of the achievement catalog (read-only to the engine).

    Catalog entries may nest the requirement the way the hosted backend
    stores it::

        {"id": "score_rookie", "requirement": {"type": "score", "value": 1000}}

    or give it flat as ``kind``/``threshold``. ``raw_kind`` keeps the
    original string so unknown kinds are still visible when debugging.
    """
    id: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    icon: str = ""
    points: int = 0
    rarity: str = "common"
    kind: RequirementKind
    raw_kind: str
    threshold: float = Field(..., ge=0)

    @model_validator(mode='before')
    @classmethod
    def flatten_requirement(cls, data: Any) -> Any:
        """Accept the nested ``requirement`` form and normalise kind strings."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        requirement = data.pop('requirement', None)
        if isinstance(requirement, dict):
            data.setdefault('kind', requirement.get('type'))
            data.setdefault('threshold', requirement.get('value'))
        kind = data.get('kind')
        if isinstance(kind, str):
            data.setdefault('raw_kind', kind)
            data['kind'] = parse_requirement_kind(kind)
        elif isinstance(kind, RequirementKind):
            data.setdefault('raw_kind', kind.value)
        return data

    model_config = ConfigDict(frozen=True)


class AchievementProgress(BaseModel):
    """A player's progress toward one achievement.

    Once ``unlocked`` is set the record is final: the evaluator never
    replaces it again.
    """
    achievement_id: str
    progress: float = Field(default=0.0, ge=0)
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)
