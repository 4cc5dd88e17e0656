"""
Outbound messages.

The session never calls persistence or telemetry directly. It appends
immutable messages to an Outbox during its synchronous mutation, and a
dispatcher drains them asynchronously afterwards. Gameplay therefore
never waits on, or fails because of, an external collaborator.
"""

from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models import GameMode, SessionSnapshot


class OutboundMessage(BaseModel):
    """Base for everything the session sends to collaborators."""
    session_key: str
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(frozen=True)


class CreateSession(OutboundMessage):
    kind: Literal['create_session'] = 'create_session'
    player_id: str
    mode: GameMode


class UpdateSession(OutboundMessage):
    """Latest progress of a running session."""
    kind: Literal['update_session'] = 'update_session'
    score: int
    level: int
    combo_count: int
    best_combo: int


class EndSession(OutboundMessage):
    kind: Literal['end_session'] = 'end_session'
    snapshot: SessionSnapshot


class UpdatePlayerStats(OutboundMessage):
    """Deltas to fold into the player's lifetime aggregates."""
    kind: Literal['update_player_stats'] = 'update_player_stats'
    player_id: str
    score_delta: int = Field(..., ge=0)
    chops_delta: int = Field(..., ge=0)
    combo_observed: int = Field(..., ge=0)
    play_time_ms: float = Field(..., ge=0)
    fastest_resolution_ms: Optional[float] = None


class RecordAchievementUnlock(OutboundMessage):
    kind: Literal['record_achievement_unlock'] = 'record_achievement_unlock'
    player_id: str
    achievement_id: str


class TelemetryEvent(OutboundMessage):
    """Side-channel notification (spawn, hit, miss, destroy, level-up...)."""
    kind: Literal['telemetry'] = 'telemetry'
    event: str
    elapsed_active_ms: float = 0.0
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        """Flatten into a JSON-able structured log record."""
        return {
            'type': self.event,
            'session_key': self.session_key,
            'elapsed_active_ms': self.elapsed_active_ms,
            **self.data,
        }


Message = Union[
    CreateSession,
    UpdateSession,
    EndSession,
    UpdatePlayerStats,
    RecordAchievementUnlock,
    TelemetryEvent,
]


class Outbox:
    """FIFO of outbound messages.

    A pending UpdateSession for the same session is replaced in place by
    the newer one, so at most one progress update per session waits in
    the queue; only the latest progress matters to the store.
    """

    def __init__(self):
        self._queue: Deque[Message] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def push(self, message: Message) -> None:
        if isinstance(message, UpdateSession):
            for index, pending in enumerate(self._queue):
                if (isinstance(pending, UpdateSession)
                        and pending.session_key == message.session_key):
                    self._queue[index] = message
                    return
        self._queue.append(message)

    def pop(self) -> Optional[Message]:
        return self._queue.popleft() if self._queue else None

    def drain(self) -> List[Message]:
        """Remove and return every queued message, oldest first."""
        messages = list(self._queue)
        self._queue.clear()
        return messages

    def peek_all(self) -> List[Message]:
        return list(self._queue)
