"""
Persistence boundary.

PersistenceBackend is the contract the dispatcher talks to. Every method
is a coroutine; the engine never awaits them from gameplay code.

InMemoryBackend is a complete reference implementation used by the
simulator and the tests. A hosted store implements the same methods.
"""
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from models import (
    AchievementDefinition,
    GameMode,
    PlayerLifetimeStats,
    SessionSnapshot,
)
from chopper import achievements
from chopper.logging import get_logger

log = get_logger('persistence')


class PersistenceError(Exception):
    """Raised by backends for unknown players/sessions."""
    pass


class PersistenceBackend(ABC):
    """Abstract base class for persistence stores."""

    @abstractmethod
    async def create_session(self, player_id: str, mode: GameMode) -> str:
        """Create a session record and return its id."""
        pass

    @abstractmethod
    async def update_session(self, session_id: str, progress: Dict[str, int]) -> None:
        """Store the latest score/level/combo_count/best_combo of a session."""
        pass

    @abstractmethod
    async def end_session(self, session_id: str, snapshot: SessionSnapshot) -> SessionSnapshot:
        """Mark a session ended and return the stored final snapshot."""
        pass

    @abstractmethod
    async def update_player_aggregate_stats(
        self,
        player_id: str,
        score_delta: int,
        chops_delta: int,
        combo_observed: int,
        play_time_ms: float,
        fastest_resolution_ms: Optional[float] = None,
    ) -> None:
        """Fold one finished session into the player's lifetime totals."""
        pass

    @abstractmethod
    async def record_achievement_unlock(self, player_id: str, achievement_id: str) -> None:
        """Add an achievement to the player's unlocked set."""
        pass

    @abstractmethod
    async def fetch_achievement_catalog(self) -> List[AchievementDefinition]:
        """Return the achievement catalog."""
        pass


class InMemoryBackend(PersistenceBackend):
    """Dict-backed store.

    Args:
        catalog: Achievement catalog to serve (default: the bundled catalog)
    """

    def __init__(self, catalog: Optional[List[AchievementDefinition]] = None):
        self._catalog = catalog
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.players: Dict[str, PlayerLifetimeStats] = {}
        self.unlocked: Dict[str, List[str]] = {}

    def lifetime_stats(self, player_id: str) -> PlayerLifetimeStats:
        return self.players.get(player_id, PlayerLifetimeStats())

    def unlocked_achievements(self, player_id: str) -> List[str]:
        return list(self.unlocked.get(player_id, []))

    def _session(self, session_id: str) -> Dict[str, Any]:
        if session_id not in self.sessions:
            raise PersistenceError(f"Session not found: {session_id}")
        return self.sessions[session_id]

    async def create_session(self, player_id: str, mode: GameMode) -> str:
        session_id = uuid.uuid4().hex
        self.sessions[session_id] = {
            'player_id': player_id,
            'mode': GameMode(mode).value,
            'score': 0,
            'level': 1,
            'combo_count': 0,
            'best_combo': 0,
            'started_at': datetime.now(),
            'ended_at': None,
            'snapshot': None,
        }
        log.debug("Created session %s for %s", session_id, player_id)
        return session_id

    async def update_session(self, session_id: str, progress: Dict[str, int]) -> None:
        record = self._session(session_id)
        record.update({
            'score': progress['score'],
            'level': progress['level'],
            'combo_count': progress['combo_count'],
            'best_combo': max(record['best_combo'], progress['best_combo'],
                              progress['combo_count']),
        })

    async def end_session(self, session_id: str, snapshot: SessionSnapshot) -> SessionSnapshot:
        record = self._session(session_id)
        record.update({
            'score': snapshot.score,
            'level': snapshot.level,
            'combo_count': snapshot.combo_count,
            'best_combo': max(record['best_combo'], snapshot.best_combo),
            'ended_at': datetime.now(),
            'snapshot': snapshot,
        })
        return snapshot

    async def update_player_aggregate_stats(
        self,
        player_id: str,
        score_delta: int,
        chops_delta: int,
        combo_observed: int,
        play_time_ms: float,
        fastest_resolution_ms: Optional[float] = None,
    ) -> None:
        current = self.lifetime_stats(player_id)
        fastest = current.fastest_resolution_ms
        if fastest_resolution_ms is not None and (fastest is None or fastest_resolution_ms < fastest):
            fastest = fastest_resolution_ms

        self.players[player_id] = current.model_copy(update={
            'total_score': current.total_score + score_delta,
            'total_chops': current.total_chops + chops_delta,
            'high_score': max(current.high_score, score_delta),
            'games_played': current.games_played + 1,
            'total_play_time_ms': current.total_play_time_ms + play_time_ms,
            'longest_combo': max(current.longest_combo, combo_observed),
            'fastest_resolution_ms': fastest,
        })

    async def record_achievement_unlock(self, player_id: str, achievement_id: str) -> None:
        unlocked = self.unlocked.setdefault(player_id, [])
        if achievement_id not in unlocked:
            unlocked.append(achievement_id)

    async def fetch_achievement_catalog(self) -> List[AchievementDefinition]:
        if self._catalog is None:
            self._catalog = achievements.load_catalog()
        return list(self._catalog)
