"""
Outbox dispatcher.

Drains a session's Outbox into the persistence backend and the telemetry
sink. Runs as an asyncio task started with ``pump()``: the game loop never
awaits it, and any failure is logged and dropped (no retries). Messages
are delivered one at a time in queue order, so a session's create call
finishes before its updates are sent.
"""
import asyncio
from typing import Dict, Optional

from chopper.logging import emit_record, get_logger
from chopper.outbox import (
    CreateSession,
    EndSession,
    Message,
    Outbox,
    RecordAchievementUnlock,
    TelemetryEvent,
    UpdatePlayerStats,
    UpdateSession,
)
from chopper.persistence import PersistenceBackend

log = get_logger('dispatcher')


class OutboxDispatcher:
    """Delivers outbound messages to their collaborators.

    Args:
        outbox: Queue to drain
        backend: Persistence store (None: persistence messages are dropped)
        telemetry_module: Structured-log module telemetry records go to
    """

    def __init__(
        self,
        outbox: Outbox,
        backend: Optional[PersistenceBackend] = None,
        telemetry_module: str = 'telemetry',
    ):
        self.outbox = outbox
        self.backend = backend
        self.telemetry_module = telemetry_module
        # session_key -> backend session id (None if creation failed)
        self.session_ids: Dict[str, Optional[str]] = {}
        self.delivered = 0
        self.failed = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def pump(self) -> Optional[asyncio.Task]:
        """Start draining in the background if there is work and no drain running.

        Must be called from inside a running event loop.
        """
        if self.busy or not len(self.outbox):
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.drain())
        return self._task

    async def flush(self) -> None:
        """Wait for the running drain, then deliver anything still queued."""
        if self._task is not None:
            await self._task
        await self.drain()

    async def drain(self) -> int:
        """Deliver queued messages until the outbox is empty.

        Returns:
            Number of messages taken off the queue
        """
        count = 0
        while True:
            message = self.outbox.pop()
            if message is None:
                return count
            count += 1
            await self.deliver(message)

    async def deliver(self, message: Message) -> bool:
        """Deliver one message. Never raises; returns False on failure."""
        try:
            if isinstance(message, TelemetryEvent):
                emit_record(self.telemetry_module, message.to_record())
            elif self.backend is None:
                log.trace("No backend, dropping %s", message.kind)
            else:
                await self._persist(message)
        except Exception as e:
            self.failed += 1
            log.error("Delivering %s for session %s failed: %s",
                      message.kind, message.session_key, e)
            return False
        self.delivered += 1
        return True

    async def _persist(self, message: Message) -> None:
        backend = self.backend

        if isinstance(message, CreateSession):
            # Mark pending first so a failed create is remembered as such
            self.session_ids[message.session_key] = None
            session_id = await backend.create_session(message.player_id, message.mode)
            self.session_ids[message.session_key] = session_id
            log.debug("Session %s stored as %s", message.session_key, session_id)
            return

        if isinstance(message, UpdatePlayerStats):
            await backend.update_player_aggregate_stats(
                message.player_id,
                score_delta=message.score_delta,
                chops_delta=message.chops_delta,
                combo_observed=message.combo_observed,
                play_time_ms=message.play_time_ms,
                fastest_resolution_ms=message.fastest_resolution_ms,
            )
            return

        if isinstance(message, RecordAchievementUnlock):
            await backend.record_achievement_unlock(message.player_id, message.achievement_id)
            return

        session_id = self.session_ids.get(message.session_key)
        if session_id is None:
            log.warning("No stored session for %s, dropping %s",
                        message.session_key, message.kind)
            return

        if isinstance(message, UpdateSession):
            await backend.update_session(session_id, {
                'score': message.score,
                'level': message.level,
                'combo_count': message.combo_count,
                'best_combo': message.best_combo,
            })
        elif isinstance(message, EndSession):
            await backend.end_session(session_id, message.snapshot)
        else:
            raise TypeError(f"Unsupported message: {message!r}")
