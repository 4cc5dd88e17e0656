"""
Session runner.

Cooperative game loop around a Session: reads input, ticks, runs the
achievement check every Nth destroy and keeps the outbox dispatcher
pumping. The runner is the only place that decides *when* achievements
are evaluated; the session only guarantees correctness whenever asked.

Usage:
    runner = SessionRunner(session, source=MouseInputSource(),
                           dispatcher=OutboxDispatcher(session.outbox, backend),
                           catalog=catalog)
    session.start()
    asyncio.run(runner.run())
"""
import asyncio
from typing import Dict, List, Optional

from models import (
    AchievementDefinition,
    AchievementProgress,
    PlayerLifetimeStats,
    SessionSnapshot,
    SessionState,
)
from chopper import config
from chopper.dispatcher import OutboxDispatcher
from chopper.events import HitResult
from chopper.input import InputEvent, InputKind, InputSource
from chopper.logging import get_logger
from chopper.session import Session
from chopper.timer import ManualClock

log = get_logger('runner')


class SessionRunner:
    """Drives one session frame by frame.

    Args:
        session: Session to drive (started by the caller)
        source: Input source polled every frame
        dispatcher: Delivers the session's outbox; pumped every frame
        catalog: Achievement catalog (no checks when None)
        progress: Player's achievement progress, updated in place
        lifetime: Player totals from earlier sessions
        check_every: Evaluate achievements after every N destroys
    """

    def __init__(
        self,
        session: Session,
        source: Optional[InputSource] = None,
        dispatcher: Optional[OutboxDispatcher] = None,
        catalog: Optional[List[AchievementDefinition]] = None,
        progress: Optional[Dict[str, AchievementProgress]] = None,
        lifetime: Optional[PlayerLifetimeStats] = None,
        check_every: int = config.ACHIEVEMENT_CHECK_EVERY,
    ):
        if check_every < 1:
            raise ValueError(f'check_every must be at least 1, got {check_every}')
        self.session = session
        self.source = source
        self.dispatcher = dispatcher
        self.catalog = catalog
        self.progress = progress if progress is not None else {}
        self.lifetime = lifetime or PlayerLifetimeStats()
        self.check_every = check_every

        self.destroys = 0
        self.unlocked: List[str] = []
        self._last_step: Optional[float] = None

    def handle_event(self, event: InputEvent) -> Optional[HitResult]:
        """Apply one input event to the session."""
        if event.kind == InputKind.PAUSE_TOGGLE:
            self.session.toggle_pause(event.timestamp)
            return None

        now = event.timestamp
        pos = event.position
        under = self.session.target_at(pos.x, pos.y)
        reaction = None
        if under is not None:
            reaction = self.session.target_age_ms(under.target_id, now)

        result = self.session.pointer_down(pos.x, pos.y, now=now, reaction_ms=reaction)
        if result.destroyed:
            self.destroys += 1
            if self.destroys % self.check_every == 0:
                self.check_achievements(now)
        return result

    def check_achievements(self, now: Optional[float] = None) -> List[str]:
        """Run an achievement check now. Returns newly unlocked ids."""
        if self.catalog is None:
            return []
        unlocked = self.session.evaluate_achievements(
            self.catalog, self.progress, self.lifetime, now=now)
        self.unlocked.extend(unlocked)
        return unlocked

    def step(self, now: Optional[float] = None) -> SessionSnapshot:
        """Process pending input, then tick the session."""
        now = self.session.clock() if now is None else now
        dt = 0.0 if self._last_step is None else now - self._last_step
        self._last_step = now

        if self.source is not None:
            self.source.update(dt)
            for event in self.source.poll_events():
                if self.session.state == SessionState.ENDED:
                    break
                self.handle_event(event)

        return self.session.tick(now)

    async def finish(self, now: Optional[float] = None) -> SessionSnapshot:
        """End the session, run a final achievement check and flush the outbox."""
        final = self.session.snapshot(now)
        if self.session.state != SessionState.ENDED:
            final = self.session.end(now)
        self.check_achievements(now)
        if self.dispatcher is not None:
            await self.dispatcher.flush()
        return final

    async def run(
        self,
        duration_ms: Optional[float] = None,
        frame_ms: float = 16.0,
        clock: Optional[ManualClock] = None,
    ) -> SessionSnapshot:
        """Run frames until the session ends or ``duration_ms`` of active play.

        Args:
            duration_ms: Stop after this much active (unpaused) time
            frame_ms: Frame length
            clock: When given, time is simulated: the clock is advanced one
                frame per step and the loop only yields instead of sleeping
        """
        while self.session.state != SessionState.ENDED:
            if clock is not None:
                clock.advance(frame_ms)
            snapshot = self.step()
            if self.dispatcher is not None:
                self.dispatcher.pump()
            if duration_ms is not None and snapshot.elapsed_active_ms >= duration_ms:
                break
            # Yield to the dispatcher task every frame
            await asyncio.sleep(0 if clock is not None else frame_ms / 1000.0)

        log.debug("Run loop stopped at %.0fms active", self.session.elapsed_active_ms())
        return await self.finish()
