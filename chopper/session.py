"""
Chopper Session

The root object of one play-through. It owns the timer, level progression,
target pool, spawner and score state, and it is the only thing that mutates
them. Every call is synchronous; outbound work (persistence, telemetry) is
queued on the session's Outbox for a dispatcher to deliver later.

State machine:
    IDLE --start--> RUNNING <--pause/resume--> PAUSED
    RUNNING/PAUSED/IDLE --end--> ENDED (terminal)

Usage:
    session = Session(player_id='p1')
    dispatcher = OutboxDispatcher(session.outbox, backend)
    session.start()

    # per frame, inside a running event loop
    snapshot = session.tick()
    for pos in clicks:
        result = session.pointer_down(pos.x, pos.y)
    dispatcher.pump()

    final = session.end()
    await dispatcher.flush()

The outbox is unbounded: every spawn, hit and miss queues a telemetry
message. Something must drain ``session.outbox`` (a dispatcher, or
``outbox.drain()``) or it grows for the whole session.

Times are milliseconds. Every method takes an optional ``now``; when it is
omitted the session's clock is read (monotonic, in ms).
"""

import random
import time
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from models import (
    AchievementDefinition,
    AchievementProgress,
    GameMode,
    PlayerLifetimeStats,
    Point2D,
    ScoreState,
    SessionSnapshot,
    SessionState,
    TargetId,
    TargetView,
)
from chopper import achievements
from chopper.config import EngineConfig
from chopper.errors import InvalidSessionState
from chopper.events import HitResult
from chopper.hits import HitKind, HitOutcome, HitResolver
from chopper.levels import LevelProgression
from chopper.logging import get_logger
from chopper.outbox import (
    CreateSession,
    EndSession,
    Outbox,
    RecordAchievementUnlock,
    TelemetryEvent,
    UpdatePlayerStats,
    UpdateSession,
)
from chopper.scoring import (
    Destroy,
    Miss,
    MissReason,
    ScoreEffect,
    ScoreUpdate,
    ScoringEngine,
)
from chopper.spawner import Spawner
from chopper.targets import Target, TargetPool
from chopper.timer import SessionTimer

log = get_logger('session')


def monotonic_ms() -> float:
    """Default session clock."""
    return time.monotonic() * 1000.0


class Session:
    """One play-through, from start to explicit end."""

    def __init__(
        self,
        player_id: str,
        mode: GameMode = GameMode.CLASSIC,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None,
        outbox: Optional[Outbox] = None,
        session_key: Optional[str] = None,
    ):
        """
        Initialize a session in the IDLE state.

        Args:
            player_id: Player this session belongs to
            mode: Game mode label passed on to persistence
            config: Engine tunables (default: EngineConfig())
            rng: Random source for spawning; seed it for reproducible runs
            clock: Millisecond clock used when ``now`` is omitted
            outbox: Queue for outbound messages (default: a new Outbox)
            session_key: Local correlation id (default: random uuid)
        """
        self.player_id = player_id
        self.mode = GameMode(mode)
        self.config = config or EngineConfig()
        self.clock = clock or monotonic_ms
        self.outbox = outbox if outbox is not None else Outbox()
        self.session_key = session_key or uuid.uuid4().hex

        self.timer = SessionTimer()
        self.levels = LevelProgression(self.config)
        self.pool = TargetPool()
        self.spawner = Spawner(self.config, rng)
        self.resolver = HitResolver(self.pool)
        self.scoring = ScoringEngine(self.config.combo_step, self.config.max_combo_multiplier)
        self.score_state = ScoreState()

        self._state = SessionState.IDLE
        self._last_tick_active_ms = 0.0
        self._final: Optional[SessionSnapshot] = None

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def score(self) -> int:
        return self.score_state.score

    @property
    def combo_count(self) -> int:
        return self.score_state.combo_count

    @property
    def best_combo(self) -> int:
        return self.score_state.best_combo

    @property
    def total_chops(self) -> int:
        return self.score_state.total_chops

    @property
    def fastest_resolution_ms(self) -> Optional[float]:
        return self.score_state.fastest_resolution_ms

    @property
    def level(self) -> int:
        return self.levels.level

    @property
    def spawn_interval_ms(self) -> float:
        return self.levels.spawn_interval_ms

    @property
    def multiplier(self) -> int:
        return self.scoring.multiplier(self.score_state.combo_count)

    def targets(self) -> List[TargetView]:
        """Active targets, front-most first."""
        return self.pool.views()

    def elapsed_active_ms(self, now: Optional[float] = None) -> float:
        if self._final is not None:
            return self._final.elapsed_active_ms
        return self.timer.elapsed_active_ms(self._now(now))

    def snapshot(self, now: Optional[float] = None) -> SessionSnapshot:
        """Frozen copy of the current state (the final one once ended)."""
        if self._final is not None:
            return self._final
        return self._build_snapshot(self.timer.elapsed_active_ms(self._now(now)))

    def target_at(self, x: float, y: float) -> Optional[TargetView]:
        """Front-most target under a point, without hitting it."""
        target = self.pool.find_at(Point2D(x=x, y=y))
        return target.to_view() if target is not None else None

    def target_age_ms(self, target_id: TargetId, now: Optional[float] = None) -> Optional[float]:
        """Active time since a target spawned, or None if it is gone."""
        target = self.pool.get(target_id)
        if target is None:
            return None
        return target.age_ms(self.elapsed_active_ms(now))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, now: Optional[float] = None) -> None:
        """IDLE -> RUNNING. Resets every counter and starts the clock."""
        self._require((SessionState.IDLE,), 'start')
        now = self._now(now)

        self.timer.start(now)
        self.levels.reset()
        self.pool.clear()
        self.spawner.reset()
        self.score_state = ScoreState()
        self._last_tick_active_ms = 0.0
        self._state = SessionState.RUNNING

        self.outbox.push(CreateSession(
            session_key=self.session_key,
            player_id=self.player_id,
            mode=self.mode,
        ))
        self._telemetry('session_started', 0.0, player_id=self.player_id, mode=self.mode.value)
        log.info("Session %s started for %s (%s)", self.session_key, self.player_id, self.mode.value)

    def pause(self, now: Optional[float] = None) -> None:
        """RUNNING -> PAUSED. Pausing while paused is a no-op."""
        self._require((SessionState.RUNNING, SessionState.PAUSED), 'pause')
        if self._state == SessionState.PAUSED:
            return
        now = self._now(now)
        self.timer.pause(now)
        self._state = SessionState.PAUSED
        self._telemetry('paused', self.timer.elapsed_active_ms(now))
        log.debug("Session %s paused", self.session_key)

    def resume(self, now: Optional[float] = None) -> None:
        """PAUSED -> RUNNING. Resuming while running is a no-op."""
        self._require((SessionState.RUNNING, SessionState.PAUSED), 'resume')
        if self._state == SessionState.RUNNING:
            return
        now = self._now(now)
        self.timer.resume(now)
        self._state = SessionState.RUNNING
        self._telemetry('resumed', self.timer.elapsed_active_ms(now))
        log.debug("Session %s resumed", self.session_key)

    def toggle_pause(self, now: Optional[float] = None) -> SessionState:
        """Pause if running, resume if paused. Returns the new state."""
        if self._state == SessionState.PAUSED:
            self.resume(now)
        else:
            self.pause(now)
        return self._state

    def end(self, now: Optional[float] = None) -> SessionSnapshot:
        """Finish the session and return its final snapshot.

        Accepted from any non-terminal state. Queues the end-of-session and
        player-stat messages; whatever happens to them afterwards has no
        effect on the session.
        """
        self._require((SessionState.IDLE, SessionState.RUNNING, SessionState.PAUSED), 'end')
        was_started = self._state != SessionState.IDLE
        elapsed = self.timer.elapsed_active_ms(self._now(now))

        self._state = SessionState.ENDED
        self._final = self._build_snapshot(elapsed)

        if was_started:
            final = self._final
            self.outbox.push(EndSession(session_key=self.session_key, snapshot=final))
            self.outbox.push(UpdatePlayerStats(
                session_key=self.session_key,
                player_id=self.player_id,
                score_delta=final.score,
                chops_delta=final.total_chops,
                combo_observed=final.best_combo,
                play_time_ms=final.elapsed_active_ms,
                fastest_resolution_ms=final.fastest_resolution_ms,
            ))
            self._telemetry(
                'session_ended', elapsed,
                score=final.score, level=final.level,
                best_combo=final.best_combo, total_chops=final.total_chops,
            )
        log.info("Session %s ended: score=%d level=%d best_combo=%d",
                 self.session_key, self._final.score, self._final.level, self._final.best_combo)
        return self._final

    # ------------------------------------------------------------------
    # Gameplay
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> SessionSnapshot:
        """Advance the simulation to ``now``.

        Recomputes level and spawn interval, moves targets by the active
        time since the previous tick, removes targets that fell off the
        field (each counts as a miss) and spawns at most one new target.
        Outside RUNNING nothing changes; ticking a finished session raises.
        """
        self._require((SessionState.IDLE, SessionState.RUNNING, SessionState.PAUSED), 'tick')
        now = self._now(now)
        elapsed = self.timer.elapsed_active_ms(now)

        if self._state != SessionState.RUNNING:
            return self._build_snapshot(elapsed)

        dt = elapsed - self._last_tick_active_ms
        self._last_tick_active_ms = max(self._last_tick_active_ms, elapsed)

        gained = self.levels.update(elapsed)
        if gained:
            self._telemetry('level_up', elapsed, level=self.levels.level,
                            spawn_interval_ms=self.levels.spawn_interval_ms)
            self._push_progress()
            log.info("Level up: %d (spawn every %.0fms)",
                     self.levels.level, self.levels.spawn_interval_ms)

        self.pool.advance(dt)
        for target in self.pool.collect_off_field(self.config.field_height,
                                                  self.config.off_field_margin):
            self._telemetry('miss', elapsed, reason=MissReason.OFF_FIELD.value,
                            **self._target_data(target))
            self._apply_score(Miss(MissReason.OFF_FIELD), elapsed)

        if self.spawner.is_due(elapsed, self.levels.spawn_interval_ms):
            target = self.spawner.spawn(self.levels.level, elapsed)
            self.pool.add(target)
            self._telemetry('spawn', elapsed, fall_speed=round(target.fall_speed, 2),
                            **self._target_data(target))
            log.trace("Spawned %s %s %s", target.target_id, target.size.value, target.category.value)

        return self._build_snapshot(elapsed)

    def pointer_down(
        self,
        x: float,
        y: float,
        now: Optional[float] = None,
        reaction_ms: Optional[float] = None,
    ) -> HitResult:
        """Deliver a pointer-down at (x, y).

        Hits the front-most target under the point, or records a miss.
        While paused the event is ignored.

        Args:
            x, y: Play-field coordinates
            now: Event time in ms
            reaction_ms: Optional reaction time to credit if this destroys a target
        """
        self._require((SessionState.RUNNING, SessionState.PAUSED), 'handle pointer input')
        if self._state == SessionState.PAUSED:
            return self._result(HitOutcome(HitKind.IGNORED))
        outcome = self.resolver.resolve(Point2D(x=x, y=y))
        return self._handle_outcome(outcome, self.elapsed_active_ms(now), reaction_ms)

    def hit_target(
        self,
        target_id: TargetId,
        now: Optional[float] = None,
        reaction_ms: Optional[float] = None,
    ) -> HitResult:
        """Hit a target by id. Ids that are no longer present are ignored."""
        self._require((SessionState.RUNNING, SessionState.PAUSED), 'hit a target')
        if self._state == SessionState.PAUSED:
            return self._result(HitOutcome(HitKind.IGNORED))
        outcome = self.resolver.hit(target_id)
        return self._handle_outcome(outcome, self.elapsed_active_ms(now), reaction_ms)

    def add_target(self, target: Target, now: Optional[float] = None) -> TargetId:
        """Place a prepared target on the field (scripted spawns, tests)."""
        self._require((SessionState.RUNNING, SessionState.PAUSED), 'add a target')
        target.spawned_at_ms = self.elapsed_active_ms(now)
        return self.pool.add(target)

    # ------------------------------------------------------------------
    # Achievements
    # ------------------------------------------------------------------

    def evaluate_achievements(
        self,
        catalog: List[AchievementDefinition],
        progress: Dict[str, AchievementProgress],
        lifetime: Optional[PlayerLifetimeStats] = None,
        now: Optional[float] = None,
        unlocked_at: Optional[datetime] = None,
    ) -> List[str]:
        """Evaluate the catalog against the current snapshot.

        Only reads gameplay state, so it is also allowed after the session
        has ended (against the final snapshot). Each newly unlocked id is
        queued for persistence.

        Returns:
            Ids newly unlocked by this call
        """
        self._require((SessionState.RUNNING, SessionState.PAUSED, SessionState.ENDED),
                      'evaluate achievements')
        snapshot = self.snapshot(now)
        unlocked = achievements.evaluate(catalog, progress, snapshot, lifetime, unlocked_at)
        for achievement_id in unlocked:
            self.outbox.push(RecordAchievementUnlock(
                session_key=self.session_key,
                player_id=self.player_id,
                achievement_id=achievement_id,
            ))
            self._telemetry('achievement_unlock', snapshot.elapsed_active_ms,
                            achievement_id=achievement_id)
        return unlocked

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def _require(self, allowed, action: str) -> None:
        if self._state not in allowed:
            raise InvalidSessionState(self._state, action)

    def _handle_outcome(
        self,
        outcome: HitOutcome,
        elapsed: float,
        reaction_ms: Optional[float],
    ) -> HitResult:
        update: Optional[ScoreUpdate] = None

        if outcome.kind == HitKind.MISS:
            self._telemetry('miss', elapsed, reason=MissReason.POINTER.value)
            update = self._apply_score(Miss(MissReason.POINTER), elapsed)
        elif outcome.kind == HitKind.DAMAGE:
            self._telemetry('hit', elapsed, hits_remaining=outcome.target.hits_remaining,
                            **self._target_data(outcome.target))
        elif outcome.kind == HitKind.DESTROY:
            target = outcome.target
            update = self._apply_score(
                Destroy(target.category, target.point_value, reaction_ms), elapsed)
            self._telemetry('destroy', elapsed, points=update.points,
                            multiplier=update.multiplier, combo=self.score_state.combo_count,
                            reaction_ms=reaction_ms, **self._target_data(target))
        else:
            log.trace("Ignored hit on a target that is no longer present")

        return self._result(outcome, update)

    def _apply_score(self, event, elapsed: float) -> ScoreUpdate:
        previous = self.score_state
        update = self.scoring.apply(previous, event)
        self.score_state = update.state

        if update.has(ScoreEffect.COMBO_BROKEN):
            self._telemetry('combo_broken', elapsed, lost_combo=previous.combo_count,
                            best_combo=update.state.best_combo)
            log.debug("Combo broken at %d", previous.combo_count)
        if update.has(ScoreEffect.NEW_BEST_COMBO):
            log.debug("New best combo: %d", update.state.best_combo)
        if update.has(ScoreEffect.FASTEST_RESOLUTION):
            self._telemetry('fastest_resolution', elapsed,
                            fastest_resolution_ms=update.state.fastest_resolution_ms)

        if update.state.combo_count != previous.combo_count or update.points:
            self._push_progress()
        return update

    def _push_progress(self) -> None:
        self.outbox.push(UpdateSession(
            session_key=self.session_key,
            score=self.score_state.score,
            level=self.levels.level,
            combo_count=self.score_state.combo_count,
            best_combo=self.score_state.best_combo,
        ))

    def _result(self, outcome: HitOutcome, update: Optional[ScoreUpdate] = None) -> HitResult:
        return HitResult(
            kind=outcome.kind,
            target=outcome.target.to_view() if outcome.target is not None else None,
            points=update.points if update else 0,
            multiplier=update.multiplier if update else 0,
            score=self.score_state.score,
            combo_count=self.score_state.combo_count,
        )

    def _telemetry(self, event: str, elapsed: float, **data) -> None:
        self.outbox.push(TelemetryEvent(
            session_key=self.session_key,
            event=event,
            elapsed_active_ms=elapsed,
            data=data,
        ))

    @staticmethod
    def _target_data(target: Target) -> Dict[str, object]:
        return {
            'target_id': str(target.target_id),
            'category': target.category.value,
            'size': target.size.value,
            'point_value': target.point_value,
        }

    def _build_snapshot(self, elapsed: float) -> SessionSnapshot:
        state = self.score_state
        return SessionSnapshot(
            session_key=self.session_key,
            player_id=self.player_id,
            mode=self.mode,
            state=self._state,
            score=state.score,
            combo_count=state.combo_count,
            best_combo=state.best_combo,
            multiplier=self.scoring.multiplier(state.combo_count),
            level=self.levels.level,
            total_chops=state.total_chops,
            fastest_resolution_ms=state.fastest_resolution_ms,
            spawn_interval_ms=self.levels.spawn_interval_ms,
            elapsed_active_ms=elapsed,
            chopped_by_category=dict(state.chopped_by_category),
            targets=self.pool.views(),
        )
