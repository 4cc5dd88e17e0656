#!/usr/bin/env python3
"""
Headless Chopper Simulator

Plays a full session without a display: a seeded auto-player clicks on
falling targets while simulated time runs as fast as the machine allows.
Persistence goes to an in-memory store; the final snapshot is printed as
JSON on stdout.

Usage:
    # Two minutes of play with the default auto-player
    chopper-sim --duration 120

    # Reproducible sloppy player
    chopper-sim --seed 7 --accuracy 0.6 --hazard-avoidance 0.5

    # Also write telemetry records as JSONL
    chopper-sim --telemetry-dir ./chopper_logs
"""
import argparse
import asyncio
import json
import random
import sys
from typing import Dict, List, Optional

from models import GameMode, Point2D, TargetCategory
from chopper import config
from chopper.achievements import load_catalog
from chopper.config import EngineConfig
from chopper.dispatcher import OutboxDispatcher
from chopper.input import InputEvent, InputKind, QueuedInputSource
from chopper.logging import (
    FileSink,
    close_all_sinks,
    configure_logging,
    create_sink_for_module,
    register_sink,
)
from chopper.persistence import InMemoryBackend
from chopper.runner import SessionRunner
from chopper.session import Session
from chopper.timer import ManualClock


class AutoPlayer(QueuedInputSource):
    """Scripted input source that plays like a person with a mouse.

    Every new target gets a reaction delay; after it the player clicks the
    target's current position (or next to it, at the accuracy rate), and
    keeps clicking multi-hit targets until they break.

    Args:
        session: Session whose targets are watched
        rng: Random source
        accuracy: Chance that a click lands on the target
        hazard_avoidance: Chance that a hazard is left alone
        reaction_ms: (min, max) delay before the first click on a target
        repeat_ms: (min, max) delay between clicks on the same target
    """

    def __init__(
        self,
        session: Session,
        rng: Optional[random.Random] = None,
        accuracy: float = 0.85,
        hazard_avoidance: float = 0.9,
        reaction_ms=(250.0, 900.0),
        repeat_ms=(80.0, 200.0),
    ):
        super().__init__()
        self.session = session
        self.rng = rng or random.Random()
        self.accuracy = accuracy
        self.hazard_avoidance = hazard_avoidance
        self.reaction_ms = reaction_ms
        self.repeat_ms = repeat_ms

        self._due: Dict[str, float] = {}
        self._ignored: set = set()

    def update(self, dt: float) -> None:
        now = self.session.clock()
        active = self.session.elapsed_active_ms(now)
        views = {str(view.target_id): view for view in self.session.targets()}

        # Forget targets that are gone
        for key in list(self._due):
            if key not in views:
                del self._due[key]
        self._ignored &= set(views)

        for key, view in views.items():
            if key in self._ignored:
                continue
            if key not in self._due:
                if (view.category == TargetCategory.HAZARD
                        and self.rng.random() < self.hazard_avoidance):
                    self._ignored.add(key)
                    continue
                self._due[key] = active + self.rng.uniform(*self.reaction_ms)
                continue
            if active < self._due[key]:
                continue

            self.push(InputEvent(
                kind=InputKind.POINTER_DOWN,
                position=self._aim(view.x, view.y, view.width, view.height),
                timestamp=now,
            ))
            self._due[key] = active + self.rng.uniform(*self.repeat_ms)

    def _aim(self, cx: float, cy: float, width: float, height: float) -> Point2D:
        if self.rng.random() < self.accuracy:
            return Point2D(x=cx + self.rng.uniform(-0.3, 0.3) * width,
                           y=cy + self.rng.uniform(-0.3, 0.3) * height)
        # Off to one side, clear of the target
        side = self.rng.choice((-1, 1))
        return Point2D(x=cx + side * (width + self.rng.uniform(5, 40)), y=cy)


async def simulate(args: argparse.Namespace) -> Dict[str, object]:
    """Run one simulated session and return the printable summary."""
    rng = random.Random(args.seed)
    clock = ManualClock()
    catalog = load_catalog(args.catalog)
    backend = InMemoryBackend(catalog)

    session = Session(
        player_id=args.player,
        mode=GameMode(args.mode),
        config=EngineConfig(field_width=args.width, field_height=args.height),
        rng=random.Random(rng.random()),
        clock=clock,
    )
    player = AutoPlayer(
        session,
        rng=random.Random(rng.random()),
        accuracy=args.accuracy,
        hazard_avoidance=args.hazard_avoidance,
    )
    runner = SessionRunner(
        session,
        source=player,
        dispatcher=OutboxDispatcher(session.outbox, backend),
        catalog=await backend.fetch_achievement_catalog(),
        lifetime=backend.lifetime_stats(args.player),
        check_every=args.check_every,
    )

    session.start()
    final = await runner.run(duration_ms=args.duration * 1000.0,
                             frame_ms=args.frame_ms, clock=clock)

    return {
        'snapshot': final.model_dump(mode='json', exclude={'targets'}),
        'unlocked': runner.unlocked,
        'lifetime': backend.lifetime_stats(args.player).model_dump(mode='json'),
        'dispatch': {
            'delivered': runner.dispatcher.delivered,
            'failed': runner.dispatcher.failed,
        },
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chopper-sim',
        description='Chopper Simulator - play a headless session with an auto-player',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chopper-sim --duration 60
  chopper-sim --seed 42 --accuracy 0.95 --mode time_attack
  CHOPPER_LOG_SESSION=DEBUG chopper-sim --log-level INFO
        """
    )

    parser.add_argument(
        '--duration',
        type=float,
        default=90.0,
        help='Active play time to simulate, in seconds (default: 90)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for a reproducible run'
    )
    parser.add_argument(
        '--player',
        type=str,
        default='sim-player',
        help='Player id (default: sim-player)'
    )
    parser.add_argument(
        '--mode',
        choices=[mode.value for mode in GameMode],
        default=GameMode.CLASSIC.value,
        help='Game mode label (default: classic)'
    )

    # Auto-player
    parser.add_argument(
        '--accuracy',
        type=float,
        default=0.85,
        help='Chance a click lands on its target (default: 0.85)'
    )
    parser.add_argument(
        '--hazard-avoidance',
        type=float,
        default=0.9,
        help='Chance the player leaves a hazard alone (default: 0.9)'
    )

    # Engine
    parser.add_argument(
        '--frame-ms',
        type=float,
        default=16.0,
        help='Simulated frame length in ms (default: 16)'
    )
    parser.add_argument(
        '--width',
        type=int,
        default=config.FIELD_WIDTH,
        help=f'Play-field width (default: {config.FIELD_WIDTH})'
    )
    parser.add_argument(
        '--height',
        type=int,
        default=config.FIELD_HEIGHT,
        help=f'Play-field height (default: {config.FIELD_HEIGHT})'
    )
    parser.add_argument(
        '--check-every',
        type=int,
        default=config.ACHIEVEMENT_CHECK_EVERY,
        help=f'Check achievements every N destroys (default: {config.ACHIEVEMENT_CHECK_EVERY})'
    )
    parser.add_argument(
        '--catalog',
        type=str,
        default=None,
        help='Achievement catalog file, YAML or JSON (default: bundled catalog)'
    )

    # Logging
    parser.add_argument(
        '--log-level',
        choices=['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'OFF'],
        default='WARNING',
        help='Console log level (default: WARNING)'
    )
    parser.add_argument(
        '--telemetry-dir',
        type=str,
        default=None,
        help='Write telemetry records as JSONL into this directory'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for chopper-sim."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.duration <= 0:
        parser.error('--duration must be positive')
    if not 0.0 <= args.accuracy <= 1.0:
        parser.error('--accuracy must be between 0 and 1')
    if not 0.0 <= args.hazard_avoidance <= 1.0:
        parser.error('--hazard-avoidance must be between 0 and 1')
    if args.frame_ms <= 0:
        parser.error('--frame-ms must be positive')

    configure_logging(level=args.log_level)
    if args.telemetry_dir:
        register_sink('telemetry', FileSink(log_dir=args.telemetry_dir))
    else:
        # CHOPPER_LOGGING_TELEMETRY_ENABLED=true still writes to the log dir
        register_sink('telemetry', create_sink_for_module('telemetry'))

    try:
        summary = asyncio.run(simulate(args))
    finally:
        close_all_sinks()

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
