"""
pygame mouse and keyboard input.
"""
from typing import Callable, Optional

import pygame

from models import Point2D
from chopper.input.input_event import InputEvent, InputKind
from chopper.input.sources.base import QueuedInputSource
from chopper.session import monotonic_ms

PAUSE_KEYS = (pygame.K_p, pygame.K_ESCAPE)
LEFT_BUTTON = 1


class MouseInputSource(QueuedInputSource):
    """Reads the pygame event queue.

    A left click becomes a pointer-down at the click position; P or Escape
    becomes a pause toggle. Mouse motion is dropped. Everything else goes
    back on the pygame queue so the window loop still sees QUIT and friends.

    Args:
        clock: Millisecond clock that timestamps events (default: monotonic)
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        super().__init__()
        self._clock = clock or monotonic_ms

    def update(self, dt: float) -> None:
        unhandled = []
        for event in pygame.event.get():
            if event.type == pygame.MOUSEBUTTONDOWN:
                if event.button == LEFT_BUTTON:
                    self.push(self._pointer_down(*event.pos))
            elif event.type == pygame.KEYDOWN and event.key in PAUSE_KEYS:
                self.push(InputEvent(kind=InputKind.PAUSE_TOGGLE, timestamp=self._clock()))
            elif event.type != pygame.MOUSEMOTION:
                unhandled.append(event)

        for event in unhandled:
            pygame.event.post(event)

    def _pointer_down(self, x: int, y: int) -> InputEvent:
        return InputEvent(
            kind=InputKind.POINTER_DOWN,
            position=Point2D(x=float(x), y=float(y)),
            timestamp=self._clock(),
        )
