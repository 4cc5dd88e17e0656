"""
Input source interface.

The runner calls ``update(dt)`` once per frame and then drains
``poll_events()``. Sources differ only in where events come from: the
pygame queue, a scripted player, a test fixture.
"""
from abc import ABC, abstractmethod
from typing import List

from chopper.input.input_event import InputEvent


class InputSource(ABC):
    """Anything that produces pointer-down and pause-toggle events."""

    @abstractmethod
    def poll_events(self) -> List[InputEvent]:
        """Events gathered since the previous poll, oldest first.

        Each event is returned once.
        """
        pass

    @abstractmethod
    def update(self, dt: float) -> None:
        """Gather events for this frame.

        Args:
            dt: Milliseconds since the previous update (0 on the first frame)
        """
        pass


class QueuedInputSource(InputSource):
    """InputSource that buffers events pushed during ``update``.

    Subclasses implement ``update`` and call ``push`` for each event.
    """

    def __init__(self):
        self._pending: List[InputEvent] = []

    def push(self, event: InputEvent) -> None:
        self._pending.append(event)

    def poll_events(self) -> List[InputEvent]:
        events, self._pending = self._pending, []
        return events

    def clear(self) -> None:
        """Drop events that have not been polled yet."""
        self._pending.clear()
