"""
Input handling for the chopping engine.

The pygame mouse source lives in chopper.input.sources.mouse and is
imported explicitly so headless code does not need a display.
"""
from chopper.input.input_event import InputEvent, InputKind
from chopper.input.sources.base import InputSource, QueuedInputSource

__all__ = ['InputEvent', 'InputKind', 'InputSource', 'QueuedInputSource']
