"""Input sources."""
from chopper.input.sources.base import InputSource, QueuedInputSource

__all__ = ['InputSource', 'QueuedInputSource']
