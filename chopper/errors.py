"""
Chopper exceptions.

Only conditions the caller must act on are exceptions. Stale target ids
and unknown achievement kinds are expected at runtime and are handled
silently where they occur.
"""


class ChopperError(Exception):
    """Base class for engine errors."""
    pass


class InvalidSessionState(ChopperError):
    """Raised when an action is not allowed in the session's current state.

    The session is left exactly as it was before the call.

    Attributes:
        state: State the session was in
        action: Name of the rejected action
    """

    def __init__(self, state, action: str):
        self.state = state
        self.action = action
        state_name = getattr(state, 'value', state)
        super().__init__(f"Cannot {action} while session is {state_name}")


class CatalogError(ChopperError):
    """Raised when an achievement catalog file cannot be parsed."""
    pass
