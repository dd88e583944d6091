# party_trivia/errors.py


class TriviaError(Exception):
    """Base class for every error raised by the room core."""


class InvalidConfig(TriviaError, ValueError):
    """Room setup parameters are outside the configured bounds."""


class RoomNotFound(TriviaError, LookupError):
    """No room is stored under the requested code."""

    def __init__(self, code: str):
        super().__init__(f"Room {code} not found")
        self.code = code


class InvalidAction(TriviaError, ValueError):
    """A transition was attempted from a state that does not allow it."""


class NotAuthorized(TriviaError, PermissionError):
    """A host-only action was attempted without the host capability."""


class GenerationFailure(TriviaError):
    """The question generator failed or timed out."""


class SyncFailure(TriviaError):
    """The push channel broke or the store could not be reached."""


class PersistenceFailure(TriviaError):
    """The store rejected a room write."""
