"""Domain errors raised by the match engine and the room registry.

Every error is local to the single action that raised it; the socket
layer reports it back to the initiating client only.
"""


class GameError(Exception):
    """Base class for all game errors."""
    pass


class NotFoundError(GameError):
    """Room or match does not exist."""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class DuplicateRoomError(GameError):
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Match already initialized for room {room_id}")


class DuplicatePlayerError(GameError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} already in game")


class CapacityError(GameError):
    """A third player tried to enter a two-player room."""
    pass


class PreconditionError(GameError):
    """The match is not in a state where the action makes sense."""
    pass


class AuthorizationError(GameError):
    """Wrong player acting for the current phase."""
    pass


class ValidationError(GameError):
    """Malformed action payload or missing prerequisite."""
    pass
