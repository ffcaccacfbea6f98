from __future__ import annotations


class GameError(ValueError):
    """Base class for every rejected intent.

    Subclasses ``ValueError`` so callers that only care about "the move was
    refused" can keep catching ``ValueError``.
    """

    code = "game_error"


class ValidationError(GameError):
    code = "validation_error"


class IllegalMove(GameError):
    code = "illegal_move"


class NotFound(GameError):
    code = "not_found"


class RoomNotFound(NotFound):
    code = "room_not_found"


class StateConflict(GameError):
    code = "state_conflict"


class InsufficientPlayers(StateConflict):
    code = "insufficient_players"


class RoomFull(StateConflict):
    code = "room_full"
