from __future__ import annotations

from hexflows.engine.errors import GameEngineError, InvalidActionError


class StructuralError(InvalidActionError):
    """Action breaks the rules of play, such as placing on an occupied cell."""
    pass


class IllegalMoveError(InvalidActionError):
    """Placement would leave a player with no potential path."""

    def __init__(self, blocked_player: int, action=None):
        self.blocked_player = blocked_player
        super().__init__(f"Illegal move: blocks player {blocked_player}", action)


class InvalidSettingsError(GameEngineError):
    """Game settings outside what the rules support."""
    pass
