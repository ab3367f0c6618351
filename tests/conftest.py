from __future__ import annotations

import pytest

from hexflows.engine.models import Player, PlayerId
from hexflows.games.flows.actions import GameSettings
from hexflows.games.flows.board import Board
from hexflows.games.flows.game import Game


@pytest.fixture
def board() -> Board:
    """An empty two-player board."""
    return Board.for_players(2)


@pytest.fixture
def game() -> Game:
    """A fresh two-player game with nothing drawn yet."""
    return Game(GameSettings(num_players=2))


@pytest.fixture
def players() -> list[Player]:
    return [
        Player(player_id=PlayerId("p0"), display_name="Alice", seat_index=0),
        Player(player_id=PlayerId("p1"), display_name="Bob", seat_index=1),
    ]
