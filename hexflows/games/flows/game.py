"""The Flows game aggregate: board, tile bag, hands, turn order and history."""

from __future__ import annotations

import copy
import logging
import random
from typing import Iterator

from hexflows.config import settings as app_settings
from hexflows.games.flows.actions import (
    DrawTile,
    GameAction,
    GameSettings,
    GameViewer,
    InitializeGame,
    PlaceTile,
    RevealTile,
    action_visible,
)
from hexflows.games.flows.board import Board, Victory
from hexflows.games.flows.errors import (
    IllegalMoveError,
    InvalidSettingsError,
    StructuralError,
)
from hexflows.games.flows.legality import check_legality, is_move_legal
from hexflows.games.flows.tiles import PlacedTile, TileType, create_tile_bag, draw_random_tile
from hexflows.games.flows.types import Cell, Rotation, TilePos

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MAX_PLAYERS = 3


class Game:
    def __init__(self, settings: GameSettings) -> None:
        if settings.version != 0:
            raise InvalidSettingsError(f"Invalid version: {settings.version}")
        if not MIN_PLAYERS <= settings.num_players <= MAX_PLAYERS:
            raise InvalidSettingsError(f"Invalid number of players: {settings.num_players}")

        self._settings = settings.model_copy()
        self._board = Board.for_players(settings.num_players)
        self._remaining_tiles = create_tile_bag(app_settings.tiles_per_type)
        self._tiles_in_hand: list[TileType | None] = [None] * settings.num_players
        self._action_history: list[GameAction] = [InitializeGame(settings=self._settings)]
        self._current_player = 0

    @classmethod
    def from_actions(cls, actions: list[GameAction]) -> Game:
        """Replay a history. The first action must be InitializeGame."""
        if not actions or not isinstance(actions[0], InitializeGame):
            raise StructuralError("First action in history must be InitializeGame")
        game = cls(actions[0].settings)
        for action in actions[1:]:
            game.apply_action(action)
        return game

    # ── Accessors ──

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def board(self) -> Board:
        return self._board

    @property
    def num_players(self) -> int:
        return self._settings.num_players

    @property
    def current_player(self) -> int:
        return self._current_player

    @property
    def outcome(self) -> Victory | None:
        return self._board.outcome

    @property
    def action_history(self) -> list[GameAction]:
        return list(self._action_history)

    @property
    def remaining_tiles(self) -> dict[TileType, int]:
        return dict(self._remaining_tiles)

    def tiles_left(self) -> int:
        return sum(self._remaining_tiles.values())

    def tile_in_hand(self, player: int) -> TileType | None:
        return self._tiles_in_hand[player]

    def tile(self, pos: TilePos):
        return self._board.tile(pos)

    def player_on_side(self, side: int) -> int | None:
        return self._board.player_on_side(side)

    def set_current_player(self, player: int) -> None:
        """Hand the turn to *player* directly. Used to set up positions."""
        self._current_player = player

    def actions_for_viewer(self, viewer: GameViewer) -> list[GameAction]:
        return [a for a in self._action_history if action_visible(a, viewer)]

    # ── Actions ──

    def apply_action(self, action: GameAction) -> None:
        """Apply an action or raise without changing the game."""
        if isinstance(action, InitializeGame):
            raise StructuralError("Game initialized twice", action)
        if not isinstance(action, (DrawTile, RevealTile, PlaceTile)):
            raise StructuralError(f"Unknown action: {action!r}", action)
        if not 0 <= action.player < self.num_players:
            raise StructuralError(f"Invalid player: {action.player}", action)

        if isinstance(action, DrawTile):
            self._apply_draw(action)
        elif isinstance(action, RevealTile):
            self._apply_reveal(action)
        else:
            self._apply_place(action)

        self._action_history.append(action)

    def _apply_draw(self, action: DrawTile) -> None:
        if self._tiles_in_hand[action.player] is not None:
            raise StructuralError("Player already has a tile in hand", action)
        if self._remaining_tiles[action.tile] == 0:
            raise StructuralError("No tiles remaining of drawn type", action)
        self._tiles_in_hand[action.player] = action.tile
        self._remaining_tiles[action.tile] -= 1

    def _apply_reveal(self, action: RevealTile) -> None:
        held = self._tiles_in_hand[action.player]
        if held is not None and held != action.tile:
            raise StructuralError("Must reveal actual tile that player holds", action)
        self._tiles_in_hand[action.player] = action.tile

    def _apply_place(self, action: PlaceTile) -> None:
        if self.outcome is not None:
            raise StructuralError("Game is already over", action)
        held = self._tiles_in_hand[action.player]
        if held is not None and held != action.tile:
            raise StructuralError("Player must play the tile from their hand", action)
        if self._board.tile(action.pos) != Cell.EMPTY:
            raise StructuralError("Can only place tile on an empty space", action)
        if self._current_player != action.player:
            raise StructuralError("Wrong player's turn", action)

        candidate = self._board.with_tile_placed(
            action.pos, PlacedTile(action.tile, action.tile_rotation),
        )
        verdict = check_legality(candidate)
        if verdict is not None:
            raise IllegalMoveError(verdict.player, action)

        self._board = candidate
        self._tiles_in_hand[action.player] = None
        if self.outcome is None:
            self._current_player = (self._current_player + 1) % self.num_players
        else:
            logger.info(f"Game won by players {self.outcome.players}")

    # ── Automatic actions ──

    def draw_random_tile(self, rng: random.Random) -> TileType:
        """Pick a tile from the bag without drawing it; apply a DrawTile to draw."""
        return draw_random_tile(self._remaining_tiles, rng)

    def do_automatic_actions(self, rng: random.Random) -> None:
        """Draw for every empty hand, then reveal the current player's tile."""
        order = list(range(self._current_player, self.num_players)) + list(
            range(self._current_player)
        )
        for player in order:
            if self._tiles_in_hand[player] is None and self.tiles_left() > 0:
                self.apply_action(DrawTile(player=player, tile=self.draw_random_tile(rng)))

        if self._current_tile_revealed():
            return
        tile = self._tiles_in_hand[self._current_player]
        if tile is not None:
            self.apply_action(RevealTile(player=self._current_player, tile=tile))

    def _current_tile_revealed(self) -> bool:
        """Whether the current player revealed a tile since they last drew."""
        for action in reversed(self._action_history):
            if isinstance(action, DrawTile) and action.player == self._current_player:
                return False
            if isinstance(action, RevealTile) and action.player == self._current_player:
                return True
        return False

    # ── Simulation ──

    def clone(self) -> Game:
        return copy.deepcopy(self)

    def with_tile_placed(self, tile: TileType, pos: TilePos, rotation: int) -> Game:
        """A copy with the tile placed and flows recomputed. No legality check."""
        game = self.clone()
        game._board = self._board.with_tile_placed(pos, PlacedTile(tile, Rotation(rotation)))
        return game

    def legal_placements(self, tile: TileType) -> list[tuple[TilePos, Rotation]]:
        """Every (position, rotation) at which *tile* may be placed now."""
        return list(self._iter_legal_placements(tile))

    def has_legal_placement(self, tile: TileType) -> bool:
        return next(self._iter_legal_placements(tile), None) is not None

    def _iter_legal_placements(self, tile: TileType) -> Iterator[tuple[TilePos, Rotation]]:
        if self.outcome is not None:
            return
        for pos in self._board.empty_positions():
            for r in range(6):
                rotation = Rotation(r)
                candidate = self._board.with_tile_placed(pos, PlacedTile(tile, rotation))
                if is_move_legal(candidate):
                    yield pos, rotation

    def __str__(self) -> str:
        return (
            f"{self._board.render()}\n"
            f"Settings: {self._settings}\n"
            f"Sides: {self._board.sides}\n"
            f"Remaining tiles: {[self._remaining_tiles[t] for t in TileType]}\n"
            f"Tiles in hand: {self._tiles_in_hand}\n"
            f"Current player: {self._current_player}"
        )
