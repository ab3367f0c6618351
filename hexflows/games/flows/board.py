"""Board state and flow computation for Flows.

The board is a 7x7 grid clipped to a hexagon of 37 playable cells. Each of
the six board sides may be owned by a player, whose goal is the opposite
side. Flows are recomputed from scratch after every mutation.
"""

from __future__ import annotations

import copy
import logging

from pydantic import BaseModel

from hexflows.games.flows.tiles import PlacedTile
from hexflows.games.flows.types import Cell, Direction, Rotation, TilePos

logger = logging.getLogger(__name__)

BOARD_SIZE = 7
CENTER = TilePos(3, 3)

Tile = Cell | PlacedTile
Slot = tuple[TilePos, Direction]

# Boundary slots of side 0, the bottom row. Every other side is this template
# rotated around the center.
_BOTTOM_EDGE_TEMPLATE: list[Slot] = [
    (TilePos(0, 0), Direction.SOUTH_EAST),
    (TilePos(0, 1), Direction.SOUTH_WEST),
    (TilePos(0, 1), Direction.SOUTH_EAST),
    (TilePos(0, 2), Direction.SOUTH_WEST),
    (TilePos(0, 2), Direction.SOUTH_EAST),
    (TilePos(0, 3), Direction.SOUTH_WEST),
    (TilePos(0, 3), Direction.SOUTH_EAST),
]


def _side_slots(side: int) -> list[Slot]:
    rotation = Rotation(side)
    return [
        (CENTER + (pos - CENTER).rotate(rotation), direction.rotate(rotation))
        for pos, direction in _BOTTOM_EDGE_TEMPLATE
    ]


_SIDE_SLOTS: list[list[Slot]] = [_side_slots(side) for side in range(6)]


def is_on_board(pos: TilePos) -> bool:
    """Cells of the square grid that lie inside the hexagon."""
    return (
        0 <= pos.row < BOARD_SIZE
        and 0 <= pos.col < BOARD_SIZE
        and abs(pos.row - pos.col) <= 3
    )


def default_sides(num_players: int) -> list[int | None]:
    """Side 0 for player 0, side 2 for player 1, side 4 for player 2."""
    sides: list[int | None] = [None] * 6
    for player in range(num_players):
        sides[2 * player] = player
    return sides


class Victory(BaseModel):
    players: list[int]


class Board:
    def __init__(self, sides: list[int | None] | None = None) -> None:
        self._grid: list[list[Tile]] = [
            [
                Cell.EMPTY if is_on_board(TilePos(row, col)) else Cell.NOT_ON_BOARD
                for col in range(BOARD_SIZE)
            ]
            for row in range(BOARD_SIZE)
        ]
        self._sides: list[int | None] = list(sides) if sides is not None else [None] * 6
        if len(self._sides) != 6:
            raise ValueError(f"A board has 6 sides, got {len(self._sides)}")
        self._outcome: Victory | None = None

    @classmethod
    def for_players(cls, num_players: int) -> Board:
        return cls(default_sides(num_players))

    # ── Accessors ──

    @property
    def outcome(self) -> Victory | None:
        return self._outcome

    @property
    def sides(self) -> list[int | None]:
        return list(self._sides)

    def player_on_side(self, side: int) -> int | None:
        return self._sides[Rotation(side)]

    def side_of_player(self, player: int) -> int:
        for side, owner in enumerate(self._sides):
            if owner == player:
                return side
        raise ValueError(f"Player {player} owns no side")

    def players(self) -> list[int]:
        """Players owning a side, in ascending id order."""
        return sorted({p for p in self._sides if p is not None})

    def tile(self, pos: TilePos) -> Tile:
        if not (0 <= pos.row < BOARD_SIZE and 0 <= pos.col < BOARD_SIZE):
            return Cell.NOT_ON_BOARD
        return self._grid[pos.row][pos.col]

    def set_tile(self, pos: TilePos, tile: Tile) -> None:
        """Overwrite a cell. Callers must recompute flows afterwards."""
        if not is_on_board(pos):
            raise ValueError(f"Position {pos.to_key()} is not on the board")
        self._grid[pos.row][pos.col] = tile

    def positions(self) -> list[TilePos]:
        """All playable positions, row by row."""
        return [
            TilePos(row, col)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
            if is_on_board(TilePos(row, col))
        ]

    def empty_positions(self) -> list[TilePos]:
        return [pos for pos in self.positions() if self.tile(pos) == Cell.EMPTY]

    def placed_tiles(self) -> list[tuple[TilePos, PlacedTile]]:
        placed: list[tuple[TilePos, PlacedTile]] = []
        for pos in self.positions():
            tile = self.tile(pos)
            if isinstance(tile, PlacedTile):
                placed.append((pos, tile))
        return placed

    # ── Geometry ──

    def get_neighbor_pos(self, pos: TilePos, direction: Direction) -> TilePos | None:
        neighbor = pos + direction.tile_vec
        if self.tile(neighbor) == Cell.NOT_ON_BOARD:
            return None
        return neighbor

    def get_direction_towards(self, from_pos: TilePos, to_pos: TilePos) -> Direction | None:
        delta = to_pos - from_pos
        for direction in Direction:
            if direction.tile_vec == delta:
                return direction
        return None

    def is_border_edge(self, pos: TilePos, direction: Direction) -> bool:
        return self.tile(pos + direction.tile_vec) == Cell.NOT_ON_BOARD

    def edges_on_board_edge(self, side: int) -> list[Slot]:
        """The 7 (hex, outward direction) slots along one side of the board."""
        return list(_SIDE_SLOTS[Rotation(side)])

    # ── Flows ──

    def recompute_flows(self) -> None:
        """Clear every flow cache, refill it from each owned side, update the outcome."""
        for _pos, tile in self.placed_tiles():
            tile.clear_flows()

        for side, player in enumerate(self._sides):
            if player is None:
                continue
            for pos, direction in self.edges_on_board_edge(side):
                self._floodfill_path(player, pos, direction)

        self.update_outcome()

    def _floodfill_path(self, player: int, pos: TilePos, entrance: Direction) -> None:
        # Starting from a board edge the trace can never close into a loop.
        while True:
            tile = self.tile(pos)
            if not isinstance(tile, PlacedTile):
                return
            exit_dir = tile.exit_from_entrance(entrance)
            tile.set_flow(entrance, player)
            tile.set_flow(exit_dir, player)
            next_pos = self.get_neighbor_pos(pos, exit_dir)
            if next_pos is None:
                return
            pos, entrance = next_pos, exit_dir.reversed()

    def update_outcome(self) -> None:
        if self._outcome is not None:
            return

        winners: list[int] = []
        for side, player in enumerate(self._sides):
            if player is None:
                continue
            goal_side = (side + 3) % 6
            for pos, direction in self.edges_on_board_edge(goal_side):
                tile = self.tile(pos)
                if isinstance(tile, PlacedTile) and tile.flow(direction) == player:
                    winners.append(player)
                    teammate = self._sides[goal_side]
                    if teammate is not None:
                        winners.append(teammate)
            # No early exit: several players may win on the same placement.

        if winners:
            self._outcome = Victory(players=sorted(set(winners)))
            logger.debug(f"Victory for players {self._outcome.players}")

    # ── Copies ──

    def clone(self) -> Board:
        return copy.deepcopy(self)

    def with_tile_placed(self, pos: TilePos, tile: PlacedTile) -> Board:
        """A copy with *tile* at *pos* and flows recomputed. No legality check."""
        board = self.clone()
        board.set_tile(pos, PlacedTile(tile.tile_type, tile.rotation))
        board.recompute_flows()
        return board

    # ── Views ──

    def to_dict(self) -> dict:
        tiles: dict[str, dict] = {}
        for pos, tile in self.placed_tiles():
            tiles[pos.to_key()] = {
                "tile_type": int(tile.tile_type),
                "rotation": int(tile.rotation),
                "flows": list(tile.flow_cache),
            }
        return {
            "sides": list(self._sides),
            "tiles": tiles,
            "outcome": self._outcome.players if self._outcome else None,
        }

    def render(self) -> str:
        lines: list[str] = []
        for row in reversed(range(BOARD_SIZE)):
            cells: list[str] = [" " * (BOARD_SIZE - row)]
            for col in range(BOARD_SIZE):
                tile = self._grid[row][col]
                if tile == Cell.NOT_ON_BOARD:
                    cells.append("  ")
                elif tile == Cell.EMPTY:
                    cells.append(". ")
                else:
                    cells.append(f"{tile.tile_type.num_sharps} ")
            lines.append("".join(cells).rstrip())
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()
