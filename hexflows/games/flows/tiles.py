"""Tile types, placed tiles and the tile bag.

Every tile connects the six hex edges in three disjoint pairs. A tile type is
named after how many "sharp" (adjacent-edge) turns it contains. The exit
tables below are indexed by entrance direction and are their own inverse.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import IntEnum

from hexflows.games.flows.types import Direction, Rotation

TILES_PER_TYPE = 10

_EXIT_TABLES: dict[int, tuple[int, ...]] = {
    0: (2, 4, 0, 5, 1, 3),
    1: (5, 3, 4, 1, 2, 0),
    2: (5, 4, 3, 2, 1, 0),
    3: (5, 2, 1, 4, 3, 0),
}

# The straight segment, when a tile has one, always joins WEST and EAST in
# the base orientation, so listing those entrances last keeps it last.
_FLOW_ENTRANCE_ORDER = (0, 2, 3, 5, 1, 4)

Connection = tuple[Direction, Direction]


class TileType(IntEnum):
    NO_SHARPS = 0
    ONE_SHARP = 1
    TWO_SHARPS = 2
    THREE_SHARPS = 3

    @property
    def num_sharps(self) -> int:
        return int(self)

    @staticmethod
    def from_num_sharps(n: int) -> TileType:
        if n not in _EXIT_TABLES:
            raise ValueError(f"Invalid number of sharps for a tile: {n}")
        return TileType(n)

    def exit_from_entrance(self, entrance: Direction) -> Direction:
        return Direction(_EXIT_TABLES[int(self)][int(entrance)])

    def all_flows(self) -> list[Connection]:
        """The three connections of the unrotated tile, smaller direction first."""
        flows: list[Connection] = []
        for i in _FLOW_ENTRANCE_ORDER:
            entrance = Direction(i)
            exit_dir = self.exit_from_entrance(entrance)
            if entrance < exit_dir:
                flows.append((entrance, exit_dir))
        return flows


@dataclass
class PlacedTile:
    """A tile on the board, with the flow owners cached per edge.

    The cache is derived data: the board clears and refills it on every
    recomputation, never patches it.
    """

    tile_type: TileType
    rotation: Rotation = field(default_factory=Rotation)
    flow_cache: list[int | None] = field(default_factory=lambda: [None] * 6)

    def __post_init__(self) -> None:
        self.tile_type = TileType(self.tile_type)
        self.rotation = Rotation(self.rotation)

    def exit_from_entrance(self, entrance: Direction) -> Direction:
        unrotated = entrance.rotate(self.rotation.reversed())
        return self.tile_type.exit_from_entrance(unrotated).rotate(self.rotation)

    def all_flows(self) -> list[Connection]:
        return [
            (d1.rotate(self.rotation), d2.rotate(self.rotation))
            for d1, d2 in self.tile_type.all_flows()
        ]

    def flow(self, direction: Direction) -> int | None:
        return self.flow_cache[direction]

    def set_flow(self, direction: Direction, player: int | None) -> None:
        self.flow_cache[direction] = player

    def clear_flows(self) -> None:
        self.flow_cache = [None] * 6


def create_tile_bag(tiles_per_type: int = TILES_PER_TYPE) -> dict[TileType, int]:
    """Remaining-tile counts for a fresh game."""
    return {tile_type: tiles_per_type for tile_type in TileType}


def draw_random_tile(remaining: dict[TileType, int], rng: random.Random) -> TileType:
    """Pick a tile type with odds proportional to how many of it remain.

    Does not modify *remaining*.
    """
    total = sum(remaining.values())
    if total <= 0:
        raise ValueError("No tiles remaining to draw")
    drawn = rng.randrange(total)
    for tile_type in TileType:
        count = remaining.get(tile_type, 0)
        if drawn < count:
            return tile_type
        drawn -= count
    raise AssertionError("draw_random_tile did not select a tile")
