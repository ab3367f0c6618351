"""Hex geometry for Flows: rotations, directions and board coordinates.

Positions use (row, col) axial coordinates on a 7x7 grid. Row 0 is the
bottom of the board and row 6 the top. The six directions are ordered
clockwise starting from south-west, so rotating a direction by ``n`` steps
is plain modular addition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class Rotation(int):
    """A rotation in 60-degree clockwise steps, always normalised to 0..5."""

    def __new__(cls, value: int = 0) -> Rotation:
        return super().__new__(cls, int(value) % 6)

    def __add__(self, other: int) -> Rotation:
        return Rotation(int(self) + int(other))

    def reversed(self) -> Rotation:
        return Rotation(-int(self))

    def __repr__(self) -> str:
        return f"Rotation({int(self)})"


@dataclass(frozen=True)
class TileVec:
    """Offset between two tile positions."""

    row: int
    col: int

    def rotate(self, rotation: int) -> TileVec:
        # Rows of the six precomputed hex rotation matrices:
        # rotated_row = a * row + b * col, rotated_col = c * row + d * col
        a, b, c, d = _ROTATION_MATRICES[Rotation(rotation)]
        return TileVec(a * self.row + b * self.col, c * self.row + d * self.col)

    def __neg__(self) -> TileVec:
        return TileVec(-self.row, -self.col)


_ROTATION_MATRICES: list[tuple[int, int, int, int]] = [
    (1, 0, 0, 1),
    (1, -1, 1, 0),
    (0, -1, 1, -1),
    (-1, 0, 0, -1),
    (-1, 1, -1, 0),
    (0, 1, -1, 1),
]


@dataclass(frozen=True, order=True)
class TilePos:
    row: int
    col: int

    def __add__(self, vec: TileVec) -> TilePos:
        return TilePos(self.row + vec.row, self.col + vec.col)

    def __sub__(self, other: TilePos) -> TileVec:
        return TileVec(self.row - other.row, self.col - other.col)

    def to_key(self) -> str:
        return f"{self.row},{self.col}"

    @staticmethod
    def from_key(key: str) -> TilePos:
        row, col = key.split(",")
        return TilePos(int(row), int(col))


class Direction(IntEnum):
    SOUTH_WEST = 0
    WEST = 1
    NORTH_WEST = 2
    NORTH_EAST = 3
    EAST = 4
    SOUTH_EAST = 5

    def rotate(self, rotation: int) -> Direction:
        return Direction((int(self) + int(rotation)) % 6)

    def reversed(self) -> Direction:
        return self.rotate(3)

    @property
    def tile_vec(self) -> TileVec:
        """(row delta, col delta) to the adjacent tile in this direction."""
        return _DIRECTION_VECTORS[self]


_DIRECTION_VECTORS: dict[Direction, TileVec] = {
    Direction.SOUTH_WEST: TileVec(-1, -1),
    Direction.WEST: TileVec(0, -1),
    Direction.NORTH_WEST: TileVec(1, 0),
    Direction.NORTH_EAST: TileVec(1, 1),
    Direction.EAST: TileVec(0, 1),
    Direction.SOUTH_EAST: TileVec(-1, 0),
}


class Cell(str, Enum):
    """Contents of a board cell that holds no tile."""

    NOT_ON_BOARD = "not_on_board"
    EMPTY = "empty"
