"""Satisfiability oracle for connections demanded of an empty hex."""

from __future__ import annotations

from collections.abc import Iterable

from hexflows.games.flows.tiles import Connection, PlacedTile, TileType
from hexflows.games.flows.types import Direction, Rotation


def normalize_connection(a: Direction, b: Direction) -> Connection:
    """Connections are undirected; store the smaller direction first."""
    return (a, b) if a < b else (b, a)


def _build_all_configurations() -> list[frozenset[Connection]]:
    """Connection sets of all 24 tile configurations (4 types x 6 rotations)."""
    configurations: list[frozenset[Connection]] = []
    for tile_type in TileType:
        for r in range(6):
            tile = PlacedTile(tile_type, Rotation(r))
            configurations.append(
                frozenset(normalize_connection(d1, d2) for d1, d2 in tile.all_flows())
            )
    return configurations


ALL_CONFIGURATIONS: list[frozenset[Connection]] = _build_all_configurations()


def is_satisfiable(demands: Iterable[Connection]) -> bool:
    """True if a single tile in some rotation provides every demanded connection.

    Demands must already be normalised with ``normalize_connection``.
    """
    demanded = frozenset(demands)
    if not demanded:
        return True
    return any(demanded <= configuration for configuration in ALL_CONFIGURATIONS)
