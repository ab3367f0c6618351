"""Move legality: a placement may not leave any player without a potential path.

A potential path for a player walks from one of the slots on their start
side to one of the slots on their goal side. Through a placed tile the walk
follows the tile's fixed connection; through an empty hex it may pick any
exit, which demands that the tile eventually placed there provides that
connection.

Players are routed one after another. Each accepted path claims the
inter-hex edges it crosses and records its demands on empty hexes, and
later players must route around those claims. When some player cannot be
routed, the check is retried once with that player first. Only if the
second ordering fails as well is the placement illegal. The search stops
after the second ordering, so not every permutation of players is tried.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterator, NamedTuple

from hexflows.games.flows.board import Board
from hexflows.games.flows.oracle import is_satisfiable, normalize_connection
from hexflows.games.flows.tiles import Connection, PlacedTile
from hexflows.games.flows.types import Cell, Direction, TilePos

logger = logging.getLogger(__name__)

# An inter-hex edge, independent of the direction it is crossed in.
EdgeKey = frozenset[TilePos]


class PathStep(NamedTuple):
    """One hex of a potential path and the connection used through it."""

    pos: TilePos
    entrance: Direction
    exit: Direction


@dataclass(frozen=True)
class BlocksPlayer:
    """The placement leaves ``player`` without any potential path."""

    player: int


def edge_key(a: TilePos, b: TilePos) -> EdgeKey:
    return frozenset((a, b))


def player_sides(board: Board, player: int) -> tuple[int, int]:
    """(start side, goal side) for a player."""
    start = board.side_of_player(player)
    return start, (start + 3) % 6


def is_move_legal(board: Board) -> bool:
    """Whether the candidate board (flows already recomputed) may be committed."""
    return check_legality(board) is None


def check_legality(board: Board) -> BlocksPlayer | None:
    """None if the candidate is legal, otherwise the player it blocks.

    A placement that wins the game is always legal.
    """
    if board.outcome is not None:
        return None
    blocked = find_blocked_player(board)
    if blocked is None:
        return None
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Placement blocks player {blocked}:\n{board.render()}")
    return BlocksPlayer(blocked)


def has_distinct_potential_paths(board: Board) -> bool:
    return find_blocked_player(board) is None


def find_blocked_player(board: Board) -> int | None:
    """Run the two-ordering search; return the player left without a path, if any."""
    players = board.players()
    failing = check_paths_for_ordering(board, players)
    if failing is None:
        return None

    reordered = [failing] + [p for p in players if p != failing]
    return check_paths_for_ordering(board, reordered)


def check_paths_for_ordering(board: Board, ordered_players: list[int]) -> int | None:
    """Route players in order under accumulated contention; return the first failure."""
    claimed_edges: set[EdgeKey] = set()
    internal_demands: dict[TilePos, set[Connection]] = {}

    for player in ordered_players:
        path = find_potential_path(board, player, claimed_edges, internal_demands)
        if path is None:
            return player
        claim_resources(board, path, claimed_edges, internal_demands)

    return None


def find_potential_path(
    board: Board,
    player: int,
    claimed_edges: set[EdgeKey],
    internal_demands: dict[TilePos, set[Connection]],
) -> list[PathStep] | None:
    """Breadth-first search for one potential path for *player*.

    Returns the steps from a start slot to a goal slot, or None.
    """
    start_side, goal_side = player_sides(board, player)
    goal_slots = set(board.edges_on_board_edge(goal_side))

    # Queue items: (steps so far, hex to enter, entrance direction)
    queue: deque[tuple[tuple[PathStep, ...], TilePos, Direction]] = deque(
        ((), pos, border_dir) for pos, border_dir in board.edges_on_board_edge(start_side)
    )
    visited: set[tuple[TilePos, TilePos]] = set()

    while queue:
        path, pos, entrance = queue.popleft()
        on_path = {step.pos for step in path}
        on_path.add(pos)

        for exit_dir in _possible_exits(board, pos, entrance, internal_demands):
            step = PathStep(pos, entrance, exit_dir)
            if (pos, exit_dir) in goal_slots:
                return [*path, step]

            neighbor = board.get_neighbor_pos(pos, exit_dir)
            if neighbor is None or neighbor in on_path:
                continue
            if edge_key(pos, neighbor) in claimed_edges:
                continue
            crossing = (pos, neighbor)
            if crossing in visited:
                continue
            visited.add(crossing)
            queue.append(((*path, step), neighbor, exit_dir.reversed()))

    return None


def _possible_exits(
    board: Board,
    pos: TilePos,
    entrance: Direction,
    internal_demands: dict[TilePos, set[Connection]],
) -> Iterator[Direction]:
    tile = board.tile(pos)
    if isinstance(tile, PlacedTile):
        yield tile.exit_from_entrance(entrance)
        return
    if tile != Cell.EMPTY:
        return

    existing = internal_demands.get(pos, set())
    for exit_dir in Direction:
        if exit_dir == entrance:
            continue
        demand = normalize_connection(entrance, exit_dir)
        if is_satisfiable(existing | {demand}):
            yield exit_dir


def claim_resources(
    board: Board,
    path: list[PathStep],
    claimed_edges: set[EdgeKey],
    internal_demands: dict[TilePos, set[Connection]],
) -> None:
    """Record the edges a path crosses and what it demands of empty hexes."""
    for current, following in zip(path, path[1:]):
        claimed_edges.add(edge_key(current.pos, following.pos))

    for step in path:
        if board.tile(step.pos) == Cell.EMPTY:
            internal_demands.setdefault(step.pos, set()).add(
                normalize_connection(step.entrance, step.exit)
            )
