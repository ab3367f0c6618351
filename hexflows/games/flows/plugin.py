"""FlowsPlugin: implements the GamePlugin protocol for Flows.

The whole game lives in ``game_data`` as its action history plus the state
of the tile bag's RNG. Every call rebuilds a ``Game`` by replaying the
history, so the stored data stays JSON-serializable.
"""

from __future__ import annotations

import logging
import random
from typing import ClassVar

from pydantic import TypeAdapter

from hexflows.config import settings as app_settings
from hexflows.engine.errors import InvalidActionError
from hexflows.engine.models import (
    Action,
    Event,
    ExpectedAction,
    GameConfig,
    GameResult,
    Phase,
    Player,
    PlayerId,
    TransitionResult,
)
from hexflows.games.flows.actions import (
    GameAction,
    GameSettings,
    GameViewer,
    PlaceTile,
    PlayerViewer,
    SpectatorViewer,
)
from hexflows.games.flows.game import Game
from hexflows.games.flows.types import TilePos

logger = logging.getLogger(__name__)

_HISTORY = TypeAdapter(list[GameAction])


class FlowsPlugin:
    """Flows: connect your side of the hex board to the opposite one."""

    game_id: ClassVar[str] = "flows"
    display_name: ClassVar[str] = "Flows"
    min_players: ClassVar[int] = 2
    max_players: ClassVar[int] = 3
    description: ClassVar[str] = (
        "Place hex tiles to route a flow from your side of the board to the "
        "opposite side. A move may never cut another player off completely."
    )
    config_schema: ClassVar[dict] = {
        "type": "object",
        "properties": {},
    }

    # ── Lifecycle ──

    def create_initial_state(
        self,
        players: list[Player],
        config: GameConfig,
    ) -> tuple[dict, Phase, list[Event]]:
        game = Game(GameSettings(num_players=len(players)))
        seed = config.random_seed
        if seed is None:
            seed = app_settings.plugin_random_seed
        rng = random.Random(seed)

        game_data: dict = {
            "player_ids": [p.player_id for p in players],
            "actions": _dump_history(game),
            "rng_state": _serialize_rng_state(rng.getstate()),
        }

        first_phase = Phase(
            name="draw_tile",
            auto_resolve=True,
            metadata={"player_index": 0},
        )

        events = [
            Event(event_type="game_started", payload={
                "players": [p.player_id for p in players],
                "sides": game.board.sides,
            }),
        ]

        return game_data, first_phase, events

    def validate_config(self, options: dict) -> list[str]:
        unknown = sorted(set(options) - set(self.config_schema["properties"]))
        return [f"Unknown option: {key}" for key in unknown]

    # ── Core game loop ──

    def get_valid_actions(
        self,
        game_data: dict,
        phase: Phase,
        player_id: PlayerId,
    ) -> list[dict]:
        if phase.name != "place_tile":
            return []

        expected_pid = phase.expected_actions[0].player_id if phase.expected_actions else None
        if player_id != expected_pid:
            return []

        game = _load_game(game_data)
        tile = game.tile_in_hand(game.current_player)
        if tile is None:
            return []

        return [
            {"row": pos.row, "col": pos.col, "rotation": int(rotation)}
            for pos, rotation in game.legal_placements(tile)
        ]

    def validate_action(
        self,
        game_data: dict,
        phase: Phase,
        action: Action,
    ) -> str | None:
        if phase.name == "place_tile":
            return self._validate_place_tile(game_data, action)
        return None

    def apply_action(
        self,
        game_data: dict,
        phase: Phase,
        action: Action,
        players: list[Player],
    ) -> TransitionResult:
        if phase.name == "draw_tile":
            return self._apply_draw_tile(game_data, players)

        if phase.name == "place_tile":
            return self._apply_place_tile(game_data, action, players)

        raise ValueError(f"Unknown phase: {phase.name}")

    # ── View filtering ──

    def get_player_view(
        self,
        game_data: dict,
        phase: Phase,
        player_id: PlayerId | None,
        players: list[Player],
    ) -> dict:
        game = _load_game(game_data)
        viewer: GameViewer = SpectatorViewer()
        hand = None
        if player_id in game_data["player_ids"]:
            index = game_data["player_ids"].index(player_id)
            viewer = PlayerViewer(player=index)
            hand = game.tile_in_hand(index)

        # Drawn tiles stay hidden from everyone but the drawing player
        return {
            "board": game.board.to_dict(),
            "current_player_index": game.current_player,
            "tiles_left": game.tiles_left(),
            "tile_in_hand": int(hand) if hand is not None else None,
            "actions": [
                a.model_dump(mode="json") for a in game.actions_for_viewer(viewer)
            ],
        }

    # ── Private handlers ──

    def _validate_place_tile(self, game_data: dict, action: Action) -> str | None:
        if action.player_id not in game_data["player_ids"]:
            return f"Unknown player: {action.player_id}"

        game = _load_game(game_data)
        try:
            place = _place_tile_action(game, game_data["player_ids"], action)
        except (KeyError, TypeError, ValueError):
            return "Missing row, col, or rotation in payload"

        if place is None:
            return "No tile in hand"
        try:
            game.apply_action(place)
        except InvalidActionError as e:
            return e.message
        return None

    def _apply_draw_tile(
        self,
        game_data: dict,
        players: list[Player],
    ) -> TransitionResult:
        game = _load_game(game_data)
        rng = _restore_rng(game_data["rng_state"])

        game.do_automatic_actions(rng)

        game_data["actions"] = _dump_history(game)
        game_data["rng_state"] = _serialize_rng_state(rng.getstate())

        current = game.current_player
        tile = game.tile_in_hand(current)
        if tile is None:
            return self._end_game(game_data, [], players, [], "tiles_exhausted")

        events = [
            Event(
                event_type="tile_revealed",
                player_id=players[current].player_id,
                payload={"tile_type": int(tile)},
            ),
        ]

        if not game.has_legal_placement(tile):
            logger.info(f"Player {current} cannot place tile {tile.name}")
            return self._end_game(game_data, events, players, [], "no_legal_moves")

        return TransitionResult(
            game_data=game_data,
            events=events,
            next_phase=_place_tile_phase(players, current),
            scores=_scores(players, []),
            game_over=None,
        )

    def _apply_place_tile(
        self,
        game_data: dict,
        action: Action,
        players: list[Player],
    ) -> TransitionResult:
        game = _load_game(game_data)
        place = _place_tile_action(game, game_data["player_ids"], action)
        if place is None:
            raise InvalidActionError("No tile in hand", action)

        game.apply_action(place)
        game_data["actions"] = _dump_history(game)

        events = [
            Event(
                event_type="tile_placed",
                player_id=action.player_id,
                payload={
                    "row": place.pos.row,
                    "col": place.pos.col,
                    "rotation": place.rotation,
                    "tile_type": int(place.tile),
                },
            ),
        ]

        if game.outcome is not None:
            winners = [players[i] for i in game.outcome.players]
            return self._end_game(game_data, events, players, winners, "victory")

        return TransitionResult(
            game_data=game_data,
            events=events,
            next_phase=Phase(
                name="draw_tile",
                auto_resolve=True,
                metadata={"player_index": game.current_player},
            ),
            scores=_scores(players, []),
            game_over=None,
        )

    def _end_game(
        self,
        game_data: dict,
        events: list[Event],
        players: list[Player],
        winners: list[Player],
        reason: str,
    ) -> TransitionResult:
        final_scores = _scores(players, winners)
        events.append(Event(
            event_type="game_ended",
            payload={
                "winners": [w.player_id for w in winners],
                "reason": reason,
            },
        ))

        return TransitionResult(
            game_data=game_data,
            events=events,
            next_phase=Phase(name="game_over", auto_resolve=False),
            scores=final_scores,
            game_over=GameResult(
                winners=[w.player_id for w in winners],
                final_scores=final_scores,
                reason=reason,
            ),
        )


# ── Helpers ──


def _load_game(game_data: dict) -> Game:
    return Game.from_actions(_HISTORY.validate_python(game_data["actions"]))


def _dump_history(game: Game) -> list[dict]:
    return _HISTORY.dump_python(game.action_history, mode="json")


def _place_tile_action(game: Game, player_ids: list[str], action: Action) -> PlaceTile | None:
    """Build a PlaceTile for the acting player's tile in hand, or None without one."""
    payload = action.payload
    pos = TilePos(int(payload["row"]), int(payload["col"]))
    rotation = payload["rotation"]
    if not isinstance(rotation, int) or not 0 <= rotation <= 5:
        raise ValueError(f"Invalid rotation: {rotation!r}")

    player = player_ids.index(action.player_id)
    tile = game.tile_in_hand(player)
    if tile is None:
        return None
    return PlaceTile(player=player, tile=tile, pos=pos, rotation=rotation)


def _place_tile_phase(players: list[Player], player_index: int) -> Phase:
    return Phase(
        name="place_tile",
        expected_actions=[
            ExpectedAction(
                player_id=players[player_index].player_id,
                action_type="place_tile",
            ),
        ],
        auto_resolve=False,
        metadata={"player_index": player_index},
    )


def _scores(players: list[Player], winners: list[Player]) -> dict[str, float]:
    winner_ids = {w.player_id for w in winners}
    return {p.player_id: 1.0 if p.player_id in winner_ids else 0.0 for p in players}


def _serialize_rng_state(state: tuple) -> list:
    """Convert random.Random.getstate() to a JSON-serializable list."""
    version, internalstate, gauss_next = state
    return [version, list(internalstate), gauss_next]


def _restore_rng(serialized: list) -> random.Random:
    """Restore a random.Random from serialized state."""
    version, internalstate, gauss_next = serialized
    rng = random.Random()
    rng.setstate((version, tuple(internalstate), gauss_next))
    return rng
