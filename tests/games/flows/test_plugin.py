"""Tests for the Flows plugin: phases, validation, views and full games."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter

from hexflows.config import settings as app_settings
from hexflows.engine.errors import GameNotActiveError
from hexflows.engine.game_simulator import (
    SimulationState,
    apply_action_and_resolve,
    start_simulation,
    submit_action,
)
from hexflows.engine.models import Action, GameConfig, Phase, Player, PlayerId
from hexflows.engine.validation import validate_plugin
from hexflows.games.flows.actions import (
    DrawTile,
    GameAction,
    GameSettings,
    PlaceTile,
    RevealTile,
)
from hexflows.games.flows.game import Game
from hexflows.games.flows.plugin import FlowsPlugin
from hexflows.games.flows.tiles import TileType
from hexflows.games.flows.types import TilePos


def _make_plugin() -> FlowsPlugin:
    return FlowsPlugin()


def _started(players: list[Player], seed: int = 42) -> tuple[FlowsPlugin, SimulationState]:
    plugin = _make_plugin()
    state = start_simulation(plugin, players, GameConfig(random_seed=seed))
    return plugin, state


def _place_action(player_id: str, row: int, col: int, rotation: int) -> Action:
    return Action(
        action_type="place_tile",
        player_id=PlayerId(player_id),
        payload={"row": row, "col": col, "rotation": rotation},
    )


class TestClassAttributes:
    def test_game_id(self) -> None:
        assert _make_plugin().game_id == "flows"

    def test_player_count(self) -> None:
        p = _make_plugin()
        assert p.min_players == 2
        assert p.max_players == 3

    def test_passes_plugin_validation(self) -> None:
        assert validate_plugin(_make_plugin()) == []

    def test_validate_config(self) -> None:
        p = _make_plugin()
        assert p.validate_config({}) == []
        assert p.validate_config({"board_size": 9}) == ["Unknown option: board_size"]


class TestCreateInitialState:
    def test_first_phase_draws(self, players) -> None:
        _data, phase, _events = _make_plugin().create_initial_state(players, GameConfig())
        assert phase.name == "draw_tile"
        assert phase.auto_resolve is True

    def test_game_data_structure(self, players) -> None:
        data, _phase, _events = _make_plugin().create_initial_state(players, GameConfig())
        assert data["player_ids"] == ["p0", "p1"]
        assert data["actions"] == [
            {"kind": "initialize_game", "settings": {"num_players": 2, "version": 0}}
        ]
        assert "rng_state" in data

    def test_game_started_event(self, players) -> None:
        _data, _phase, events = _make_plugin().create_initial_state(players, GameConfig())
        assert events[0].event_type == "game_started"
        assert events[0].payload["sides"] == [0, None, 1, None, None, None]

    def test_same_seed_same_draws(self, players) -> None:
        _p, first = _started(players, seed=7)
        _p, second = _started(players, seed=7)
        assert first.game_data == second.game_data


class TestDrawPhase:
    def test_resolves_to_place_tile(self, players) -> None:
        _plugin, state = _started(players)
        assert state.phase.name == "place_tile"
        assert state.phase.expected_actions[0].player_id == "p0"
        assert state.phase.metadata["player_index"] == 0

    def test_both_players_hold_a_tile(self, players) -> None:
        plugin, state = _started(players)
        for p in players:
            view = plugin.get_player_view(state.game_data, state.phase, p.player_id, players)
            assert view["tile_in_hand"] is not None
        assert view["tiles_left"] == 38


class TestGetValidActions:
    def test_current_player_has_actions(self, players) -> None:
        plugin, state = _started(players)
        valid = plugin.get_valid_actions(state.game_data, state.phase, PlayerId("p0"))
        assert len(valid) > 0
        assert set(valid[0]) == {"row", "col", "rotation"}

    def test_other_player_has_none(self, players) -> None:
        plugin, state = _started(players)
        assert plugin.get_valid_actions(state.game_data, state.phase, PlayerId("p1")) == []

    def test_wrong_phase_has_none(self, players) -> None:
        plugin, state = _started(players)
        phase = Phase(name="draw_tile", auto_resolve=True)
        assert plugin.get_valid_actions(state.game_data, phase, PlayerId("p0")) == []


class TestValidateAction:
    def test_missing_fields(self, players) -> None:
        plugin, state = _started(players)
        action = Action(action_type="place_tile", player_id=PlayerId("p0"), payload={"row": 1})
        assert plugin.validate_action(state.game_data, state.phase, action) == (
            "Missing row, col, or rotation in payload"
        )

    def test_bad_rotation(self, players) -> None:
        plugin, state = _started(players)
        action = _place_action("p0", 3, 3, 6)
        assert plugin.validate_action(state.game_data, state.phase, action) is not None

    def test_off_board(self, players) -> None:
        plugin, state = _started(players)
        error = plugin.validate_action(state.game_data, state.phase, _place_action("p0", 0, 6, 0))
        assert error == "Can only place tile on an empty space"

    def test_unknown_player(self, players) -> None:
        plugin, state = _started(players)
        error = plugin.validate_action(state.game_data, state.phase, _place_action("p9", 3, 3, 0))
        assert error == "Unknown player: p9"

    def test_valid_placement(self, players) -> None:
        plugin, state = _started(players)
        assert plugin.validate_action(state.game_data, state.phase, _place_action("p0", 3, 3, 0)) is None


class TestApplyAction:
    def test_place_tile_emits_event(self, players) -> None:
        plugin, state = _started(players)
        result = plugin.apply_action(
            state.game_data, state.phase, _place_action("p0", 3, 3, 2), players,
        )
        assert result.events[0].event_type == "tile_placed"
        assert result.events[0].payload["row"] == 3
        assert result.events[0].payload["rotation"] == 2
        assert result.next_phase.name == "draw_tile"
        assert result.game_over is None

    def test_turn_passes_to_next_player(self, players) -> None:
        plugin, state = _started(players)
        apply_action_and_resolve(plugin, state, _place_action("p0", 3, 3, 0))
        assert state.phase.name == "place_tile"
        assert state.phase.expected_actions[0].player_id == "p1"

        view = plugin.get_player_view(state.game_data, state.phase, PlayerId("p1"), players)
        assert view["current_player_index"] == 1
        assert "3,3" in view["board"]["tiles"]


class TestGetPlayerView:
    def test_draws_are_private(self, players) -> None:
        plugin, state = _started(players)
        view = plugin.get_player_view(state.game_data, state.phase, PlayerId("p0"), players)
        draws = [a for a in view["actions"] if a["kind"] == "draw_tile"]
        assert [d["player"] for d in draws] == [0]

    def test_spectator_sees_no_draws(self, players) -> None:
        plugin, state = _started(players)
        view = plugin.get_player_view(state.game_data, state.phase, None, players)
        assert view["tile_in_hand"] is None
        assert all(a["kind"] != "draw_tile" for a in view["actions"])
        assert any(a["kind"] == "reveal_tile" for a in view["actions"])


class TestGameOver:
    def test_victory_ends_game(self, players) -> None:
        plugin, state = _started(players)

        # Alternate turns building the middle column, then hand player 0 the last tile.
        game = Game(GameSettings(num_players=2))
        for row in range(6):
            game.apply_action(PlaceTile(
                player=row % 2, tile=TileType.NO_SHARPS, pos=TilePos(row, 3), rotation=1,
            ))
        game.apply_action(DrawTile(player=0, tile=TileType.NO_SHARPS))
        game.apply_action(RevealTile(player=0, tile=TileType.NO_SHARPS))
        state.game_data["actions"] = TypeAdapter(list[GameAction]).dump_python(
            game.action_history, mode="json",
        )

        submit_action(plugin, state, _place_action("p0", 6, 3, 1))

        assert state.game_over is not None
        assert state.game_over.winners == ["p0"]
        assert state.game_over.reason == "victory"
        assert state.game_over.final_scores == {"p0": 1.0, "p1": 0.0}
        assert state.phase.name == "game_over"

        with pytest.raises(GameNotActiveError):
            submit_action(plugin, state, _place_action("p1", 0, 0, 0))

    def test_bag_runs_out(self, monkeypatch) -> None:
        from hexflows.main import build_registry, play_bot_game

        monkeypatch.setattr(app_settings, "tiles_per_type", 1)
        state = play_bot_game(build_registry(), seed=3)

        assert state.game_over is not None
        assert state.game_over.reason == "tiles_exhausted"
        assert state.game_over.winners == []
        placed = [a for a in state.game_data["actions"] if a["kind"] == "place_tile"]
        assert len(placed) == 4

    def test_no_legal_moves_ends_game(self, players, monkeypatch) -> None:
        checked = []

        def nowhere_to_place(self, tile):
            checked.append((self.current_player, tile))
            return False

        monkeypatch.setattr(Game, "has_legal_placement", nowhere_to_place)
        plugin, state = _started(players)

        assert state.game_over is not None
        assert state.game_over.reason == "no_legal_moves"
        assert state.game_over.winners == []
        assert state.game_over.final_scores == {"p0": 0.0, "p1": 0.0}
        assert state.phase.name == "game_over"

        view = plugin.get_player_view(state.game_data, state.phase, PlayerId("p0"), players)
        assert checked == [(0, TileType(view["tile_in_hand"]))]
        assert view["tiles_left"] == 38


class TestHistoryReplay:
    def test_validate_action_replays_once(self, players, monkeypatch) -> None:
        plugin, state = _started(players)
        replays = []
        replay = Game.from_actions

        def counting_replay(cls, actions):
            replays.append(len(actions))
            return replay(actions)

        monkeypatch.setattr(Game, "from_actions", classmethod(counting_replay))

        assert plugin.validate_action(state.game_data, state.phase, _place_action("p0", 3, 3, 0)) is None
        assert len(replays) == 1
