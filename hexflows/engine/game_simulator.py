"""Synchronous game simulator: advances game state through auto-resolve phases.

Used to play complete games in-process and to let bots evaluate positions
on cloned states.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field

from hexflows.engine.errors import (
    GameNotActiveError,
    InvalidActionError,
    NotYourTurnError,
    PluginError,
)
from hexflows.engine.models import Action, GameConfig, GameResult, Phase, Player, PlayerId
from hexflows.engine.protocol import GamePlugin

logger = logging.getLogger(__name__)

MAX_AUTO_RESOLVE = 50


@dataclass
class SimulationState:
    """Mutable game state for synchronous simulation."""

    game_data: dict
    phase: Phase
    players: list[Player]
    scores: dict[str, float] = field(default_factory=dict)
    game_over: GameResult | None = None


def start_simulation(
    plugin: GamePlugin,
    players: list[Player],
    config: GameConfig,
) -> SimulationState:
    """Create the initial state and resolve any leading auto-resolve phases."""
    game_data, phase, _events = plugin.create_initial_state(players, config)
    state = SimulationState(
        game_data=game_data,
        phase=phase,
        players=players,
        scores={p.player_id: 0.0 for p in players},
    )
    _resolve_auto_phases(plugin, state)
    return state


def submit_action(
    plugin: GamePlugin,
    state: SimulationState,
    action: Action,
) -> None:
    """Check the envelope, let the plugin validate, then apply and resolve.

    Raises GameNotActiveError, NotYourTurnError or InvalidActionError without
    touching *state*.
    """
    if state.game_over is not None:
        raise GameNotActiveError("Game is finished")

    if state.phase.expected_actions:
        expected = state.phase.expected_actions[0]
        if expected.player_id and action.player_id != expected.player_id:
            raise NotYourTurnError(
                f"Expected {expected.player_id}, got {action.player_id}"
            )

    error = plugin.validate_action(state.game_data, state.phase, action)
    if error:
        raise InvalidActionError(error, action)

    apply_action_and_resolve(plugin, state, action)


def apply_action_and_resolve(
    plugin: GamePlugin,
    state: SimulationState,
    action: Action,
) -> None:
    """Apply an action and auto-resolve all subsequent auto-resolve phases.

    Mutates *state* in place.  After return, ``state.phase`` is either a
    non-auto-resolve phase (player needs to act) or ``state.game_over`` is set.
    """
    _apply(plugin, state, action)
    _resolve_auto_phases(plugin, state)


def _resolve_auto_phases(plugin: GamePlugin, state: SimulationState) -> None:
    remaining = MAX_AUTO_RESOLVE
    while state.phase.auto_resolve and not state.game_over and remaining > 0:
        remaining -= 1
        pid = _phase_player_id(state.phase, state.players)
        synthetic = Action(action_type=state.phase.name, player_id=pid)
        _apply(plugin, state, synthetic)


def _apply(plugin: GamePlugin, state: SimulationState, action: Action) -> None:
    try:
        result = plugin.apply_action(
            state.game_data, state.phase, action, state.players
        )
    except InvalidActionError:
        raise
    except Exception as e:
        logger.error(f"Plugin {plugin.game_id} failed on {action.action_type}: {e}")
        raise PluginError(f"{plugin.game_id} failed to apply {action.action_type}", e) from e

    state.game_data = result.game_data
    state.phase = result.next_phase
    state.scores = result.scores or state.scores
    state.game_over = result.game_over


def clone_state(state: SimulationState) -> SimulationState:
    """Deep-copy a simulation state.

    ``players`` is shared (immutable during a game).
    """
    return SimulationState(
        game_data=copy.deepcopy(state.game_data),
        phase=state.phase.model_copy(deep=True),
        players=state.players,  # shared, never mutated
        scores=dict(state.scores),
        game_over=state.game_over,
    )


def _phase_player_id(phase: Phase, players: list[Player]) -> PlayerId:
    """Extract the acting player from a phase, falling back to first player."""
    if phase.expected_actions:
        pid = phase.expected_actions[0].player_id
        if pid is not None:
            return pid
    pi = phase.metadata.get("player_index")
    if pi is not None and pi < len(players):
        return players[pi].player_id
    return players[0].player_id if players else PlayerId("system")
