from __future__ import annotations

import logging

from hexflows.config import settings
from hexflows.engine.bot_strategy import get_strategy
from hexflows.engine.game_simulator import SimulationState, start_simulation, submit_action
from hexflows.engine.models import Action, GameConfig, Player, PlayerId
from hexflows.engine.registry import PluginRegistry
from hexflows.engine.validation import validate_plugin
from hexflows.games.flows.plugin import FlowsPlugin

logger = logging.getLogger(__name__)


def build_registry() -> PluginRegistry:
    """Set up logging and register the bundled game plugins."""
    logging.basicConfig(level=settings.log_level)

    registry = PluginRegistry()
    plugin = FlowsPlugin()
    errors = validate_plugin(plugin)
    if errors:
        raise RuntimeError(f"Plugin {plugin.game_id} failed validation: {errors}")
    registry.register(plugin)
    logger.info(f"Loaded {len(registry.list_games())} game plugins")
    return registry


def play_bot_game(
    registry: PluginRegistry,
    game_id: str = "flows",
    num_players: int | None = None,
    seed: int | None = None,
    bot_id: str = "random",
) -> SimulationState:
    """Play one game between bots and return the final state."""
    plugin = registry.get(game_id)
    num_players = num_players or settings.default_num_players
    players = [
        Player(
            player_id=PlayerId(f"bot-{i}"),
            display_name=f"Bot {i}",
            seat_index=i,
            is_bot=True,
            bot_id=bot_id,
        )
        for i in range(num_players)
    ]
    strategies = {
        p.player_id: get_strategy(bot_id, seed=None if seed is None else seed + p.seat_index)
        for p in players
    }

    state = start_simulation(plugin, players, GameConfig(random_seed=seed))
    while state.game_over is None:
        player_id = state.phase.expected_actions[0].player_id
        payload = strategies[player_id].choose_action(
            state.game_data, state.phase, player_id, plugin, players,
        )
        action = Action(
            action_type=state.phase.expected_actions[0].action_type,
            player_id=player_id,
            payload=payload,
        )
        submit_action(plugin, state, action)

    logger.info(
        f"{game_id} finished: winners={state.game_over.winners} "
        f"reason={state.game_over.reason}"
    )
    return state


def main() -> None:
    play_bot_game(build_registry(), seed=settings.plugin_random_seed)


if __name__ == "__main__":
    main()
