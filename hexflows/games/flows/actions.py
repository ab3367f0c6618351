"""Game actions and viewers for Flows.

Actions form the game's history: replaying them from ``InitializeGame``
reproduces the game exactly. Viewers decide which actions someone may see
(drawn tiles are private) and which they may perform.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from hexflows.games.flows.tiles import TileType
from hexflows.games.flows.types import Rotation, TilePos


class GameSettings(BaseModel):
    num_players: int = 2
    version: int = 0


# --- Viewers ---

class PlayerViewer(BaseModel):
    kind: Literal["player"] = "player"
    player: int


class SpectatorViewer(BaseModel):
    kind: Literal["spectator"] = "spectator"


class AdminViewer(BaseModel):
    kind: Literal["admin"] = "admin"


GameViewer = Annotated[
    Union[PlayerViewer, SpectatorViewer, AdminViewer],
    Field(discriminator="kind"),
]


# --- Actions ---

class InitializeGame(BaseModel):
    kind: Literal["initialize_game"] = "initialize_game"
    settings: GameSettings


class DrawTile(BaseModel):
    kind: Literal["draw_tile"] = "draw_tile"
    player: int
    tile: TileType


class RevealTile(BaseModel):
    kind: Literal["reveal_tile"] = "reveal_tile"
    player: int
    tile: TileType


class PlaceTile(BaseModel):
    kind: Literal["place_tile"] = "place_tile"
    player: int
    tile: TileType
    pos: TilePos
    rotation: int = Field(default=0, ge=0, le=5)

    @property
    def tile_rotation(self) -> Rotation:
        return Rotation(self.rotation)


GameAction = Annotated[
    Union[InitializeGame, DrawTile, RevealTile, PlaceTile],
    Field(discriminator="kind"),
]


def action_visible(action: GameAction, viewer: GameViewer) -> bool:
    """Drawn tiles are seen only by the drawing player and admins."""
    if isinstance(action, DrawTile):
        if isinstance(viewer, PlayerViewer):
            return action.player == viewer.player
        return isinstance(viewer, AdminViewer)
    return True


def action_performable(action: GameAction, viewer: GameViewer) -> bool:
    """Whether the viewer may submit this action at all.

    Only checks permission; the game decides if the action is legal in
    context.
    """
    if isinstance(viewer, SpectatorViewer):
        return False
    if isinstance(viewer, AdminViewer):
        return True
    if isinstance(action, (InitializeGame, DrawTile)):
        return False
    return action.player == viewer.player
