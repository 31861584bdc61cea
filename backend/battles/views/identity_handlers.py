"""Player registration handler."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from battles.engine.errors import InvalidRequestError
from battles.types import RegisterRequest
from battles.views.parsing import parse_model, read_json_body
from shared.auth import IdentityError

if TYPE_CHECKING:
    from starlette.requests import Request

    from battles.engine.service import BattleService
    from shared.auth.service import IdentityService


async def register(request: Request) -> JSONResponse:
    """POST /api/{game_slug}/register - issue a player identity and its bearer token.

    The token is only ever returned here.
    """
    battle_service: BattleService = request.app.state.battle_service
    identity_service: IdentityService = request.app.state.identity_service

    game = battle_service.get_game(request.path_params["game_slug"])
    req = parse_model(RegisterRequest, await read_json_body(request))
    try:
        identity, token = await identity_service.register(
            game.slug,
            req.display_name,
            name_adjectives=game.name_adjectives,
            name_nouns=game.name_nouns,
        )
    except IdentityError as e:
        raise InvalidRequestError(str(e), code="invalid_display_name") from e

    return JSONResponse(
        {
            "success": True,
            "playerId": identity.player_id,
            "secretToken": token,
            "displayName": identity.display_name,
        },
        status_code=HTTPStatus.CREATED,
    )
