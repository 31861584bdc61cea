"""Battle API handlers mounted under /api/{game_slug}."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse, Response

from battles.auth.policy import is_game_player
from battles.engine.errors import InvalidRequestError
from battles.engine.listing import NOTHING_KNOWN
from battles.engine.turns import TurnSubmission
from battles.types import CreateBattleRequest, SubmitTurnRequest
from battles.views.parsing import bool_param, int_param, parse_model, read_json_body
from battles.views.serializers import (
    battle_detail,
    battle_summary,
    game_payload,
    page_payload,
    poll_payload,
    stats_payload,
    turn_payload,
)
from shared.dal.models import BattleStatus

if TYPE_CHECKING:
    from starlette.requests import Request

    from battles.engine.service import BattleService
    from shared.auth.models import PlayerIdentity
    from shared.auth.service import IdentityService
    from shared.dal.models import BattleRecord

_NO_CACHE = "no-cache"


def _battle_service(request: Request) -> BattleService:
    return request.app.state.battle_service


async def _players(request: Request, *battles: BattleRecord) -> dict[str, PlayerIdentity]:
    identity_service: IdentityService = request.app.state.identity_service
    if not battles:
        return {}
    player_ids = [pid for battle in battles for pid in battle.participants]
    return await identity_service.get_identities(battles[0].game_slug, player_ids)


def _status_param(request: Request) -> BattleStatus | None:
    value = request.query_params.get("status")
    if not value:
        return None
    try:
        return BattleStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in BattleStatus)
        raise InvalidRequestError(f"status must be one of: {allowed}", code="invalid_query") from e


async def list_battles(request: Request) -> JSONResponse:
    """GET /api/{game_slug}/battles - public listing, or the caller's own with ``mine=true``."""
    service = _battle_service(request)
    game_slug = request.path_params["game_slug"]
    game = service.get_game(game_slug)
    authenticated = is_game_player(request)

    mine = bool_param(request, "mine")
    if mine and not authenticated:
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="Authentication required")

    page = await service.list_battles(
        game.slug,
        participant_id=request.user.player_id if mine else None,
        status=_status_param(request),
        limit=int_param(request, "limit"),
        cursor=request.query_params.get("cursor") or None,
    )
    payload = {
        "success": True,
        "game": game_payload(game),
        **page_payload(page, await _players(request, *page.battles)),
        "limits": {"maxTotal": service.admission_ceiling(game)},
    }
    if authenticated:
        payload["userCounts"] = {"total": await service.count_open_battles(game.slug, request.user.player_id)}
    return JSONResponse(payload)


async def create_battle(request: Request) -> JSONResponse:
    """POST /api/{game_slug}/battles - open a pending battle."""
    service = _battle_service(request)
    req = parse_model(CreateBattleRequest, await read_json_body(request))
    battle = await service.create_battle(
        request.path_params["game_slug"],
        request.user.player_id,
        map_data=req.map_data,
        is_private=req.is_private,
    )
    return JSONResponse(
        {"success": True, "battle": battle_summary(battle, await _players(request, battle))},
        status_code=HTTPStatus.CREATED,
    )


async def get_battle(request: Request) -> JSONResponse:
    """GET /api/{game_slug}/battles/{battle_id} - full record including the current state."""
    service = _battle_service(request)
    game = service.get_game(request.path_params["game_slug"])
    battle = await service.get_battle(game.slug, request.path_params["battle_id"])
    return JSONResponse(
        {
            "success": True,
            "game": game_payload(game),
            "battle": battle_detail(battle, await _players(request, battle)),
        },
    )


async def join_battle(request: Request) -> JSONResponse:
    """POST /api/{game_slug}/battles/{battle_id}/join - take the second seat."""
    service = _battle_service(request)
    battle = await service.join_battle(
        request.path_params["game_slug"],
        request.path_params["battle_id"],
        request.user.player_id,
    )
    return JSONResponse({"success": True, "battle": battle_summary(battle, await _players(request, battle))})


async def submit_turn(request: Request) -> JSONResponse:
    """POST /api/{game_slug}/battles/{battle_id}/turns - append the caller's turn."""
    service = _battle_service(request)
    req = parse_model(SubmitTurnRequest, await read_json_body(request))
    battle, turn = await service.submit_turn(
        request.path_params["game_slug"],
        request.path_params["battle_id"],
        request.user.player_id,
        TurnSubmission(actions=req.actions, state_snapshot=req.state_snapshot, turn_number=req.turn_number),
    )
    return JSONResponse(
        {
            "success": True,
            "turn": turn_payload(turn),
            "battle": battle_summary(battle, await _players(request, battle)),
        },
        status_code=HTTPStatus.CREATED,
    )


async def list_turns(request: Request) -> JSONResponse:
    """GET /api/{game_slug}/battles/{battle_id}/turns - the ordered turn log."""
    service = _battle_service(request)
    battle_id = request.path_params["battle_id"]
    turns = await service.get_turns(request.path_params["game_slug"], battle_id)
    return JSONResponse({"success": True, "battleId": battle_id, "turns": [turn_payload(t) for t in turns]})


async def poll_battle(request: Request) -> Response:
    """GET /api/{game_slug}/battles/{battle_id}/poll - turns after ``lastKnownTurn``.

    Answers 304 when ``If-None-Match`` carries the battle's current ETag.
    """
    service = _battle_service(request)
    last_known_turn = int_param(request, "lastKnownTurn", NOTHING_KNOWN)
    result = await service.poll(request.path_params["game_slug"], request.path_params["battle_id"], last_known_turn)

    headers = {"ETag": result.etag, "Cache-Control": _NO_CACHE}
    if request.headers.get("if-none-match") == result.etag:
        return Response(status_code=HTTPStatus.NOT_MODIFIED, headers=headers)
    return JSONResponse({"success": True, **poll_payload(result)}, headers=headers)


async def forfeit_battle(request: Request) -> JSONResponse:
    """POST /api/{game_slug}/battles/{battle_id}/forfeit - forfeit an active battle or cancel a pending one."""
    service = _battle_service(request)
    battle = await service.forfeit_battle(
        request.path_params["game_slug"],
        request.path_params["battle_id"],
        request.user.player_id,
    )
    return JSONResponse({"success": True, "battle": battle_summary(battle, await _players(request, battle))})


async def player_stats(request: Request) -> JSONResponse:
    """GET /api/{game_slug}/stats - the caller's battle record in this game."""
    service = _battle_service(request)
    game = service.get_game(request.path_params["game_slug"])
    stats = await service.player_stats(game.slug, request.user.player_id)
    return JSONResponse(
        {
            "success": True,
            "game": game_payload(game),
            "playerId": request.user.player_id,
            "stats": stats_payload(stats),
        },
    )
