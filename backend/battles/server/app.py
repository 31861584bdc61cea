from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from battles.auth import BearerTokenBackend, protected_api, public_route, validate_route_auth_policy
from battles.engine.errors import BattleError
from battles.engine.service import BattleService
from battles.registry.manager import GameRegistry
from battles.server.middleware import SecurityHeadersMiddleware, SlashNormalizationMiddleware
from battles.server.settings import BattleServerSettings
from battles.views import (
    create_battle,
    forfeit_battle,
    get_battle,
    join_battle,
    list_battles,
    list_turns,
    player_stats,
    poll_battle,
    register,
    submit_turn,
)
from shared.auth import IdentityService
from shared.build_info import APP_VERSION
from shared.db import Database, SqliteBattleRepository, SqliteIdentityRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from typing import Any

    from starlette.requests import Request

API_PREFIX = "/api/{game_slug}"


def _error_response(
    status_code: int,
    message: str,
    details: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse({"success": False, "error": message, "details": details}, status_code, headers=headers)


async def _battle_error_handler(_request: Request, exc: Exception) -> Response:
    battle_exc = cast("BattleError", exc)
    return _error_response(
        battle_exc.status_code,
        battle_exc.message,
        {"kind": battle_exc.kind, "code": battle_exc.code, **battle_exc.details},
    )


async def _http_error_handler(_request: Request, exc: Exception) -> Response:
    """Render routing and auth HTTP errors in the JSON error envelope."""
    http_exc = cast("HTTPException", exc)
    if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
        return Response(status_code=http_exc.status_code, headers=http_exc.headers)
    if http_exc.status_code == HTTPStatus.UNAUTHORIZED:
        return _error_response(
            http_exc.status_code,
            "Authentication required",
            {"kind": "authentication", "code": "unauthenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _error_response(
        http_exc.status_code,
        http_exc.detail or HTTPStatus(http_exc.status_code).phrase,
        {"kind": "http", "code": HTTPStatus(http_exc.status_code).name.lower()},
        headers=http_exc.headers,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.error("unhandled error", path=request.url.path, method=request.method, exc_info=exc)
    return _error_response(
        HTTPStatus.INTERNAL_SERVER_ERROR,
        "Internal server error",
        {"kind": "internal", "code": "internal_error"},
    )


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION})


def create_app(
    settings: BattleServerSettings | None = None,
    registry: GameRegistry | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = BattleServerSettings()
    if registry is None:
        registry = GameRegistry(settings.games_config_path)

    routes = [
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route(f"{API_PREFIX}/register", public_route(register), methods=["POST"], name="register"),
        # list_battles checks auth itself: anonymous callers get the public listing
        Route(f"{API_PREFIX}/battles", public_route(list_battles), methods=["GET"], name="list_battles"),
        Route(f"{API_PREFIX}/battles", protected_api(create_battle), methods=["POST"], name="create_battle"),
        Route(f"{API_PREFIX}/battles/{{battle_id}}", public_route(get_battle), methods=["GET"], name="get_battle"),
        Route(
            f"{API_PREFIX}/battles/{{battle_id}}/join",
            protected_api(join_battle),
            methods=["POST"],
            name="join_battle",
        ),
        Route(
            f"{API_PREFIX}/battles/{{battle_id}}/turns",
            protected_api(submit_turn),
            methods=["POST"],
            name="submit_turn",
        ),
        Route(
            f"{API_PREFIX}/battles/{{battle_id}}/turns",
            public_route(list_turns),
            methods=["GET"],
            name="list_turns",
        ),
        Route(
            f"{API_PREFIX}/battles/{{battle_id}}/poll",
            public_route(poll_battle),
            methods=["GET"],
            name="poll_battle",
        ),
        Route(
            f"{API_PREFIX}/battles/{{battle_id}}/forfeit",
            protected_api(forfeit_battle),
            methods=["POST"],
            name="forfeit_battle",
        ),
        Route(f"{API_PREFIX}/stats", protected_api(player_stats), methods=["GET"], name="player_stats"),
    ]
    validate_route_auth_policy(routes)

    db = Database(settings.database_path)
    db.connect()
    battle_repo = SqliteBattleRepository(db)
    identity_service = IdentityService(SqliteIdentityRepository(db))
    battle_service = BattleService(
        battle_repo,
        registry,
        max_active_battles=settings.max_active_battles,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
        invalid_turn_policy=settings.invalid_turn_policy,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        yield
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            BattleError: _battle_error_handler,
            HTTPException: _http_error_handler,
            Exception: _unhandled_error_handler,
        },
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(AuthenticationMiddleware, backend=BearerTokenBackend(identity_service))  # type: ignore[arg-type]
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "If-None-Match"],
        expose_headers=["ETag"],
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.registry = registry
    app.state.identity_service = identity_service
    app.state.battle_service = battle_service

    logger.info("battle server ready", games=len(registry.get_games()))
    return app


def get_app() -> Starlette:  # pragma: no cover  # deadcode: ignore
    """Factory function for uvicorn --factory battles.server.app:get_app."""
    s = BattleServerSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s)
