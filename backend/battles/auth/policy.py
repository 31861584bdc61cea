"""Route auth policy helpers for fail-closed authorization.

Each helper wraps a route endpoint and sets the ``AUTH_POLICY_ATTR`` marker
so that startup validation can verify every route has an explicit auth policy.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING

from starlette.authentication import has_required_scope
from starlette.exceptions import HTTPException
from starlette.routing import Mount, Route

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.routing import BaseRoute

    Endpoint = Callable[[Request], Awaitable[Response]]

AUTH_POLICY_ATTR = "__auth_policy__"


def is_game_player(request: Request) -> bool:
    """True when the request carries a token issued for the game in the path."""
    if not has_required_scope(request, ["authenticated"]):
        return False
    return request.user.game_slug == str(request.path_params.get("game_slug", "")).lower()


def protected_api(endpoint: Endpoint) -> Endpoint:
    """Require a token for the path's game; raise 401 otherwise.

    A token issued by another game is treated as no token at all.
    """

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        if not is_game_player(request):
            raise HTTPException(status_code=401, detail="Authentication required")
        return await endpoint(request)

    setattr(wrapper, AUTH_POLICY_ATTR, "protected_api")
    return wrapper


def public_route(endpoint: Endpoint) -> Endpoint:
    """Mark endpoint as explicitly public (no auth required).

    Returns a thin wrapper so the marker lives on the wrapper, not on the
    original callable. Reusing the same function on another route without
    wrapping it therefore does not leak the policy.
    """

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        return await endpoint(request)

    setattr(wrapper, AUTH_POLICY_ATTR, "public")
    return wrapper


def validate_route_auth_policy(routes: list[BaseRoute]) -> None:
    """Verify every Route has an auth policy marker. Mount routes are exempt.

    Raises RuntimeError listing all unclassified routes if any are found.
    """
    unclassified: list[str] = []
    for route in routes:
        if isinstance(route, Mount):
            continue
        if isinstance(route, Route) and not hasattr(route.endpoint, AUTH_POLICY_ATTR):
            name = route.name or getattr(route.endpoint, "__name__", "unknown")
            unclassified.append(f"{route.path} ({name})")

    if unclassified:
        details = ", ".join(unclassified)
        msg = f"Unclassified routes missing auth policy: {details}"
        raise RuntimeError(msg)
