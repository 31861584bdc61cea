"""Battle server authentication: Starlette backend, user model, and route policy."""

from battles.auth.backend import BearerTokenBackend
from battles.auth.models import AuthenticatedPlayer
from battles.auth.policy import protected_api, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedPlayer",
    "BearerTokenBackend",
    "protected_api",
    "public_route",
    "validate_route_auth_policy",
]
