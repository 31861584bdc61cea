"""Player identity: registration and bearer-token authentication."""

from shared.auth.models import PlayerIdentity
from shared.auth.service import IdentityError, IdentityService, hash_token

__all__ = [
    "IdentityError",
    "IdentityService",
    "PlayerIdentity",
    "hash_token",
]
