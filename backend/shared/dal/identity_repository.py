"""Abstract interface for player identity persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.auth.models import PlayerIdentity


class IdentityRepository(ABC):
    """Abstract interface for player identity persistence."""

    @abstractmethod
    async def create_identity(self, identity: PlayerIdentity) -> None:
        """Insert an identity. Raises ValueError on duplicate id or token hash."""

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> PlayerIdentity | None: ...

    @abstractmethod
    async def get_identities(self, game_slug: str, player_ids: Iterable[str]) -> dict[str, PlayerIdentity]: ...
