"""Player identity model for per-game bearer-token authentication."""

from datetime import datetime

from pydantic import BaseModel, Field


class PlayerIdentity(BaseModel, frozen=True):
    """A player registered with one game.

    The raw bearer token is handed out once at registration and never stored;
    only its SHA-256 hash is kept.
    """

    player_id: str
    game_slug: str
    display_name: str = Field(min_length=1, max_length=50)
    token_hash: str
    created_at: datetime
