"""Read views: cursor-paginated listings and stateless turn polling.

The cursor encodes the insertion key of the last battle on the page, not an
offset, so battles created or mutated between page fetches never shift the
next page.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from battles.engine.errors import InvalidRequestError
from shared.dal.models import BattleQuery, BattleStatus

if TYPE_CHECKING:
    from shared.dal.battle_repository import BattleRepository
    from shared.dal.models import BattleRecord, Turn

COUNTED_STATUSES = (BattleStatus.ACTIVE, BattleStatus.PENDING, BattleStatus.COMPLETED)
NOTHING_KNOWN = -1
MAX_CURSOR_KEY = 2**63 - 1  # SQLite INTEGER range


def encode_cursor(last_key: int) -> str:
    return base64.urlsafe_b64encode(json.dumps({"lastKey": last_key}).encode()).decode()


def decode_cursor(cursor: str) -> int:
    """Return the seek key inside ``cursor``. Raises InvalidRequestError for anything malformed."""
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise InvalidRequestError("Invalid cursor", code="invalid_cursor") from e
    last_key = payload.get("lastKey") if isinstance(payload, dict) else None
    if not isinstance(last_key, int) or isinstance(last_key, bool) or not 0 <= last_key <= MAX_CURSOR_KEY:
        raise InvalidRequestError("Invalid cursor", code="invalid_cursor")
    return last_key


@dataclass(frozen=True)
class BattlePage:
    battles: list[BattleRecord]
    has_more: bool
    next_cursor: str | None
    counts: dict[BattleStatus, int]

    @property
    def total(self) -> int:
        return sum(self.counts.get(status, 0) for status in COUNTED_STATUSES)


async def list_page(
    repo: BattleRepository,
    query: BattleQuery,
    *,
    limit: int,
    cursor: str | None = None,
) -> BattlePage:
    """Fetch one page of ``query`` plus status counts over the same visibility filter.

    Counts ignore the status filter and the cursor so clients can render
    per-status tabs from any page.
    """
    before_seq = decode_cursor(cursor) if cursor is not None else None
    # One extra row tells us whether another page exists without a second query.
    rows = await repo.list_battles(query, before_seq=before_seq, limit=limit + 1)
    has_more = len(rows) > limit
    battles = rows[:limit]

    next_cursor = None
    if has_more and battles[-1].seq is not None:
        next_cursor = encode_cursor(battles[-1].seq)

    counts = await repo.count_by_status(query.model_copy(update={"status": None}))
    return BattlePage(battles=battles, has_more=has_more, next_cursor=next_cursor, counts=counts)


@dataclass(frozen=True)
class PollResult:
    battle: BattleRecord
    has_new_turns: bool
    new_turns: list[Turn]

    @property
    def etag(self) -> str:
        return battle_etag(self.battle)


def battle_etag(battle: BattleRecord) -> str:
    return f'W/"{battle.battle_id}-{battle.version}"'


def poll_turns(battle: BattleRecord, last_known_turn: int = NOTHING_KNOWN) -> PollResult:
    """Diff the turn log against the last turn number the client has seen."""
    new_turns = sorted(
        (turn for turn in battle.turns if turn.turn_number > last_known_turn),
        key=lambda turn: turn.turn_number,
    )
    return PollResult(battle=battle, has_new_turns=bool(new_turns), new_turns=new_turns)
