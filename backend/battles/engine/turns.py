"""Turn submission protocol.

A turn is validated against the battle as read, then appended with a single
compare-and-swap keyed on the battle version. If anything wrote to the battle
in between (a duplicate submission, a forfeit), the swap fails and the caller
gets a conflict. Nothing is retried here; the client re-fetches and decides.

Failure classes:
- state conflicts (terminal battle, stale turn number, lost swap) -> 409
- authorization (not the current player) -> 403
- structural (counts, sizes, unknown types, misplaced end_turn) -> 400/413,
  never mutate
- semantic (rules.py) -> recorded on the turn under the ``record`` policy,
  rejected like structural failures under ``reject``
"""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from battles.engine import lifecycle
from battles.engine.errors import (
    AuthorizationError,
    InvalidRequestError,
    PayloadTooLargeError,
    StateConflictError,
)
from battles.engine.rules import DEFAULT_RULES, check_semantics
from shared.dal.models import ActionType, BattleStatus, EndReason, Turn

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from battles.engine.rules import ActionRule
    from shared.dal.battle_repository import BattleRepository
    from shared.dal.models import Action, BattleRecord

logger = structlog.get_logger()

MAX_ACTIONS_PER_TURN = 100
MAX_SNAPSHOT_BYTES = 50 * 1024
MAX_ACTION_DATA_BYTES = 4 * 1024
MAX_ACTION_DATA_DEPTH = 8

SNAPSHOT_WINNER_KEY = "winner"
SNAPSHOT_GAME_OVER_KEY = "gameOver"

BUILTIN_ACTION_TYPES = frozenset(t.value for t in ActionType)


class InvalidTurnPolicy(StrEnum):
    RECORD = "record"  # append flagged invalid, turn advances
    REJECT = "reject"  # refuse before any mutation


@dataclass(frozen=True)
class TurnSubmission:
    actions: list[Action]
    state_snapshot: dict[str, Any] | None = None
    turn_number: int | None = None  # the turn the client believes it is submitting


@dataclass(frozen=True)
class TurnOptions:
    """Per-game knobs for turn validation."""

    allowed_action_types: frozenset[str] = BUILTIN_ACTION_TYPES
    policy: InvalidTurnPolicy = InvalidTurnPolicy.RECORD
    rules: tuple[ActionRule, ...] = DEFAULT_RULES


def _json_size(value: Any) -> int:  # noqa: ANN401
    return len(json.dumps(value, separators=(",", ":"), default=str).encode("utf-8"))


def _depth(value: Any) -> int:  # noqa: ANN401
    if isinstance(value, dict):
        return 1 + max((_depth(v) for v in value.values()), default=0)
    if isinstance(value, list):
        return 1 + max((_depth(v) for v in value), default=0)
    return 0


def check_preconditions(battle: BattleRecord, submitter_id: str, submission: TurnSubmission) -> None:
    """State and authorization checks, in the order clients should see them."""
    lifecycle.ensure_not_terminal(battle)
    if battle.status != BattleStatus.ACTIVE:
        raise StateConflictError("Battle is not active", code="battle_not_active")
    if submission.turn_number is not None and submission.turn_number != battle.current_turn_number:
        raise StateConflictError(
            f"Turn {submission.turn_number} is stale; current turn is {battle.current_turn_number}",
            code="stale_turn_number",
            details={"currentTurnNumber": battle.current_turn_number},
        )
    if not battle.has_participant(submitter_id):
        raise AuthorizationError("You are not a participant in this battle", code="not_participant")
    if lifecycle.current_player_id(battle) != submitter_id:
        if battle.turns and battle.turns[-1].submitter_id == submitter_id:
            # the caller's last turn already committed, so this is a retried duplicate
            raise StateConflictError(
                f"Turn {battle.current_turn_number - 1} was already submitted; "
                f"current turn is {battle.current_turn_number}",
                code="stale_turn_number",
                details={"currentTurnNumber": battle.current_turn_number},
            )
        raise AuthorizationError("It is not your turn", code="not_your_turn")


def check_structure(
    battle: BattleRecord,
    submission: TurnSubmission,
    allowed_action_types: Collection[str] = BUILTIN_ACTION_TYPES,
) -> None:
    """Reject malformed turns. Nothing here depends on game rules."""
    actions = submission.actions
    if not actions:
        raise InvalidRequestError("A turn needs at least one action", code="no_actions")
    if len(actions) > MAX_ACTIONS_PER_TURN:
        raise InvalidRequestError(
            f"A turn may hold at most {MAX_ACTIONS_PER_TURN} actions",
            code="too_many_actions",
        )
    if actions[-1].type != ActionType.END_TURN:
        raise InvalidRequestError("A turn must end with an end_turn action", code="missing_end_turn")

    for index, action in enumerate(actions):
        if action.type not in allowed_action_types:
            raise InvalidRequestError(f"action {index}: unknown action type '{action.type}'", code="unknown_action")
        if action.type == ActionType.END_TURN and index != len(actions) - 1:
            raise InvalidRequestError(f"action {index}: end_turn must be the last action", code="misplaced_end_turn")
        if action.data is not None:
            if _json_size(action.data) > MAX_ACTION_DATA_BYTES:
                raise PayloadTooLargeError(f"action {index}: data exceeds {MAX_ACTION_DATA_BYTES} bytes")
            if _depth(action.data) > MAX_ACTION_DATA_DEPTH:
                raise InvalidRequestError(f"action {index}: data is nested too deeply", code="data_too_deep")

    snapshot = submission.state_snapshot
    if snapshot is None:
        return
    if _json_size(snapshot) > MAX_SNAPSHOT_BYTES:
        raise PayloadTooLargeError(f"State snapshot exceeds {MAX_SNAPSHOT_BYTES} bytes")
    winner = snapshot.get(SNAPSHOT_WINNER_KEY)
    if winner is not None and not battle.has_participant(winner):
        raise InvalidRequestError("Declared winner is not a participant", code="invalid_winner")


def build_turn(
    battle: BattleRecord,
    submitter_id: str,
    submission: TurnSubmission,
    validation_errors: list[str],
    now: datetime,
) -> Turn:
    return Turn(
        turn_id=secrets.token_hex(8),
        submitter_id=submitter_id,
        turn_number=battle.current_turn_number,
        actions=list(submission.actions),
        is_valid=not validation_errors,
        validation_errors=validation_errors,
        submitted_at=now,
        state_snapshot=submission.state_snapshot,
    )


def apply_turn(battle: BattleRecord, turn: Turn, now: datetime) -> BattleRecord:
    """Return the battle with ``turn`` appended and the turn pointer advanced.

    A snapshot naming a winner finishes the battle as a victory; one that
    only says ``gameOver`` finishes it as a draw.
    """
    update: dict[str, Any] = {
        "turns": [*battle.turns, turn],
        "current_turn_number": battle.current_turn_number + 1,
        "current_player_index": 1 - battle.current_player_index,
        "last_turn_at": now,
        "updated_at": now,
    }
    snapshot = turn.state_snapshot
    if snapshot is not None:
        update["current_state"] = snapshot
        winner = snapshot.get(SNAPSHOT_WINNER_KEY)
        if winner is not None:
            update.update(status=BattleStatus.COMPLETED, winner_id=winner, end_reason=EndReason.VICTORY)
        elif snapshot.get(SNAPSHOT_GAME_OVER_KEY) is True:
            update.update(status=BattleStatus.COMPLETED, winner_id=None, end_reason=EndReason.DRAW)
    return battle.model_copy(update=update)


async def submit_turn(
    repo: BattleRepository,
    battle: BattleRecord,
    submitter_id: str,
    submission: TurnSubmission,
    options: TurnOptions | None = None,
) -> tuple[BattleRecord, Turn]:
    """Validate and append a turn to ``battle`` as read by the caller.

    Returns the stored battle and the appended turn. Raises a BattleError
    subclass without touching the store when validation fails, and
    StateConflictError when the swap loses.
    """
    if options is None:
        options = TurnOptions()

    check_preconditions(battle, submitter_id, submission)
    check_structure(battle, submission, options.allowed_action_types)

    semantic_errors = check_semantics(submission.actions, options.rules)
    if semantic_errors and options.policy == InvalidTurnPolicy.REJECT:
        raise InvalidRequestError(
            "Turn failed validation",
            code="invalid_turn",
            details={"validationErrors": semantic_errors},
        )

    now = datetime.now(tz=UTC)
    turn = build_turn(battle, submitter_id, submission, semantic_errors, now)
    stored = await repo.compare_and_swap(apply_turn(battle, turn, now), expected_version=battle.version)
    if stored is None:
        logger.warning("turn conflict", battle_id=battle.battle_id, turn_number=turn.turn_number, player_id=submitter_id)
        raise StateConflictError(
            f"Turn {turn.turn_number} was already submitted or the battle changed; re-fetch and retry",
            code="turn_conflict",
        )

    logger.info(
        "turn appended",
        battle_id=battle.battle_id,
        turn_number=turn.turn_number,
        player_id=submitter_id,
        is_valid=turn.is_valid,
    )
    if lifecycle.is_terminal(stored.status):
        logger.info(
            "battle finished",
            battle_id=battle.battle_id,
            end_reason=stored.end_reason,
            winner_id=stored.winner_id,
        )
    return stored, turn


def allowed_action_types(extra: Iterable[str] = ()) -> frozenset[str]:
    return BUILTIN_ACTION_TYPES | frozenset(extra)
