"""Game-agnostic action rules.

These checks only look at the shape of each action (does a move say where
to?), never at game state. A failure here is semantic, not structural: under
the default ``record`` policy the turn is still appended, flagged invalid.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.dal.models import ActionType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from shared.dal.models import Action

    ActionRule = Callable[[int, Action], str | None]

_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    ActionType.MOVE: ("unit_id", "to"),
    ActionType.ATTACK: ("unit_id", "target_id"),
    ActionType.CAPTURE: ("unit_id",),
    ActionType.TAKE_OFF: ("unit_id",),
    ActionType.LAND: ("unit_id",),
    ActionType.SUPPLY: ("unit_id",),
    ActionType.LOAD: ("unit_id", "target_id"),
    ActionType.UNLOAD: ("unit_id", "to"),
    ActionType.COMBINE: ("unit_id", "target_id"),
}

_FIELD_LABELS = {"unit_id": "unitId", "target_id": "targetId", "to": "to"}


def required_fields_rule(index: int, action: Action) -> str | None:
    missing = [_FIELD_LABELS[name] for name in _REQUIRED_FIELDS.get(action.type, ()) if getattr(action, name) is None]
    if missing:
        return f"action {index}: {action.type} requires {', '.join(missing)}"
    return None


def move_changes_position_rule(index: int, action: Action) -> str | None:
    if action.type == ActionType.MOVE and action.from_ is not None and action.from_ == action.to:
        return f"action {index}: move does not change position"
    return None


def self_target_rule(index: int, action: Action) -> str | None:
    if action.target_id is not None and action.target_id == action.unit_id:
        return f"action {index}: {action.type} targets its own unit"
    return None


DEFAULT_RULES: tuple[ActionRule, ...] = (
    required_fields_rule,
    move_changes_position_rule,
    self_target_rule,
)


def check_semantics(actions: Sequence[Action], rules: Iterable[ActionRule] = DEFAULT_RULES) -> list[str]:
    """Run every rule over every action and collect the messages."""
    rules = tuple(rules)
    errors: list[str] = []
    for index, action in enumerate(actions):
        for rule in rules:
            message = rule(index, action)
            if message is not None:
                errors.append(message)
    return errors
