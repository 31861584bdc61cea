"""Battle error taxonomy.

Every failure is scoped to one request. ``kind`` tells clients whether to
re-fetch and retry (``state_conflict``), wait (``admission``), or fix the
request (``validation``, ``authorization``).
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar


class BattleError(Exception):
    """Base class for all battle engine failures."""

    kind: ClassVar[str] = "error"
    status_code: ClassVar[int] = HTTPStatus.BAD_REQUEST
    default_code: ClassVar[str] = "error"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}


class AdmissionError(BattleError):
    """Per-player quota exceeded. Retriable once another battle ends."""

    kind = "admission"
    status_code = HTTPStatus.FORBIDDEN
    default_code = "limit_reached"


class AuthorizationError(BattleError):
    """Caller is not allowed to act on this battle (wrong player, not a participant)."""

    kind = "authorization"
    status_code = HTTPStatus.FORBIDDEN
    default_code = "forbidden"


class InvalidRequestError(BattleError):
    """Malformed payload. Never retriable unmodified."""

    kind = "validation"
    status_code = HTTPStatus.BAD_REQUEST
    default_code = "invalid_request"


class PayloadTooLargeError(InvalidRequestError):
    status_code = HTTPStatus.REQUEST_ENTITY_TOO_LARGE
    default_code = "payload_too_large"


class StateConflictError(BattleError):
    """The battle is not in a state that allows the operation. Re-fetch before retrying."""

    kind = "state_conflict"
    status_code = HTTPStatus.CONFLICT
    default_code = "conflict"


class JoinRejectedError(StateConflictError):
    """Join refused: not pending, already full, or self-join."""

    status_code = HTTPStatus.BAD_REQUEST
    default_code = "join_rejected"


class NotFoundError(BattleError):
    kind = "not_found"
    status_code = HTTPStatus.NOT_FOUND
    default_code = "not_found"
