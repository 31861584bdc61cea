"""Request body and query parsing shared by the battle API handlers."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from battles.engine.errors import InvalidRequestError, PayloadTooLargeError

if TYPE_CHECKING:
    from starlette.requests import Request

_TRUE_VALUES = {"1", "true", "yes"}
_FALSE_VALUES = {"0", "false", "no", ""}

M = TypeVar("M", bound=BaseModel)


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON")


async def read_json_body(request: Request) -> dict:
    """Return the JSON object in the request body; an empty body reads as ``{}``.

    Raises PayloadTooLargeError above ``max_request_bytes`` and
    InvalidRequestError for anything that is not a JSON object.
    """
    max_bytes: int = request.app.state.settings.max_request_bytes
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeError(f"Request body exceeds {max_bytes} bytes")

    raw_body = await request.body()
    if len(raw_body) > max_bytes:
        raise PayloadTooLargeError(f"Request body exceeds {max_bytes} bytes")
    if not raw_body.strip():
        return {}

    try:
        body = json.loads(raw_body, parse_constant=_reject_constant)
    except (ValueError, UnicodeDecodeError) as e:  # JSONDecodeError is a ValueError
        raise InvalidRequestError("Invalid JSON body", code="invalid_json") from e
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object", code="invalid_json")
    return body


def parse_model(model: type[M], body: dict) -> M:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        issues = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        raise InvalidRequestError("Invalid request body", code="invalid_body", details={"issues": issues}) from e


def int_param(request: Request, name: str, default: int | None = None) -> int | None:
    value = request.query_params.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise InvalidRequestError(f"{name} must be an integer", code="invalid_query") from e


def bool_param(request: Request, name: str) -> bool:
    value = request.query_params.get(name, "").lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise InvalidRequestError(f"{name} must be true or false", code="invalid_query")
