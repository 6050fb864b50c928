"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from typing import Mapping, Type, TypeVar

from flask import Request
from pydantic import BaseModel, ValidationError
from werkzeug.exceptions import BadRequest

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_VALUE_ERROR_PREFIX = "Value error, "


def parse_json_request(
    req: Request,
    *,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    return data


def format_validation_errors(error: ValidationError) -> str:
    """Flatten pydantic field errors into a single readable string."""

    messages = []
    for issue in error.errors():
        message = issue.get("msg", "Invalid value")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        field = ".".join(str(part) for part in issue.get("loc", ()))
        messages.append(f"{field}: {message}" if field else message)
    return ", ".join(messages)


def validate_data(schema: Type[SchemaT], data: Mapping) -> SchemaT:
    """Validate ``data`` against ``schema`` or raise a 400 with the flattened errors."""

    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise BadRequest(format_validation_errors(exc)) from exc


def validate_json(req: Request, schema: Type[SchemaT], *, allow_empty: bool = False) -> SchemaT:
    """Parse the JSON body of ``req`` and validate it against ``schema``."""

    return validate_data(schema, parse_json_request(req, allow_empty=allow_empty))
