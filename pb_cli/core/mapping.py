"""
Mapping between PocketBase JSON documents and the core types.

- decode_record / decode_page turn success responses into Records and Pages
- encode_fields turns a field map into a JSON request body
- map_error turns a failure response into a DomainError
"""

import json
from collections.abc import Mapping
from typing import Any

from pb_cli.core.errors import DecodeError, DomainError, FieldError, InvalidValueError, MalformedErrorBody
from pb_cli.core.types import (
    COLLECTION_ID,
    COLLECTION_NAME,
    CREATED,
    FIXED_FIELDS,
    RECORD_ID,
    UPDATED,
    FileRefs,
    Page,
    Record,
    Scalar,
    StringList,
    Value,
    as_text,
)

UNKNOWN_CODE = "Unknown Code"
UNKNOWN_ERROR = "Unknown Error"

PAGE_FIELDS = ("page", "perPage", "totalPages", "totalItems")

# =============================================================================
# Records
# =============================================================================


def decode_value(name: str, raw: Any) -> Value | None:
    """
    Decode one user field.

    Arrays become StringLists; an empty array or null becomes None, the
    explicit "exists but empty" marker. Anything else becomes a Scalar.
    """
    if raw is None:
        return None
    if isinstance(raw, list):
        if not raw:
            return None
        for item in raw:
            if not isinstance(item, str):
                raise DecodeError(
                    f"Field '{name}' contains a non-string list element",
                    details={"field": name, "element": item},
                )
        return StringList(tuple(raw))
    return Scalar(as_text(raw))


def decode_record(data: Any) -> Record:
    """Build a Record from a decoded JSON object."""
    if not isinstance(data, dict):
        raise DecodeError("Expected a JSON object for a record", details={"value": data})

    fixed: dict[str, str] = {}
    fields: dict[str, Value | None] = {}
    for key, raw in data.items():
        if key in FIXED_FIELDS:
            if not isinstance(raw, str):
                raise DecodeError(
                    f"Record field '{key}' must be a string",
                    details={"field": key, "value": raw},
                )
            fixed[key] = raw
        else:
            fields[key] = decode_value(key, raw)

    return Record(
        fields=fields,
        id=fixed.get(RECORD_ID),
        collection_id=fixed.get(COLLECTION_ID),
        collection_name=fixed.get(COLLECTION_NAME),
        created=fixed.get(CREATED),
        updated=fixed.get(UPDATED),
    )


def encode_fields(fields: Mapping[str, Value | None]) -> dict[str, Any]:
    """
    Build a JSON request body from a field map.

    None is kept as null so the server clears the field. FileRefs cannot be
    sent as JSON; use encode_multipart for those.
    """
    body: dict[str, Any] = {}
    for name, value in fields.items():
        if value is None:
            body[name] = None
        elif isinstance(value, Scalar):
            body[name] = value.text
        elif isinstance(value, StringList):
            body[name] = list(value.items)
        elif isinstance(value, FileRefs):
            raise InvalidValueError(
                f"Field '{name}' holds files; send it as multipart/form-data",
                details={"field": name},
            )
        else:
            raise InvalidValueError(f"Field '{name}' has unsupported value {value!r}", details={"field": name})
    return body


# =============================================================================
# Pagination
# =============================================================================


def _page_number(data: dict[str, Any], key: str) -> int:
    raw = data.get(key)
    # bool is an int subclass but never a page count
    if isinstance(raw, bool) or raw is None:
        raise DecodeError(f"Page field '{key}' is missing or invalid", details={"field": key, "value": raw})
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw)
        except ValueError:
            pass
    raise DecodeError(f"Page field '{key}' is not numeric", details={"field": key, "value": raw})


def decode_page(data: Any) -> Page:
    """Build a Page from a list response, decoding every item."""
    if not isinstance(data, dict):
        raise DecodeError("Expected a JSON object for a page", details={"value": data})

    page, per_page, total_pages, total_items = (_page_number(data, key) for key in PAGE_FIELDS)

    items = data.get("items", [])
    if not isinstance(items, list):
        raise DecodeError("Page field 'items' must be an array", details={"value": items})

    return Page(
        page=page,
        per_page=per_page,
        total_pages=total_pages,
        total_items=total_items,
        items=[decode_record(item) for item in items],
    )


# =============================================================================
# Errors
# =============================================================================


def _field_error(name: str, detail: Any) -> FieldError:
    if isinstance(detail, dict) and "code" in detail and "message" in detail:
        return FieldError(name, as_text(detail["code"]), as_text(detail["message"]))
    return FieldError(name, UNKNOWN_CODE, UNKNOWN_ERROR)


def map_error(status: int, body: bytes | str) -> DomainError:
    """
    Convert a failure response into a DomainError.

    PocketBase errors look like:
        {"code": 400, "message": "...", "data": {"title": {"code": "...", "message": "..."}}}

    A field entry with any other shape is reported with placeholder code and
    message instead of aborting, so the remaining field errors still surface.

    Raises:
        MalformedErrorBody: If the body is not a JSON object

    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedErrorBody(f"Error response is not valid JSON: {e}", details={"status": status}) from e
    if not isinstance(payload, dict):
        raise MalformedErrorBody("Error response is not a JSON object", details={"status": status})

    code = payload.get("code")
    if isinstance(code, bool) or not isinstance(code, int):
        code = status
    message = payload.get("message")
    message = as_text(message) if message is not None else ""

    data = payload.get("data")
    field_errors: list[FieldError] = []
    if isinstance(data, dict):
        field_errors = [_field_error(name, detail) for name, detail in data.items()]

    return DomainError(message, status=code, field_errors=field_errors)
