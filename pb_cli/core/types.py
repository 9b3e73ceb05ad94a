"""
Core types for PocketBase records, pages and auth responses.

Field values are modelled as a small closed family of frozen dataclasses
(Scalar, StringList, FileRefs) so that a value can only ever hold one kind of
content.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from pb_cli.core.errors import DecodeError

# Keys PocketBase assigns to every record; everything else is a user field.
RECORD_ID = "id"
COLLECTION_ID = "collectionId"
COLLECTION_NAME = "collectionName"
CREATED = "created"
UPDATED = "updated"

FIXED_FIELDS = (RECORD_ID, COLLECTION_ID, COLLECTION_NAME, CREATED, UPDATED)


def as_text(value: Any) -> str:
    """Render a decoded JSON value as text (strings verbatim, everything else as JSON)."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


# =============================================================================
# Field Values
# =============================================================================


@dataclass(frozen=True)
class Value:
    """Content of one record field. Use one of the concrete cases below."""

    def as_scalar(self) -> str | None:
        """Get the value as a string, or None if it is not a Scalar."""
        return None

    def as_list(self) -> list[str] | None:
        """Get the value as a list of strings, or None if it is not a StringList."""
        return None

    def as_file_refs(self) -> list[str] | None:
        """Get the value as a list of local file paths, or None if it is not FileRefs."""
        return None


@dataclass(frozen=True)
class Scalar(Value):
    """A single string value."""

    text: str

    def as_scalar(self) -> str | None:
        return self.text

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class StringList(Value):
    """A multi-value field (select, relation, file names) as returned by the server."""

    items: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    def as_list(self) -> list[str] | None:
        return list(self.items)

    def __str__(self) -> str:
        return str(list(self.items))


@dataclass(frozen=True)
class FileRefs(Value):
    """Local files to upload into a file field. Only valid in multipart requests."""

    paths: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "paths", tuple(str(p) for p in self.paths))

    def as_file_refs(self) -> list[str] | None:
        return list(self.paths)

    def __str__(self) -> str:
        return str(list(self.paths))


# =============================================================================
# Records
# =============================================================================


@dataclass
class Record:
    """
    A record (row) in a collection.

    A field mapped to None exists but is empty; a field missing from `fields`
    is absent. The fixed attributes are assigned by the server and changing
    them locally has no effect on it.
    """

    fields: dict[str, Value | None] = field(default_factory=dict)
    id: str | None = None
    collection_id: str | None = None
    collection_name: str | None = None
    created: str | None = None
    updated: str | None = None

    def __post_init__(self) -> None:
        # Own a copy so callers can reuse the mapping they passed in
        self.fields = dict(self.fields)

    def __getitem__(self, name: str) -> Value | None:
        return self.fields[name]

    def __setitem__(self, name: str, value: Value | None) -> None:
        self.fields[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def get(self, name: str) -> Value | None:
        """Get a field value, or None if it is absent or empty."""
        return self.fields.get(name)

    def is_empty(self, name: str) -> bool:
        """Check if a field exists on the record but holds no value."""
        return name in self.fields and self.fields[name] is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict for JSON output."""
        result: dict[str, Any] = {
            RECORD_ID: self.id,
            COLLECTION_ID: self.collection_id,
            COLLECTION_NAME: self.collection_name,
            CREATED: self.created,
            UPDATED: self.updated,
        }
        for name, value in self.fields.items():
            if value is None:
                result[name] = None
            elif value.as_list() is not None:
                result[name] = value.as_list()
            elif value.as_file_refs() is not None:
                result[name] = value.as_file_refs()
            else:
                result[name] = value.as_scalar()
        return result


# =============================================================================
# Pagination
# =============================================================================


@dataclass
class Page:
    """One page of records from a list endpoint."""

    page: int
    per_page: int
    total_pages: int
    total_items: int
    items: list[Record] = field(default_factory=list)

    @property
    def has_more(self) -> bool:
        """Check if there are more pages after this one."""
        if self.total_pages >= 0:
            return self.page < self.total_pages
        # Totals were skipped (reported as -1): a full page may have a successor
        return len(self.items) >= self.per_page > 0


# =============================================================================
# Auth Types
# =============================================================================


def _require_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object for {what}", details={"value": data})
    return data


@dataclass
class UserAuth:
    """An authenticated user from an auth collection."""

    token: str
    id: str
    collection_id: str | None = None
    collection_name: str | None = None
    created: str | None = None
    updated: str | None = None
    username: str | None = None
    email: str | None = None
    email_visibility: bool = False
    verified: bool = False
    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserAuth":
        """Create from an auth-with-password response."""
        data = _require_object(data, "auth response")
        record = _require_object(data.get("record"), "auth record")
        token = data.get("token")
        if not isinstance(token, str) or RECORD_ID not in record:
            raise DecodeError("Auth response is missing the token or record id", details=data)

        known = {
            RECORD_ID,
            COLLECTION_ID,
            COLLECTION_NAME,
            CREATED,
            UPDATED,
            "username",
            "email",
            "emailVisibility",
            "verified",
        }
        return cls(
            token=token,
            id=as_text(record[RECORD_ID]),
            collection_id=record.get(COLLECTION_ID),
            collection_name=record.get(COLLECTION_NAME),
            created=record.get(CREATED),
            updated=record.get(UPDATED),
            username=record.get("username"),
            email=record.get("email"),
            email_visibility=bool(record.get("emailVisibility", False)),
            verified=bool(record.get("verified", False)),
            values={k: as_text(v) for k, v in record.items() if k not in known},
        )


@dataclass
class AdminAuth:
    """An authenticated admin."""

    token: str
    id: str
    email: str
    avatar: int = 0
    created: str | None = None
    updated: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdminAuth":
        """Create from an admin auth-with-password response."""
        data = _require_object(data, "auth response")
        admin = _require_object(data.get("admin"), "admin")
        token = data.get("token")
        if not isinstance(token, str) or RECORD_ID not in admin:
            raise DecodeError("Admin auth response is missing the token or admin id", details=data)
        try:
            avatar = int(admin.get("avatar") or 0)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid admin avatar: {admin.get('avatar')!r}") from e

        return cls(
            token=token,
            id=as_text(admin[RECORD_ID]),
            email=admin.get("email") or "",
            avatar=avatar,
            created=admin.get(CREATED),
            updated=admin.get(UPDATED),
        )
