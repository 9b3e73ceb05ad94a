"""
Core layer - Types, mapping and HTTP client.

This layer provides:
- Typed dataclasses for records, pages, field values and auth responses
- JSON / multipart mapping and error mapping
- Low-level HTTP client with auth and error handling
"""

from pb_cli.core.client import APIClient, Transport, UrllibTransport
from pb_cli.core.errors import (
    APIError,
    CLIError,
    DecodeError,
    DomainError,
    FieldError,
    InvalidValueError,
    MalformedErrorBody,
    TransportError,
    UnexpectedResponseError,
    UnsupportedFileTypeError,
    ValidationError,
)
from pb_cli.core.mapping import decode_page, decode_record, encode_fields, map_error
from pb_cli.core.multipart import encode_multipart
from pb_cli.core.query import Query, escape_query
from pb_cli.core.types import AdminAuth, FileRefs, Page, Record, Scalar, StringList, UserAuth, Value

__all__ = [
    "APIClient",
    "APIError",
    "AdminAuth",
    "CLIError",
    "DecodeError",
    "DomainError",
    "FieldError",
    "FileRefs",
    "InvalidValueError",
    "MalformedErrorBody",
    "Page",
    "Query",
    "Record",
    "Scalar",
    "StringList",
    "Transport",
    "TransportError",
    "UnexpectedResponseError",
    "UnsupportedFileTypeError",
    "UrllibTransport",
    "UserAuth",
    "ValidationError",
    "Value",
    "decode_page",
    "decode_record",
    "encode_fields",
    "encode_multipart",
    "escape_query",
    "map_error",
]
