"""
PocketBase CLI - Three-layer client for the PocketBase record API.

Layers:
- core: Types, JSON/multipart/error mapping and HTTP client
- sdk: High-level PocketBaseClient with nice ergonomics
- cli: Opinionated command-line interface
"""

from pb_cli.core.errors import DomainError
from pb_cli.core.query import Query
from pb_cli.core.types import FileRefs, Page, Record, Scalar, StringList, Value
from pb_cli.sdk import PocketBaseClient

__version__ = "0.1.0"
__all__ = [
    "DomainError",
    "FileRefs",
    "Page",
    "PocketBaseClient",
    "Query",
    "Record",
    "Scalar",
    "StringList",
    "Value",
]
