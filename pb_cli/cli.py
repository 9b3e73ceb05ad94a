"""
PocketBase CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting for human output
- JSON output for piping/automation
"""

import argparse
import getpass
import json
import sys
from pathlib import Path
from typing import Any

from pb_cli.core.errors import CLIError, ValidationError
from pb_cli.core.query import DEFAULT_PER_PAGE, Query
from pb_cli.core.types import FileRefs, Record, Scalar, StringList, Value, as_text
from pb_cli.sdk import PocketBaseClient
from pb_cli.utils.logging import configure_logging

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (LLM/machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    # Header
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    # Rows
    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


# =============================================================================
# Input Helpers
# =============================================================================


def read_json_arg(raw: str) -> Any:
    """Parse a JSON argument, reading stdin when it is '-'."""
    text = sys.stdin.read() if raw == "-" else raw
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}")


def fields_from_json(data: Any) -> dict[str, Value | None]:
    """Convert a JSON object of field values into record fields."""
    if not isinstance(data, dict):
        raise ValidationError("--fields must be a JSON object")

    fields: dict[str, Value | None] = {}
    for name, raw in data.items():
        if raw is None:
            fields[name] = None
        elif isinstance(raw, list):
            fields[name] = StringList(tuple(as_text(item) for item in raw))
        else:
            fields[name] = Scalar(as_text(raw))
    return fields


def parse_file_args(file_args: list[str] | None) -> dict[str, Value | None]:
    """Group repeated --file field=path arguments into FileRefs per field."""
    grouped: dict[str, list[str]] = {}
    for item in file_args or []:
        name, sep, path = item.partition("=")
        if not sep or not name or not path:
            raise ValidationError(f"Invalid --file '{item}', expected field=path")
        if not Path(path).is_file():
            raise ValidationError(f"File not found: {path}")
        grouped.setdefault(name, []).append(path)
    return {name: FileRefs(tuple(paths)) for name, paths in grouped.items()}


def record_fields_args(args: argparse.Namespace) -> tuple[dict[str, Value | None], bool]:
    """Collect fields from --fields and --file; the flag tells whether files are included."""
    fields = fields_from_json(read_json_arg(args.fields)) if args.fields else {}
    files = parse_file_args(args.file)
    fields.update(files)
    return fields, bool(files)


def record_summary(record: Record) -> str:
    """Short one-line view of a record's fields."""
    parts = []
    for name, value in record.fields.items():
        parts.append(f"{name}={'' if value is None else value}")
    return ", ".join(parts)


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_records_list(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """List records in a collection."""
    if args.page is not None:
        query = Query.paginated(
            args.page,
            args.per_page or DEFAULT_PER_PAGE,
            sort=args.sort,
            filter=args.filter,
            expand=args.expand,
        )
    else:
        query = Query(
            per_page=args.per_page or DEFAULT_PER_PAGE,
            sort=args.sort,
            filter=args.filter,
            expand=args.expand,
        )

    if args.all:
        records = client.records.list_all(args.collection, query)
        success_output({"items": [r.to_dict() for r in records], "totalItems": len(records)})
        return

    page = client.read_page(args.collection, query)
    if is_tty():
        if not page.items:
            print("No records found.")
            return
        table_output(
            ["ID", "Updated", "Fields"],
            [[r.id or "", r.updated or "", record_summary(r)] for r in page.items],
            [15, 24, 80],
        )
        if page.total_items >= 0:
            print(f"\nPage {page.page} of {page.total_pages} ({page.total_items} records)")
    else:
        success_output(
            {
                "page": page.page,
                "perPage": page.per_page,
                "totalPages": page.total_pages,
                "totalItems": page.total_items,
                "items": [r.to_dict() for r in page.items],
            }
        )


def cmd_records_get(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Get a record by ID."""
    record = client.read_record(args.collection, args.record_id)
    success_output(record.to_dict())


def cmd_records_create(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Create a record."""
    fields, has_files = record_fields_args(args)
    if has_files:
        record = client.create_record_with_files(args.collection, fields)
    else:
        record = client.create_record(args.collection, fields)
    success_output(record.to_dict())


def cmd_records_update(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Update a record."""
    fields, has_files = record_fields_args(args)
    if not fields:
        raise ValidationError("Nothing to update, pass --fields and/or --file")
    if has_files:
        record = client.update_record_with_files(args.collection, args.record_id, fields)
    else:
        record = client.update_record(args.collection, args.record_id, fields)
    success_output(record.to_dict())


def cmd_records_delete(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Delete a record."""
    client.delete_record(args.collection, args.record_id)
    success_output({"deleted": True, "id": args.record_id})


def _password(args: argparse.Namespace) -> str:
    return args.password if args.password is not None else getpass.getpass("Password: ")


def cmd_auth_user(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Authenticate a user and print the token."""
    user = client.authenticate_user(args.collection, args.identity, _password(args))
    success_output(
        {
            "token": user.token,
            "id": user.id,
            "collectionName": user.collection_name,
            "username": user.username,
            "email": user.email,
            "verified": user.verified,
        }
    )


def cmd_auth_admin(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Authenticate an admin and print the token."""
    admin = client.authenticate_admin(args.identity, _password(args))
    success_output({"token": admin.token, "id": admin.id, "email": admin.email})


def cmd_files_download(client: PocketBaseClient, args: argparse.Namespace) -> None:
    """Download a file from a record."""
    output = client.download_file(
        args.collection,
        args.record_id,
        args.filename,
        args.output or args.filename,
        thumb=args.thumb,
    )
    success_output({"path": str(output), "size": output.stat().st_size})


# =============================================================================
# Main CLI
# =============================================================================


def _add_fields_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--fields", "-f", help="JSON object with field values (or - for stdin)")
    parser.add_argument(
        "--file",
        action="append",
        metavar="FIELD=PATH",
        help="Upload a file into a file field (repeatable; sends multipart/form-data)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="PocketBase CLI - Command-line interface for the PocketBase record API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Modes:
  TTY (human):  Pretty tables
  Pipe (LLM):   Full JSON

Examples:
  pb auth admin admin@example.com
  pb records list posts --sort=-created --filter 'views > 10 && title ~ "news"'
  pb records create posts --fields '{"title": "Hello", "tags": ["a", "b"]}'
  pb records update posts <record_id> --file attachments=./report.pdf
  pb files download posts <record_id> report_x1y2.pdf -o report.pdf
""",
    )
    parser.add_argument("--url", "-u", help="PocketBase address (overrides POCKETBASE_URL)")
    parser.add_argument("--token", "-t", help="Auth token (overrides POCKETBASE_TOKEN)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Log level (default WARNING)",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Records ==========
    records = subparsers.add_parser("records", help="List and manage records")
    records.set_defaults(func=lambda _c, _a: records.print_help())
    records_sub = records.add_subparsers(dest="subcommand")

    r_list = records_sub.add_parser("list", help="List records")
    r_list.add_argument("collection", help="Collection name or ID")
    r_list.add_argument("--page", "-p", type=int, help="Page number (also requests total counts)")
    r_list.add_argument("--per-page", "-n", type=int, help=f"Records per page (default {DEFAULT_PER_PAGE})")
    r_list.add_argument("--sort", "-s", help='Sort expression, e.g. "-created,title"')
    r_list.add_argument("--filter", "-f", help='Filter expression, e.g. \'views > 10 && title ~ "news"\'')
    r_list.add_argument("--expand", "-e", help="Relations to expand")
    r_list.add_argument("--all", "-a", action="store_true", help="Fetch every page")
    r_list.set_defaults(func=cmd_records_list)

    r_get = records_sub.add_parser("get", help="Get a record")
    r_get.add_argument("collection", help="Collection name or ID")
    r_get.add_argument("record_id", help="Record ID")
    r_get.set_defaults(func=cmd_records_get)

    r_create = records_sub.add_parser("create", help="Create a record")
    r_create.add_argument("collection", help="Collection name or ID")
    _add_fields_args(r_create)
    r_create.set_defaults(func=cmd_records_create)

    r_update = records_sub.add_parser("update", help="Update a record")
    r_update.add_argument("collection", help="Collection name or ID")
    r_update.add_argument("record_id", help="Record ID")
    _add_fields_args(r_update)
    r_update.set_defaults(func=cmd_records_update)

    r_delete = records_sub.add_parser("delete", help="Delete a record")
    r_delete.add_argument("collection", help="Collection name or ID")
    r_delete.add_argument("record_id", help="Record ID")
    r_delete.set_defaults(func=cmd_records_delete)

    # ========== Auth ==========
    auth = subparsers.add_parser("auth", help="Authenticate and get a token")
    auth.set_defaults(func=lambda _c, _a: auth.print_help())
    auth_sub = auth.add_subparsers(dest="subcommand")

    a_user = auth_sub.add_parser("user", help="Authenticate a user of an auth collection")
    a_user.add_argument("collection", help="Auth collection name (e.g. users)")
    a_user.add_argument("identity", help="Email or username")
    a_user.add_argument("--password", help="Password (prompted if omitted)")
    a_user.set_defaults(func=cmd_auth_user)

    a_admin = auth_sub.add_parser("admin", help="Authenticate an admin")
    a_admin.add_argument("identity", help="Admin email")
    a_admin.add_argument("--password", help="Password (prompted if omitted)")
    a_admin.set_defaults(func=cmd_auth_admin)

    # ========== Files ==========
    files = subparsers.add_parser("files", help="Download record files")
    files.set_defaults(func=lambda _c, _a: files.print_help())
    files_sub = files.add_subparsers(dest="subcommand")

    f_download = files_sub.add_parser("download", help="Download a file")
    f_download.add_argument("collection", help="Collection name or ID")
    f_download.add_argument("record_id", help="Record ID")
    f_download.add_argument("filename", help="Stored file name")
    f_download.add_argument("--output", "-o", help="Save path (defaults to the file name)")
    f_download.add_argument("--thumb", help='Thumbnail size for images, e.g. "100x100"')
    f_download.set_defaults(func=cmd_files_download)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    configure_logging(args.log_level, json_logs=args.log_json)

    # Create client
    client = PocketBaseClient(base_url=args.url, token=args.token)

    # Run command (all subparsers have default funcs that print help)
    try:
        args.func(client, args)
    except CLIError as e:
        error_output(e)


if __name__ == "__main__":
    main()
