"""
PocketBase CLI Test Suite

Three groups of tests:
- Help commands, run through a subprocess exactly as a user would
- Commands run in-process against an in-memory transport
- Live smoke tests against a REAL PocketBase server

Run with: python -m pytest tests/test_cli.py -v -s
Live tests require: POCKETBASE_URL, POCKETBASE_ADMIN_EMAIL, POCKETBASE_ADMIN_PASSWORD
and POCKETBASE_TEST_COLLECTION (a collection with a "title" text field).
"""

import json
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

from pb_cli import cli
from pb_cli.core.errors import ValidationError
from pb_cli.core.types import FileRefs, Scalar, StringList

# =============================================================================
# Configuration
# =============================================================================

LIVE_URL = os.environ.get("POCKETBASE_URL")
ADMIN_EMAIL = os.environ.get("POCKETBASE_ADMIN_EMAIL")
ADMIN_PASSWORD = os.environ.get("POCKETBASE_ADMIN_PASSWORD")
TEST_COLLECTION = os.environ.get("POCKETBASE_TEST_COLLECTION")

CLI_TIMEOUT = 60  # Timeout in seconds for CLI commands


# =============================================================================
# CLI Runner
# =============================================================================


@dataclass
class CLITestResult:
    """Result of a single CLI invocation."""

    args: list[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def json(self):
        return json.loads(self.stdout)


def run_cli(*args: str, stdin: str | None = None, env: dict[str, str] | None = None) -> CLITestResult:
    """Run the CLI in a subprocess and return a CLITestResult."""
    cmd = [sys.executable, "-m", "pb_cli.cli", *args]
    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        input=stdin,
        env={**os.environ, **(env or {})},
        timeout=CLI_TIMEOUT,
        cwd=Path(__file__).resolve().parent.parent,
    )
    return CLITestResult(list(args), result.returncode, result.stdout, result.stderr)


@pytest.fixture
def run_main(pb, monkeypatch, capsys):
    """Run cli.main() in-process with the fake-transport client; returns (exit_code, stdout)."""
    monkeypatch.setattr(cli, "PocketBaseClient", lambda **_kwargs: pb)
    monkeypatch.setattr(cli, "configure_logging", lambda *_a, **_kw: None)

    def _run(*argv: str) -> tuple[int, str]:
        code = 0
        try:
            cli.main(list(argv))
        except SystemExit as e:
            code = e.code or 0
        return code, capsys.readouterr().out

    return _run


# =============================================================================
# Help Tests - All Commands Should Have Working Help
# =============================================================================


class TestHelpCommands:
    """Test that all help commands work."""

    def test_main_help(self):
        result = run_cli("--help")
        assert result.success, f"Main help failed: {result.stderr}"
        assert "PocketBase CLI" in result.stdout

    @pytest.mark.parametrize("command", ["records", "auth", "files"])
    def test_group_help(self, command):
        result = run_cli(command, "--help")
        assert result.success, f"{command} help failed: {result.stderr}"

    @pytest.mark.parametrize(
        "args",
        [
            ["records", "list", "--help"],
            ["records", "create", "--help"],
            ["records", "update", "--help"],
            ["files", "download", "--help"],
        ],
    )
    def test_subcommand_help(self, args):
        result = run_cli(*args)
        assert result.success, f"{' '.join(args)} failed: {result.stderr}"

    def test_unreachable_server_reports_json_error(self):
        result = run_cli("--url", "http://127.0.0.1:9", "records", "get", "posts", "x")
        assert result.exit_code == 1
        assert "Connection error" in result.json()["error"]


# =============================================================================
# Input Helpers
# =============================================================================


class TestInputHelpers:
    """--fields / --file parsing."""

    def test_fields_from_json(self):
        fields = cli.fields_from_json({"title": "a", "views": 3, "tags": ["x", "y"], "cover": None})
        assert fields == {
            "title": Scalar("a"),
            "views": Scalar("3"),
            "tags": StringList(["x", "y"]),
            "cover": None,
        }

    def test_fields_must_be_object(self):
        with pytest.raises(ValidationError):
            cli.fields_from_json(["a"])

    def test_parse_file_args_groups_by_field(self, tmp_path):
        a, b = tmp_path / "a.png", tmp_path / "b.png"
        a.write_bytes(b"a")
        b.write_bytes(b"b")
        files = cli.parse_file_args([f"images={a}", f"images={b}", f"cover={a}"])
        assert files == {"images": FileRefs([a, b]), "cover": FileRefs([a])}

    @pytest.mark.parametrize("item", ["images", "=x.png", "images="])
    def test_parse_file_args_rejects_bad_syntax(self, item):
        with pytest.raises(ValidationError):
            cli.parse_file_args([item])

    def test_parse_file_args_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="File not found"):
            cli.parse_file_args([f"images={tmp_path / 'nope.png'}"])


# =============================================================================
# Commands (in-process, fake transport)
# =============================================================================


class TestCommands:
    """Commands print JSON when piped and exit 1 with a JSON error on failure."""

    def test_records_list(self, run_main, transport, record_json):
        transport.queue(200, {"page": 1, "perPage": 500, "totalPages": -1, "totalItems": -1, "items": [record_json]})
        code, out = run_main("records", "list", "posts", "--filter", 'title = "Hello"')

        assert code == 0
        data = json.loads(out)
        assert data["items"][0]["title"] == "Hello"
        assert data["items"][0]["tags"] == ["news", "tech"]
        assert "filter=title%20=%20%22Hello%22" in transport.last.url

    def test_records_list_page(self, run_main, transport):
        transport.queue(200, {"page": 2, "perPage": 5, "totalPages": 2, "totalItems": 6, "items": []})
        code, _ = run_main("records", "list", "posts", "--page", "2", "--per-page", "5")
        assert code == 0
        assert transport.last.url.endswith("?page=2&perPage=5")

    def test_records_create(self, run_main, transport, record_json):
        transport.queue(200, record_json)
        code, out = run_main("records", "create", "posts", "--fields", '{"title": "Hello", "tags": ["a"]}')
        assert code == 0
        assert json.loads(out)["id"] == record_json["id"]
        assert transport.last.json() == {"title": "Hello", "tags": ["a"]}

    def test_records_create_with_file(self, run_main, transport, record_json, tmp_path):
        doc = tmp_path / "doc.txt"
        doc.write_text("hello")
        transport.queue(200, record_json)
        code, _ = run_main("records", "create", "posts", "--fields", '{"title": "x"}', "--file", f"attachments={doc}")
        assert code == 0
        assert transport.last.headers["Content-Type"].startswith("multipart/form-data")

    def test_records_update_requires_fields(self, run_main, transport):
        code, out = run_main("records", "update", "posts", "r1")
        assert code == 1
        assert "Nothing to update" in json.loads(out)["error"]
        assert transport.requests == []

    def test_records_delete(self, run_main, transport):
        transport.queue(204)
        code, out = run_main("records", "delete", "posts", "r1")
        assert code == 0
        assert json.loads(out) == {"deleted": True, "id": "r1"}

    def test_validation_error_output(self, run_main, transport):
        transport.queue(
            400,
            {
                "code": 400,
                "message": "Failed to create record.",
                "data": {"title": {"code": "validation_required", "message": "Missing required value."}},
            },
        )
        code, out = run_main("records", "create", "posts", "--fields", "{}")
        assert code == 1
        error = json.loads(out)
        assert error["status"] == 400
        assert error["field_errors"] == [
            {"field": "title", "code": "validation_required", "message": "Missing required value."}
        ]

    def test_invalid_fields_json(self, run_main, transport):
        code, out = run_main("records", "create", "posts", "--fields", "{not json")
        assert code == 1
        assert "Invalid JSON" in json.loads(out)["error"]

    def test_auth_admin(self, run_main, transport):
        transport.queue(200, {"token": "tok", "admin": {"id": "a1", "email": "a@example.com"}})
        code, out = run_main("auth", "admin", "a@example.com", "--password", "secret")
        assert code == 0
        assert json.loads(out)["token"] == "tok"

    def test_log_level_is_case_insensitive(self, run_main, transport, monkeypatch):
        levels = []
        monkeypatch.setattr(cli, "configure_logging", lambda level, **_kw: levels.append(level))
        transport.queue(204)
        code, _ = run_main("--log-level", "debug", "records", "delete", "posts", "r1")
        assert code == 0
        assert levels == ["DEBUG"]

    def test_unknown_log_level_is_rejected(self, transport, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--log-level", "LOUD", "records", "delete", "posts", "r1"])
        assert exc.value.code == 2
        assert "invalid choice" in capsys.readouterr().err
        assert transport.requests == []

    def test_files_download(self, run_main, transport, tmp_path):
        transport.queue(200, b"file-bytes")
        target = tmp_path / "saved.bin"
        code, out = run_main("files", "download", "posts", "r1", "doc_x.bin", "-o", str(target))
        assert code == 0
        assert json.loads(out) == {"path": str(target), "size": 10}


# =============================================================================
# Live Smoke Tests - Real PocketBase Server
# =============================================================================


@pytest.fixture(scope="module")
def admin_token():
    """Authenticate against the live server, skipping when it is not configured."""
    if not (LIVE_URL and ADMIN_EMAIL and ADMIN_PASSWORD and TEST_COLLECTION):
        pytest.skip("POCKETBASE_URL, POCKETBASE_ADMIN_EMAIL, POCKETBASE_ADMIN_PASSWORD and POCKETBASE_TEST_COLLECTION required")
    result = run_cli("auth", "admin", ADMIN_EMAIL, "--password", ADMIN_PASSWORD)
    assert result.success, f"admin auth failed: {result.stdout}"
    return result.json()["token"]


@pytest.mark.live
class TestLiveRecords:
    """Create, read, list and delete a record on a real server."""

    def test_record_lifecycle(self, admin_token):
        env = {"POCKETBASE_TOKEN": admin_token}

        created = run_cli("records", "create", TEST_COLLECTION, "--fields", '{"title": "pb-cli smoke test"}', env=env)
        assert created.success, f"create failed: {created.stdout}"
        record_id = created.json()["id"]

        try:
            fetched = run_cli("records", "get", TEST_COLLECTION, record_id, env=env)
            assert fetched.success, f"get failed: {fetched.stdout}"
            assert fetched.json()["title"] == "pb-cli smoke test"

            listed = run_cli("records", "list", TEST_COLLECTION, "--filter", f'id = "{record_id}"', env=env)
            assert listed.success, f"list failed: {listed.stdout}"
            assert [r["id"] for r in listed.json()["items"]] == [record_id]
        finally:
            deleted = run_cli("records", "delete", TEST_COLLECTION, record_id, env=env)
            assert deleted.success, f"delete failed: {deleted.stdout}"

    def test_missing_record(self, admin_token):
        result = run_cli("records", "get", TEST_COLLECTION, "doesnotexist123", env={"POCKETBASE_TOKEN": admin_token})
        assert result.exit_code == 1
        assert result.json()["status"] == 404


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
