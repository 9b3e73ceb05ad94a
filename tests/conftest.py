"""Pytest configuration - loads .env for live tests and provides a fake transport."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from pb_cli.sdk import PocketBaseClient

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

BASE_URL = "http://pb.test"


@dataclass
class SentRequest:
    """One request captured by FakeTransport."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None

    def json(self) -> Any:
        return json.loads(self.body or b"")


class FakeTransport:
    """In-memory transport: replays queued responses and records every request."""

    def __init__(self) -> None:
        self.responses: list[tuple[int, bytes]] = []
        self.requests: list[SentRequest] = []

    def queue(self, status: int, body: Any = b"") -> None:
        if not isinstance(body, bytes):
            body = body.encode("utf-8") if isinstance(body, str) else json.dumps(body).encode("utf-8")
        self.responses.append((status, body))

    def send(self, method, url, headers, body):
        self.requests.append(SentRequest(method, url, dict(headers), body))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        return self.responses.pop(0)

    @property
    def last(self) -> SentRequest:
        return self.requests[-1]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def pb(transport, monkeypatch) -> PocketBaseClient:
    monkeypatch.delenv("POCKETBASE_TOKEN", raising=False)
    return PocketBaseClient(base_url=BASE_URL, transport=transport)


@pytest.fixture
def record_json() -> dict[str, Any]:
    """A record as PocketBase returns it."""
    return {
        "id": "r1a2b3c4d5e6f7g",
        "collectionId": "pbc_1234567890",
        "collectionName": "posts",
        "created": "2024-01-05 10:20:30.123Z",
        "updated": "2024-01-06 08:00:00.000Z",
        "title": "Hello",
        "views": 2,
        "published": True,
        "tags": ["news", "tech"],
        "attachments": [],
    }
