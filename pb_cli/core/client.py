"""
Core HTTP client for the PocketBase API.

Handles the transport, auth header, request/response and error handling.
"""

import http.client
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from pb_cli.core.errors import APIError, DecodeError, MalformedErrorBody, TransportError
from pb_cli.core.mapping import map_error
from pb_cli.core.multipart import encode_multipart
from pb_cli.core.query import escape_query
from pb_cli.core.types import Value

# Configuration
DEFAULT_BASE_URL = "http://127.0.0.1:8090"
DEFAULT_TIMEOUT = 60

NO_CONTENT = 204

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Sends one HTTP request and returns (status, body). Raises TransportError when unreachable."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> tuple[int, bytes]: ...


class UrllibTransport:
    """Transport built on urllib.request."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> tuple[int, bytes]:
        req = urllib.request.Request(url, data=body, headers=dict(headers), method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return response.status, response.read()

        except urllib.error.HTTPError as e:
            # Error statuses are data for the caller, not transport failures
            return e.code, e.read()

        except urllib.error.URLError as e:
            raise TransportError(f"Connection error: {e.reason}")

        except TimeoutError:
            raise TransportError(f"Request timed out after {self.timeout} seconds")

        except (http.client.HTTPException, OSError) as e:
            # Dropped connections, resets and malformed request lines
            raise TransportError(f"Connection error: {e}") from e


@dataclass
class Response:
    """A successful (status < 400) response."""

    status: int
    body: bytes

    def json(self) -> Any:
        """Parse the body as JSON."""
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Invalid JSON response: {e}", details={"status": self.status}) from e


class APIClient:
    """
    Low-level HTTP client for the PocketBase API.

    Handles:
    - Base URL and default auth token (from arguments or environment)
    - JSON and multipart/form-data request bodies
    - Turning error responses into DomainError / APIError
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        transport: Transport | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: PocketBase address (or POCKETBASE_URL env var)
            token: Default auth token (or POCKETBASE_TOKEN env var)
            timeout: Request timeout in seconds (used by the default transport)
            transport: Custom transport, mainly for tests

        """
        env_base_url = os.environ.get("POCKETBASE_URL", DEFAULT_BASE_URL)
        self.base_url = (base_url or env_base_url).rstrip("/")
        self.token = token or os.environ.get("POCKETBASE_TOKEN")
        self.timeout = timeout
        self.transport: Transport = transport or UrllibTransport(timeout)

    def _build_url(self, path: str, query: str | None = None) -> str:
        """Build full URL from path and an already rendered query string."""
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        if query:
            url = f"{url}?{escape_query(query)}"
        return url

    def _headers(self, token: str | None, content_type: str | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if content_type:
            headers["Content-Type"] = content_type
        auth = token or self.token
        if auth:
            headers["Authorization"] = auth
        return headers

    def _raise_for_error(self, status: int, body: bytes) -> None:
        """Raise DomainError for an error response, or APIError if its body is not an error object."""
        try:
            error = map_error(status, body)
        except MalformedErrorBody as e:
            raw = body.decode("utf-8", errors="replace")
            raise APIError(f"HTTP {status}", status=status, details={"body": raw}) from e
        raise error

    def send(
        self,
        method: str,
        path: str,
        *,
        query: str | None = None,
        body: bytes | None = None,
        content_type: str | None = None,
        token: str | None = None,
    ) -> Response:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: API path (e.g., /api/collections/posts/records)
            query: Rendered query string, escaped before sending
            body: Raw request body
            content_type: Content-Type of the body
            token: Auth token override

        Returns:
            The successful Response

        Raises:
            DomainError: When the server rejects the request
            APIError: On error responses without a JSON error body
            TransportError: When the server is unreachable

        """
        url = self._build_url(path, query)
        logger.debug("%s %s", method, url)
        status, raw = self.transport.send(method, url, self._headers(token, content_type), body)
        logger.debug("%s %s -> %d (%d bytes)", method, url, status, len(raw))

        if status >= 400:
            self._raise_for_error(status, raw)
        return Response(status=status, body=raw)

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str, query: str | None = None, token: str | None = None) -> Any:
        """Make a GET request and parse the JSON response."""
        return self.send("GET", path, query=query, token=token).json()

    def post(self, path: str, data: dict[str, Any] | None = None, token: str | None = None) -> Any:
        """Make a POST request with a JSON body."""
        return self._send_json("POST", path, data, token)

    def patch(self, path: str, data: dict[str, Any] | None = None, token: str | None = None) -> Any:
        """Make a PATCH request with a JSON body."""
        return self._send_json("PATCH", path, data, token)

    def delete(self, path: str, token: str | None = None) -> Response:
        """Make a DELETE request. The raw response is returned so callers can check the status."""
        return self.send("DELETE", path, token=token)

    def _send_json(self, method: str, path: str, data: dict[str, Any] | None, token: str | None) -> Any:
        # serialize None values explicitly, the server treats null as "clear"
        body = json.dumps(data if data is not None else {}).encode("utf-8")
        return self.send(method, path, body=body, content_type="application/json", token=token).json()

    # =========================================================================
    # Multipart
    # =========================================================================

    def post_multipart(self, path: str, fields: Mapping[str, Value | None], token: str | None = None) -> Any:
        """Make a POST request with a multipart/form-data body."""
        return self._send_multipart("POST", path, fields, token)

    def patch_multipart(self, path: str, fields: Mapping[str, Value | None], token: str | None = None) -> Any:
        """Make a PATCH request with a multipart/form-data body."""
        return self._send_multipart("PATCH", path, fields, token)

    def _send_multipart(
        self,
        method: str,
        path: str,
        fields: Mapping[str, Value | None],
        token: str | None,
    ) -> Any:
        body, boundary = encode_multipart(fields)
        content_type = f"multipart/form-data; boundary={boundary}"
        return self.send(method, path, body=body, content_type=content_type, token=token).json()


def collection_path(collection: str, record_id: str | None = None) -> str:
    """Get the records path for a collection, optionally for one record."""
    path = f"/api/collections/{urllib.parse.quote(collection, safe='')}/records"
    if record_id is not None:
        path = f"{path}/{urllib.parse.quote(record_id, safe='')}"
    return path
