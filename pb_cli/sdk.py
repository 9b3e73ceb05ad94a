"""
PocketBase SDK - High-level client with nice ergonomics.

This layer provides a clean, typed interface for PocketBase record, auth and
file operations. Built on top of the core APIClient.
"""

import builtins
import logging
import urllib.parse
from collections.abc import Iterator, Mapping
from dataclasses import replace
from pathlib import Path

from pb_cli.core.client import NO_CONTENT, APIClient, Transport, collection_path
from pb_cli.core.errors import UnexpectedResponseError
from pb_cli.core.mapping import decode_page, decode_record, encode_fields
from pb_cli.core.query import Query
from pb_cli.core.types import AdminAuth, Page, Record, UserAuth, Value

logger = logging.getLogger(__name__)


class PocketBaseClient:
    """
    High-level PocketBase client with typed methods.

    Example:
        pb = PocketBaseClient("http://127.0.0.1:8090")

        user = pb.authenticate_user("users", "jane@example.com", "secret")
        post = pb.create_record("posts", {"title": Scalar("Hello")}, auth_token=user.token)
        page = pb.read_page("posts", Query(sort="-created", filter='title ~ "Hello"'))

    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: int = 60,
        transport: Transport | None = None,
    ):
        """
        Initialize the PocketBase client.

        Args:
            base_url: PocketBase address (or POCKETBASE_URL env var)
            token: Default auth token (or POCKETBASE_TOKEN env var)
            timeout: Request timeout in seconds
            transport: Custom transport, mainly for tests

        """
        self._client = APIClient(
            base_url=base_url,
            token=token,
            timeout=timeout,
            transport=transport,
        )

        # Sub-clients for different domains
        self.records = RecordOperations(self._client)
        self.auth = AuthOperations(self._client)
        self.files = FileOperations(self._client)

    @property
    def base_url(self) -> str:
        """Get the PocketBase address."""
        return self._client.base_url

    @property
    def token(self) -> str | None:
        """Get the default auth token."""
        return self._client.token

    @token.setter
    def token(self, value: str | None) -> None:
        """Set the default auth token used when a call passes none."""
        self._client.token = value

    # =========================================================================
    # Facade
    # =========================================================================

    def create_record(
        self,
        collection: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """Create a record from scalar and list values."""
        return self.records.create(collection, fields, auth_token)

    def create_record_with_files(
        self,
        collection: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """Create a record whose fields may include files."""
        return self.records.create_with_files(collection, fields, auth_token)

    def read_record(self, collection: str, record_id: str, auth_token: str | None = None) -> Record:
        """Get one record by ID."""
        return self.records.get(collection, record_id, auth_token)

    def read_page(self, collection: str, query: Query | None = None, auth_token: str | None = None) -> Page:
        """Get one page of records."""
        return self.records.list(collection, query, auth_token)

    def update_record(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """Update a record from scalar and list values."""
        return self.records.update(collection, record_id, fields, auth_token)

    def update_record_with_files(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """Update a record whose fields may include files."""
        return self.records.update_with_files(collection, record_id, fields, auth_token)

    def delete_record(self, collection: str, record_id: str, auth_token: str | None = None) -> bool:
        """Delete a record."""
        return self.records.delete(collection, record_id, auth_token)

    def authenticate_user(self, users_collection: str, identity: str, password: str) -> UserAuth:
        """Authenticate a user of an auth collection."""
        return self.auth.user(users_collection, identity, password)

    def authenticate_admin(self, identity: str, password: str) -> AdminAuth:
        """Authenticate an admin."""
        return self.auth.admin(identity, password)

    def download_file(
        self,
        collection: str,
        record_id: str,
        filename: str,
        save_path: str | Path,
        thumb: str | None = None,
        auth_token: str | None = None,
    ) -> Path:
        """Download a record's file to save_path."""
        return self.files.download(collection, record_id, filename, save_path, thumb, auth_token)


# =============================================================================
# Record Operations
# =============================================================================


class RecordOperations:
    """Operations for managing records in a collection."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(
        self,
        collection: str,
        query: Query | None = None,
        auth_token: str | None = None,
    ) -> Page:
        """
        List records in a collection.

        Args:
            collection: Collection name or ID
            query: Paging, sort, filter and expand options (server defaults if omitted)
            auth_token: Auth token override

        Returns:
            Page of Records

        """
        rendered = query.render() if query is not None else None
        result = self._client.get(collection_path(collection), rendered, auth_token)
        return decode_page(result)

    def iter_all(
        self,
        collection: str,
        query: Query | None = None,
        auth_token: str | None = None,
    ) -> Iterator[Record]:
        """
        Iterate through all records of a collection, page by page.

        Args:
            collection: Collection name or ID
            query: Sort, filter and expand options; its page is the starting page
            auth_token: Auth token override

        Yields:
            Records from all pages

        """
        base = query or Query()
        page_number = base.page
        while True:
            page = self.list(collection, replace(base, page=page_number), auth_token)
            yield from page.items

            if not page.items or not page.has_more:
                break
            page_number += 1

    def list_all(
        self,
        collection: str,
        query: Query | None = None,
        auth_token: str | None = None,
    ) -> builtins.list[Record]:
        """
        Fetch all records of a collection.

        Returns:
            List of all Records

        """
        return builtins.list(self.iter_all(collection, query, auth_token))

    def get(self, collection: str, record_id: str, auth_token: str | None = None) -> Record:
        """
        Get a record by ID.

        Args:
            collection: Collection name or ID
            record_id: The record ID
            auth_token: Auth token override

        Returns:
            Record

        """
        result = self._client.get(collection_path(collection, record_id), token=auth_token)
        return decode_record(result)

    def create(
        self,
        collection: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """
        Create a record with a JSON body.

        Args:
            collection: Collection name or ID
            fields: Field values; None clears a field
            auth_token: Auth token override

        Returns:
            Created Record

        Raises:
            InvalidValueError: If a field holds FileRefs (use create_with_files)

        """
        result = self._client.post(collection_path(collection), encode_fields(fields), auth_token)
        return decode_record(result)

    def create_with_files(
        self,
        collection: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """
        Create a record with a multipart/form-data body, uploading any FileRefs.

        Returns:
            Created Record

        """
        result = self._client.post_multipart(collection_path(collection), fields, auth_token)
        return decode_record(result)

    def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """
        Update a record with a JSON body. Only the given fields change.

        Returns:
            Updated Record

        """
        result = self._client.patch(collection_path(collection, record_id), encode_fields(fields), auth_token)
        return decode_record(result)

    def update_with_files(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Value | None],
        auth_token: str | None = None,
    ) -> Record:
        """
        Update a record with a multipart/form-data body, uploading any FileRefs.

        Returns:
            Updated Record

        """
        result = self._client.patch_multipart(collection_path(collection, record_id), fields, auth_token)
        return decode_record(result)

    def delete(self, collection: str, record_id: str, auth_token: str | None = None) -> bool:
        """
        Delete a record.

        Returns:
            True on success

        Raises:
            UnexpectedResponseError: If the server answers with anything but 204 No Content

        """
        response = self._client.delete(collection_path(collection, record_id), auth_token)
        if response.status != NO_CONTENT:
            raise UnexpectedResponseError(
                f"Unexpected response to delete (status {response.status})",
                status=response.status,
                details={"body": response.body.decode("utf-8", errors="replace")},
            )
        logger.info("Deleted %s/%s", collection, record_id)
        return True


# =============================================================================
# Auth Operations
# =============================================================================


class AuthOperations:
    """Operations for password authentication."""

    def __init__(self, client: APIClient):
        self._client = client

    def user(self, users_collection: str, identity: str, password: str) -> UserAuth:
        """
        Authenticate a user with identity (email or username) and password.

        Returns:
            UserAuth with the token and the user's record data

        """
        path = f"/api/collections/{urllib.parse.quote(users_collection, safe='')}/auth-with-password"
        result = self._client.post(path, {"identity": identity, "password": password})
        return UserAuth.from_dict(result)

    def admin(self, identity: str, password: str) -> AdminAuth:
        """
        Authenticate an admin with email and password.

        Returns:
            AdminAuth with the token

        """
        result = self._client.post("/api/admins/auth-with-password", {"identity": identity, "password": password})
        return AdminAuth.from_dict(result)


# =============================================================================
# File Operations
# =============================================================================


class FileOperations:
    """Operations for record files."""

    def __init__(self, client: APIClient):
        self._client = client

    def url(self, collection: str, record_id: str, filename: str) -> str:
        """Get the URL of a record's file."""
        segments = (collection, record_id, filename)
        return f"{self._client.base_url}/api/files/" + "/".join(urllib.parse.quote(s, safe="") for s in segments)

    def download(
        self,
        collection: str,
        record_id: str,
        filename: str,
        save_path: str | Path,
        thumb: str | None = None,
        auth_token: str | None = None,
    ) -> Path:
        """
        Download a file from a record, overwriting save_path.

        Args:
            collection: Collection name or ID
            record_id: The record ID
            filename: Stored file name (as listed in the record's file field)
            save_path: Where to write the file
            thumb: Thumbnail size (e.g. "100x100") for image files
            auth_token: Auth token override

        Returns:
            Path of the written file

        """
        query = f"thumb={thumb}" if thumb else None
        response = self._client.send("GET", self.url(collection, record_id, filename), query=query, token=auth_token)

        output = Path(save_path)
        output.write_bytes(response.body)
        logger.info("Downloaded %s (%d bytes) to %s", filename, len(response.body), output)
        return output
