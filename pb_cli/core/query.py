"""
List query options and the query-string escaping PocketBase expects.
"""

import string
import urllib.parse
from dataclasses import dataclass

from pb_cli.core.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 500

# Of printable ASCII only these characters are escaped. Filter expressions
# rely on the rest of their syntax reaching the server untouched, so this
# is not full URL encoding.
_ESCAPES = (
    (" ", "%20"),
    ("&&", "%26%26"),
    ("|", "%7C"),
    ("<", "%3C"),
    (">", "%3E"),
    ("-", "%2D"),
    ('"', "%22"),
)


def escape_query(query_string: str) -> str:
    """Percent-encode the characters of a rendered query string that break the request line."""
    for raw, escaped in _ESCAPES:
        query_string = query_string.replace(raw, escaped)
    # Non-ASCII and control characters go out as UTF-8 percent escapes
    return urllib.parse.quote(query_string, safe=string.punctuation)


@dataclass(frozen=True)
class Query:
    """
    Options for listing records.

    The default form fetches the first 500 records and asks the server to skip
    total counting; use Query.paginated() to page through results with totals.
    Use double quotes for string literals inside expressions.

    Example:
        Query(sort="-created", filter='title ~ "news" && views > 10')
        Query.paginated(2, 50, expand="author")

    """

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    skip_total: bool = True
    sort: str | None = None
    filter: str | None = None
    expand: str | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError(f"page must be >= 1, got {self.page}")
        if self.per_page < 1:
            raise ValidationError(f"per_page must be >= 1, got {self.per_page}")

    @classmethod
    def paginated(
        cls,
        page: int,
        per_page: int,
        sort: str | None = None,
        filter: str | None = None,
        expand: str | None = None,
    ) -> "Query":
        """Create a query for a specific page, with total counts."""
        return cls(page=page, per_page=per_page, skip_total=False, sort=sort, filter=filter, expand=expand)

    def render(self) -> str:
        """Render as a query string (without the leading '?')."""
        parts = [f"page={self.page}", f"perPage={self.per_page}"]
        if self.skip_total:
            parts.append("skipTotal=1")
        if self.sort is not None:
            parts.append(f"sort={self.sort}")
        if self.filter is not None:
            parts.append(f"filter={self.filter}")
        if self.expand is not None:
            parts.append(f"expand={self.expand}")
        return "&".join(parts)

    def __str__(self) -> str:
        return self.render()
