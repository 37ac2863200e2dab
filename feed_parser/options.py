"""
Feed request options and listing URL construction.

FeedOptions describes which listing to fetch (front page or a subreddit,
sort order, paging). ``to_url`` turns it into the listing URL, and
``next_page`` derives the options for the page after a given post.
"""

from enum import Enum
from typing import Mapping, Optional
from urllib.parse import parse_qs, urlencode

from pydantic import BaseModel, Field

from .exceptions import InvalidOptionError

DEFAULT_BASE_URL = "http://old.reddit.com"

# Request headers that describe the incoming connection, not the listing
# request. Accept-Encoding is dropped too: compressed bodies are not decoded.
DROPPED_HEADERS = frozenset({
    "accept-encoding",
    "connection",
    "content-length",
    "host",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


class SortMethod(str, Enum):
    """Listing sort order. DEFAULT leaves the choice to the site."""
    DEFAULT = ""
    HOT = "hot"
    NEW = "new"
    RISING = "rising"
    CONTROVERSIAL = "controversial"
    TOP = "top"
    GILDED = "gilded"

    @property
    def url_string(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, name: str) -> "SortMethod":
        """Parse a sort name from a URL path segment ("hot", "top"...)."""
        if name:
            for method in cls:
                if method.value == name:
                    return method
        raise InvalidOptionError(f"'{name}' is not a sort method", details={"value": name})


SORT_NAMES = frozenset(m.value for m in SortMethod if m is not SortMethod.DEFAULT)


class FeedOptions(BaseModel):
    """Options for a single listing request."""

    # Host for the query. Empty when building links back to the local proxy.
    base_url: str = DEFAULT_BASE_URL

    # None means the front page
    subreddit: Optional[str] = None

    sort_method: SortMethod = SortMethod.DEFAULT

    # Index of the first post to return: 0, 25, 50...
    # last_post_id takes precedence on the site side if the two disagree.
    count: int = Field(default=0, ge=0)

    # Fullname of the last post on the previous page; None for the first page
    last_post_id: Optional[str] = None

    # Headers from the inbound request to forward upstream
    headers: dict[str, str] = Field(default_factory=dict)

    def to_url(self) -> str:
        """
        Build the listing URL.

        Examples:
            http://old.reddit.com
            http://old.reddit.com/r/python/?sort=top
            /r/python/?after=t3_abc
        """
        url = self.base_url
        if self.subreddit is not None:
            url = f"{url}/r/{self.subreddit}"

        values = {}
        if self.sort_method != SortMethod.DEFAULT:
            values["sort"] = self.sort_method.url_string
        if self.count != 0:
            values["count"] = str(self.count)
        if self.last_post_id is not None:
            values["after"] = self.last_post_id

        if values:
            # Sorted by key for a stable URL
            url = f"{url}/?{urlencode(sorted(values.items()))}"

        return url

    def next_page(self, last_post_id: str) -> "FeedOptions":
        """Options for the page following ``last_post_id``, relative to the local host."""
        return self.model_copy(update={"base_url": "", "last_post_id": last_post_id})


class RoutedRequest(BaseModel):
    """Result of mapping an inbound request path onto feed options."""
    options: FeedOptions
    wants_json: bool = False


def options_from_path(
    path: str,
    query: str = "",
    headers: Optional[Mapping[str, str]] = None,
    base_url: str = DEFAULT_BASE_URL
) -> RoutedRequest:
    """
    Map a proxy request onto FeedOptions.

    Supported shapes (each optionally with a ``.json`` suffix on the path or
    the query string to request JSON output):

        /
        /[sort]
        /?after=[id]
        /r/[name]
        /r/[name]/[sort]
        /r/[name]/[sort]/?after=[id]
    """
    wants_json = False
    if path.endswith(".json"):
        wants_json = True
        path = path[:-len(".json")]
    elif query.endswith(".json"):
        wants_json = True
        query = query[:-len(".json")]

    options = FeedOptions(base_url=base_url)

    # "/r/foobar/hot" splits into ["", "r", "foobar", "hot"]
    pieces = path.split("/")
    if len(pieces) >= 3 and pieces[1] == "r":
        options.subreddit = pieces[2]
    if pieces[-1] in SORT_NAMES:
        options.sort_method = SortMethod(pieces[-1])

    after = parse_qs(query).get("after")
    if after and after[0]:
        options.last_post_id = after[0]

    if headers:
        options.headers = {
            k: v for k, v in headers.items() if k.lower() not in DROPPED_HEADERS
        }

    return RoutedRequest(options=options, wants_json=wants_json)
