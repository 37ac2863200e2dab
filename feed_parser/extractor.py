"""
Rule-based feed post extractor.

Rebuilds the list of posts from an old-style Reddit listing page. The page
mixes authoritative ``data-*`` attributes on each post element with purely
presentational markup; the attributes are read directly, and the handful of
fields that only exist in the markup (title, thumbnail, comments link) are
found with the search engine.

Pipeline position: DocumentLoader → FeedExtractor → Feed.
Input:  root of a parsed document (BeautifulSoup)
Output: list of FeedPost in page order
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from bs4.element import PageElement, Tag

from .exceptions import ContainerNotFound, SearchFailed
from .logger import get_module_logger
from .schemas import FeedPost, FeedPostType
from .search import (
    all_of,
    breadth_first_search,
    depth_first_search,
    get_attribute,
    has_attribute,
    has_attribute_matching,
    has_attribute_with_value,
    is_tag,
    negate,
    recurse_always,
)

logger = get_module_logger("extractor")

# The <div id="siteTable"> holds every post as a direct child
SITE_TABLE_CRITERIA = all_of(is_tag("div"), has_attribute_with_value("id", "siteTable"))

# Children of the site table that only exist for layout
PADDING_CLASSES = ("clearleft", "nav-buttons")

# Promoted posts carry this attribute; its value is irrelevant
AD_MARKER_ATTRIBUTE = "data-adserver-impression-id"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Accepted spellings for data-spoiler / data-nsfw
_TRUE_VALUES = frozenset({"1", "t", "T", "true", "TRUE", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "false", "FALSE", "False"})

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

# Attribute integers are signed 64-bit; anything wider is malformed
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# ------------------------------------------------------------------------- #
# Classification
# ------------------------------------------------------------------------- #

# Ordered: first matching rule wins. A self post's link is relative ("/r/..."),
# so it must be checked before anything else.
CLASSIFICATION_RULES: list[tuple[Callable[[str], bool], FeedPostType]] = [
    (lambda url: url.startswith("/r/"), FeedPostType.TEXT),
    (lambda url: url.endswith((".jpg", ".png")), FeedPostType.IMAGE),
    (lambda url: url.startswith("https://www.reddit.com/gallery/"), FeedPostType.GALLERY),
    (lambda url: url.startswith(("https://v.reddit.com/", "https://v.redd.it/")), FeedPostType.VIDEO),
]


def classify_post_link(post_link: str) -> FeedPostType:
    """Infer the content type of a post from the shape of its link."""
    for matches, post_type in CLASSIFICATION_RULES:
        if matches(post_link):
            return post_type
    return FeedPostType.LINK


# ------------------------------------------------------------------------- #
# Attribute parsing
#
# Each parser returns None for malformed input so the caller can keep the
# field's zero value.
# ------------------------------------------------------------------------- #

def parse_int(value: str) -> Optional[int]:
    if not _INTEGER_PATTERN.fullmatch(value):
        return None
    number = int(value)
    if not INT64_MIN <= number <= INT64_MAX:
        return None
    return number


def parse_bool(value: str) -> Optional[bool]:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


def parse_timestamp_millis(value: str) -> Optional[datetime]:
    millis = parse_int(value)
    if millis is None:
        return None
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None


def secure_thumbnail_url(src: str) -> str:
    """Rewrite a protocol-relative ``//host/path`` source to ``https://``."""
    if src.startswith("//"):
        return "https:" + src
    return src


class FeedExtractor:
    """Extracts feed posts from a parsed listing page."""

    def extract_posts(self, document: PageElement) -> list[FeedPost]:
        """
        Extract every post from the page, in page order.

        Args:
            document: Root of the parsed document

        Returns:
            List of FeedPost; empty if the container has no post children

        Raises:
            ContainerNotFound: if the page has no site table at all
        """
        site_table = self.find_site_table(document)

        posts = []
        skipped = 0
        for child in site_table.children:
            if not isinstance(child, Tag):
                continue

            post = self.parse_post(child)
            if post is None:
                skipped += 1
                continue
            posts.append(post)

        logger.debug(f"Extracted {len(posts)} posts ({skipped} children skipped)")
        return posts

    def find_site_table(self, document: PageElement) -> Tag:
        """Locate the posts container, never looking inside <head>."""
        try:
            return breadth_first_search(document, SITE_TABLE_CRITERIA, negate(is_tag("head")))
        except SearchFailed as e:
            logger.error("Site table not found in document")
            raise ContainerNotFound() from e

    def skip_reason(self, node: Tag) -> Optional[str]:
        """Return why ``node`` is not a post, or None if it should be parsed."""
        if get_attribute(node, "class") in PADDING_CLASSES:
            return "padding"
        if get_attribute(node, AD_MARKER_ATTRIBUTE) is not None:
            return "advertisement"
        return None

    def parse_post(self, node: Tag) -> Optional[FeedPost]:
        """
        Build a FeedPost from one child of the site table.

        Returns None only for padding elements and ads. Every other child
        yields a post, even if no field could be recovered.
        """
        reason = self.skip_reason(node)
        if reason:
            logger.debug(f"Skipping <{node.name}> child: {reason}")
            return None

        fields = self._read_data_attributes(node)
        fields["title"] = self.find_title(node)
        fields["thumbnail_link"] = self.find_thumbnail_link(node)
        fields["comments_link"] = self.find_comments_link(node)
        fields["type"] = classify_post_link(fields.get("post_link", ""))

        return FeedPost(**fields)

    def _read_data_attributes(self, node: Tag) -> dict:
        fields = {}

        for key, attr, parse in (
            ("id", "data-fullname", str),
            ("op", "data-author", str),
            ("subreddit", "data-subreddit", str),
            ("post_link", "data-url", str),
            ("timestamp", "data-timestamp", parse_timestamp_millis),
            ("score", "data-score", parse_int),
            ("comment_count", "data-comments-count", parse_int),
            ("is_spoiler", "data-spoiler", parse_bool),
            ("is_nsfw", "data-nsfw", parse_bool),
        ):
            raw = get_attribute(node, attr)
            if raw is None:
                continue
            value = parse(raw)
            if value is None:
                logger.debug(f"Ignoring malformed {attr}={raw!r}")
                continue
            fields[key] = value

        # A negative comment count is as meaningless as a non-numeric one
        if fields.get("comment_count", 0) < 0:
            logger.debug(f"Ignoring negative data-comments-count={fields['comment_count']}")
            del fields["comment_count"]

        return fields

    def find_title(self, node: Tag) -> str:
        """
        Title text from ``<a class="title ...">`` inside ``p.title``.

        Depth-first, because the title anchor sits early in the entry's
        top matter.
        """
        try:
            anchor = depth_first_search(
                node,
                all_of(is_tag("a"), has_attribute_matching("class", "title.*")),
                recurse_always,
            )
        except SearchFailed:
            return ""

        first = next(iter(anchor.children), None)
        if first is None:
            return ""
        if isinstance(first, Tag):
            return first.get_text()
        return str(first)

    def find_thumbnail_link(self, node: Tag) -> str:
        """
        Thumbnail image source, as an absolute https URL.

        The ``<a class="thumbnail ...">`` anchor is present even for posts
        without a real thumbnail; those render a placeholder and have no
        ``<img>`` inside, which yields "".
        """
        try:
            thumbnail = breadth_first_search(
                node,
                all_of(is_tag("a"), has_attribute_matching("class", "thumbnail.*")),
                recurse_always,
            )
            image = breadth_first_search(
                thumbnail,
                all_of(is_tag("img"), has_attribute("src")),
                recurse_always,
            )
        except SearchFailed:
            return ""

        return secure_thumbnail_url(get_attribute(image, "src"))

    def find_comments_link(self, node: Tag) -> str:
        """
        Link to the comments page.

            <ul class="flat-list buttons">
              <li class="first">
                <a class="bylink comments may-blank" href="[LINK]">...</a>
              </li>
              ...
            </ul>
        """
        try:
            buttons = breadth_first_search(node, is_tag("ul"), recurse_always)
            first_item = breadth_first_search(
                buttons,
                all_of(is_tag("li"), has_attribute_with_value("class", "first")),
                recurse_always,
            )
            anchor = breadth_first_search(
                first_item,
                all_of(is_tag("a"), has_attribute_matching("class", ".*comments.*")),
                recurse_always,
            )
        except SearchFailed:
            return ""

        return get_attribute(anchor, "href") or ""


def extract_posts(document: PageElement) -> list[FeedPost]:
    """Convenience function to extract posts from a parsed document."""
    return FeedExtractor().extract_posts(document)
