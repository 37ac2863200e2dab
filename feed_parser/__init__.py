"""
Feed Parser

Reads the posts of an old-style Reddit listing page into typed records.
- Search: generic breadth/depth-first search over the parsed tree
- Extractor: locates the site table and builds one FeedPost per entry
- FeedParser: fetch → parse → extract → Feed with a next page link

Public API surface:
  Pipeline classes — FeedParser, FeedExtractor, DocumentLoader, Fetcher
  Data models      — Feed, FeedPost, FeedPostType, FeedOptions, SortMethod
  Error types      — ContainerNotFound (fatal), SearchFailed (lookup miss), FetchError
"""

# --- Pipeline classes ---
from .main import FeedParser, build_feed, parse_feed_html, parse_feed_file
from .extractor import FeedExtractor, classify_post_link, extract_posts
from .document import DocumentLoader, load_document
from .fetcher import Fetcher

# --- Data models ---
from .schemas import Feed, FeedPost, FeedPostType
from .options import FeedOptions, SortMethod, options_from_path

# --- Exceptions ---
from .exceptions import (
    FeedParserError,
    SearchFailed,
    ExtractionError,
    ContainerNotFound,
    FetchError,
    DocumentError,
    InvalidOptionError,
)

# --- Configuration ---
from .config import Settings, load_settings

__version__ = "0.1.0"
__all__ = [
    "FeedParser",
    "FeedExtractor",
    "DocumentLoader",
    "Fetcher",
    "build_feed",
    "parse_feed_html",
    "parse_feed_file",
    "classify_post_link",
    "extract_posts",
    "load_document",
    "Feed",
    "FeedPost",
    "FeedPostType",
    "FeedOptions",
    "SortMethod",
    "options_from_path",
    "FeedParserError",
    "SearchFailed",
    "ExtractionError",
    "ContainerNotFound",
    "FetchError",
    "DocumentError",
    "InvalidOptionError",
    "Settings",
    "load_settings",
]
