"""
Main orchestrator for the feed parser.

Coordinates the pipeline: Fetcher → DocumentLoader → FeedExtractor, then
builds the Feed (posts + link to the next page).
"""

from pathlib import Path
from typing import Optional, Union

from .document import DocumentLoader
from .extractor import FeedExtractor
from .fetcher import Fetcher
from .logger import get_module_logger, setup_logger
from .options import FeedOptions
from .schemas import Feed, FeedPost

logger = get_module_logger("main")


def build_feed(posts: list[FeedPost], options: FeedOptions) -> Feed:
    """
    Wrap extracted posts into a Feed.

    The next page link continues after the last post and points back at the
    local host. An empty page has no last post, so its link is None.
    """
    if not posts:
        logger.info("No posts on page, omitting next page link")
        return Feed(posts=[], next_page_link=None)

    next_options = options.next_page(posts[-1].id)
    return Feed(posts=posts, next_page_link=next_options.to_url())


class FeedParser:
    """
    Main orchestrator for feed parsing.

    1. Fetcher: downloads the listing page
    2. DocumentLoader: decodes and parses it
    3. FeedExtractor: reads the posts off the tree
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        loader: Optional[DocumentLoader] = None,
        extractor: Optional[FeedExtractor] = None,
        log_level: Union[int, str, None] = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.fetcher = fetcher or Fetcher()
        self.loader = loader or DocumentLoader()
        self.extractor = extractor or FeedExtractor()

    def feed(self, options: Optional[FeedOptions] = None) -> Feed:
        """
        Fetch and parse a listing page.

        Raises:
            FetchError: if the page could not be downloaded
            ContainerNotFound: if the page has no post listing
        """
        options = options or FeedOptions()
        url = options.to_url()
        logger.info(f"Fetching feed: {url}")

        body = self.fetcher.get(url, options.headers)
        return self.parse(body, options)

    def parse(self, page: Union[str, bytes], options: Optional[FeedOptions] = None) -> Feed:
        """Parse an already downloaded page (str or raw bytes)."""
        options = options or FeedOptions()

        document = self.loader.load(page)
        posts = self.extractor.extract_posts(document)

        logger.info(f"Complete: {len(posts)} posts")
        return build_feed(posts, options)

    def parse_file(
        self,
        file_path: Union[str, Path],
        options: Optional[FeedOptions] = None
    ) -> Feed:
        """Parse a saved listing page."""
        # Bytes, so the loader can honor the page's declared charset
        return self.parse(Path(file_path).read_bytes(), options)


def parse_feed_html(page: Union[str, bytes], options: Optional[FeedOptions] = None) -> Feed:
    """Convenience function to parse a listing page."""
    return FeedParser().parse(page, options)


def parse_feed_file(file_path: Union[str, Path], options: Optional[FeedOptions] = None) -> Feed:
    """Convenience function to parse a saved listing page."""
    return FeedParser().parse_file(file_path, options)
