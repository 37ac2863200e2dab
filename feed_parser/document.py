"""
Document loader: raw listing page → parsed BeautifulSoup tree.

Design principle: NEVER FAIL on bad HTML. Some tree always comes back; a
page that lost its structure simply won't have a site table, and the
extractor reports that.

Pipeline position: Fetcher → DocumentLoader → FeedExtractor.
"""

import re
from typing import Union

from bs4 import BeautifulSoup

from .exceptions import DocumentError
from .logger import get_module_logger

logger = get_module_logger("document")

# html5lib implements the WHATWG parsing algorithm, so its tree matches what
# a browser builds (implicit <head>/<body>, first duplicate attribute wins).
# lxml and html.parser are fallbacks for the rare html5lib failure.
PARSER_CHAIN = ("html5lib", "lxml", "html.parser")

_META_CHARSET = re.compile(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', re.IGNORECASE)
_META_CONTENT_CHARSET = re.compile(
    r'<meta[^>]+content=["\'][^"\']*charset=([^\s"\';>]+)', re.IGNORECASE
)


class DocumentLoader:
    """Decodes and parses listing pages."""

    # WHATWG encoding spec: browsers silently remap these charsets.
    # https://encoding.spec.whatwg.org/#names-and-labels
    WHATWG_CHARSET_MAP = {
        'iso-8859-1': 'windows-1252',
        'iso8859-1': 'windows-1252',
        'iso88591': 'windows-1252',
        'latin-1': 'windows-1252',
        'latin1': 'windows-1252',
        'us-ascii': 'windows-1252',
        'ascii': 'windows-1252',
        'iso-8859-9': 'windows-1254',
        'iso-8859-11': 'windows-874',
    }

    def __init__(self, parsers: tuple[str, ...] = PARSER_CHAIN):
        self.parsers = parsers

    @staticmethod
    def detect_charset_from_bytes(raw_bytes: bytes) -> str:
        """
        Detect charset from the first 2048 bytes of a page via
        ``<meta charset=...>`` or the legacy http-equiv Content-Type form.

        Returns the browser-equivalent charset or 'utf-8' as default.
        """
        head_str = raw_bytes[:2048].decode('ascii', errors='ignore')

        m = _META_CHARSET.search(head_str) or _META_CONTENT_CHARSET.search(head_str)
        if not m:
            return 'utf-8'

        charset = m.group(1).strip().lower()
        return DocumentLoader.WHATWG_CHARSET_MAP.get(charset, charset)

    def decode(self, raw_bytes: bytes) -> str:
        """Decode page bytes with the charset the page declares."""
        charset = self.detect_charset_from_bytes(raw_bytes)
        try:
            return raw_bytes.decode(charset, errors='replace')
        except LookupError:
            logger.warning(f"Unknown charset '{charset}', decoding as utf-8")
            return raw_bytes.decode('utf-8', errors='replace')

    def load(self, page: Union[str, bytes]) -> BeautifulSoup:
        """
        Parse a page into a document tree.

        Every attribute is kept as a single string (no list-valued
        ``class``), so attribute criteria see the text as written.
        """
        html = self.decode(page) if isinstance(page, bytes) else page

        last_error = None
        for parser in self.parsers:
            try:
                return BeautifulSoup(html, parser, multi_valued_attributes=None)
            except Exception as e:
                logger.warning(f"{parser} parsing failed: {e}")
                last_error = e

        raise DocumentError(
            "no HTML parser could handle the document",
            details={"parsers": list(self.parsers), "error": str(last_error)}
        )


def load_document(page: Union[str, bytes]) -> BeautifulSoup:
    """Convenience function to parse a page with the default parser chain."""
    return DocumentLoader().load(page)
