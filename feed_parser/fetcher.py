"""
HTTP collaborator that downloads listing pages.

A single requests.Session is kept per Fetcher so cookies set by the site
(over18 confirmation, session ids) persist across page loads.
"""

from typing import Mapping, Optional

import requests
from requests.exceptions import RequestException

from .exceptions import FetchError
from .logger import TRACE, get_module_logger

logger = get_module_logger("fetcher")

DEFAULT_TIMEOUT = 30.0


class Fetcher:
    """Downloads pages and returns their raw bytes."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: Optional[str] = None
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent

    def get(self, url: str, headers: Optional[Mapping[str, str]] = None) -> bytes:
        """
        GET ``url`` and return the response body.

        Raises:
            FetchError: on transport failure or any non-200 status
        """
        request_headers = dict(headers or {})
        if self.user_agent and not any(k.lower() == "user-agent" for k in request_headers):
            request_headers["User-Agent"] = self.user_agent

        logger.log(TRACE, f"Issuing request: GET {url}")
        try:
            response = self.session.get(url, headers=request_headers, timeout=self.timeout)
        except RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise FetchError(f"request failed: {e}", details={"url": url}) from e

        if response.status_code != 200:
            logger.warning(f"GET {url} returned {response.status_code}")
            raise FetchError(
                f"{response.status_code}: {response.reason}",
                status_code=response.status_code,
                body=response.text,
                details={"url": url}
            )

        return response.content

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
