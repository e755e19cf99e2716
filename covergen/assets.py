import logging
from typing import Optional
from urllib.parse import urlparse

import requests

from .errors import FetchError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class AssetFetcher:
    """
    Fetch remote image assets over HTTP(S).

    Every call is bounded by `timeout` seconds and never retried; a caller
    that wants a retry issues the request again.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        if not is_http_url(url):
            raise FetchError(f"Unsupported asset URL: {url}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.Timeout as e:
            raise FetchError(f"Timed out fetching {url}") from e
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        if not response.ok:
            raise FetchError(
                f"Failed to fetch {url}: HTTP {response.status_code}",
                details={"status": response.status_code},
            )

        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response.content


def is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
