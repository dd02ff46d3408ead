"""
HTTP transport for article pages and images.

A Fetcher owns one requests.Session for the duration of a conversion and is
passed explicitly to the walker. Every failure surfaces as FetchError from
get(); the image helpers contain it, log it and return an empty payload so
a broken image never stops the rest of the article.
"""

import base64
import time
from typing import Optional
from urllib.parse import urlparse

import requests

from .config import FetchConfig
from .exceptions import FetchError
from .logger import get_module_logger

logger = get_module_logger("fetcher")

CHUNK_SIZE = 64 * 1024


class Fetcher:
    """GET with a browser user agent, bounded timeouts and an optional proxy."""

    def __init__(self, config: Optional[FetchConfig] = None):
        self.config = config or FetchConfig()
        self.session = requests.Session()
        self.session.headers["User-Agent"] = self.config.user_agent
        self.proxies = self._build_proxies(self.config.proxy)

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    @property
    def uses_proxy(self) -> bool:
        return bool(self.proxies)

    @staticmethod
    def _build_proxies(proxy: Optional[str]) -> dict:
        """Turn "ip:port" (or a proxy URL) into a requests proxies mapping."""
        if not proxy:
            return {}
        proxy_url = proxy if "://" in proxy else f"http://{proxy}"
        try:
            parsed = urlparse(proxy_url)
            parsed.port  # raises ValueError for a non-numeric port
        except ValueError as e:
            logger.warning(f"Invalid proxy format {proxy}: {e}")
            return {}
        if not parsed.hostname:
            logger.warning(f"Invalid proxy format {proxy}: missing host")
            return {}
        return {"http": proxy_url, "https": proxy_url}

    def get(self, url: str) -> bytes:
        """
        Fetch url and return the body.

        Connect and first-byte waits use the dial/response-header timeouts;
        the body is streamed under the overall timeout so a slow trickle
        cannot hold the conversion forever.

        Raises:
            FetchError: on request construction or transport errors,
                timeouts, non-2xx status or body read failure
        """
        timeout = (self.config.dial_timeout, self.config.response_header_timeout)
        deadline = time.monotonic() + self.config.timeout

        try:
            response = self.session.get(
                url, timeout=timeout, proxies=self.proxies or None, stream=True
            )
        except requests.RequestException as e:
            raise FetchError(f"request to url {url} error: {e}", url) from e

        with response:
            if not 200 <= response.status_code < 300:
                raise FetchError(
                    f"get from url {url} error: {response.status_code} {response.reason}",
                    url,
                    status_code=response.status_code,
                )
            chunks = []
            try:
                for chunk in response.iter_content(CHUNK_SIZE):
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise FetchError(
                            f"read from url {url} exceeded {self.config.timeout}s", url,
                            status_code=response.status_code,
                        )
            except requests.RequestException as e:
                raise FetchError(f"read response from {url} error: {e}", url,
                                 status_code=response.status_code) from e

        return b"".join(chunks)

    def fetch_image(self, url: str) -> Optional[bytes]:
        """Image bytes, or None when the image could not be fetched."""
        if not url:
            logger.warning("Image without source URL, skipping fetch")
            return None
        try:
            return self.get(url)
        except FetchError as e:
            logger.warning(f"get Image failed: {e.message}")
            return None


def encode_base64(content: Optional[bytes]) -> str:
    """Base64 text for content; empty string for a missing payload."""
    if not content:
        return ""
    return base64.b64encode(content).decode("ascii")


def fetch_image_base64(fetcher: Fetcher, url: str) -> str:
    return encode_base64(fetcher.fetch_image(url))
