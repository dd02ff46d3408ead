"""
Main entry points for converting WeChat article pages.

Coordinates the pipeline: Preprocessor → assemble (walker + fetcher).
Pages can come from an in-memory buffer, a local file or a URL.
"""

from datetime import tzinfo
from pathlib import Path
from typing import Optional, Union

from .assembler import assemble
from .config import FetchConfig
from .exceptions import FetchError
from .fetcher import Fetcher
from .logger import get_module_logger, setup_logger
from .preprocessor import Preprocessor
from .schemas import Article, ImagePolicy

logger = get_module_logger("main")


class WechatMPConverter:
    """
    Converts article pages into Articles under one image policy.

    Each parse call opens its own Fetcher, so a converter holds no state
    shared between conversions.
    """

    def __init__(
        self,
        image_policy: ImagePolicy = ImagePolicy.BASE64,
        config: Optional[FetchConfig] = None,
        tz: Optional[tzinfo] = None,
        log_level: Optional[int] = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.image_policy = image_policy
        self.config = config or FetchConfig()
        self.tz = tz
        self.preprocessor = Preprocessor()

    def _convert(self, html: Union[str, bytes], fetcher: Fetcher) -> Article:
        soup = self.preprocessor.process(html)
        return assemble(soup, self.image_policy, fetcher, self.tz)

    def parse(self, html: Union[str, bytes]) -> Article:
        """
        Convert a page held in memory.

        Raises:
            DocumentParseError: the input cannot be parsed as HTML
        """
        with Fetcher(self.config) as fetcher:
            return self._convert(html, fetcher)

    def parse_file(self, file_path: Union[str, Path]) -> Article:
        """Convert a saved page; I/O errors propagate."""
        return self.parse(Path(file_path).read_bytes())

    def fetch_document(self, url: str, fetcher: Optional[Fetcher] = None) -> bytes:
        """
        Fetch a page without converting it.

        Raises:
            FetchError: the page could not be fetched
        """
        if fetcher is not None:
            return fetcher.get(url)
        with Fetcher(self.config) as own_fetcher:
            return own_fetcher.get(url)

    def parse_url(self, url: str, fallback_without_proxy: bool = True) -> Article:
        """
        Fetch and convert a page.

        With a proxy configured, a failed fetch is retried once without it.
        A fetch that still fails is logged and yields the empty Article; use
        fetch_document() to get the FetchError instead.
        """
        logger.info(f"Fetching {url}")
        fetcher = Fetcher(self.config)
        try:
            try:
                html = fetcher.get(url)
            except FetchError as e:
                if not (fetcher.uses_proxy and fallback_without_proxy):
                    raise
                logger.warning(f"Proxy request failed, retrying without proxy: {e.message}")
                fetcher.close()
                fetcher = Fetcher(self.config.without_proxy())
                html = fetcher.get(url)
            return self._convert(html, fetcher)
        except FetchError as e:
            logger.warning(f"Fetching article failed: {e.message}")
            return Article()
        finally:
            fetcher.close()


def parse_html(html: Union[str, bytes], image_policy: ImagePolicy = ImagePolicy.BASE64,
               proxy: Optional[str] = None) -> Article:
    """Convenience function to convert an in-memory page."""
    return WechatMPConverter(image_policy, FetchConfig(proxy=proxy)).parse(html)


def parse_html_file(file_path: Union[str, Path],
                    image_policy: ImagePolicy = ImagePolicy.BASE64,
                    proxy: Optional[str] = None) -> Article:
    """Convenience function to convert a saved page."""
    return WechatMPConverter(image_policy, FetchConfig(proxy=proxy)).parse_file(file_path)


def parse_url(url: str, image_policy: ImagePolicy = ImagePolicy.BASE64,
              proxy: Optional[str] = None) -> Article:
    """Convenience function to fetch and convert a page."""
    return WechatMPConverter(image_policy, FetchConfig(proxy=proxy)).parse_url(url)
