"""
Input cleanup and HTML parsing for article pages.

Turns a raw page (bytes or str) into a BeautifulSoup tree:
- Decodes bytes using the charset declared in the page
- Strips characters that break parsers (NUL, C0 controls)
- Parses with a fallback chain of tree builders
- Removes HTML comments

Script bodies are kept intact: the publish timestamp lives in inline JS.

Pipeline position: first stage (Preprocessor → assembler → walker).
Input:  raw page as bytes or str
Output: BeautifulSoup document
"""

import re
from typing import Union

from bs4 import BeautifulSoup, Comment

from .exceptions import DocumentParseError
from .logger import get_module_logger

logger = get_module_logger("preprocessor")

# html5lib follows the WHATWG algorithm and copes with the worst markup;
# lxml and html.parser are fallbacks in case a builder fails outright.
PARSER_CHAIN = ("html5lib", "lxml", "html.parser")

# Browsers decode these labels as their Windows superset; match them so the
# text reads the way it renders.
WHATWG_CHARSET_MAP = {
    'iso-8859-1': 'windows-1252',
    'iso8859-1': 'windows-1252',
    'latin-1': 'windows-1252',
    'latin1': 'windows-1252',
    'us-ascii': 'windows-1252',
    'ascii': 'windows-1252',
    'gb2312': 'gbk',
}

META_CHARSET_PATTERN = re.compile(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', re.IGNORECASE)

# C0 controls (NUL included) except tab, LF and CR
CONTROL_CHARS = ''.join(chr(c) for c in range(32) if c not in (9, 10, 13))
CONTROL_CHARS_TABLE = str.maketrans('', '', CONTROL_CHARS)


class Preprocessor:
    """Decode, sanitize and parse a page into a BeautifulSoup document."""

    @staticmethod
    def detect_charset_from_bytes(raw_bytes: bytes) -> str:
        """
        Charset declared by <meta charset=...> or the http-equiv form within
        the first 2048 bytes, mapped the way browsers map it. Defaults to utf-8.
        """
        head_str = raw_bytes[:2048].decode('ascii', errors='ignore')
        m = META_CHARSET_PATTERN.search(head_str)
        if not m:
            return 'utf-8'
        charset = m.group(1).strip().lower()
        return WHATWG_CHARSET_MAP.get(charset, charset)

    def decode(self, data: Union[str, bytes]) -> str:
        """Return the page as text; bytes are decoded with the declared charset."""
        if isinstance(data, str):
            return data
        if not isinstance(data, (bytes, bytearray)):
            raise DocumentParseError(
                f"Cannot parse document of type {type(data).__name__}",
                details={"type": type(data).__name__}
            )
        charset = self.detect_charset_from_bytes(bytes(data))
        try:
            return bytes(data).decode(charset, errors='replace')
        except LookupError:
            logger.warning(f"Unknown charset {charset!r}, decoding as utf-8")
            return bytes(data).decode('utf-8', errors='replace')

    def _sanitize(self, html: str) -> str:
        sanitized = html.translate(CONTROL_CHARS_TABLE)
        if len(sanitized) != len(html):
            logger.debug(f"Removed {len(html) - len(sanitized)} control characters")
        return sanitized.replace('\r\n', '\n').replace('\r', '\n')

    def _parse(self, html: str) -> BeautifulSoup:
        errors = []
        for builder in PARSER_CHAIN:
            try:
                return BeautifulSoup(html, builder)
            except Exception as e:
                # FeatureNotFound, builder bugs on pathological input, ...
                logger.warning(f"{builder} parsing failed: {e}")
                errors.append(f"{builder}: {e}")
        raise DocumentParseError("Document could not be parsed as HTML",
                                 details={"errors": errors})

    def process(self, data: Union[str, bytes]) -> BeautifulSoup:
        """
        Parse a raw page.

        Raises:
            DocumentParseError: input is not text/bytes or no parser accepts it
        """
        html = self._sanitize(self.decode(data))
        soup = self._parse(html)

        comments = soup.find_all(string=lambda text: isinstance(text, Comment))
        for comment in comments:
            comment.extract()

        logger.debug(f"Parsed document ({len(html)} chars, {len(comments)} comments removed)")
        return soup
