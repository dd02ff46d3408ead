"""
wechatmp2md

Converts WeChat Official Account article pages into an ordered, typed
document model and renders it as Markdown.
- Preprocessor: decoding, sanitization and HTML parsing
- Walker: recursive DOM-to-Piece conversion
- Assembler: title, metadata, tags and content of an article page
- Formatter / packager: Markdown text and ZIP archive with saved images

Public API surface:
  Entry points   — WechatMPConverter, parse_html, parse_html_file, parse_url
  Data models    — Piece, PieceType, Article, ImagePolicy
  Configuration  — FetchConfig
  Error types    — DocumentParseError (fatal), FetchError (recoverable)
"""

from .main import WechatMPConverter, parse_html, parse_html_file, parse_url

from .schemas import Article, ImagePolicy, Piece, PieceType, image_policy_from_arg
from .config import FetchConfig
from .fetcher import Fetcher
from .walker import SectionWalker, walk
from .text import normalize_text

from .formatter import format_article
from .packager import build_zip

from .exceptions import DocumentParseError, FetchError, WechatMPError

__version__ = "0.1.0"
__all__ = [
    "WechatMPConverter",
    "parse_html",
    "parse_html_file",
    "parse_url",
    "Article",
    "ImagePolicy",
    "Piece",
    "PieceType",
    "image_policy_from_arg",
    "FetchConfig",
    "Fetcher",
    "SectionWalker",
    "walk",
    "normalize_text",
    "format_article",
    "build_zip",
    "DocumentParseError",
    "FetchError",
    "WechatMPError",
]
