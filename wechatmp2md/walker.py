"""
Recursive DOM-to-Piece walker.

Turns an arbitrary element subtree into a flat, ordered list of Pieces.
Every child is classified into a closed set of NodeKinds and either handed
to a leaf parser (elements.py) or walked recursively.

Break insertion follows sibling history only:
  - A call starts with one BR unless the preceding context is a list, a
    quote line or "no context" (NULL). A call whose children produce
    nothing returns nothing, not a lone BR.
  - After each child, the kind of the last piece produced so far in this
    call becomes the preceding context for the next sibling's recursion.
  - Paragraph-like containers with text end with one BR, never two.
"""

import re
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import urlparse

from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .elements import (
    HEADING_LEVELS, WIDGETS, parse_header, parse_italic, parse_pre,
    parse_strong, parse_table, parse_widget,
)
from .fetcher import Fetcher, fetch_image_base64
from .logger import get_module_logger
from .schemas import ImagePolicy, Piece, PieceType
from .text import normalize_text

logger = get_module_logger("walker")


class NodeKind(Enum):
    TEXT = "text"
    LINK = "link"
    IMAGE = "image"
    ORDERED_LIST = "ordered_list"
    UNORDERED_LIST = "unordered_list"
    CODE = "code"
    INLINE_CONTAINER = "inline_container"     # span, figure
    BLOCK_CONTAINER = "block_container"       # p, section, figcaption
    HEADING = "heading"
    BLOCK_QUOTE = "block_quote"
    BOLD = "bold"
    ITALIC = "italic"
    TABLE = "table"
    RULE = "rule"
    LINE_BREAK = "line_break"
    WIDGET = "widget"
    IGNORED = "ignored"
    OTHER = "other"


TAG_KINDS = {
    "a": NodeKind.LINK,
    "img": NodeKind.IMAGE,
    "ol": NodeKind.ORDERED_LIST,
    "ul": NodeKind.UNORDERED_LIST,
    "pre": NodeKind.CODE,
    "code": NodeKind.CODE,
    "span": NodeKind.INLINE_CONTAINER,
    "figure": NodeKind.INLINE_CONTAINER,
    "p": NodeKind.BLOCK_CONTAINER,
    "section": NodeKind.BLOCK_CONTAINER,
    "figcaption": NodeKind.BLOCK_CONTAINER,
    "blockquote": NodeKind.BLOCK_QUOTE,
    "strong": NodeKind.BOLD,
    "b": NodeKind.BOLD,
    "em": NodeKind.ITALIC,
    "i": NodeKind.ITALIC,
    "table": NodeKind.TABLE,
    "hr": NodeKind.RULE,
    "br": NodeKind.LINE_BREAK,
    "script": NodeKind.IGNORED,
    "style": NodeKind.IGNORED,
    "noscript": NodeKind.IGNORED,
}
TAG_KINDS.update(dict.fromkeys(HEADING_LEVELS, NodeKind.HEADING))
TAG_KINDS.update(dict.fromkeys(WIDGETS, NodeKind.WIDGET))

CODE_SNIPPET_CLASS = "code-snippet__fix"

# Preceding kinds after which a walk does not open with a BR
NO_LEADING_BREAK = frozenset({
    PieceType.O_LIST, PieceType.U_LIST, PieceType.BLOCK_QUOTES, PieceType.NULL,
})

# Kinds whose own children are walked when they sit directly in a block quote
WALKED_CONTAINERS = frozenset({
    NodeKind.INLINE_CONTAINER, NodeKind.BLOCK_CONTAINER, NodeKind.OTHER,
})

WECHAT_IMAGE_HOST = "mmbiz.qpic.cn"
WX_FMT_PATTERN = re.compile(r'([?&])wx_fmt=[^&#]*')


def classify(node) -> NodeKind:
    """Map a DOM node onto NodeKind; unknown tags are OTHER."""
    if isinstance(node, (Comment, Declaration, Doctype, ProcessingInstruction)):
        return NodeKind.IGNORED
    if isinstance(node, NavigableString):
        return NodeKind.TEXT
    name = node.name.lower()
    if name == "section" and CODE_SNIPPET_CLASS in (node.get("class") or []):
        return NodeKind.CODE
    return TAG_KINDS.get(name, NodeKind.OTHER)


def resolve_image_src(src: str) -> str:
    """
    Normalize an image URL; on WeChat's CDN request the unwatermarked jpeg
    original instead of the compressed format named by wx_fmt.
    """
    src = src.strip()
    if src.startswith("//"):
        src = "https:" + src
    host = urlparse(src).hostname or ""
    if WECHAT_IMAGE_HOST in host:
        src = WX_FMT_PATTERN.sub(r'\1wx_fmt=jpeg', src)
    return src


class SectionWalker:
    """
    Walks a subtree under one image policy.

    The fetcher is only created (or used) when the policy needs image bytes;
    with ImagePolicy.URL the walk never touches the network.
    """

    def __init__(self, image_policy: ImagePolicy = ImagePolicy.BASE64,
                 fetcher: Optional[Fetcher] = None):
        self.image_policy = image_policy
        self._fetcher = fetcher

    @property
    def fetcher(self) -> Fetcher:
        if self._fetcher is None:
            self._fetcher = Fetcher()
        return self._fetcher

    def walk(self, node, preceding: PieceType = PieceType.NULL) -> list[Piece]:
        """Pieces for the children of node, given the preceding sibling kind."""
        children = list(node.children) if isinstance(node, Tag) else []
        return self._walk_nodes(children, preceding)

    def _walk_nodes(self, nodes: Iterable, preceding: PieceType) -> list[Piece]:
        pieces = []
        leading_break = preceding not in NO_LEADING_BREAK
        if leading_break:
            pieces.append(Piece(type=PieceType.BR))

        last = PieceType.NULL
        for child in nodes:
            kind = classify(child)

            if kind is NodeKind.LINK:
                pieces.append(Piece(type=PieceType.LINK, value=normalize_text(child.get_text()),
                                    attrs={"href": child.get("href", "")}))
            elif kind is NodeKind.IMAGE:
                pieces.append(self.parse_image(child))
            elif kind is NodeKind.ORDERED_LIST:
                pieces.extend(self.parse_list(child, PieceType.O_LIST))
            elif kind is NodeKind.UNORDERED_LIST:
                pieces.extend(self.parse_list(child, PieceType.U_LIST))
            elif kind is NodeKind.CODE:
                pieces.extend(parse_pre(child))
            elif kind is NodeKind.INLINE_CONTAINER:
                pieces.extend(self.walk(child, last))
            elif kind is NodeKind.BLOCK_CONTAINER:
                pieces.extend(self.walk(child, last))
                if normalize_text(child.get_text()) and pieces and pieces[-1].type is not PieceType.BR:
                    pieces.append(Piece(type=PieceType.BR))
            elif kind is NodeKind.HEADING:
                pieces.extend(parse_header(child))
            elif kind is NodeKind.BLOCK_QUOTE:
                pieces.extend(self.parse_blockquote(child))
            elif kind is NodeKind.BOLD:
                pieces.extend(parse_strong(child))
            elif kind is NodeKind.ITALIC:
                pieces.extend(parse_italic(child))
            elif kind is NodeKind.TABLE:
                pieces.extend(parse_table(child))
            elif kind is NodeKind.RULE:
                pieces.append(Piece(type=PieceType.HR))
            elif kind is NodeKind.LINE_BREAK:
                pieces.append(Piece(type=PieceType.BR))
            elif kind is NodeKind.WIDGET:
                pieces.extend(parse_widget(child))
            elif kind is NodeKind.TEXT or kind is NodeKind.OTHER:
                text = normalize_text(child.get_text() if isinstance(child, Tag) else str(child))
                if text:
                    pieces.append(Piece(type=PieceType.NORMAL_TEXT, value=text))

            if pieces:
                last = pieces[-1].type

        # Empty containers must not leave a separator behind
        if leading_break and len(pieces) == 1:
            return []
        return pieces

    def parse_image(self, elem: Tag) -> Piece:
        # data-src carries the real URL on lazily loaded images
        src = resolve_image_src(elem.get("data-src") or elem.get("src") or "")
        attrs = {"src": src, "alt": elem.get("alt", ""), "title": elem.get("title", "")}
        logger.debug(f"Image {src} (policy: {self.image_policy.value})")

        if self.image_policy is ImagePolicy.URL:
            return Piece(type=PieceType.IMAGE, attrs=attrs)
        if self.image_policy is ImagePolicy.SAVE:
            return Piece(type=PieceType.IMAGE_RAW, value=self.fetcher.fetch_image(src), attrs=attrs)
        return Piece(type=PieceType.IMAGE_BASE64, value=fetch_image_base64(self.fetcher, src),
                     attrs=attrs)

    def parse_list(self, elem: Tag, list_type: PieceType) -> list[Piece]:
        """One list_type piece per item belonging to this list, in document order."""
        items = []
        for li in elem.find_all("li"):
            # Items of nested lists stay inside their own list
            if li.find_parent(["ol", "ul"]) is not elem:
                continue
            items.append(Piece(type=list_type, value=self.walk(li, list_type)))
        return items

    def parse_blockquote(self, elem: Tag) -> list[Piece]:
        """One quote line per non-empty child, then a single separating BR."""
        quotes = []
        for child in elem.children:
            kind = classify(child)
            if kind is NodeKind.IGNORED:
                continue
            if kind in WALKED_CONTAINERS:
                line = self.walk(child, PieceType.BLOCK_QUOTES)
            else:
                line = self._walk_nodes([child], PieceType.BLOCK_QUOTES)
            if line:
                quotes.append(Piece(type=PieceType.BLOCK_QUOTES, value=line))
        quotes.append(Piece(type=PieceType.BR))
        return quotes


def walk(node, image_policy: ImagePolicy = ImagePolicy.BASE64,
         preceding: PieceType = PieceType.NULL, fetcher: Optional[Fetcher] = None) -> list[Piece]:
    """Convenience function to walk a subtree."""
    return SectionWalker(image_policy, fetcher).walk(node, preceding)
