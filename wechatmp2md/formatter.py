"""
Markdown serialization of an Article.

format_article() returns the Markdown text plus the images that have to be
written next to it: one entry per IMAGE_RAW piece that carries bytes. URL
and base64 images are inlined in the text, so their mapping is empty.
"""

import base64
import binascii
import re
from typing import Optional

from filetype import guess

from .schemas import Article, Piece, PieceType

DEFAULT_IMAGE_EXTENSION = "jpg"
DEFAULT_IMAGE_MIME = "image/jpeg"
EXCESS_NEWLINES = re.compile(r'\n{3,}')
# Two BRs in a row leave a whitespace-only line; it becomes a plain blank line
BLANK_LINE_PATTERN = re.compile(r'[ \t]*\n[ \t]*\n')
UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


def detect_image_type(data: bytes) -> tuple[str, str]:
    """(extension, mime) from the file signature; jpeg when unknown."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        return ("jpg" if ext == "jpeg" else ext), kind.mime
    return DEFAULT_IMAGE_EXTENSION, DEFAULT_IMAGE_MIME


def output_filename(title: str, ext: str, fallback: str = "article") -> str:
    """Filesystem-safe file name built from the article title."""
    name = UNSAFE_FILENAME_CHARS.sub("_", title).strip("._")[:120]
    return f"{name or fallback}.{ext}"


class MarkdownFormatter:
    """Renders pieces to Markdown and collects images saved as files."""

    def __init__(self):
        self.images: dict[str, bytes] = {}

    def format(self, article: Article) -> str:
        parts = []
        if article.title_text:
            parts.append(f"# {article.title_text}\n\n")
        if article.meta:
            parts.append(" ".join(article.meta) + "\n\n")
        if article.tags:
            parts.append(f"> {article.tags}\n\n")
        parts.append(self.render(article.content))
        markdown = BLANK_LINE_PATTERN.sub("\n\n", "".join(parts))
        markdown = EXCESS_NEWLINES.sub("\n\n", markdown)
        return markdown.strip() + "\n"

    def render(self, pieces: list[Piece]) -> str:
        out = []
        number = 0
        for piece in pieces:
            # Ordered list numbering restarts after anything that is not an item
            number = number + 1 if piece.type is PieceType.O_LIST else 0
            out.append(self.render_piece(piece, number))
        return "".join(out)

    def _render_item(self, marker: str, piece: Piece) -> str:
        body = self.render(piece.value or []).strip()
        indent = " " * len(marker)
        body = re.sub(r'\n[ \t]*', "\n" + indent, body)
        return f"\n{marker}{body}\n"

    def _image(self, piece: Piece, target: Optional[str]) -> str:
        return f"![{piece.attrs.get('alt', '')}]({target or piece.attrs.get('src', '')})"

    def render_piece(self, piece: Piece, number: int = 0) -> str:
        ptype = piece.type
        if ptype is PieceType.HEADER:
            level = int(piece.attrs.get("level", "1"))
            return f"\n\n{'#' * level} {piece.value}\n\n"
        if ptype is PieceType.LINK:
            return f"[{piece.value}]({piece.attrs.get('href', '')})"
        if ptype is PieceType.IMAGE:
            return self._image(piece, None)
        if ptype is PieceType.IMAGE_RAW:
            if not piece.value:
                return self._image(piece, None)
            ext, _ = detect_image_type(piece.value)
            filename = f"image-{len(self.images) + 1:02d}.{ext}"
            self.images[filename] = piece.value
            return self._image(piece, filename)
        if ptype is PieceType.IMAGE_BASE64:
            if not piece.value:
                return self._image(piece, None)
            try:
                _, mime = detect_image_type(base64.b64decode(piece.value[:64]))
            except (binascii.Error, ValueError):
                mime = DEFAULT_IMAGE_MIME
            return self._image(piece, f"data:{mime};base64,{piece.value}")
        if ptype is PieceType.O_LIST:
            return self._render_item(f"{number}. ", piece)
        if ptype is PieceType.U_LIST:
            return self._render_item("- ", piece)
        if ptype is PieceType.CODE_BLOCK:
            return "\n\n```\n" + "\n".join(piece.value or []) + "\n```\n\n"
        if ptype is PieceType.BLOCK_QUOTES:
            body = self.render(piece.value or []).strip()
            if not body:
                return ""
            return "\n> " + re.sub(r'\n[ \t]*', "\n> ", body) + "\n"
        if ptype is PieceType.BOLD_TEXT:
            return f"**{piece.value}**" if piece.value else ""
        if ptype is PieceType.ITALIC_TEXT:
            return f"*{piece.value}*" if piece.value else ""
        if ptype is PieceType.TABLE:
            return f"\n\n{piece.value}\n\n"
        if ptype is PieceType.HR:
            return "\n\n---\n\n"
        if ptype is PieceType.BR:
            return "  \n"
        if ptype is PieceType.NORMAL_TEXT:
            return piece.value or ""
        return ""


def format_article(article: Article) -> tuple[str, dict[str, bytes]]:
    """Markdown text and the image files (name → bytes) it references."""
    formatter = MarkdownFormatter()
    markdown = formatter.format(article)
    return markdown, formatter.images
