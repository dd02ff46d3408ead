"""
Pydantic schemas for the document model.

Piece:   one typed fragment of article content (heading, text, image, ...)
Article: the conversion result (title, meta lines, tags, content pieces)

Data flow:
  HTML → Preprocessor → BeautifulSoup tree → walker → list[Piece]
  list[Piece] + title/meta/tags → Article → formatter → Markdown
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PieceType(str, Enum):
    """Semantic role of a Piece. The shape of Piece.value follows from it."""
    HEADER = "header"                # str, attrs["level"]
    LINK = "link"                    # str, attrs["href"]
    IMAGE = "image"                  # None, attrs["src"/"alt"/"title"]
    IMAGE_RAW = "image_raw"          # bytes, or None when the fetch failed
    IMAGE_BASE64 = "image_base64"    # str, empty when the fetch failed
    O_LIST = "o_list"                # list[Piece]
    U_LIST = "u_list"                # list[Piece]
    CODE_BLOCK = "code_block"        # list[str], one entry per source line
    BLOCK_QUOTES = "block_quotes"    # list[Piece]
    BOLD_TEXT = "bold_text"          # str
    ITALIC_TEXT = "italic_text"      # str
    TABLE = "table"                  # str, attrs["type"] is "markdown" or "native"
    HR = "hr"                        # None
    BR = "br"                        # None
    NORMAL_TEXT = "normal_text"      # str
    # "No context" marker for the walker's preceding-sibling state;
    # never emitted as a piece.
    NULL = "null"


class ImagePolicy(Enum):
    """How images found in the content are represented."""
    URL = "url"          # keep the source URL only, no network access
    SAVE = "save"        # fetch raw bytes and attach them to the piece
    BASE64 = "base64"    # fetch and attach base64 text


def image_policy_from_arg(value: Optional[str]) -> ImagePolicy:
    """Map a CLI/query token onto ImagePolicy; unknown tokens mean BASE64."""
    if value == "url":
        return ImagePolicy.URL
    if value == "save":
        return ImagePolicy.SAVE
    return ImagePolicy.BASE64


class Piece(BaseModel):
    """
    The atomic unit of output content.

    Container kinds (lists, quote lines) hold a nested list of Pieces, so the
    document is a tree linearized into a flat sequence at the top level.
    Pieces are frozen: once appended to a sequence they are never mutated.
    """
    model_config = ConfigDict(frozen=True)

    type: PieceType
    # Order matters: a list of Piece instances must not be read as list[str]
    value: Union[str, bytes, list["Piece"], list[str], None] = None
    attrs: dict[str, str] = Field(default_factory=dict)


class Article(BaseModel):
    """
    Parse result for one article page.

    Article() with every field at its default is the empty Article, which is
    what a failed top-level fetch degrades to.
    """
    model_config = ConfigDict(frozen=True)

    title: Optional[Piece] = None
    meta: list[str] = Field(default_factory=list)     # author, free text, publish time last
    tags: str = ""
    content: list[Piece] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return self.title is None and not self.meta and not self.tags and not self.content

    @property
    def title_text(self) -> str:
        if self.title is None or not isinstance(self.title.value, str):
            return ""
        return self.title.value
