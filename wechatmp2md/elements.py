"""
Leaf element parsers.

Each function converts one element (heading, code block, table, emphasis,
platform widget) into a short list of Pieces without recursing back into
the walker. Lists and block quotes contain arbitrary content and live in
walker.py.
"""

from bs4.element import Comment, NavigableString, Tag

from .schemas import Piece, PieceType
from .text import normalize_text

HEADING_LEVELS = {f"h{n}": n for n in range(1, 7)}

# Platform widget tag → (placeholder label, attribute identifying the widget)
WIDGETS = {
    "mpvoice": ("语音消息", "voice_encode_fileid"),
    "mp-common-mpaudio": ("语音消息", "voice_encode_fileid"),
    "mpvideo": ("视频消息", "vid"),
    "qqmusic": ("音乐", "data-name"),
    "mp-common-qqmusic": ("音乐", "data-name"),
    "mp-common-profile": ("名片", "data-name"),
    "mp-common-card": ("卡片", "data-title"),
}


def parse_header(elem: Tag) -> list[Piece]:
    level = HEADING_LEVELS[elem.name.lower()]
    return [Piece(type=PieceType.HEADER, value=normalize_text(elem.get_text()),
                  attrs={"level": str(level)})]


def _code_rows(elem: Tag) -> list[str]:
    """Text of elem split at <br> elements and at literal newlines."""
    rows = []
    line = ""
    for node in elem.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                rows.append(line)
                line = ""
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            line += str(node)
    rows.append(line)
    return [row for text in rows for row in text.split("\n")]


def parse_pre(elem: Tag) -> list[Piece]:
    """
    Code block from <pre>, <code> or WeChat's code-snippet section.

    Lines come from the <code> descendants when there are any (WeChat emits
    one <code> per line); otherwise from the container itself. Blank lines
    are dropped, so non-blank input always yields at least one line.
    """
    rows = []
    for code in elem.find_all("code"):
        rows.extend(_code_rows(code))
    lines = [row for row in rows if row.strip()]
    if not lines:
        lines = [row for row in _code_rows(elem) if row.strip()]
    return [Piece(type=PieceType.CODE_BLOCK, value=lines)]


def _table_row(cells: list[str]) -> str:
    return "| " + " | ".join(cell.replace("|", "\\|") for cell in cells) + " |"


def parse_table(elem: Tag) -> list[Piece]:
    """
    Markdown pipe table; raw HTML tagged "native" when no row has cells.

    The separator row (one column per cell of the first row) only appears
    when there is more than one row.
    """
    rows = []
    for tr in elem.find_all("tr"):
        cells = [normalize_text(cell.get_text()) for cell in tr.find_all(["td", "th"])]
        if cells:
            rows.append(cells)

    if not rows:
        return [Piece(type=PieceType.TABLE, value=f"<table>{elem.decode_contents()}</table>",
                      attrs={"type": "native"})]

    lines = [_table_row(cells) for cells in rows]
    if len(rows) > 1:
        lines.insert(1, "|" + " --- |" * len(rows[0]))
    return [Piece(type=PieceType.TABLE, value="\n".join(lines), attrs={"type": "markdown"})]


def parse_strong(elem: Tag) -> list[Piece]:
    # Nested markup is flattened to text
    return [Piece(type=PieceType.BOLD_TEXT, value=normalize_text(elem.get_text()))]


def parse_italic(elem: Tag) -> list[Piece]:
    return [Piece(type=PieceType.ITALIC_TEXT, value=normalize_text(elem.get_text()))]


def parse_widget(elem: Tag) -> list[Piece]:
    """Bracketed placeholder for voice/video/music/profile/card widgets."""
    label, attr = WIDGETS[elem.name.lower()]
    return [Piece(type=PieceType.NORMAL_TEXT, value=f"[{label}: {elem.get(attr, '')}]")]
