#!/usr/bin/env python3
"""
Tests for the DOM-to-Piece walker and the leaf element parsers.

Fragments are parsed with html5lib (the same builder the Preprocessor uses
first) and walked from a wrapper element, so every case runs without a
network: image fetches are replaced with monkeypatch where a policy needs
them.
"""

import base64

import pytest
from bs4 import BeautifulSoup

from wechatmp2md.elements import parse_pre, parse_table
from wechatmp2md.exceptions import FetchError
from wechatmp2md.fetcher import Fetcher
from wechatmp2md.schemas import ImagePolicy, Piece, PieceType
from wechatmp2md.walker import SectionWalker, classify, NodeKind, resolve_image_src, walk

BR = Piece(type=PieceType.BR)


def fragment(html: str):
    """The wrapper <div id="root"> around html, parsed with html5lib."""
    soup = BeautifulSoup(f'<div id="root">{html}</div>', "html5lib")
    return soup.find(id="root")


def walk_html(html: str, policy: ImagePolicy = ImagePolicy.URL,
              preceding: PieceType = PieceType.NULL) -> list[Piece]:
    return walk(fragment(html), policy, preceding)


def text(value: str) -> Piece:
    return Piece(type=PieceType.NORMAL_TEXT, value=value)


def assert_no_double_breaks(pieces: list[Piece]):
    for first, second in zip(pieces, pieces[1:]):
        assert not (first.type is PieceType.BR and second.type is PieceType.BR)


@pytest.fixture
def no_network(monkeypatch):
    def fail(self, url):
        raise AssertionError(f"unexpected fetch of {url}")
    monkeypatch.setattr(Fetcher, "get", fail)


# --- break insertion ---

def test_br_inside_paragraph_is_explicit_break():
    pieces = walk_html("<p>A<br>B</p>")
    assert pieces[:3] == [text("A"), BR, text("B")]
    assert pieces == [text("A"), BR, text("B"), BR]


def test_adjacent_empty_paragraphs_do_not_double_breaks():
    pieces = walk_html("x<p></p><p></p>")
    assert pieces == [text("x")]
    assert_no_double_breaks(pieces)
    assert walk_html("<p> </p><p>\n</p>") == []
    assert walk_html("<p>a</p><p></p><p> </p>") == [text("a"), BR]


def test_paragraphs_are_separated_by_blank_line():
    # The trailing BR of one paragraph plus the leading BR of the next
    pieces = walk_html("<p>one</p><p>two</p><section>three</section>")
    assert pieces == [text("one"), BR, BR, text("two"), BR, BR, text("three"), BR]


def test_leading_break_follows_preceding_kind():
    for kind in (PieceType.NORMAL_TEXT, PieceType.BR, PieceType.HEADER):
        assert walk_html("a", preceding=kind) == [BR, text("a")]
    for kind in (PieceType.NULL, PieceType.O_LIST, PieceType.U_LIST, PieceType.BLOCK_QUOTES):
        assert walk_html("a", preceding=kind) == [text("a")]


def test_empty_walk_has_no_leading_break():
    assert walk_html("", preceding=PieceType.NORMAL_TEXT) == []
    assert walk_html("<span> </span>", preceding=PieceType.BR) == []


def test_state_is_threaded_across_siblings():
    # The second span sees the first span's text as its preceding sibling
    assert walk_html("<span>a</span><span>b</span>") == [text("a"), BR, text("b")]


def test_children_start_from_their_own_state():
    # The inner span is the outer span's first child, so it starts without
    # context even though "x" precedes the outer span
    assert walk_html("x<span><span>y</span></span>") == [text("x"), BR, text("y")]


# --- inline elements ---

def test_inline_elements():
    pieces = walk_html('<a href="https://example.com"> go  there </a>'
                       '<strong> bold <em>inner</em></strong>'
                       '<i>slanted</i><hr><br>')
    assert pieces == [
        Piece(type=PieceType.LINK, value="go there", attrs={"href": "https://example.com"}),
        Piece(type=PieceType.BOLD_TEXT, value="bold inner"),
        Piece(type=PieceType.ITALIC_TEXT, value="slanted"),
        Piece(type=PieceType.HR),
        BR,
    ]


def test_headings():
    pieces = walk_html("<h2> Sub \n title </h2><h6>small</h6>")
    assert pieces == [
        Piece(type=PieceType.HEADER, value="Sub title", attrs={"level": "2"}),
        Piece(type=PieceType.HEADER, value="small", attrs={"level": "6"}),
    ]


def test_widgets_become_placeholders():
    pieces = walk_html(
        '<mpvoice voice_encode_fileid="v1"></mpvoice>'
        '<mpvideo vid="wxv_2"></mpvideo>'
        '<mp-common-qqmusic data-name="Song"></mp-common-qqmusic>'
        '<mp-common-profile data-name="Account"></mp-common-profile>'
        '<mp-common-card data-title="Card"></mp-common-card>'
    )
    assert [p.value for p in pieces] == [
        "[语音消息: v1]", "[视频消息: wxv_2]", "[音乐: Song]", "[名片: Account]", "[卡片: Card]",
    ]
    assert all(p.type is PieceType.NORMAL_TEXT for p in pieces)


def test_unknown_tags_fall_back_to_text():
    assert walk_html("<font> some <u>text</u> </font>") == [text("some text")]
    assert walk_html("<div>  </div><script>var a = 1;</script>") == []


def test_classify():
    root = fragment('<section class="code-snippet__fix"></section><section></section><blink></blink>')
    kinds = [classify(child) for child in root.children]
    assert kinds == [NodeKind.CODE, NodeKind.BLOCK_CONTAINER, NodeKind.OTHER]


# --- lists and quotes ---

def test_unordered_list_items():
    pieces = walk_html("<ul><li>one</li><li><p>two</p></li></ul>")
    assert len(pieces) == 2
    assert all(p.type is PieceType.U_LIST for p in pieces)
    assert pieces[0].value == [text("one")]
    assert pieces[1].value == [text("two"), BR]


def test_nested_list_items_stay_in_their_list():
    pieces = walk_html("<ol><li>a<ol><li>b</li></ol></li><li>c</li></ol>")
    assert len(pieces) == 2
    first, second = pieces
    assert first.value[0] == text("a")
    assert first.value[1] == Piece(type=PieceType.O_LIST, value=[text("b")])
    assert second.value == [text("c")]


def test_list_items_do_not_start_with_break():
    pieces = walk_html("<p>before</p><ul><li><span>x</span></li><li>y</li></ul>")
    items = [p for p in pieces if p.type is PieceType.U_LIST]
    assert items
    for item in items:
        assert item.value[0].type is not PieceType.BR


def test_blockquote_lines():
    pieces = walk_html("<blockquote><p>q1</p>\n<p>q2</p></blockquote>")
    assert pieces == [
        Piece(type=PieceType.BLOCK_QUOTES, value=[text("q1")]),
        Piece(type=PieceType.BLOCK_QUOTES, value=[text("q2")]),
        BR,
    ]


def test_blockquote_with_bare_text_and_inline_children():
    pieces = walk_html("<blockquote>hello <strong>world</strong></blockquote>")
    assert pieces == [
        Piece(type=PieceType.BLOCK_QUOTES, value=[text("hello")]),
        Piece(type=PieceType.BLOCK_QUOTES, value=[Piece(type=PieceType.BOLD_TEXT, value="world")]),
        BR,
    ]
    for quote in pieces[:-1]:
        assert quote.value[0].type is not PieceType.BR


# --- code blocks ---

def test_code_block_splits_on_br_and_drops_blank_lines():
    pieces = walk_html("<pre><code>line1<br>  <br>line2</code></pre>")
    assert pieces == [Piece(type=PieceType.CODE_BLOCK, value=["line1", "line2"])]


def test_code_block_without_code_element():
    root = fragment("<pre>a = 1\n\n   \nb = 2</pre>")
    assert parse_pre(root.pre) == [Piece(type=PieceType.CODE_BLOCK, value=["a = 1", "b = 2"])]


def test_wechat_code_snippet():
    pieces = walk_html(
        '<section class="code-snippet__fix"><ul class="code-snippet__line-index"><li></li></ul>'
        '<pre><code><span>x = 1</span></code><code><span>y = 2</span></code></pre></section>'
    )
    assert pieces == [Piece(type=PieceType.CODE_BLOCK, value=["x = 1", "y = 2"])]


@pytest.mark.parametrize("html", [
    "<pre>x</pre>",
    "<pre><code>  </code>text outside code</pre>",
    "<pre><code>a<br><br><span>b</span></code></pre>",
])
def test_code_block_never_empty_for_non_blank_input(html):
    (piece,) = parse_pre(fragment(html).pre)
    assert piece.value
    assert all(line.strip() for line in piece.value)


# --- tables ---

def test_table_to_markdown():
    root = fragment("<table><tr><th>h1</th><th>h2</th></tr><tr><td>a</td><td>b|c</td></tr></table>")
    (piece,) = parse_table(root.table)
    assert piece.attrs == {"type": "markdown"}
    assert piece.value == "| h1 | h2 |\n| --- | --- |\n| a | b\\|c |"
    assert len(piece.value.splitlines()) == 3


def test_single_row_table_has_no_separator():
    (piece,) = parse_table(fragment("<table><tr><td>only</td></tr></table>").table)
    assert piece.value == "| only |"


def test_table_without_rows_falls_back_to_native():
    (piece,) = parse_table(fragment("<table><tr></tr></table>").table)
    assert piece.attrs == {"type": "native"}
    assert piece.value.startswith("<table>") and piece.value.endswith("</table>")


# --- images ---

def test_wechat_image_requests_jpeg_original(no_network):
    pieces = walk_html('<img data-src="https://mmbiz.qpic.cn/x?wx_fmt=webp" src="data:loading">',
                       ImagePolicy.URL)
    assert pieces == [Piece(type=PieceType.IMAGE,
                            attrs={"src": "https://mmbiz.qpic.cn/x?wx_fmt=jpeg", "alt": "", "title": ""})]


def test_resolve_image_src():
    assert resolve_image_src("https://mmbiz.qpic.cn/a/b/640?wx_fmt=png&from=appmsg") == \
        "https://mmbiz.qpic.cn/a/b/640?wx_fmt=jpeg&from=appmsg"
    assert resolve_image_src("//mmbiz.qpic.cn/a?tp=webp&wx_fmt=gif") == \
        "https://mmbiz.qpic.cn/a?tp=webp&wx_fmt=jpeg"
    assert resolve_image_src("https://example.com/a.png?wx_fmt=webp") == \
        "https://example.com/a.png?wx_fmt=webp"


def test_url_policy_never_fetches(no_network):
    walker = SectionWalker(ImagePolicy.URL)
    pieces = walker.walk(fragment('<p><img src="https://example.com/a.png" alt="a"></p>'))
    assert pieces[0].type is PieceType.IMAGE
    assert pieces[0].value is None
    assert walker._fetcher is None


def test_save_policy_attaches_bytes(monkeypatch):
    fetched = []

    def fake_get(self, url):
        fetched.append(url)
        return b"image-bytes"
    monkeypatch.setattr(Fetcher, "get", fake_get)

    pieces = walk_html('<img src="https://example.com/a.png"><img src="https://example.com/a.png">',
                       ImagePolicy.SAVE)
    assert [p.type for p in pieces] == [PieceType.IMAGE_RAW, PieceType.IMAGE_RAW]
    assert pieces[0].value == b"image-bytes"
    # no caching: a repeated URL is fetched again
    assert fetched == ["https://example.com/a.png", "https://example.com/a.png"]


def test_base64_policy_encodes(monkeypatch):
    monkeypatch.setattr(Fetcher, "get", lambda self, url: b"png")
    (piece,) = walk_html('<img src="https://example.com/a.png">', ImagePolicy.BASE64)
    assert piece.type is PieceType.IMAGE_BASE64
    assert piece.value == base64.b64encode(b"png").decode("ascii")


def test_failed_image_fetch_leaves_empty_payload(monkeypatch):
    def broken(self, url):
        raise FetchError(f"get from url {url} error: 500", url, status_code=500)
    monkeypatch.setattr(Fetcher, "get", broken)

    html = '<p><img src="https://example.com/a.png"></p><p>after</p>'
    saved = walk_html(html, ImagePolicy.SAVE)
    assert saved[0].type is PieceType.IMAGE_RAW and saved[0].value is None
    assert text("after") in saved

    encoded = walk_html(html, ImagePolicy.BASE64)
    assert encoded[0].type is PieceType.IMAGE_BASE64 and encoded[0].value == ""
    assert text("after") in encoded
