"""
Document assembler.

Finds the title, metadata, tags and content containers of a WeChat article
page by their fixed ids and builds the Article. Missing containers simply
leave the corresponding field empty.
"""

import re
from datetime import datetime, tzinfo
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .fetcher import Fetcher
from .logger import get_module_logger
from .schemas import Article, ImagePolicy, Piece, PieceType
from .text import normalize_text
from .walker import SectionWalker

logger = get_module_logger("assembler")

MAIN_CONTAINER_ID = "img-content"
TITLE_ID = "activity-name"
META_ID = "meta_content"
TAGS_ID = "js_tags"
CONTENT_ID = "js_content"
PROFILE_BUTTON_ID = "profileBt"
AUTHOR_NAME_ID = "js_name"

HIDDEN_PATTERN = re.compile(r'display\s*:\s*none', re.IGNORECASE)

# The publish time is only present as a JS variable; older pages use ct,
# newer ones also carry create_time.
PUBLISH_TIME_PATTERNS = [
    re.compile(r'var ct = "([0-9]+)"'),
    re.compile(r'create_time\s*[:=]\s*["\']?([0-9]+)'),
]
PUBLISH_TIME_FORMAT = "%Y-%m-%d %H:%M"


def _is_hidden(elem: Tag) -> bool:
    return bool(HIDDEN_PATTERN.search(elem.get("style", "")))


def _find_by_id(scope, element_id: str) -> Optional[Tag]:
    return scope.find(id=element_id)


def parse_meta(container: Optional[Tag]) -> list[str]:
    """Normalized text of each visible child of the metadata container."""
    if container is None:
        return []
    meta = []
    for child in container.find_all(recursive=False):
        if child.get("id") == PROFILE_BUTTON_ID:
            # The profile button holds a whole card; only the name is wanted
            name = _find_by_id(child, AUTHOR_NAME_ID)
            text = normalize_text(name.get_text()) if name else ""
        elif _is_hidden(child):
            continue
        else:
            text = normalize_text(child.get_text())
        if text:
            meta.append(text)
    return meta


def find_publish_time(soup: BeautifulSoup, tz: Optional[tzinfo] = None) -> Optional[str]:
    """Publish time from inline script as YYYY-MM-DD HH:MM (local time when tz is None)."""
    script_text = "\n".join(script.get_text() for script in soup.find_all("script"))
    for pattern in PUBLISH_TIME_PATTERNS:
        m = pattern.search(script_text)
        if not m:
            continue
        try:
            published = datetime.fromtimestamp(int(m.group(1)), tz)
        except (OverflowError, OSError, ValueError) as e:
            logger.warning(f"Ignoring unusable publish timestamp {m.group(1)}: {e}")
            return None
        return published.strftime(PUBLISH_TIME_FORMAT)
    return None


def assemble(
    soup: BeautifulSoup,
    image_policy: ImagePolicy = ImagePolicy.BASE64,
    fetcher: Optional[Fetcher] = None,
    tz: Optional[tzinfo] = None
) -> Article:
    """
    Build the Article from a parsed page.

    Args:
        soup: Parsed page
        image_policy: How images in the content are represented
        fetcher: Client for image fetches (created lazily when needed)
        tz: Timezone for the publish time (local time when None)

    Returns:
        Article
    """
    scope = _find_by_id(soup, MAIN_CONTAINER_ID)
    if scope is None:
        logger.debug(f"#{MAIN_CONTAINER_ID} not found, searching the whole document")
        scope = soup

    title_elem = _find_by_id(scope, TITLE_ID)
    title = Piece(type=PieceType.HEADER,
                  value=normalize_text(title_elem.get_text()) if title_elem else "",
                  attrs={"level": "1"})

    meta = parse_meta(_find_by_id(scope, META_ID))
    publish_time = find_publish_time(soup, tz)
    if publish_time:
        meta.append(publish_time)

    tags_elem = _find_by_id(scope, TAGS_ID)
    tags = normalize_text(tags_elem.get_text()) if tags_elem else ""

    content_elem = _find_by_id(scope, CONTENT_ID)
    content = []
    if content_elem is not None:
        content = SectionWalker(image_policy, fetcher).walk(content_elem, PieceType.NULL)
    else:
        logger.warning(f"#{CONTENT_ID} not found, article has no content")

    logger.info(f"Assembled article {title.value!r}: {len(meta)} meta, {len(content)} pieces")
    return Article(title=title, meta=meta, tags=tags, content=content)
