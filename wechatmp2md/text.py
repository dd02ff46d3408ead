"""Whitespace and invisible-character cleanup for extracted text."""

import re
from typing import Optional

MULTI_SPACE_PATTERN = re.compile(r'\s{2,}')

# Zero-width space, non-joiner and joiner; WeChat's editor sprinkles these
# between characters.
ZERO_WIDTH_CHARS = dict.fromkeys(map(ord, '\u200b\u200c\u200d'))


def normalize_text(text: Optional[str]) -> str:
    """
    Collapse whitespace and strip invisible characters.

    Substitutions can create new multi-space runs, so the collapse and trim
    steps are repeated at the end. Normalizing normalized text is a no-op.
    """
    if not text:
        return ""
    text = text.strip()
    text = MULTI_SPACE_PATTERN.sub(' ', text)

    text = text.replace('\n', ' ').replace('\r', ' ')
    text = text.replace('\u00a0', ' ')
    text = text.translate(ZERO_WIDTH_CHARS)

    text = MULTI_SPACE_PATTERN.sub(' ', text)
    return text.strip()
