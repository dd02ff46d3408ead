"""
Custom exceptions for the wechatmp2md converter.

Error philosophy:
  - DocumentParseError → FAIL HARD: the input cannot be read as markup, no
    Article is produced.
  - FetchError → RECOVERABLE: raised by the transport, contained where it is
    detected. A failed image leaves that image's payload empty; a failed
    document fetch degrades to the empty Article.

Missing containers, attributes or timestamps are not errors at all; they
simply contribute nothing to the Article.
"""

from typing import Optional


class WechatMPError(Exception):
    """Base exception for all converter errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- FAIL HARD: stops the conversion ---

class DocumentParseError(WechatMPError):
    """
    Raised when the top-level document cannot be decoded or parsed as HTML.

    This is the only error that aborts a conversion; no partial Article
    is returned.
    """
    pass


# --- RECOVERABLE: contained by the caller, logged, degraded to empty ---

class FetchError(WechatMPError):
    """Raised when an HTTP fetch (document or image) fails."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code  # None for transport-level failures
