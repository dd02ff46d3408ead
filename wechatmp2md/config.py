"""
Fetch configuration shared by the document and image requests.

One FetchConfig is built per conversion and handed explicitly to the
Fetcher; nothing here is process-global.
"""

import os
from typing import Optional

from pydantic import BaseModel

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/133.0.0.0 Safari/537.36 Edg/133.0.0.0"
)

# Environment overrides (a .env file is loaded by run_converter.py)
PROXY_ENV = "WECHATMP2MD_PROXY"
TIMEOUT_ENV = "WECHATMP2MD_TIMEOUT"


class FetchConfig(BaseModel):
    """Timeouts (seconds), user agent and optional proxy for HTTP fetches."""
    timeout: float = 30.0                   # whole request, connect to last body byte
    dial_timeout: float = 30.0              # TCP connect and TLS handshake
    response_header_timeout: float = 30.0   # wait for the first response byte
    user_agent: str = DEFAULT_USER_AGENT
    proxy: Optional[str] = None             # "ip:port" or a full proxy URL

    @classmethod
    def from_env(cls, **overrides) -> "FetchConfig":
        """Build a config from WECHATMP2MD_* variables, explicit overrides win."""
        values = {}
        proxy = os.getenv(PROXY_ENV)
        if proxy:
            values["proxy"] = proxy
        timeout = os.getenv(TIMEOUT_ENV)
        if timeout:
            values["timeout"] = float(timeout)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def without_proxy(self) -> "FetchConfig":
        return self.model_copy(update={"proxy": None})
