# =============================================================================
# dexws -- Package Logger
# =============================================================================

from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

logger = logging.getLogger("dexws")
logger.addHandler(logging.NullHandler())


def redact_url(url: str) -> str:
    """Return *url* with the ``token`` query parameter masked."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, "***" if key == "token" else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*")))
