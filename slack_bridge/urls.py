"""URL threat screening for outbound message text.

Screening runs on the text exactly as the caller wrote it, before any
markdown conversion, and fails the whole operation on the first bad URL.
"""

import re
from typing import Iterable
from urllib.parse import urlsplit

from slack_bridge.errors import InvalidPortError, InvalidURLError, SuspiciousDomainError

ALLOWED_PORTS = frozenset({80, 443, 8080, 8443})

DIRECT_URL_RE = re.compile(r"https?://[^\s)<>|]+", re.IGNORECASE)
MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


def extract_urls(text: str) -> list[str]:
    """Return bare URLs followed by markdown link targets, in order of appearance."""
    urls = DIRECT_URL_RE.findall(text)
    for match in MARKDOWN_LINK_RE.finditer(text):
        # Drop an optional link title: [label](url "title")
        target = match.group(2).split()
        urls.append(target[0] if target else match.group(2))
    return urls


def check_url(url: str, blocked_domains: Iterable[str]) -> None:
    """Validate a single URL.

    Raises:
        InvalidURLError: If the URL does not parse, has no scheme, or is an
            http(s) URL without a host
        SuspiciousDomainError: If the host contains a blocked substring
        InvalidPortError: If an explicit port is outside ALLOWED_PORTS
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        raise InvalidURLError(url) from None

    if not parts.scheme:
        raise InvalidURLError(url)
    host = (parts.hostname or "").lower()
    if parts.scheme.lower() in ("http", "https") and not host:
        raise InvalidURLError(url)

    for blocked in blocked_domains:
        if blocked and blocked in host:
            raise SuspiciousDomainError(host)

    if port is not None and port not in ALLOWED_PORTS:
        raise InvalidPortError(port)


def validate_urls(text: str, blocked_domains: Iterable[str]) -> None:
    """Validate every URL in text. Raises on the first rejected URL."""
    blocked = tuple(d.lower() for d in blocked_domains if d)
    for url in extract_urls(text):
        check_url(url, blocked)
