"""Environment-sourced settings for the Slack bridge.

Required: SLACK_BOT_TOKEN, SLACK_TEAM_ID.

Optional:
- SLACK_CHANNEL_IDS: comma-separated channel allowlist for list_channels
- SLACK_SUSPICIOUS_DOMAINS: comma-separated blocked domain substrings.
  Unset uses DEFAULT_SUSPICIOUS_DOMAINS; an empty string disables blocking.
- SLACK_API_URL, SLACK_HTTP_TIMEOUT, SLACK_USER_CACHE_TTL,
  SLACK_USER_CACHE_MAX_PAGES, LOG_LEVEL
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from slack_bridge.errors import ConfigurationError

DEFAULT_API_URL = "https://slack.com/api"
DEFAULT_SUSPICIOUS_DOMAINS = (
    "bit.ly",
    "goo.gl",
    "ngrok.com",
    "ngrok.io",
    "tinyurl.com",
)
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_USER_CACHE_TTL = 300  # 5 minutes
DEFAULT_USER_CACHE_MAX_PAGES = 10
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, validated once at startup."""
    bot_token: str
    team_id: str
    channel_ids: Optional[tuple[str, ...]] = None
    suspicious_domains: tuple[str, ...] = DEFAULT_SUSPICIOUS_DOMAINS
    api_url: str = DEFAULT_API_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    user_cache_ttl: int = DEFAULT_USER_CACHE_TTL
    user_cache_max_pages: int = DEFAULT_USER_CACHE_MAX_PAGES
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables.

    Raises:
        ConfigurationError: If a required variable is missing or a numeric
            variable does not parse.
    """
    if environ is None:
        environ = os.environ

    bot_token = environ.get("SLACK_BOT_TOKEN", "").strip()
    team_id = environ.get("SLACK_TEAM_ID", "").strip()
    missing = [
        name for name, value in (("SLACK_BOT_TOKEN", bot_token), ("SLACK_TEAM_ID", team_id))
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Please set {' and '.join(missing)} environment variable{'s' if len(missing) > 1 else ''}"
        )

    channel_ids = None
    if environ.get("SLACK_CHANNEL_IDS", "").strip():
        channel_ids = _split_csv(environ["SLACK_CHANNEL_IDS"])

    if "SLACK_SUSPICIOUS_DOMAINS" in environ:
        suspicious_domains = tuple(d.lower() for d in _split_csv(environ["SLACK_SUSPICIOUS_DOMAINS"]))
    else:
        suspicious_domains = DEFAULT_SUSPICIOUS_DOMAINS

    log_level = environ.get("LOG_LEVEL", "").strip().upper() or "INFO"
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    return Settings(
        bot_token=bot_token,
        team_id=team_id,
        channel_ids=channel_ids,
        suspicious_domains=suspicious_domains,
        api_url=(environ.get("SLACK_API_URL", "").strip() or DEFAULT_API_URL).rstrip("/"),
        http_timeout=_number(environ, "SLACK_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float),
        user_cache_ttl=_number(environ, "SLACK_USER_CACHE_TTL", DEFAULT_USER_CACHE_TTL, int),
        user_cache_max_pages=_number(environ, "SLACK_USER_CACHE_MAX_PAGES", DEFAULT_USER_CACHE_MAX_PAGES, int),
        log_level=log_level,
    )
