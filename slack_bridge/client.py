"""Slack Web API client with outbound request shaping.

Every public operation passes the per-endpoint rate limit before anything
else. Operations that carry user-authored text (edit_message, post_message,
post_reply) then run it through the sanitization pipeline:

1. URL screening on the original text (hard fail, nothing is sent)
2. Markdown to mrkdwn conversion
3. Script and script-URI stripping
4. Display-name mention resolution against the user directory

Responses with ``ok: false`` are logged and returned unchanged; nothing in
this module retries.
"""

import asyncio
import logging
import re
import time
from typing import Callable, Optional

import httpx

from slack_bridge.audit import AuditLogger
from slack_bridge.config import Settings
from slack_bridge.directory import (
    EMPTY_DIRECTORY,
    UserDirectory,
    build_directory,
    find_mentions,
    is_stale,
    resolve_mentions,
)
from slack_bridge.errors import (
    BridgeException,
    RateLimitedError,
    SecurityRejection,
    SlackTransportError,
)
from slack_bridge.formatting import strip_malicious, to_mrkdwn
from slack_bridge.rate_limit import RateLimiter
from slack_bridge.urls import validate_urls

logger = logging.getLogger("slack_bridge.client")

MAX_HISTORY_LIMIT = 1000
MAX_LIST_LIMIT = 200

# Sent with every text-bearing call
MESSAGE_FLAGS = {
    "unfurl_links": False,
    "unfurl_media": False,
    "parse": "full",
    "link_names": False,
}

_REACTION_NAME_RE = re.compile(r"[^a-zA-Z0-9_]")


class SlackClient:
    """Rate-limited, sanitizing gateway to the Slack Web API."""

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=settings.http_timeout)
        self.rate_limiter = rate_limiter or RateLimiter(clock=clock)
        self.audit = audit_logger or AuditLogger()
        self._clock = clock
        self._directory: UserDirectory = EMPTY_DIRECTORY
        # check-expiry-then-rebuild runs as one unit
        self._directory_lock = asyncio.Lock()

    async def __aenter__(self) -> "SlackClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            await self.http.aclose()

    @property
    def directory(self) -> UserDirectory:
        return self._directory

    # ------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------

    def _check_rate_limit(self, endpoint: str) -> None:
        """Record a call against endpoint or raise RateLimitedError."""
        allowed, _ = self.rate_limiter.check_and_record(endpoint)
        if not allowed:
            self.audit.rate_limited(endpoint, self.rate_limiter.max_requests)
            raise RateLimitedError(
                endpoint, self.rate_limiter.max_requests, self.rate_limiter.window_seconds,
            )

    async def _api(
        self,
        api_method: str,
        params: Optional[dict] = None,
        body: Optional[dict] = None,
    ) -> dict:
        """Call a Web API method. POST with a JSON body when body is given, GET otherwise.

        Raises:
            SlackTransportError: On connection failure or a non-JSON response
        """
        url = f"{self.settings.api_url}/{api_method}"
        headers = {"Authorization": f"Bearer {self.settings.bot_token}"}
        try:
            if body is not None:
                headers["Content-Type"] = "application/json; charset=utf-8"
                response = await self.http.post(url, json=body, headers=headers)
            else:
                response = await self.http.get(url, params=params, headers=headers)
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("slack_transport_failed method=%s error=%s", api_method, e)
            raise SlackTransportError(api_method, e) from e

        if not isinstance(result, dict):
            raise SlackTransportError(api_method, ValueError("response is not a JSON object"))
        if not result.get("ok"):
            logger.error("slack_api_error method=%s error=%s", api_method, result.get("error"))
        return result

    async def _sanitize_text(self, endpoint: str, text: str) -> str:
        """Run outbound text through the sanitization pipeline."""
        try:
            validate_urls(text, self.settings.suspicious_domains)
        except SecurityRejection as e:
            self.audit.url_rejected(endpoint, e.error.code, e.error.message)
            raise

        formatted = to_mrkdwn(text)
        sanitized, changed = strip_malicious(formatted)
        if changed:
            self.audit.content_sanitized(endpoint, formatted, sanitized)
        return await self._resolve_mentions(sanitized)

    async def _resolve_mentions(self, text: str) -> str:
        if not find_mentions(text):
            return text
        directory = await self.get_directory()
        if directory is None:
            return text
        return resolve_mentions(text, directory)

    # ------------------------------------------------------------
    # User directory
    # ------------------------------------------------------------

    async def get_directory(self) -> Optional[UserDirectory]:
        """Return the user directory, rebuilding it when stale.

        Returns None if a rebuild was needed and failed; the failure is
        logged and never raised.
        """
        async with self._directory_lock:
            if not is_stale(self._directory, self._clock()):
                return self._directory
            try:
                directory = await self.refresh_directory()
            except BridgeException as e:
                logger.warning("directory_refresh_failed error=%s", e)
                self.audit.directory_refresh_failed(str(e))
                return None
            if directory is None:
                return None
            self._directory = directory
            return directory

    async def refresh_directory(self) -> Optional[UserDirectory]:
        """Page through users.list and build a fresh directory.

        Stops after settings.user_cache_max_pages pages. Returns None when
        Slack answers any page with ``ok: false``.
        """
        members: list[dict] = []
        cursor = None
        for _ in range(self.settings.user_cache_max_pages):
            response = await self.get_users(limit=MAX_LIST_LIMIT, cursor=cursor)
            if not response.get("ok"):
                self.audit.directory_refresh_failed(str(response.get("error")))
                return None
            members.extend(response.get("members") or [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break
        else:
            if cursor:
                logger.warning(
                    "directory_page_cap_reached pages=%d members=%d",
                    self.settings.user_cache_max_pages, len(members),
                )

        directory = build_directory(members, self._clock(), self.settings.user_cache_ttl)
        logger.info("directory_refreshed members=%d names=%d", len(members), len(directory))
        return directory

    # ------------------------------------------------------------
    # Web API operations
    # ------------------------------------------------------------

    async def add_reaction(self, channel_id: str, timestamp: str, reaction: str) -> dict:
        """Add an emoji reaction. The name is reduced to [A-Za-z0-9_]."""
        self._check_rate_limit("add_reaction")
        return await self._api("reactions.add", body={
            "channel": channel_id,
            "timestamp": timestamp,
            "name": _REACTION_NAME_RE.sub("", reaction),
        })

    async def edit_message(self, channel_id: str, timestamp: str, text: str) -> dict:
        """Replace the text of an existing message."""
        self._check_rate_limit("edit_message")
        sanitized = await self._sanitize_text("edit_message", text)
        return await self._api("chat.update", body={
            "channel": channel_id,
            "ts": timestamp,
            "text": sanitized,
            **MESSAGE_FLAGS,
        })

    async def post_message(self, channel_id: str, text: str) -> dict:
        """Post a new message to a channel."""
        self._check_rate_limit("post_message")
        sanitized = await self._sanitize_text("post_message", text)
        return await self._api("chat.postMessage", body={
            "channel": channel_id,
            "text": sanitized,
            **MESSAGE_FLAGS,
        })

    async def post_reply(
        self,
        channel_id: str,
        thread_ts: str,
        text: str,
        broadcast: bool = False,
    ) -> dict:
        """Reply in a thread, optionally broadcasting to the channel."""
        self._check_rate_limit("post_reply")
        sanitized = await self._sanitize_text("post_reply", text)
        body = {
            "channel": channel_id,
            "thread_ts": thread_ts,
            "text": sanitized,
            **MESSAGE_FLAGS,
        }
        if broadcast:
            body["reply_broadcast"] = True
        return await self._api("chat.postMessage", body=body)

    async def get_channel_history(self, channel_id: str, limit: int = 10) -> dict:
        """Get recent messages from a channel (at most 1000)."""
        self._check_rate_limit("get_channel_history")
        return await self._api("conversations.history", params={
            "channel": channel_id,
            "limit": min(limit, MAX_HISTORY_LIMIT),
        })

    async def get_channel_info(self, channel_id: str) -> Optional[dict]:
        """Get a channel object, or None if Slack reports an error."""
        self._check_rate_limit("get_channel_info")
        result = await self._api("conversations.info", params={"channel": channel_id})
        return result.get("channel") if result.get("ok") else None

    async def list_channels(self, limit: int = 100, cursor: Optional[str] = None) -> dict:
        """List public channels, or the configured channel allowlist.

        With SLACK_CHANNEL_IDS set, each listed channel is looked up in turn
        and archived or unknown ones are dropped; the result has the same
        shape as conversations.list with an empty next_cursor.
        """
        self._check_rate_limit("list_channels")
        if not self.settings.channel_ids:
            params = {
                "types": "public_channel",
                "exclude_archived": "true",
                "limit": min(limit, MAX_LIST_LIMIT),
                "team_id": self.settings.team_id,
            }
            if cursor:
                params["cursor"] = cursor
            return await self._api("conversations.list", params=params)

        channels = []
        for channel_id in self.settings.channel_ids:
            data = await self._api("conversations.info", params={"channel": channel_id})
            channel = data.get("channel")
            if data.get("ok") and channel and not channel.get("is_archived"):
                channels.append(channel)
        return {
            "ok": True,
            "channels": channels,
            "response_metadata": {"next_cursor": ""},
        }

    async def get_thread_replies(self, channel_id: str, thread_ts: str) -> dict:
        """Get all messages in a thread."""
        self._check_rate_limit("get_thread_replies")
        return await self._api("conversations.replies", params={
            "channel": channel_id,
            "ts": thread_ts,
        })

    async def get_user_info(self, user_id: str) -> Optional[dict]:
        """Get a user object, or None if Slack reports an error."""
        self._check_rate_limit("get_user_info")
        result = await self._api("users.info", params={"user": user_id})
        return result.get("user") if result.get("ok") else None

    async def get_user_profile(self, user_id: str) -> dict:
        """Get a user's profile including custom field labels."""
        self._check_rate_limit("get_user_profile")
        return await self._api("users.profile.get", params={
            "user": user_id,
            "include_labels": "true",
        })

    async def get_users(self, limit: int = 100, cursor: Optional[str] = None) -> dict:
        """List workspace members (at most 200 per page)."""
        self._check_rate_limit("get_users")
        params = {
            "limit": min(limit, MAX_LIST_LIMIT),
            "team_id": self.settings.team_id,
        }
        if cursor:
            params["cursor"] = cursor
        return await self._api("users.list", params=params)
