"""Audit logging for the Slack bridge.

Records security-relevant events (rate limit denials, rejected URLs,
stripped content) to a Python logger and a bounded in-memory ring for
querying. Entries live for the lifetime of the process only.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("slack_bridge.audit")

AUDIT_MAX_ENTRIES = 1000  # Max entries kept in memory


class AuditLogger:
    """Structured audit logger with in-memory storage."""

    def __init__(self, max_entries: int = AUDIT_MAX_ENTRIES):
        self._entries: deque[dict] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def _log(self, event: str, **kwargs) -> dict:
        """Log an audit event.

        Args:
            event: Event type (e.g., "rate_limited", "url_rejected")
            **kwargs: Event-specific data

        Returns:
            The audit entry dict
        """
        entry = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **kwargs,
        }

        logger.info("audit event=%s %s", event,
                    " ".join(f"{k}={v}" for k, v in kwargs.items()))

        with self._lock:
            self._entries.appendleft(entry)
        return entry

    def rate_limited(self, endpoint: str, limit: int) -> dict:
        """Log a call refused by the rate limiter."""
        return self._log("rate_limited", endpoint=endpoint, limit=limit)

    def url_rejected(self, endpoint: str, code: str, detail: str) -> dict:
        """Log outbound text refused by URL screening."""
        return self._log("url_rejected", endpoint=endpoint, code=code, detail=detail)

    def content_sanitized(self, endpoint: str, original: str, sanitized: str) -> dict:
        """Log script content stripped from outbound text."""
        return self._log(
            "content_sanitized", endpoint=endpoint,
            original=original[:100], sanitized=sanitized[:100],
        )

    def directory_refresh_failed(self, reason: str) -> dict:
        """Log a failed user directory rebuild."""
        return self._log("directory_refresh_failed", reason=reason)

    def get_recent(self, limit: int = 100, event_filter: Optional[str] = None) -> list[dict]:
        """Get recent audit entries.

        Args:
            limit: Max entries to return (default 100)
            event_filter: Optional event type filter

        Returns:
            List of audit entry dicts, newest first
        """
        with self._lock:
            entries = list(self._entries)
        if event_filter:
            entries = [e for e in entries if e.get("event") == event_filter]
        return entries[:limit]
