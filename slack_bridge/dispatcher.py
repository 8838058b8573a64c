"""Tool dispatch for the Slack bridge.

Maps tool names to handler functions, checks each handler's required
arguments, calls the SlackClient and wraps every outcome in the same
content envelope: ``{"content": [{"type": "text", "text": ...}]}``.
Local failures (missing arguments, rate limits, rejected URLs, transport
errors) become error text in that envelope; ``ok: false`` responses from
Slack are serialized and returned like any other result.
"""

import json
import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from slack_bridge.client import SlackClient
from slack_bridge.errors import (
    ArgumentError,
    BridgeError,
    BridgeException,
    invalid_argument,
    missing_arguments,
    no_arguments,
    unknown_tool,
)
from slack_bridge.tools import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LIST_LIMIT,
    MAX_HISTORY_LIMIT,
    MAX_LIST_LIMIT,
    TOOL_CATALOG,
    ToolDefinition,
)

logger = logging.getLogger("slack_bridge.dispatcher")

ToolHandler = Callable[[SlackClient, Mapping[str, Any]], Awaitable[Union[dict, list, str]]]


# ============================================================
# Envelope
# ============================================================

def text_envelope(text: str) -> dict:
    """Wrap text in the content envelope."""
    return {"content": [{"type": "text", "text": text}]}


def result_envelope(result: Any) -> dict:
    """Wrap a handler result. Strings pass through, anything else is JSON."""
    if isinstance(result, str):
        return text_envelope(result)
    return text_envelope(json.dumps(result, indent=2, ensure_ascii=False, default=str))


def error_envelope(error: BridgeError) -> dict:
    return text_envelope(error.to_text())


# ============================================================
# Argument helpers
# ============================================================

def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(args: Mapping[str, Any], *fields: str) -> None:
    """Raise ArgumentError naming every field that is absent or empty."""
    missing = [f for f in fields if _is_empty(args.get(f))]
    if missing:
        raise ArgumentError(missing_arguments(missing))


def _limit(args: Mapping[str, Any], default: int, maximum: int) -> int:
    """Read the page size, falling back to default and clamping to [1, maximum]."""
    value = args.get("limit")
    if _is_empty(value):
        return default
    if isinstance(value, bool):
        raise ArgumentError(invalid_argument("limit", "must be a number"))
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ArgumentError(invalid_argument("limit", "must be a number")) from None
    return max(1, min(limit, maximum))


def _flag(args: Mapping[str, Any], name: str, default: bool = False) -> bool:
    value = args.get(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _cursor(args: Mapping[str, Any]) -> Optional[str]:
    cursor = args.get("cursor")
    return str(cursor) if not _is_empty(cursor) else None


# ============================================================
# Tool implementations (testable standalone functions)
# ============================================================

async def _add_reaction_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "channel_id", "timestamp", "reaction")
    return await client.add_reaction(args["channel_id"], args["timestamp"], args["reaction"])


async def _edit_message_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "channel_id", "timestamp", "text")
    return await client.edit_message(args["channel_id"], args["timestamp"], args["text"])


async def _get_channel_history_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "channel_id")
    limit = _limit(args, DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT)
    return await client.get_channel_history(args["channel_id"], limit)


async def _get_thread_replies_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "channel_id", "thread_ts")
    return await client.get_thread_replies(args["channel_id"], args["thread_ts"])


async def _get_user_profile_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "user_id")
    return await client.get_user_profile(args["user_id"])


async def _get_users_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    """List users, adding a ready-to-paste ``mention`` to each member."""
    limit = _limit(args, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
    response = await client.get_users(limit, _cursor(args))
    if response.get("members"):
        response["members"] = [
            {**user, "mention": f"@{user.get('name', '')}"} for user in response["members"]
        ]
    return response


async def _list_channels_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    limit = _limit(args, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
    return await client.list_channels(limit, _cursor(args))


async def _post_message_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "channel_id", "text")
    return await client.post_message(args["channel_id"], args["text"])


async def _reply_to_thread_impl(client: SlackClient, args: Mapping[str, Any]) -> dict:
    _require(args, "channel_id", "thread_ts", "text")
    return await client.post_reply(
        args["channel_id"], args["thread_ts"], args["text"],
        broadcast=_flag(args, "broadcast"),
    )


DEFAULT_HANDLERS: Mapping[str, ToolHandler] = MappingProxyType({
    "add_reaction": _add_reaction_impl,
    "edit_message": _edit_message_impl,
    "get_channel_history": _get_channel_history_impl,
    "get_thread_replies": _get_thread_replies_impl,
    "get_user_profile": _get_user_profile_impl,
    "get_users": _get_users_impl,
    "list_channels": _list_channels_impl,
    "post_message": _post_message_impl,
    "reply_to_thread": _reply_to_thread_impl,
})


# ============================================================
# Dispatcher
# ============================================================

class ToolDispatcher:
    """Routes tool calls to handlers and normalizes their results.

    The catalog and handler table are fixed at construction and must name
    exactly the same tools.
    """

    def __init__(
        self,
        client: SlackClient,
        catalog: Sequence[ToolDefinition] = TOOL_CATALOG,
        handlers: Optional[Mapping[str, ToolHandler]] = None,
    ):
        handlers = DEFAULT_HANDLERS if handlers is None else handlers
        catalog_names = [tool.name for tool in catalog]
        if len(set(catalog_names)) != len(catalog_names):
            raise ValueError("Tool catalog contains duplicate names")
        if set(catalog_names) != set(handlers):
            raise ValueError(
                "Tool catalog and handlers differ: "
                f"without handler={sorted(set(catalog_names) - set(handlers))} "
                f"without definition={sorted(set(handlers) - set(catalog_names))}"
            )
        self.client = client
        self.catalog: tuple[ToolDefinition, ...] = tuple(catalog)
        self.handlers: Mapping[str, ToolHandler] = MappingProxyType(dict(handlers))

    def list_tools(self) -> tuple[ToolDefinition, ...]:
        """Return the full tool catalog."""
        return self.catalog

    async def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]]) -> dict:
        """Invoke a tool by name and return the content envelope."""
        if arguments is None:
            return error_envelope(no_arguments())

        handler = self.handlers.get(name)
        if handler is None:
            logger.warning("unknown_tool tool=%s", name)
            return error_envelope(unknown_tool(name, [tool.name for tool in self.catalog]))

        if not isinstance(arguments, Mapping):
            return error_envelope(invalid_argument("arguments", "must be an object"))

        try:
            result = await handler(self.client, arguments)
        except BridgeException as e:
            logger.warning("tool_failed tool=%s code=%s error=%s", name, e.error.code, e)
            return error_envelope(e.error)

        logger.debug("tool_call tool=%s", name)
        return result_envelope(result)
