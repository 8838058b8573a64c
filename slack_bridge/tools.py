"""Tool catalog exposed over MCP.

TOOL_CATALOG is fixed at import time; the dispatcher refuses to start if
its handler table does not cover exactly these names.
"""

from dataclasses import dataclass
from typing import Any, Optional

from slack_bridge.client import MAX_HISTORY_LIMIT, MAX_LIST_LIMIT

_NO_DEFAULT = object()

DEFAULT_LIST_LIMIT = 100
DEFAULT_HISTORY_LIMIT = 10


@dataclass(frozen=True)
class ToolArgument:
    """One argument in a tool's input schema."""
    name: str
    type: str
    description: str
    default: Any = _NO_DEFAULT

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT

    def schema(self) -> dict:
        result = {"type": self.type, "description": self.description}
        if self.has_default:
            result["default"] = self.default
        return result


@dataclass(frozen=True)
class ToolDefinition:
    """Immutable descriptor for one tool."""
    name: str
    description: str
    required: tuple[ToolArgument, ...] = ()
    optional: tuple[ToolArgument, ...] = ()

    @property
    def required_names(self) -> tuple[str, ...]:
        return tuple(arg.name for arg in self.required)

    def argument(self, name: str) -> Optional[ToolArgument]:
        for arg in self.required + self.optional:
            if arg.name == name:
                return arg
        return None

    def input_schema(self) -> dict:
        """Render the JSON schema for this tool's arguments."""
        schema = {
            "type": "object",
            "properties": {arg.name: arg.schema() for arg in self.required + self.optional},
        }
        if self.required:
            schema["required"] = list(self.required_names)
        return schema


_CHANNEL_ID = ToolArgument("channel_id", "string", "The ID of the channel")
_THREAD_TS = ToolArgument(
    "thread_ts", "string",
    "The timestamp of the parent message (format: 1234567890.123456)",
)
_CURSOR = ToolArgument("cursor", "string", "Pagination cursor for next page of results")


TOOL_CATALOG: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="add_reaction",
        description="Add a reaction emoji to a message",
        required=(
            ToolArgument("channel_id", "string", "The ID of the channel containing the message"),
            ToolArgument("timestamp", "string", "The timestamp of the message to react to"),
            ToolArgument("reaction", "string", "The name of the emoji reaction (without ::)"),
        ),
    ),
    ToolDefinition(
        name="edit_message",
        description="Edit an existing message in a Slack channel",
        required=(
            ToolArgument("channel_id", "string", "The ID of the channel containing the message"),
            ToolArgument("timestamp", "string", "The timestamp of the message to edit"),
            ToolArgument("text", "string", "The new message text (markdown is converted)"),
        ),
    ),
    ToolDefinition(
        name="get_channel_history",
        description="Get recent messages from a channel",
        required=(_CHANNEL_ID,),
        optional=(
            ToolArgument(
                "limit", "number",
                f"Number of messages to retrieve (default: {DEFAULT_HISTORY_LIMIT}, max: {MAX_HISTORY_LIMIT})",
                default=DEFAULT_HISTORY_LIMIT,
            ),
        ),
    ),
    ToolDefinition(
        name="get_thread_replies",
        description="Get all replies in a message thread",
        required=(
            ToolArgument("channel_id", "string", "The ID of the channel containing the thread"),
            _THREAD_TS,
        ),
    ),
    ToolDefinition(
        name="get_user_profile",
        description="Get detailed profile information for a specific user",
        required=(ToolArgument("user_id", "string", "The ID of the user"),),
    ),
    ToolDefinition(
        name="get_users",
        description="Get a list of all users in the workspace with their basic profile information",
        optional=(
            ToolArgument(
                "limit", "number",
                f"Maximum number of users to return (default: {DEFAULT_LIST_LIMIT}, max: {MAX_LIST_LIMIT})",
                default=DEFAULT_LIST_LIMIT,
            ),
            _CURSOR,
        ),
    ),
    ToolDefinition(
        name="list_channels",
        description="List public or pre-defined channels in the workspace with pagination",
        optional=(
            ToolArgument(
                "limit", "number",
                f"Maximum number of channels to return (default: {DEFAULT_LIST_LIMIT}, max: {MAX_LIST_LIMIT})",
                default=DEFAULT_LIST_LIMIT,
            ),
            _CURSOR,
        ),
    ),
    ToolDefinition(
        name="post_message",
        description="Post a new message to a Slack channel",
        required=(
            ToolArgument("channel_id", "string", "The ID of the channel to post to"),
            ToolArgument("text", "string", "The message text to post (markdown is converted)"),
        ),
    ),
    ToolDefinition(
        name="reply_to_thread",
        description="Reply to a specific message thread in Slack",
        required=(
            ToolArgument("channel_id", "string", "The ID of the channel containing the thread"),
            _THREAD_TS,
            ToolArgument("text", "string", "The reply text to post (markdown is converted)"),
        ),
        optional=(
            ToolArgument(
                "broadcast", "boolean",
                "Whether to also send the reply to the main channel (default: false)",
                default=False,
            ),
        ),
    ),
)
