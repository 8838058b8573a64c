"""Slack MCP bridge - stdio MCP server exposing Slack workspace tools."""

import asyncio
import logging
import re
import sys
from collections import Counter

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from slack_bridge import __version__
from slack_bridge.audit import AUDIT_MAX_ENTRIES, AuditLogger
from slack_bridge.client import SlackClient
from slack_bridge.config import Settings, load_settings
from slack_bridge.dispatcher import ToolDispatcher
from slack_bridge.errors import ConfigurationError

logger = logging.getLogger("slack_bridge.server")

SERVER_NAME = "slack"
AUDIT_SUMMARY_RECENT = 10


class SlackMcpServer:
    """Binds a ToolDispatcher to the MCP tools/list and tools/call requests."""

    def __init__(self, dispatcher: ToolDispatcher):
        self.dispatcher = dispatcher
        self.server = Server(SERVER_NAME, version=__version__)
        self.server.list_tools()(self.list_tools)
        # Argument checks belong to the handlers, which name every missing field
        self.server.call_tool(validate_input=False)(self.call_tool)

    async def list_tools(self) -> list[Tool]:
        return [
            Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema())
            for tool in self.dispatcher.list_tools()
        ]

    async def call_tool(self, name: str, arguments: dict | None) -> list[TextContent]:
        envelope = await self.dispatcher.call_tool(name, arguments)
        return [TextContent(type="text", text=block["text"]) for block in envelope["content"]]

    async def run(self) -> None:
        """Serve over stdin/stdout until the client disconnects."""
        async with stdio_server() as (read_stream, write_stream):
            logger.info("MCP client connected")
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


async def serve(settings: Settings) -> None:
    async with SlackClient(settings) as client:
        try:
            await SlackMcpServer(ToolDispatcher(client)).run()
        finally:
            log_audit_summary(client.audit)


def log_audit_summary(audit: AuditLogger, recent: int = AUDIT_SUMMARY_RECENT) -> None:
    """Log per-event counts and the latest audit entries of this session."""
    entries = audit.get_recent(limit=AUDIT_MAX_ENTRIES)
    if not entries:
        return
    counts = Counter(entry["event"] for entry in entries)
    logger.info(
        "audit_summary %s",
        " ".join(f"{event}={count}" for event, count in sorted(counts.items())),
    )
    # Oldest first
    for entry in reversed(entries[:recent]):
        logger.info("audit_recent %s", entry)


def main():
    """Run the Slack MCP bridge."""
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)
    logger.info("Starting Slack MCP bridge %s", __version__)
    # Redact credentials from the API URL in logs
    redacted_url = re.sub(r"://[^@]+@", "://***@", settings.api_url)
    logger.info(
        "Slack API: %s team=%s channel_allowlist=%s blocked_domains=%d",
        redacted_url, settings.team_id,
        "yes" if settings.channel_ids else "no",
        len(settings.suspicious_domains),
    )
    if not settings.suspicious_domains:
        logger.warning("SLACK_SUSPICIOUS_DOMAINS is empty; domain blocking is DISABLED.")

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
