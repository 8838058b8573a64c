"""Tests for the MCP server binding."""

import json
import logging
from unittest.mock import AsyncMock

import pytest
from mcp.types import TextContent, Tool

from slack_bridge import server as server_module
from slack_bridge.audit import AuditLogger
from slack_bridge.client import SlackClient
from slack_bridge.config import Settings
from slack_bridge.dispatcher import ToolDispatcher
from slack_bridge.server import SlackMcpServer
from slack_bridge.tools import TOOL_CATALOG


@pytest.fixture
def mcp_server():
    client = AsyncMock(spec=SlackClient)
    client.post_message.return_value = {"ok": True, "ts": "1.2"}
    return SlackMcpServer(ToolDispatcher(client))


@pytest.mark.asyncio
async def test_list_tools_mirrors_catalog(mcp_server):
    tools = await mcp_server.list_tools()

    assert all(isinstance(tool, Tool) for tool in tools)
    assert [tool.name for tool in tools] == [tool.name for tool in TOOL_CATALOG]
    post = next(tool for tool in tools if tool.name == "post_message")
    assert post.inputSchema["required"] == ["channel_id", "text"]


@pytest.mark.asyncio
async def test_call_tool_returns_text_content(mcp_server):
    result = await mcp_server.call_tool("post_message", {"channel_id": "C1", "text": "hi"})

    assert len(result) == 1
    assert isinstance(result[0], TextContent)
    assert json.loads(result[0].text) == {"ok": True, "ts": "1.2"}


@pytest.mark.asyncio
async def test_call_tool_error_is_text(mcp_server):
    result = await mcp_server.call_tool("post_message", {"channel_id": "C1"})
    assert result[0].text.startswith("Missing required argument: text")


def test_main_exits_on_missing_settings(monkeypatch, caplog):
    monkeypatch.delenv("SLACK_BOT_TOKEN", raising=False)
    monkeypatch.delenv("SLACK_TEAM_ID", raising=False)

    with caplog.at_level(logging.ERROR, logger="slack_bridge.server"):
        with pytest.raises(SystemExit) as exc:
            server_module.main()

    assert exc.value.code == 1
    assert "SLACK_BOT_TOKEN and SLACK_TEAM_ID" in caplog.text


def test_main_runs_server(monkeypatch, caplog):
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-test")
    monkeypatch.setenv("SLACK_TEAM_ID", "T1")
    monkeypatch.setenv("SLACK_SUSPICIOUS_DOMAINS", "")
    served = []

    async def fake_serve(settings):
        served.append(settings)

    monkeypatch.setattr(server_module, "serve", fake_serve)

    with caplog.at_level(logging.INFO, logger="slack_bridge.server"):
        server_module.main()

    assert served[0].team_id == "T1"
    assert served[0].suspicious_domains == ()
    assert "domain blocking is DISABLED" in caplog.text
    assert "xoxb-test" not in caplog.text


def test_audit_summary_counts_and_recent(caplog):
    audit = AuditLogger()
    audit.rate_limited("post_message", 60)
    audit.rate_limited("post_message", 60)
    audit.url_rejected("post_message", "SUSPICIOUS_DOMAIN", "bit.ly")

    with caplog.at_level(logging.INFO, logger="slack_bridge.server"):
        server_module.log_audit_summary(audit, recent=2)

    messages = [r.getMessage() for r in caplog.records if r.name == "slack_bridge.server"]
    assert messages[0] == "audit_summary rate_limited=2 url_rejected=1"
    assert len(messages) == 3
    assert "'event': 'rate_limited'" in messages[1]
    assert "'event': 'url_rejected'" in messages[2]


def test_audit_summary_silent_when_empty(caplog):
    with caplog.at_level(logging.INFO, logger="slack_bridge.server"):
        server_module.log_audit_summary(AuditLogger())
    assert "audit_summary" not in caplog.text


@pytest.mark.asyncio
async def test_serve_logs_audit_summary_on_shutdown(monkeypatch, caplog):
    async def fake_run(self):
        self.dispatcher.client.audit.directory_refresh_failed("missing_scope")

    monkeypatch.setattr(SlackMcpServer, "run", fake_run)

    with caplog.at_level(logging.INFO, logger="slack_bridge.server"):
        await server_module.serve(Settings(bot_token="xoxb-test", team_id="T1"))

    assert "audit_summary directory_refresh_failed=1" in caplog.text
