"""Slack MCP bridge - exposes Slack workspace messaging as MCP tools."""

__version__ = "0.1.0"
