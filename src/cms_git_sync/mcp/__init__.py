"""MCP stdio server exposing the sync controller as tools."""
