"""Core engine: validation, payload building, reconciliation, API client, models.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or the local state store. The server and the refresh scheduler both
import from here.
"""
