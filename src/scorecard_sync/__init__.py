"""Scorecard Sync MCP Server.

Declare a DX scorecard and keep it in sync with the DX Web API. Validation,
payload building and response reconciliation live in ``core``.
"""

__version__ = "0.1.0"
