"""Scorecard Sync MCP Server.

FastMCP server with tools to validate, apply, refresh, import, destroy and
show declared DX scorecards. State is kept in a local SQLite file.
Run: scorecard-sync-mcp
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import pydantic
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from . import sync
from .core.clients.dx import DXClient
from .core.errors import ScorecardError, ValidationError
from .core.lifecycle import ScorecardLifecycle
from .core.models import Scorecard
from .core.validation import validate_scorecard
from .db import close_db, init_db
from .scheduler import RefreshScheduler
from .state import load_state

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)
REMOTE_READ = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=True)
REMOTE_WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=True)
REMOTE_DELETE = ToolAnnotations(readOnlyHint=False, destructiveHint=True, idempotentHint=False, openWorldHint=True)

scheduler = RefreshScheduler()


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize logging and the state database, start the refresh scheduler."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await init_db()
    await scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        await close_db()


mcp = FastMCP(
    "Scorecard Sync",
    instructions="Declare DX scorecards (LEVEL or POINTS) and keep them in sync with the DX Web API. Apply creates or updates, refresh re-reads, destroy deletes.",
    lifespan=lifespan,
)


def _lifecycle() -> ScorecardLifecycle:
    return ScorecardLifecycle(DXClient.from_env())


def _parse_declaration(declaration: dict) -> Scorecard:
    try:
        return Scorecard.model_validate(declaration)
    except pydantic.ValidationError as exc:
        raise ValidationError(_pydantic_messages(exc)) from exc


def _pydantic_messages(exc: pydantic.ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}")
    return messages


def _failure(exc: Exception) -> dict:
    if isinstance(exc, ScorecardError):
        errors = exc.messages
    else:
        errors = [str(exc)]
    return {"ok": False, "errors": errors}


def _state_view(address: str, state: Scorecard) -> dict:
    return {
        "ok": True,
        "address": address,
        "scorecard": state.model_dump(mode="json"),
    }


# ─── Tool 1: Validate ────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def scorecard_validate(declaration: dict) -> dict:
    """Check a scorecard declaration without contacting the service.

    Args:
        declaration: Scorecard fields: name, type ('LEVEL'|'POINTS'), entity_filter_type,
                     evaluation_frequency_hours, levels or check_groups, checks, ...
    """
    try:
        desired = _parse_declaration(declaration)
    except ScorecardError as exc:
        return _failure(exc)
    errors = validate_scorecard(desired)
    return {"ok": not errors, "errors": errors}


# ─── Tool 2: Apply ───────────────────────────────────────────────────────────


@mcp.tool(annotations=REMOTE_WRITE)
async def scorecard_apply(address: str, declaration: dict) -> dict:
    """Create or update the scorecard managed under ``address``.

    Args:
        address: Stable local name for this scorecard (e.g. 'platform/service-maturity').
        declaration: Desired scorecard fields. Levels and check groups need a unique 'key'.
    """
    try:
        desired = _parse_declaration(declaration)
        state = await sync.apply(_lifecycle(), address, desired)
    except (ScorecardError, ValueError) as exc:
        logger.warning("Apply of %s failed: %s", address, exc)
        return _failure(exc)
    return _state_view(address, state)


# ─── Tool 3: Refresh ─────────────────────────────────────────────────────────


@mcp.tool(annotations=REMOTE_READ)
async def scorecard_refresh(address: str) -> dict:
    """Re-read the scorecard from the service and update the stored state.

    Args:
        address: Local name the scorecard is managed under.
    """
    try:
        state = await sync.refresh(_lifecycle(), address)
    except (ScorecardError, ValueError) as exc:
        return _failure(exc)
    if state is None:
        return {
            "ok": True,
            "address": address,
            "removed": True,
            "summary": f"Scorecard {address!r} no longer exists remotely; its state was discarded.",
        }
    return _state_view(address, state)


# ─── Tool 4: Import ──────────────────────────────────────────────────────────


@mcp.tool(annotations=REMOTE_READ)
async def scorecard_import(address: str, scorecard_id: str) -> dict:
    """Start managing an existing scorecard by its DX id.

    Imported levels and check groups have no 'key' until the next apply.

    Args:
        address: Local name to manage the scorecard under.
        scorecard_id: The DX scorecard id.
    """
    try:
        state = await sync.import_existing(_lifecycle(), address, scorecard_id)
    except (ScorecardError, ValueError) as exc:
        return _failure(exc)
    return _state_view(address, state)


# ─── Tool 5: Destroy ─────────────────────────────────────────────────────────


@mcp.tool(annotations=REMOTE_DELETE)
async def scorecard_destroy(address: str) -> dict:
    """Delete the scorecard from the service and forget it locally.

    Args:
        address: Local name the scorecard is managed under.
    """
    try:
        await sync.destroy(_lifecycle(), address)
    except (ScorecardError, ValueError) as exc:
        return _failure(exc)
    return {"ok": True, "address": address, "summary": f"Scorecard {address!r} deleted."}


# ─── Tool 6: Show (local) ────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def scorecard_show(address: str) -> dict:
    """Show the stored state for ``address`` without contacting the service.

    Args:
        address: Local name the scorecard is managed under.
    """
    state = await load_state(address)
    if state is None:
        return {"ok": False, "errors": [f"Scorecard {address!r} is not managed."]}
    return _state_view(address, state)


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
