"""Address-level sync operations on top of the lifecycle engine.

Each function loads the persisted state for an address, runs one lifecycle
event and writes the outcome back. Errors propagate before anything is
written, so a failed event leaves the stored state as it was.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .core.errors import ScorecardError
from .core.lifecycle import ScorecardLifecycle
from .core.models import Scorecard
from .state import discard_state, list_addresses, load_state, save_state

logger = logging.getLogger(__name__)


def _not_managed(address: str) -> ScorecardError:
    return ScorecardError(f"Scorecard {address!r} is not managed; apply or import it first.")


async def apply(lifecycle: ScorecardLifecycle, address: str, desired: Scorecard) -> Scorecard:
    """Create the scorecard when ``address`` is new, update it otherwise."""
    state = await load_state(address)
    if state is None:
        new_state = await lifecycle.create(desired)
    else:
        new_state = await lifecycle.update(desired, state)
    await save_state(address, new_state)
    return new_state


async def refresh(lifecycle: ScorecardLifecycle, address: str) -> Optional[Scorecard]:
    """Re-read the scorecard. Returns ``None`` (and drops the state) if it is gone."""
    state = await load_state(address)
    if state is None:
        raise _not_managed(address)
    new_state = await lifecycle.read(state)
    if new_state is None:
        await discard_state(address)
        return None
    await save_state(address, new_state)
    return new_state


async def import_existing(lifecycle: ScorecardLifecycle, address: str, scorecard_id: str) -> Scorecard:
    """Start managing an existing remote scorecard under ``address``."""
    if await load_state(address) is not None:
        raise ScorecardError(f"Scorecard {address!r} is already managed.")
    state = await lifecycle.import_scorecard(scorecard_id)
    await save_state(address, state)
    return state


async def destroy(lifecycle: ScorecardLifecycle, address: str) -> None:
    """Delete the remote scorecard and forget its state."""
    state = await load_state(address)
    if state is None:
        raise _not_managed(address)
    await lifecycle.delete(state)
    await discard_state(address)


async def refresh_all(lifecycle: ScorecardLifecycle) -> dict[str, int]:
    """Refresh every managed address; one failure does not stop the others."""
    counts = {"refreshed": 0, "removed": 0, "failed": 0}
    for address in await list_addresses():
        try:
            result = await refresh(lifecycle, address)
        except (ScorecardError, ValueError, httpx.HTTPError) as exc:
            logger.warning("Refresh of %s failed: %s", address, exc)
            counts["failed"] += 1
            continue
        if result is None:
            counts["removed"] += 1
        else:
            counts["refreshed"] += 1
    logger.info(
        "Refresh complete: %d refreshed, %d removed, %d failed",
        counts["refreshed"], counts["removed"], counts["failed"],
    )
    return counts
