"""Persisted scorecard state, keyed by address.

An address is the caller's stable name for one managed scorecard. Rows hold
the reconciled ``Scorecard`` as JSON.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select

from .core.models import Scorecard
from .db import get_session_factory
from .sqlmodels import ScorecardState

logger = logging.getLogger(__name__)


async def load_state(address: str) -> Optional[Scorecard]:
    """Return the persisted state for ``address``, or ``None`` if unmanaged."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(ScorecardState).where(ScorecardState.address == address)
        )
        row = result.scalar_one_or_none()
    if row is None:
        return None
    return Scorecard.model_validate_json(row.state)


async def save_state(address: str, scorecard: Scorecard) -> None:
    """Insert or replace the state for ``address``."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(ScorecardState).where(ScorecardState.address == address)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = ScorecardState(address=address)
            session.add(row)
        row.scorecard_id = scorecard.id
        row.state = scorecard.model_dump_json()
        row.updated_at = datetime.utcnow()
        await session.commit()
    logger.debug("Saved state for %s (scorecard %s)", address, scorecard.id)


async def discard_state(address: str) -> bool:
    """Forget ``address``. Returns whether a row was removed."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            delete(ScorecardState).where(ScorecardState.address == address)
        )
        await session.commit()
    removed = result.rowcount > 0
    if removed:
        logger.info("Discarded state for %s", address)
    return removed


async def list_addresses() -> list[str]:
    """All managed addresses, sorted."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(ScorecardState.address).order_by(ScorecardState.address)
        )
        return list(result.scalars().all())
