"""Lifecycle orchestration: create, read, update, delete, import.

Each event runs validate -> build payload -> remote call -> reconcile and
returns the new persisted state. Failures raise a ``ScorecardError`` before
any state is produced, so the caller's persisted state stays untouched.
The orchestrator keeps nothing between events besides its remote handle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, Protocol, TypeVar, Union

from .errors import NotFound, TransportError, ValidationError
from .models import LevelScorecardPayload, PointsScorecardPayload, Scorecard, ScorecardEnvelope
from .payload import build_payload
from .reconcile import carry_ids, reconcile, reconcile_created
from .validation import ensure_valid

logger = logging.getLogger(__name__)

T = TypeVar("T")

Payload = Union[LevelScorecardPayload, PointsScorecardPayload]

MISSING_ID = "Missing ID: the resource ID is missing from the state."


class RemoteScorecards(Protocol):
    """The four remote operations the orchestrator depends on.

    ``fetch`` raises ``NotFound`` when the scorecard does not exist; every
    other failure is raised as ``TransportError``, ``APIError`` or
    ``DecodeError``.
    """

    async def create(self, payload: Payload) -> ScorecardEnvelope: ...

    async def fetch(self, scorecard_id: str) -> ScorecardEnvelope: ...

    async def update(self, payload: Payload) -> ScorecardEnvelope: ...

    async def delete(self, scorecard_id: str) -> None: ...


class ScorecardLifecycle:
    """Drive one scorecard through its life-cycle events.

    Args:
        remote: Remote operations handle (e.g. ``DXClient``).
        deadline: Default per-call deadline in seconds. ``None`` waits forever.
    """

    def __init__(self, remote: RemoteScorecards, deadline: Optional[float] = None):
        self._remote = remote
        self._deadline = deadline

    async def create(self, desired: Scorecard, deadline: Optional[float] = None) -> Scorecard:
        ensure_valid(desired)
        payload = build_payload(desired)

        envelope = await self._call("create scorecard", self._remote.create(payload), deadline)
        state = reconcile_created(envelope.scorecard, desired)
        logger.info("Created scorecard %r (id=%s)", state.name, state.id)
        return state

    async def read(self, state: Scorecard, deadline: Optional[float] = None) -> Optional[Scorecard]:
        """Refresh ``state`` from the service. ``None`` means it no longer exists."""
        scorecard_id = _require_id(state)
        try:
            envelope = await self._call("read scorecard", self._remote.fetch(scorecard_id), deadline)
        except NotFound:
            logger.info("Scorecard %s no longer exists remotely", scorecard_id)
            return None
        return reconcile(envelope.scorecard, state)

    async def update(self, desired: Scorecard, state: Scorecard, deadline: Optional[float] = None) -> Scorecard:
        """Send ``desired`` as an update of the persisted ``state``.

        The response is reconciled against the pre-update ``state`` so that
        client-only keys survive.
        """
        ensure_valid(desired)
        scorecard_id = _require_id(state)
        submitted = carry_ids(desired, state)
        payload = build_payload(submitted, scorecard_id)

        envelope = await self._call("update scorecard", self._remote.update(payload), deadline)
        new_state = reconcile(envelope.scorecard, state, submitted)
        logger.info("Updated scorecard %r (id=%s)", new_state.name, new_state.id)
        return new_state

    async def delete(self, state: Scorecard, deadline: Optional[float] = None) -> None:
        """Delete the scorecard. On return the caller must discard its state."""
        scorecard_id = _require_id(state)
        await self._call("delete scorecard", self._remote.delete(scorecard_id), deadline)
        logger.info("Deleted scorecard %s", scorecard_id)

    async def import_scorecard(self, scorecard_id: str, deadline: Optional[float] = None) -> Scorecard:
        """Adopt an existing remote scorecard. Keys are left unset."""
        if not scorecard_id:
            raise ValidationError([MISSING_ID])
        envelope = await self._call("read scorecard", self._remote.fetch(scorecard_id), deadline)
        state = reconcile(envelope.scorecard, Scorecard())
        logger.info("Imported scorecard %r (id=%s)", state.name, state.id)
        return state

    async def _call(self, operation: str, call: Awaitable[T], deadline: Optional[float]) -> T:
        timeout = deadline if deadline is not None else self._deadline
        try:
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(f"{operation}: deadline of {timeout}s exceeded") from exc


def _require_id(state: Scorecard) -> str:
    if not state.id:
        raise ValidationError([MISSING_ID])
    return state.id
