"""Tests for the SQLite state store and address-level sync operations."""
from __future__ import annotations

import asyncio
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, patch

import httpx

from scorecard_sync import sync
from scorecard_sync.core.errors import APIError, ScorecardError
from scorecard_sync.core.models import Level
from scorecard_sync.db import close_db, get_session_factory, init_db
from scorecard_sync.sqlmodels import ScorecardState
from scorecard_sync.state import discard_state, list_addresses, load_state, save_state

from scorecards import level_scorecard


def _persisted():
    return level_scorecard(
        id="sc_1",
        levels=[Level(key="bronze", id="lvl_1", name="Bronze", color="#cd7f32", rank=1)],
    )


class _StateDirTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self._env = patch.dict(os.environ, {"DATA_DIR": self._tmp.name})
        self._env.start()

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def run_with_db(self, scenario):
        async def wrapper():
            await init_db()
            try:
                return await scenario()
            finally:
                await close_db()

        return asyncio.run(wrapper())


class TestStateStore(_StateDirTestCase):
    def test_save_and_load_round_trip_keeps_keys(self):
        async def scenario():
            await save_state("platform/providers", _persisted())
            return await load_state("platform/providers")

        loaded = self.run_with_db(scenario)
        self.assertEqual(loaded, _persisted())
        self.assertEqual(loaded.levels[0].key, "bronze")

    def test_save_replaces_existing_row(self):
        async def scenario():
            await save_state("a", _persisted())
            await save_state("a", _persisted().model_copy(update={"name": "Renamed"}))
            return await load_state("a"), await list_addresses()

        loaded, addresses = self.run_with_db(scenario)
        self.assertEqual(loaded.name, "Renamed")
        self.assertEqual(addresses, ["a"])

    def test_discard_and_unknown_address(self):
        async def scenario():
            await save_state("b", _persisted())
            await save_state("a", _persisted())
            removed = await discard_state("b")
            removed_again = await discard_state("b")
            return removed, removed_again, await load_state("b"), await list_addresses()

        removed, removed_again, loaded, addresses = self.run_with_db(scenario)
        self.assertTrue(removed)
        self.assertFalse(removed_again)
        self.assertIsNone(loaded)
        self.assertEqual(addresses, ["a"])


class TestSync(_StateDirTestCase):
    def test_apply_creates_then_updates(self):
        lifecycle = AsyncMock()
        lifecycle.create = AsyncMock(return_value=_persisted())
        lifecycle.update = AsyncMock(return_value=_persisted().model_copy(update={"name": "Renamed"}))

        async def scenario():
            await sync.apply(lifecycle, "a", level_scorecard())
            await sync.apply(lifecycle, "a", level_scorecard(name="Renamed"))
            return await load_state("a")

        stored = self.run_with_db(scenario)
        lifecycle.create.assert_awaited_once()
        desired, state = lifecycle.update.call_args.args
        self.assertEqual(desired.name, "Renamed")
        self.assertEqual(state.id, "sc_1")
        self.assertEqual(stored.name, "Renamed")

    def test_failed_update_leaves_state_untouched(self):
        lifecycle = AsyncMock()
        lifecycle.update = AsyncMock(side_effect=APIError(500, "boom"))

        async def scenario():
            await save_state("a", _persisted())
            with self.assertRaises(APIError):
                await sync.apply(lifecycle, "a", level_scorecard(name="Renamed"))
            return await load_state("a")

        self.assertEqual(self.run_with_db(scenario), _persisted())

    def test_refresh_discards_state_when_scorecard_is_gone(self):
        lifecycle = AsyncMock()
        lifecycle.read = AsyncMock(return_value=None)

        async def scenario():
            await save_state("a", _persisted())
            result = await sync.refresh(lifecycle, "a")
            return result, await load_state("a")

        result, stored = self.run_with_db(scenario)
        self.assertIsNone(result)
        self.assertIsNone(stored)

    def test_destroy_deletes_then_forgets(self):
        lifecycle = AsyncMock()

        async def scenario():
            await save_state("a", _persisted())
            await sync.destroy(lifecycle, "a")
            return await load_state("a")

        self.assertIsNone(self.run_with_db(scenario))
        lifecycle.delete.assert_awaited_once()

    def test_unmanaged_address_is_rejected(self):
        lifecycle = AsyncMock()

        async def scenario():
            with self.assertRaises(ScorecardError):
                await sync.destroy(lifecycle, "nobody")
            with self.assertRaises(ScorecardError):
                await sync.refresh(lifecycle, "nobody")

        self.run_with_db(scenario)
        lifecycle.delete.assert_not_awaited()

    def test_import_refuses_managed_address(self):
        lifecycle = AsyncMock()
        lifecycle.import_scorecard = AsyncMock(return_value=_persisted())

        async def scenario():
            await sync.import_existing(lifecycle, "a", "sc_1")
            with self.assertRaises(ScorecardError):
                await sync.import_existing(lifecycle, "a", "sc_1")
            return await load_state("a")

        self.assertEqual(self.run_with_db(scenario).id, "sc_1")
        lifecycle.import_scorecard.assert_awaited_once_with("sc_1")

    def test_refresh_all_counts_outcomes(self):
        lifecycle = AsyncMock()
        lifecycle.read = AsyncMock(side_effect=[_persisted(), None, APIError(503, "unavailable")])

        async def scenario():
            for address in ("a", "b", "c"):
                await save_state(address, _persisted())
            return await sync.refresh_all(lifecycle), await list_addresses()

        counts, addresses = self.run_with_db(scenario)
        self.assertEqual(counts, {"refreshed": 1, "removed": 1, "failed": 1})
        self.assertEqual(addresses, ["a", "c"])

    def test_refresh_all_survives_corrupt_rows_and_http_errors(self):
        lifecycle = AsyncMock()
        lifecycle.read = AsyncMock(side_effect=[httpx.RemoteProtocolError("peer closed connection"), _persisted()])

        async def scenario():
            async with get_session_factory()() as session:
                session.add(ScorecardState(address="a", scorecard_id="sc_0", state="{not json"))
                await session.commit()
            await save_state("b", _persisted())
            await save_state("c", _persisted())
            return await sync.refresh_all(lifecycle)

        counts = self.run_with_db(scenario)
        self.assertEqual(counts, {"refreshed": 1, "removed": 0, "failed": 2})
        self.assertEqual(lifecycle.read.await_count, 2)


if __name__ == "__main__":
    unittest.main()
