"""Tests for the MCP tool layer and the refresh scheduler."""
from __future__ import annotations

import asyncio
import os
import unittest
from unittest.mock import patch

from scorecard_sync.scheduler import RefreshScheduler
from scorecard_sync.server import scorecard_apply, scorecard_validate


class TestValidateTool(unittest.TestCase):
    def test_valid_declaration(self):
        declaration = {
            "name": "Service Hygiene",
            "type": "POINTS",
            "entity_filter_type": "entity_types",
            "entity_filter_type_identifiers": ["service"],
            "evaluation_frequency_hours": 8,
            "check_groups": [{"key": "docs", "name": "Documentation", "ordering": 1}],
        }
        self.assertEqual(asyncio.run(scorecard_validate(declaration)), {"ok": True, "errors": []})

    def test_every_problem_is_listed(self):
        result = asyncio.run(scorecard_validate({"name": "x", "type": "LEVEL", "entity_filter_type": "sql", "evaluation_frequency_hours": 2}))
        self.assertFalse(result["ok"])
        self.assertEqual(len(result["errors"]), 3)

    def test_malformed_declaration_is_reported_not_raised(self):
        result = asyncio.run(scorecard_validate({"name": "x", "levels": "not-a-list"}))
        self.assertFalse(result["ok"])
        self.assertTrue(result["errors"][0].startswith("levels"))


class TestApplyTool(unittest.TestCase):
    def test_missing_token_is_reported(self):
        with patch.dict(os.environ, {}, clear=True):
            result = asyncio.run(scorecard_apply("a", {"name": "x"}))
        self.assertFalse(result["ok"])
        self.assertIn("Missing API Token", result["errors"][0])


class TestRefreshScheduler(unittest.TestCase):
    def test_scheduler_stays_off_without_token(self):
        async def scenario():
            scheduler = RefreshScheduler()
            await scheduler.start()
            running = scheduler.running
            await scheduler.stop()
            return running

        with patch.dict(os.environ, {}, clear=True):
            self.assertFalse(asyncio.run(scenario()))

    def test_interval_is_read_from_environment(self):
        with patch.dict(os.environ, {"REFRESH_INTERVAL_HOURS": "2"}, clear=True):
            self.assertEqual(RefreshScheduler()._interval_seconds, 7200)


if __name__ == "__main__":
    unittest.main()
