import unittest

from scorecard_sync.core.errors import ValidationError
from scorecard_sync.core.models import Check, CheckGroup, Level, Scorecard
from scorecard_sync.core.validation import ensure_valid, validate_scorecard

from scorecards import level_scorecard, points_scorecard


class TestRequiredFields(unittest.TestCase):
    def test_valid_level_scorecard_has_no_errors(self):
        self.assertEqual(validate_scorecard(level_scorecard()), [])

    def test_valid_points_scorecard_has_no_errors(self):
        self.assertEqual(validate_scorecard(points_scorecard()), [])

    def test_each_missing_required_field_is_reported_in_order(self):
        errors = validate_scorecard(Scorecard())
        self.assertEqual(len(errors), 4)
        for error, field in zip(errors, ["name", "type", "entity_filter_type", "evaluation_frequency_hours"]):
            self.assertIn(f"'{field}'", error)

    def test_out_of_range_filter_type_and_frequency_are_named(self):
        errors = validate_scorecard(level_scorecard(entity_filter_type="tags", evaluation_frequency_hours=3))
        self.assertEqual(len(errors), 2)
        self.assertIn("tags", errors[0])
        self.assertIn("3", errors[1])


class TestTypeConditionalRules(unittest.TestCase):
    def test_level_scorecard_without_levels_fails_with_level_error(self):
        errors = validate_scorecard(level_scorecard(levels=[]))
        self.assertEqual(len(errors), 1)
        self.assertIn("level", errors[0])
        self.assertIn("LEVEL", errors[0])

    def test_level_scorecard_reports_every_missing_field_at_once(self):
        errors = validate_scorecard(level_scorecard(empty_level_label=None, empty_level_color=None, levels=[]))
        self.assertEqual(len(errors), 3)
        self.assertIn("empty_level_label", errors[0])
        self.assertIn("empty_level_color", errors[1])
        self.assertIn("level", errors[2])

    def test_points_scorecard_without_check_groups_fails(self):
        errors = validate_scorecard(points_scorecard(check_groups=[], checks=[]))
        self.assertEqual(len(errors), 1)
        self.assertIn("check_group", errors[0])

    def test_unknown_type_is_reported_by_value(self):
        errors = validate_scorecard(level_scorecard(type="BADGES"))
        self.assertEqual(len(errors), 1)
        self.assertIn("Invalid type", errors[0])
        self.assertIn("BADGES", errors[0])

    def test_level_items_need_all_declared_fields(self):
        errors = validate_scorecard(level_scorecard(levels=[Level(name="Bronze", rank=1)]))
        self.assertEqual(errors, [
            "Level 1 is missing required field 'key'.",
            "Level 1 is missing required field 'color'.",
        ])

    def test_duplicate_level_keys_and_ranks_are_rejected(self):
        levels = [
            Level(key="a", name="Bronze", color="#111111", rank=1),
            Level(key="a", name="Silver", color="#222222", rank=1),
        ]
        errors = validate_scorecard(level_scorecard(levels=levels))
        self.assertEqual(len(errors), 2)
        self.assertIn("Duplicate level key 'a'", errors[0])
        self.assertIn("Duplicate level rank 1", errors[1])

    def test_duplicate_level_names_are_allowed(self):
        levels = [
            Level(key="a", name="Bronze", color="#111111", rank=1),
            Level(key="b", name="Bronze", color="#222222", rank=2),
        ]
        self.assertEqual(validate_scorecard(level_scorecard(levels=levels)), [])

    def test_duplicate_check_group_orderings_are_rejected(self):
        groups = [
            CheckGroup(key="a", name="A", ordering=1),
            CheckGroup(key="b", name="B", ordering=1),
        ]
        errors = validate_scorecard(points_scorecard(check_groups=groups, checks=[]))
        self.assertEqual(errors, ["Duplicate check group ordering 1: check group orderings must be unique."])


class TestCheckReferences(unittest.TestCase):
    def test_level_scorecard_check_may_not_reference_check_group(self):
        check = Check(name="Has owner", scorecard_check_group_key="docs", points=5)
        errors = validate_scorecard(level_scorecard(checks=[check]))
        self.assertEqual(len(errors), 2)
        self.assertIn("references a check group", errors[0])
        self.assertIn("'points'", errors[1])

    def test_level_scorecard_check_must_reference_declared_level(self):
        check = Check(name="Has owner", scorecard_level_key="gold")
        errors = validate_scorecard(level_scorecard(checks=[check]))
        self.assertEqual(errors, ["Check 1 ('Has owner') references unknown level key 'gold'."])

    def test_points_scorecard_check_may_not_reference_level(self):
        check = Check(name="Has owner", scorecard_level_key="bronze", scorecard_check_group_key="docs")
        errors = validate_scorecard(points_scorecard(checks=[check]))
        self.assertEqual(len(errors), 1)
        self.assertIn("references a level", errors[0])

    def test_check_without_name_is_reported(self):
        errors = validate_scorecard(level_scorecard(checks=[Check(sql="select 1")]))
        self.assertEqual(errors, ["Check 1 is missing required field 'name'."])


class TestEnsureValid(unittest.TestCase):
    def test_raises_with_every_message(self):
        with self.assertRaises(ValidationError) as ctx:
            ensure_valid(Scorecard(name="x"))
        self.assertEqual(len(ctx.exception.messages), 3)

    def test_passes_silently_when_valid(self):
        ensure_valid(level_scorecard())


if __name__ == "__main__":
    unittest.main()
