"""Conditional validation of a declared scorecard.

Which fields are mandatory depends on the scorecard ``type``. All rules are
evaluated before anything is reported so the operator sees every problem in
a single pass.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional

from .errors import ValidationError
from .models import EVALUATION_FREQUENCIES, Check, EntityFilterType, Scorecard, ScorecardType

logger = logging.getLogger(__name__)

_ENTITY_FILTER_TYPES = [t.value for t in EntityFilterType]


def _missing(field: str, suffix: str = "") -> str:
    return f"Missing required field: the '{field}' field must be specified{suffix}."


def _duplicates(values: Iterable[object]) -> list[object]:
    counts = Counter(v for v in values if v is not None)
    return [v for v, n in counts.items() if n > 1]


def validate_scorecard(desired: Scorecard) -> list[str]:
    """Return every validation error for ``desired``, in a stable order.

    An empty list means the scorecard may be sent to the service.
    """
    errors: list[str] = []

    if desired.name is None:
        errors.append(_missing("name"))
    if desired.type is None:
        errors.append(_missing("type"))
    if desired.entity_filter_type is None:
        errors.append(_missing("entity_filter_type"))
    elif desired.entity_filter_type not in _ENTITY_FILTER_TYPES:
        errors.append(
            f"Invalid entity filter type: unsupported entity_filter_type: {desired.entity_filter_type} "
            f"(expected one of {', '.join(_ENTITY_FILTER_TYPES)})."
        )
    if desired.evaluation_frequency_hours is None:
        errors.append(_missing("evaluation_frequency_hours"))
    elif desired.evaluation_frequency_hours not in EVALUATION_FREQUENCIES:
        errors.append(
            f"Invalid evaluation frequency: unsupported evaluation_frequency_hours: "
            f"{desired.evaluation_frequency_hours} (expected one of 2, 4, 8, 24)."
        )

    if desired.type == ScorecardType.LEVEL.value:
        errors.extend(_validate_level_scorecard(desired))
    elif desired.type == ScorecardType.POINTS.value:
        errors.extend(_validate_points_scorecard(desired))
    elif desired.type is not None:
        errors.append(f"Invalid type: unsupported scorecard type: {desired.type}")

    if errors:
        logger.debug("Scorecard %r failed validation with %d error(s)", desired.name, len(errors))
    return errors


def ensure_valid(desired: Scorecard) -> None:
    """Raise ``ValidationError`` carrying all messages when ``desired`` is invalid."""
    errors = validate_scorecard(desired)
    if errors:
        raise ValidationError(errors)


def _validate_level_scorecard(desired: Scorecard) -> list[str]:
    errors = []
    suffix = " for LEVEL scorecards"
    if desired.empty_level_label is None:
        errors.append(_missing("empty_level_label", suffix))
    if desired.empty_level_color is None:
        errors.append(_missing("empty_level_color", suffix))
    if not desired.levels:
        errors.append("Missing required field: at least one 'level' must be specified for LEVEL scorecards.")

    for pos, level in enumerate(desired.levels, start=1):
        for field in ("key", "name", "color", "rank"):
            if getattr(level, field) is None:
                errors.append(f"Level {pos} is missing required field '{field}'.")
    for key in _duplicates(lvl.key for lvl in desired.levels):
        errors.append(f"Duplicate level key '{key}': level keys must be unique.")
    for rank in _duplicates(lvl.rank for lvl in desired.levels):
        errors.append(f"Duplicate level rank {rank}: level ranks must be unique.")

    level_keys = {lvl.key for lvl in desired.levels if lvl.key is not None}
    for pos, check in enumerate(desired.checks, start=1):
        errors.extend(_validate_check(pos, check))
        if check.scorecard_check_group_key is not None or check.check_group is not None:
            errors.append(f"Check {_label(pos, check)} references a check group, but LEVEL scorecard checks must reference levels.")
        if check.points is not None:
            errors.append(f"Check {_label(pos, check)} sets 'points', which only applies to POINTS scorecards.")
        if check.scorecard_level_key is not None and check.scorecard_level_key not in level_keys:
            errors.append(f"Check {_label(pos, check)} references unknown level key '{check.scorecard_level_key}'.")
    return errors


def _validate_points_scorecard(desired: Scorecard) -> list[str]:
    errors = []
    if not desired.check_groups:
        errors.append("Missing required field: at least one 'check_group' must be specified for POINTS scorecards.")

    for pos, group in enumerate(desired.check_groups, start=1):
        for field in ("key", "name", "ordering"):
            if getattr(group, field) is None:
                errors.append(f"Check group {pos} is missing required field '{field}'.")
    for key in _duplicates(grp.key for grp in desired.check_groups):
        errors.append(f"Duplicate check group key '{key}': check group keys must be unique.")
    for ordering in _duplicates(grp.ordering for grp in desired.check_groups):
        errors.append(f"Duplicate check group ordering {ordering}: check group orderings must be unique.")

    group_keys = {grp.key for grp in desired.check_groups if grp.key is not None}
    for pos, check in enumerate(desired.checks, start=1):
        errors.extend(_validate_check(pos, check))
        if check.scorecard_level_key is not None or check.level is not None:
            errors.append(f"Check {_label(pos, check)} references a level, but POINTS scorecard checks must reference check groups.")
        if check.scorecard_check_group_key is not None and check.scorecard_check_group_key not in group_keys:
            errors.append(f"Check {_label(pos, check)} references unknown check group key '{check.scorecard_check_group_key}'.")
    return errors


def _validate_check(pos: int, check: Check) -> list[str]:
    if check.name is None:
        return [f"Check {pos} is missing required field 'name'."]
    return []


def _label(pos: int, check: Check) -> str:
    name: Optional[str] = check.name
    return f"{pos} ({name!r})" if name is not None else str(pos)
