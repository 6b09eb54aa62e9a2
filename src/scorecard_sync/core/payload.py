"""Project a validated scorecard into the wire payload for create/update.

The builder is total once validation has passed. The only failures are
serialization problems, surfaced as ``EncodeError``.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Union

import pydantic

from .errors import EncodeError
from .models import (
    Check,
    CheckGroup,
    CheckGroupPayload,
    CheckPayload,
    EntityFilterType,
    Level,
    LevelCheckPayload,
    LevelPayload,
    LevelScorecardPayload,
    PointsCheckPayload,
    PointsScorecardPayload,
    Scorecard,
    ScorecardType,
)

logger = logging.getLogger(__name__)

_CHECK_FIELDS = tuple(CheckPayload.model_fields)


def build_payload(
    desired: Scorecard,
    scorecard_id: Optional[str] = None,
) -> Union[LevelScorecardPayload, PointsScorecardPayload]:
    """Build the create (``scorecard_id is None``) or update payload for ``desired``.

    For create, no ``id`` is emitted anywhere. For update, the scorecard id
    and every locally known nested id are included.
    """
    with_ids = scorecard_id is not None

    try:
        common = dict(
            id=scorecard_id,
            name=desired.name,
            entity_filter_type=EntityFilterType(desired.entity_filter_type),
            evaluation_frequency_hours=desired.evaluation_frequency_hours,
            description=desired.description,
            published=desired.published,
            entity_filter_type_identifiers=(
                list(desired.entity_filter_type_identifiers)
                if desired.entity_filter_type_identifiers is not None
                else None
            ),
            entity_filter_sql=desired.entity_filter_sql,
        )
        if ScorecardType(desired.type) is ScorecardType.LEVEL:
            payload = LevelScorecardPayload(
                **common,
                empty_level_label=desired.empty_level_label,
                empty_level_color=desired.empty_level_color,
                levels=[_level_payload(lvl, with_ids) for lvl in desired.levels],
                checks=[_level_check_payload(desired, chk, with_ids) for chk in desired.checks],
            )
        else:
            payload = PointsScorecardPayload(
                **common,
                check_groups=[_check_group_payload(grp, with_ids) for grp in desired.check_groups],
                checks=[_points_check_payload(desired, chk, with_ids) for chk in desired.checks],
            )
    except (pydantic.ValidationError, ValueError) as exc:
        raise EncodeError(f"encoding scorecard payload: {exc}") from exc

    logger.debug("Built %s payload for scorecard %r", "update" if with_ids else "create", desired.name)
    return payload


def encode_payload(payload: Union[LevelScorecardPayload, PointsScorecardPayload]) -> bytes:
    """Serialize a payload to a JSON request body."""
    try:
        return json.dumps(payload.to_wire()).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"marshaling payload: {exc}") from exc


def _level_payload(level: Level, with_ids: bool) -> LevelPayload:
    return LevelPayload(
        id=level.id if with_ids else None,
        key=level.key,
        name=level.name,
        color=level.color,
        rank=level.rank,
    )


def _check_group_payload(group: CheckGroup, with_ids: bool) -> CheckGroupPayload:
    return CheckGroupPayload(
        id=group.id if with_ids else None,
        key=group.key,
        name=group.name,
        ordering=group.ordering,
    )


def _check_fields(check: Check, with_ids: bool) -> dict:
    fields = {name: getattr(check, name) for name in _CHECK_FIELDS}
    if not with_ids:
        fields["id"] = None
    return fields


def _level_check_payload(desired: Scorecard, check: Check, with_ids: bool) -> LevelCheckPayload:
    # Embed the level as currently declared; fall back to the check's own snapshot.
    level = desired.level_by_key(check.scorecard_level_key) or check.level
    return LevelCheckPayload(
        **_check_fields(check, with_ids),
        scorecard_level_key=check.scorecard_level_key,
        level=_level_payload(level, with_ids) if level is not None else None,
    )


def _points_check_payload(desired: Scorecard, check: Check, with_ids: bool) -> PointsCheckPayload:
    group = desired.check_group_by_key(check.scorecard_check_group_key) or check.check_group
    return PointsCheckPayload(
        **_check_fields(check, with_ids),
        scorecard_check_group_key=check.scorecard_check_group_key,
        check_group=_check_group_payload(group, with_ids) if group is not None else None,
        points=check.points,
    )
