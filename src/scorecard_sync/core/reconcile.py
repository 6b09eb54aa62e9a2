"""Merge a remote response into the persisted scorecard state.

The service is authoritative for everything it tracks. The local state is
authoritative for what the service never echoes back, chiefly the
client-assigned ``key`` fields. Two flows exist:

* ``reconcile`` (read/update): list items are paired positionally with the
  previous state. An empty or missing list in the response means "not
  returned by this call", so the previous list is kept verbatim.
* ``reconcile_created`` (create): the response order is not guaranteed to
  match submission order, so fresh ids are matched back to the submitted
  items by ``name``. Two siblings sharing a name both take the first match.

Both functions are pure: inputs are never mutated, a new ``Scorecard`` is
returned.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Optional, Sequence, TypeVar

from .models import (
    Check,
    CheckGroup,
    Level,
    RemoteCheck,
    RemoteCheckGroup,
    RemoteLevel,
    RemoteScorecard,
    Scorecard,
)

logger = logging.getLogger(__name__)

L = TypeVar("L")
R = TypeVar("R")


def reconcile(
    response: RemoteScorecard,
    previous: Scorecard,
    submitted: Optional[Scorecard] = None,
) -> Scorecard:
    """Positional merge of ``response`` into ``previous``.

    ``submitted`` is the payload source of an update. Keys and references the
    previous item lacks are taken from the submitted item at the same
    position. That covers items added by the update and imported items that
    had no key yet.
    """
    return Scorecard(
        id=response.id,
        name=response.name,
        type=response.type,
        entity_filter_type=response.entity_filter_type,
        evaluation_frequency_hours=response.evaluation_frequency_hours,
        empty_level_label=response.empty_level_label,
        empty_level_color=response.empty_level_color,
        levels=_merge_list(
            response.levels,
            previous.levels,
            submitted.levels if submitted else [],
            _merge_level,
        ),
        check_groups=_merge_list(
            response.check_groups,
            previous.check_groups,
            submitted.check_groups if submitted else [],
            _merge_check_group,
        ),
        description=response.description,
        published=merge_flag(response.published, previous.published),
        entity_filter_type_identifiers=(
            list(response.entity_filter_type_identifiers)
            if response.entity_filter_type_identifiers
            else previous.entity_filter_type_identifiers
        ),
        entity_filter_sql=response.entity_filter_sql,
        checks=_merge_list(
            response.checks,
            previous.checks,
            submitted.checks if submitted else [],
            _merge_check,
        ),
    )


def reconcile_created(response: RemoteScorecard, submitted: Scorecard) -> Scorecard:
    """Adopt the ids minted by a create call into the submitted state.

    Each submitted level, check group and check takes the ``id`` of the first
    response entry of the same kind with an equal ``name``; when nothing
    matches its ``id`` is left unset. Response entries that match nothing are
    ignored.
    """
    remote_levels = response.levels or []
    remote_groups = response.check_groups or []
    remote_checks = response.checks or []

    _warn_ambiguous("level", [lvl.name for lvl in submitted.levels])
    _warn_ambiguous("check group", [grp.name for grp in submitted.check_groups])
    _warn_ambiguous("check", [chk.name for chk in submitted.checks])

    levels = [_with_id(lvl, _id_by_name(remote_levels, lvl.name)) for lvl in submitted.levels]
    groups = [_with_id(grp, _id_by_name(remote_groups, grp.name)) for grp in submitted.check_groups]

    checks = []
    for check in submitted.checks:
        update: dict = {"id": _id_by_name(remote_checks, check.name)}
        if check.level is not None:
            update["level"] = _with_id(check.level, _id_by_name(remote_levels, check.level.name))
        if check.check_group is not None:
            update["check_group"] = _with_id(check.check_group, _id_by_name(remote_groups, check.check_group.name))
        checks.append(check.model_copy(update=update))

    return submitted.model_copy(
        update={
            "id": response.id,
            "levels": levels,
            "check_groups": groups,
            "checks": checks,
        }
    )


def carry_ids(desired: Scorecard, state: Scorecard) -> Scorecard:
    """Copy server ids from the persisted ``state`` onto a fresh declaration.

    Levels and check groups are matched by ``key``. State items without a
    key (imported ones) are matched by ``name`` instead. Checks are always
    matched by ``name``. Ids already present on ``desired`` win. Used before
    building an update payload, since declarations never carry server ids.
    """
    levels = [
        lvl if lvl.id is not None else _with_id(lvl, _id_by_key(state.levels, lvl))
        for lvl in desired.levels
    ]
    groups = [
        grp if grp.id is not None else _with_id(grp, _id_by_key(state.check_groups, grp))
        for grp in desired.check_groups
    ]
    checks = [
        chk if chk.id is not None else _with_id(chk, _id_by_name(state.checks, chk.name))
        for chk in desired.checks
    ]
    return desired.model_copy(
        update={
            "id": desired.id or state.id,
            "levels": levels,
            "check_groups": groups,
            "checks": checks,
        }
    )


def merge_flag(remote: Optional[bool], prior: Optional[bool]) -> Optional[bool]:
    """Tri-state boolean merge.

    ``True`` is always adopted. ``False`` (or absent, which the service
    means as ``False``) leaves an unset prior value unset.
    """
    if remote:
        return True
    if prior is None:
        return None
    return False


def _merge_list(
    remote: Optional[Sequence[R]],
    previous: Sequence[L],
    submitted: Sequence[L],
    merge: Callable[[R, Optional[L], Optional[L]], L],
) -> list[L]:
    """Pair ``remote`` items with ``previous`` by position.

    The submitted item at the same position is the fallback for anything
    the previous item lacks, including whole positions past its length.
    """
    if not remote:
        return list(previous)
    merged = []
    for i, item in enumerate(remote):
        prior = previous[i] if i < len(previous) else None
        fallback = submitted[i] if i < len(submitted) else None
        merged.append(merge(item, prior, fallback))
    return merged


def _merge_level(remote: RemoteLevel, prior: Optional[Level], fallback: Optional[Level] = None) -> Level:
    return Level(
        key=_first(prior, fallback, "key"),
        id=remote.id,
        name=remote.name,
        color=remote.color,
        rank=remote.rank,
    )


def _merge_check_group(
    remote: RemoteCheckGroup,
    prior: Optional[CheckGroup],
    fallback: Optional[CheckGroup] = None,
) -> CheckGroup:
    return CheckGroup(
        key=_first(prior, fallback, "key"),
        id=remote.id,
        name=remote.name,
        ordering=remote.ordering,
    )


def _merge_check(remote: RemoteCheck, prior: Optional[Check], fallback: Optional[Check] = None) -> Check:
    if prior is None:
        prior, fallback = fallback, None
    prior_level = prior.level if prior else None
    prior_group = prior.check_group if prior else None
    fallback_level = fallback.level if fallback else None
    fallback_group = fallback.check_group if fallback else None
    return Check(
        id=remote.id,
        name=remote.name,
        description=remote.description,
        ordering=remote.ordering,
        sql=remote.sql,
        filter_sql=remote.filter_sql,
        filter_message=remote.filter_message,
        output_enabled=merge_flag(remote.output_enabled, prior.output_enabled if prior else None),
        output_type=remote.output_type,
        output_aggregation=remote.output_aggregation,
        output_custom_options=remote.output_custom_options,
        estimated_dev_days=remote.estimated_dev_days,
        external_url=remote.external_url,
        published=merge_flag(remote.published, prior.published if prior else None),
        scorecard_level_key=_first(prior, fallback, "scorecard_level_key"),
        level=(
            _merge_level(remote.level, prior_level, fallback_level)
            if remote.level is not None
            else prior_level
        ),
        scorecard_check_group_key=_first(prior, fallback, "scorecard_check_group_key"),
        check_group=(
            _merge_check_group(remote.check_group, prior_group, fallback_group)
            if remote.check_group is not None
            else prior_group
        ),
        points=remote.points,
    )


def _first(prior, fallback, field: str) -> Optional[str]:
    value = getattr(prior, field) if prior is not None else None
    if value is None and fallback is not None:
        value = getattr(fallback, field)
    return value


def _id_by_name(remote: Sequence, name: Optional[str]) -> Optional[str]:
    for item in remote:
        if item.name == name:
            return item.id
    return None


def _id_by_key(state_items: Sequence, declared) -> Optional[str]:
    if declared.key is not None:
        for item in state_items:
            if item.key == declared.key:
                return item.id
    return _id_by_name([item for item in state_items if item.key is None], declared.name)


def _with_id(item: L, new_id: Optional[str]) -> L:
    return item.model_copy(update={"id": new_id})


def _warn_ambiguous(kind: str, names: list[Optional[str]]) -> None:
    for name, count in Counter(names).items():
        if count > 1:
            logger.warning(
                "%d %ss share the name %r; each will take the id of the first %s with that name",
                count, kind, name, kind,
            )
