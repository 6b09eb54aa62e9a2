"""Pydantic data models for scorecards, payloads and API responses.

Three families live here:

* the declared/persisted shape (``Scorecard`` and its nested ``Level``,
  ``CheckGroup`` and ``Check``), where ``None`` means "unset";
* the wire payload sent on create/update, a union discriminated on ``type``
  so that level and points fields can never be mixed;
* the response envelope returned by the remote service.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ScorecardType(str, Enum):
    """How a scorecard ranks entities."""

    LEVEL = "LEVEL"
    POINTS = "POINTS"


class EntityFilterType(str, Enum):
    """Strategy used to pick the entities a scorecard assesses."""

    ENTITY_TYPES = "entity_types"
    SQL = "sql"


EVALUATION_FREQUENCIES = (2, 4, 8, 24)


# ─── Declared / persisted state ───────────────────────────────────────────────


class Level(BaseModel):
    """A ranked tier of a LEVEL scorecard."""

    key: Optional[str] = Field(None, description="Client-assigned correlation key, never returned by the server")
    id: Optional[str] = Field(None, description="Server-assigned identifier")
    name: Optional[str] = None
    color: Optional[str] = Field(None, description="Hex color code, e.g. '#cd7f32'")
    rank: Optional[int] = None


class CheckGroup(BaseModel):
    """An organizational bucket of checks in a POINTS scorecard."""

    key: Optional[str] = Field(None, description="Client-assigned correlation key, never returned by the server")
    id: Optional[str] = Field(None, description="Server-assigned identifier")
    name: Optional[str] = None
    ordering: Optional[int] = None


class Check(BaseModel):
    """A single scored rule."""

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    ordering: Optional[int] = None
    sql: Optional[str] = None
    filter_sql: Optional[str] = None
    filter_message: Optional[str] = None
    output_enabled: Optional[bool] = None
    output_type: Optional[str] = None
    output_aggregation: Optional[str] = None
    output_custom_options: Optional[str] = Field(None, description="Opaque string, format owned by the remote service")
    estimated_dev_days: Optional[int] = None
    external_url: Optional[str] = None
    published: Optional[bool] = None

    # LEVEL scorecards
    scorecard_level_key: Optional[str] = None
    level: Optional[Level] = None

    # POINTS scorecards
    scorecard_check_group_key: Optional[str] = None
    check_group: Optional[CheckGroup] = None
    points: Optional[int] = None


class Scorecard(BaseModel):
    """The root entity, used both for the declared and the persisted state.

    ``type`` is kept as a plain string so an unsupported value reaches the
    validator and is reported by name instead of failing model parsing.
    """

    id: Optional[str] = Field(None, description="Server-assigned, empty before the first create")
    name: Optional[str] = None
    type: Optional[str] = Field(None, description="'LEVEL' or 'POINTS'")
    entity_filter_type: Optional[str] = Field(None, description="'entity_types' or 'sql'")
    evaluation_frequency_hours: Optional[int] = Field(None, description="One of 2, 4, 8, 24")

    empty_level_label: Optional[str] = None
    empty_level_color: Optional[str] = None
    levels: list[Level] = Field(default_factory=list)

    check_groups: list[CheckGroup] = Field(default_factory=list)

    description: Optional[str] = None
    published: Optional[bool] = None
    entity_filter_type_identifiers: Optional[list[str]] = None
    entity_filter_sql: Optional[str] = None
    checks: list[Check] = Field(default_factory=list)

    def level_by_key(self, key: Optional[str]) -> Optional[Level]:
        if key is None:
            return None
        return next((lvl for lvl in self.levels if lvl.key == key), None)

    def check_group_by_key(self, key: Optional[str]) -> Optional[CheckGroup]:
        if key is None:
            return None
        return next((grp for grp in self.check_groups if grp.key == key), None)


# ─── Wire payload ─────────────────────────────────────────────────────────────


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class LevelPayload(_Payload):
    id: Optional[str] = None
    key: Optional[str] = None
    name: Optional[str] = None
    color: Optional[str] = None
    rank: Optional[int] = None


class CheckGroupPayload(_Payload):
    id: Optional[str] = None
    key: Optional[str] = None
    name: Optional[str] = None
    ordering: Optional[int] = None


class CheckPayload(_Payload):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    ordering: Optional[int] = None
    sql: Optional[str] = None
    filter_sql: Optional[str] = None
    filter_message: Optional[str] = None
    output_enabled: Optional[bool] = None
    output_type: Optional[str] = None
    output_aggregation: Optional[str] = None
    output_custom_options: Optional[str] = None
    estimated_dev_days: Optional[int] = None
    external_url: Optional[str] = None
    published: Optional[bool] = None


class LevelCheckPayload(CheckPayload):
    scorecard_level_key: Optional[str] = None
    level: Optional[LevelPayload] = None


class PointsCheckPayload(CheckPayload):
    scorecard_check_group_key: Optional[str] = None
    check_group: Optional[CheckGroupPayload] = None
    points: Optional[int] = None


class _ScorecardPayload(_Payload):
    id: Optional[str] = None
    name: str
    entity_filter_type: EntityFilterType
    evaluation_frequency_hours: int

    description: Optional[str] = None
    published: Optional[bool] = None
    entity_filter_type_identifiers: Optional[list[str]] = None
    entity_filter_sql: Optional[str] = None

    def to_wire(self) -> dict:
        """JSON-ready mapping; unset (``None``) fields are omitted."""
        return self.model_dump(mode="json", exclude_none=True)


class LevelScorecardPayload(_ScorecardPayload):
    type: Literal["LEVEL"] = "LEVEL"
    empty_level_label: str
    empty_level_color: str
    levels: list[LevelPayload]
    checks: list[LevelCheckPayload] = Field(default_factory=list)


class PointsScorecardPayload(_ScorecardPayload):
    type: Literal["POINTS"] = "POINTS"
    check_groups: list[CheckGroupPayload]
    checks: list[PointsCheckPayload] = Field(default_factory=list)


ScorecardPayload = Annotated[
    Union[LevelScorecardPayload, PointsScorecardPayload],
    Field(discriminator="type"),
]


# ─── Remote response ──────────────────────────────────────────────────────────


class _Remote(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RemoteLevel(_Remote):
    id: Optional[str] = None
    name: Optional[str] = None
    color: Optional[str] = None
    rank: Optional[int] = None


class RemoteCheckGroup(_Remote):
    id: Optional[str] = None
    name: Optional[str] = None
    ordering: Optional[int] = None


class RemoteCheck(_Remote):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    ordering: Optional[int] = None
    sql: Optional[str] = None
    filter_sql: Optional[str] = None
    filter_message: Optional[str] = None
    output_enabled: Optional[bool] = None
    output_type: Optional[str] = None
    output_aggregation: Optional[str] = None
    output_custom_options: Optional[str] = None
    estimated_dev_days: Optional[int] = None
    external_url: Optional[str] = None
    published: Optional[bool] = None
    level: Optional[RemoteLevel] = None
    check_group: Optional[RemoteCheckGroup] = None
    points: Optional[int] = None


class RemoteScorecard(_Remote):
    """A scorecard as echoed by the service; ``null`` and missing are equivalent."""

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    entity_filter_type: Optional[str] = None
    evaluation_frequency_hours: Optional[int] = None

    empty_level_label: Optional[str] = None
    empty_level_color: Optional[str] = None
    levels: Optional[list[RemoteLevel]] = None

    check_groups: Optional[list[RemoteCheckGroup]] = None

    description: Optional[str] = None
    published: Optional[bool] = None
    entity_filter_type_identifiers: Optional[list[str]] = None
    entity_filter_sql: Optional[str] = None
    checks: Optional[list[RemoteCheck]] = None


class ScorecardEnvelope(_Remote):
    """Top-level response body, e.g. ``{"ok": true, "scorecard": {...}}``."""

    ok: bool = False
    scorecard: RemoteScorecard = Field(default_factory=RemoteScorecard)
