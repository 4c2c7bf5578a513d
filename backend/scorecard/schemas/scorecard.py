"""Scorecard request schemas.

Request bodies use camelCase keys on the wire; snake_case is accepted too.
Every body converts to the read-only domain records with ``to_domain()``.
Naive timestamps are taken to be UTC.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from scorecard.analyzers.crown_jewel_trends import TrendGrouping, TrendPeriod
from scorecard.analyzers.threat_actor_resilience import ActorScope
from scorecard.models.mitre import MitreSubTechnique, MitreTechnique
from scorecard.models.operation import (
    SUCCESS_STATUS,
    LogSource,
    MetricsSnapshot,
    Operation,
    OperationStatus,
    Outcome,
    OutcomeStatus,
    OutcomeType,
    Target,
    TargetAssignment,
    Technique,
    ThreatActor,
    Tool,
    ToolType,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps so all comparisons are tz-aware."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TargetAssignmentIn(CamelModel):
    target_id: str
    was_compromised: bool = False
    is_crown_jewel: bool = False

    def to_domain(self) -> TargetAssignment:
        return TargetAssignment(
            target_id=self.target_id,
            was_compromised=self.was_compromised,
            is_crown_jewel=self.is_crown_jewel,
        )


class OutcomeIn(CamelModel):
    type: OutcomeType
    status: OutcomeStatus
    detection_time: Optional[datetime] = None
    defensive_tool_ids: list[str] = Field(default_factory=list)
    log_source_ids: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_status_for_type(self) -> "OutcomeIn":
        """Each outcome type has its own status pair plus NOT_APPLICABLE."""
        allowed = {
            OutcomeType.DETECTION: (OutcomeStatus.DETECTED, OutcomeStatus.MISSED),
            OutcomeType.PREVENTION: (
                OutcomeStatus.PREVENTED,
                OutcomeStatus.NOT_PREVENTED,
            ),
            OutcomeType.ATTRIBUTION: (
                OutcomeStatus.ATTRIBUTED,
                OutcomeStatus.NOT_ATTRIBUTED,
            ),
        }[self.type]
        if self.status not in allowed and self.status != OutcomeStatus.NOT_APPLICABLE:
            raise ValueError(
                f"Status {self.status.value} is not valid for {self.type.value} "
                f"outcomes (expected {SUCCESS_STATUS[self.type].value}, "
                f"{allowed[1].value} or NOT_APPLICABLE)"
            )
        return self

    def to_domain(self) -> Outcome:
        return Outcome(
            type=self.type,
            status=self.status,
            detection_time=as_utc(self.detection_time),
            defensive_tool_ids=tuple(self.defensive_tool_ids),
            log_source_ids=tuple(self.log_source_ids),
        )


class TechniqueIn(CamelModel):
    id: str
    operation_id: str
    mitre_technique_id: Optional[str] = None
    tactic_id: Optional[str] = None
    mitre_sub_technique_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    executed_successfully: Optional[bool] = None
    targets: list[TargetAssignmentIn] = Field(default_factory=list)
    outcomes: list[OutcomeIn] = Field(default_factory=list)
    offensive_tool_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> Technique:
        return Technique(
            id=self.id,
            operation_id=self.operation_id,
            mitre_technique_id=self.mitre_technique_id,
            tactic_id=self.tactic_id,
            mitre_sub_technique_id=self.mitre_sub_technique_id,
            start_time=as_utc(self.start_time),
            end_time=as_utc(self.end_time),
            created_at=as_utc(self.created_at),
            executed_successfully=self.executed_successfully,
            targets=tuple(t.to_domain() for t in self.targets),
            outcomes=tuple(o.to_domain() for o in self.outcomes),
            offensive_tool_ids=tuple(self.offensive_tool_ids),
        )


class OperationIn(CamelModel):
    id: str
    name: str
    status: OperationStatus = OperationStatus.PLANNING
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    threat_actor_id: Optional[str] = None
    tag_ids: list[str] = Field(default_factory=list)
    target_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> Operation:
        return Operation(
            id=self.id,
            name=self.name,
            status=self.status,
            start_date=as_utc(self.start_date),
            end_date=as_utc(self.end_date),
            created_at=as_utc(self.created_at),
            threat_actor_id=self.threat_actor_id,
            tag_ids=tuple(self.tag_ids),
            target_ids=tuple(self.target_ids),
        )


class TargetIn(CamelModel):
    id: str
    name: str
    is_crown_jewel: bool = False

    def to_domain(self) -> Target:
        return Target(id=self.id, name=self.name, is_crown_jewel=self.is_crown_jewel)


class ThreatActorIn(CamelModel):
    id: str
    name: str
    known_technique_ids: list[str] = Field(default_factory=list)
    top_threat: bool = False

    def to_domain(self) -> ThreatActor:
        return ThreatActor(
            id=self.id,
            name=self.name,
            known_technique_ids=frozenset(self.known_technique_ids),
            top_threat=self.top_threat,
        )


class ToolIn(CamelModel):
    id: str
    name: str
    type: ToolType
    category: Optional[str] = None

    def to_domain(self) -> Tool:
        return Tool(id=self.id, name=self.name, type=self.type, category=self.category)


class LogSourceIn(CamelModel):
    id: str
    name: str
    description: Optional[str] = None

    def to_domain(self) -> LogSource:
        return LogSource(id=self.id, name=self.name, description=self.description)


class MitreTechniqueIn(CamelModel):
    technique_id: str
    name: str
    tactic_id: str

    def to_domain(self) -> MitreTechnique:
        return MitreTechnique(
            technique_id=self.technique_id, name=self.name, tactic_id=self.tactic_id
        )


class MitreSubTechniqueIn(CamelModel):
    sub_technique_id: str
    name: str
    technique_id: str

    def to_domain(self) -> MitreSubTechnique:
        return MitreSubTechnique(
            sub_technique_id=self.sub_technique_id,
            name=self.name,
            technique_id=self.technique_id,
        )


class SnapshotIn(CamelModel):
    """Rows the caller already fetched and access-filtered."""

    operations: list[OperationIn] = Field(default_factory=list)
    techniques: list[TechniqueIn] = Field(default_factory=list)
    targets: list[TargetIn] = Field(default_factory=list)
    threat_actors: list[ThreatActorIn] = Field(default_factory=list)
    tools: list[ToolIn] = Field(default_factory=list)
    log_sources: list[LogSourceIn] = Field(default_factory=list)
    # Optional technique catalogue; unknown technique ids are then reported
    mitre_techniques: list[MitreTechniqueIn] = Field(default_factory=list)
    mitre_sub_techniques: list[MitreSubTechniqueIn] = Field(default_factory=list)

    def to_domain(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            operations=tuple(o.to_domain() for o in self.operations),
            techniques=tuple(t.to_domain() for t in self.techniques),
            targets=tuple(t.to_domain() for t in self.targets),
            threat_actors=tuple(a.to_domain() for a in self.threat_actors),
            tools=tuple(t.to_domain() for t in self.tools),
            log_sources=tuple(ls.to_domain() for ls in self.log_sources),
            mitre_techniques=tuple(t.to_domain() for t in self.mitre_techniques),
            mitre_sub_techniques=tuple(
                s.to_domain() for s in self.mitre_sub_techniques
            ),
        )


class MetricsQuery(CamelModel):
    """Reporting window and optional tag filter."""

    start: datetime
    end: datetime
    tag_ids: Optional[list[str]] = None

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return as_utc(v)


class MetricsRequest(CamelModel):
    query: MetricsQuery
    snapshot: SnapshotIn
    actor_scope: Optional[ActorScope] = None
    actor_id: Optional[str] = None


class ThreatActorsRequest(CamelModel):
    query: Optional[MetricsQuery] = None
    snapshot: SnapshotIn
    actor_scope: Optional[ActorScope] = None


class AnalyticsRequest(CamelModel):
    """Body shared by the analytics endpoints. Without a query every row counts."""

    query: Optional[MetricsQuery] = None
    snapshot: SnapshotIn


class CrownJewelTrendRequest(CamelModel):
    snapshot: SnapshotIn
    period: Optional[TrendPeriod] = None
    group_by: Optional[TrendGrouping] = None
    tag_ids: Optional[list[str]] = None
    now: Optional[datetime] = None

    @field_validator("now")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class ActivityTrendRequest(CamelModel):
    """Body for the operation, effectiveness and timeline trends.

    group_by is ignored by the timeline; top_n only applies to it.
    """

    snapshot: SnapshotIn
    period: TrendPeriod
    group_by: Optional[TrendGrouping] = None
    tag_ids: Optional[list[str]] = None
    now: Optional[datetime] = None
    top_n: int = Field(default=10, ge=1, le=100)

    @field_validator("now")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)
