"""Operation, technique and outcome records.

These are read-only views over rows already fetched (and already filtered
and access-controlled) by the storage layer. Nothing in the engine mutates
them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import enum

from scorecard.models.mitre import MitreSubTechnique, MitreTechnique


class OperationStatus(str, enum.Enum):
    """Operation lifecycle status."""

    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OutcomeType(str, enum.Enum):
    """Kind of defensive result recorded against a technique."""

    DETECTION = "DETECTION"
    PREVENTION = "PREVENTION"
    ATTRIBUTION = "ATTRIBUTION"


class OutcomeStatus(str, enum.Enum):
    """Outcome status vocabulary shared by all outcome types."""

    DETECTED = "DETECTED"
    MISSED = "MISSED"
    PREVENTED = "PREVENTED"
    NOT_PREVENTED = "NOT_PREVENTED"
    ATTRIBUTED = "ATTRIBUTED"
    NOT_ATTRIBUTED = "NOT_ATTRIBUTED"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class ToolType(str, enum.Enum):
    """Tool category."""

    OFFENSIVE = "OFFENSIVE"
    DEFENSIVE = "DEFENSIVE"


# Status that counts as a success for each outcome type
SUCCESS_STATUS: dict[OutcomeType, OutcomeStatus] = {
    OutcomeType.DETECTION: OutcomeStatus.DETECTED,
    OutcomeType.PREVENTION: OutcomeStatus.PREVENTED,
    OutcomeType.ATTRIBUTION: OutcomeStatus.ATTRIBUTED,
}


@dataclass(frozen=True)
class Target:
    """An asset that techniques can be aimed at."""

    id: str
    name: str
    is_crown_jewel: bool = False


@dataclass(frozen=True)
class TargetAssignment:
    """Links a technique to a target."""

    target_id: str
    was_compromised: bool = False
    is_crown_jewel: bool = False


@dataclass(frozen=True)
class Outcome:
    """Defensive result attached to a technique."""

    type: OutcomeType
    status: OutcomeStatus
    detection_time: Optional[datetime] = None
    defensive_tool_ids: tuple[str, ...] = ()
    log_source_ids: tuple[str, ...] = ()

    @property
    def is_not_applicable(self) -> bool:
        return self.status == OutcomeStatus.NOT_APPLICABLE

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS[self.type]


@dataclass(frozen=True)
class Technique:
    """One recorded execution (or planned-only entry) within an operation."""

    id: str
    operation_id: str
    mitre_technique_id: Optional[str] = None
    tactic_id: Optional[str] = None  # resolved join, may be absent
    mitre_sub_technique_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    executed_successfully: Optional[bool] = None
    targets: tuple[TargetAssignment, ...] = ()
    outcomes: tuple[Outcome, ...] = ()
    offensive_tool_ids: tuple[str, ...] = ()

    @property
    def is_executed(self) -> bool:
        """Canonical executed predicate: a start time is recorded."""
        return self.start_time is not None

    @property
    def crown_jewel_assignments(self) -> tuple[TargetAssignment, ...]:
        return tuple(a for a in self.targets if a.is_crown_jewel)


@dataclass(frozen=True)
class Operation:
    """A red/blue/purple-team exercise."""

    id: str
    name: str
    status: OperationStatus = OperationStatus.PLANNING
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    threat_actor_id: Optional[str] = None
    tag_ids: tuple[str, ...] = ()
    target_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ThreatActor:
    """Adversary profile with its known MITRE technique ids."""

    id: str
    name: str
    known_technique_ids: frozenset[str] = frozenset()
    top_threat: bool = False


@dataclass(frozen=True)
class Tool:
    """Offensive or defensive tool catalogue entry."""

    id: str
    name: str
    type: ToolType
    category: Optional[str] = None


@dataclass(frozen=True)
class LogSource:
    """Log source catalogue entry."""

    id: str
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class MetricsSnapshot:
    """Fixed set of rows handed to the engine for one call."""

    operations: tuple[Operation, ...] = ()
    techniques: tuple[Technique, ...] = ()
    targets: tuple[Target, ...] = ()
    threat_actors: tuple[ThreatActor, ...] = ()
    tools: tuple[Tool, ...] = ()
    log_sources: tuple[LogSource, ...] = ()
    # Technique catalogue rows supplied with the request, if any
    mitre_techniques: tuple[MitreTechnique, ...] = ()
    mitre_sub_techniques: tuple[MitreSubTechnique, ...] = ()

    def operations_by_id(self) -> dict[str, Operation]:
        return {op.id: op for op in self.operations}
