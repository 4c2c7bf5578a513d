"""Domain records consumed by the metrics engine."""

from scorecard.models.mitre import (
    MitreSubTechnique,
    MitreTechnique,
    ReferenceTaxonomy,
    Tactic,
)
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

__all__ = [
    # MITRE
    "MitreSubTechnique",
    "MitreTechnique",
    "ReferenceTaxonomy",
    "Tactic",
    # Operations
    "SUCCESS_STATUS",
    "LogSource",
    "MetricsSnapshot",
    "Operation",
    "OperationStatus",
    "Outcome",
    "OutcomeStatus",
    "OutcomeType",
    "Target",
    "TargetAssignment",
    "Technique",
    "ThreatActor",
    "Tool",
    "ToolType",
]
