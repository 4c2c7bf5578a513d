"""Scorecard metrics engine."""

from scorecard.analyzers.activity_trends import ActivityTrends
from scorecard.analyzers.crown_jewel_assessor import CrownJewelAssessor
from scorecard.analyzers.crown_jewel_trends import CrownJewelTrend
from scorecard.analyzers.dashboard_summary import summarize_dashboard
from scorecard.analyzers.errors import (
    InvalidRangeError,
    MetricsError,
    ReferenceDataWarning,
)
from scorecard.analyzers.metrics_aggregator import (
    MetricsAggregator,
    MetricsReport,
    aggregate_metrics,
)
from scorecard.analyzers.operation_summary import summarize_operations
from scorecard.analyzers.rate_calculator import OutcomeRates, rate
from scorecard.analyzers.tactic_rollup import TacticRollup
from scorecard.analyzers.technique_metrics import TechniqueMetricsAnalyzer
from scorecard.analyzers.threat_actor_resilience import (
    ActorScope,
    ThreatActorResilienceCalculator,
)
from scorecard.analyzers.timing_bucketizer import TimingBucketizer
from scorecard.analyzers.tool_effectiveness import DefensiveToolEffectiveness

__all__ = [
    "ActivityTrends",
    "ActorScope",
    "CrownJewelAssessor",
    "CrownJewelTrend",
    "DefensiveToolEffectiveness",
    "InvalidRangeError",
    "MetricsAggregator",
    "MetricsError",
    "MetricsReport",
    "OutcomeRates",
    "ReferenceDataWarning",
    "TacticRollup",
    "TechniqueMetricsAnalyzer",
    "ThreatActorResilienceCalculator",
    "TimingBucketizer",
    "aggregate_metrics",
    "rate",
    "summarize_dashboard",
    "summarize_operations",
]
