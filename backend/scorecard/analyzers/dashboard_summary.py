"""Dashboard headline numbers: operations, outcome tallies and timing."""

from dataclasses import dataclass, field
from typing import Iterable

from scorecard.analyzers.operation_summary import (
    OperationSummary,
    summarize_operations,
)
from scorecard.analyzers.rate_calculator import OutcomeRates
from scorecard.analyzers.timing_bucketizer import TimingBucketizer, elapsed_minutes
from scorecard.models.operation import Operation, OutcomeType, Technique


@dataclass
class OutcomeTotals:
    """Outcome counts across every technique on the dashboard.

    total includes N/A outcomes; the per-type tallies and rates do not.
    """

    total: int = 0
    rates: OutcomeRates = field(default_factory=OutcomeRates.empty)

    def to_dict(self) -> dict:
        detection = self.rates.detection
        prevention = self.rates.prevention
        attribution = self.rates.attribution
        return {
            "total": self.total,
            "detected": detection.successes,
            "prevented": prevention.successes,
            "attributed": attribution.successes,
            "notDetected": detection.attempts - detection.successes,
            "notPrevented": prevention.attempts - prevention.successes,
            "notAttributed": attribution.attempts - attribution.successes,
            "detectionRate": detection.rate,
            "preventionRate": prevention.rate,
            "attributionRate": attribution.rate,
            "detectionAttempts": detection.attempts,
            "preventionAttempts": prevention.attempts,
            "attributionAttempts": attribution.attempts,
        }


@dataclass
class DashboardSummary:
    operations: OperationSummary
    outcomes: OutcomeTotals
    timing: TimingBucketizer

    def to_dict(self) -> dict:
        return {
            "operations": self.operations.to_dict(),
            "outcomes": self.outcomes.to_dict(),
            "timing": {
                "avgTimeToDetect": self.timing.detection.mean,
                "avgTimeToAttribute": self.timing.attribution.mean,
            },
        }


def summarize_dashboard(
    operations: Iterable[Operation],
    techniques: Iterable[Technique],
) -> DashboardSummary:
    """Summarize the operations in view and every technique they own.

    Timing samples come from successful detection and attribution outcomes of
    started techniques; negative elapsed times are dropped.
    """
    techniques = list(techniques)
    outcomes = OutcomeTotals()
    timing = TimingBucketizer()

    for technique in techniques:
        for outcome in technique.outcomes:
            outcomes.total += 1
            if not outcomes.rates.record(outcome) or not outcome.is_success:
                continue

            minutes = elapsed_minutes(technique.start_time, outcome.detection_time)
            if minutes is None:
                continue
            if outcome.type == OutcomeType.DETECTION:
                timing.add_detection(minutes)
            elif outcome.type == OutcomeType.ATTRIBUTION:
                timing.add_attribution(minutes)

    return DashboardSummary(
        operations=summarize_operations(operations, techniques),
        outcomes=outcomes,
        timing=timing,
    )
