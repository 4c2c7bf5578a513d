"""Scorecard metrics aggregator.

Drives a single pass over the filtered technique records, delegating each
record to the sub-calculators:

- TacticRollup: per-tactic planned/executed sets and outcome rates
- CrownJewelAssessor: crown jewel targeting and compromise counts
- ThreatActorResilienceCalculator: one per threat actor in the snapshot
- TimingBucketizer: detection/attribution latency distributions

Every call allocates fresh accumulators; nothing is cached between calls and
the snapshot and taxonomy are only ever read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import structlog

from scorecard.analyzers.crown_jewel_assessor import (
    CrownJewelAssessor,
    CrownJewelSummary,
    CrownJewelTargetStats,
)
from scorecard.analyzers.errors import ReferenceDataWarning, validate_range
from scorecard.analyzers.rate_calculator import OutcomeRates
from scorecard.analyzers.tactic_rollup import (
    TacticExecutionRow,
    TacticRollup,
    TacticRollupRow,
)
from scorecard.analyzers.threat_actor_resilience import (
    ActorScope,
    ThreatActorResilience,
    ThreatActorResilienceCalculator,
)
from scorecard.analyzers.timing_bucketizer import TimingBucketizer, elapsed_minutes
from scorecard.data.mitre_tactics import enterprise_taxonomy
from scorecard.models.mitre import ReferenceTaxonomy
from scorecard.models.operation import MetricsSnapshot, OutcomeType, Technique

logger = structlog.get_logger()


@dataclass
class ExecutionCounts:
    """Executed technique tallies by execution result."""

    total: int = 0
    successes: int = 0
    failures: int = 0
    unknown: int = 0

    def record(self, executed_successfully: Optional[bool]) -> None:
        self.total += 1
        if executed_successfully is True:
            self.successes += 1
        elif executed_successfully is False:
            self.failures += 1
        else:
            self.unknown += 1


@dataclass
class MetricsReport:
    """Complete scorecard for one window."""

    operations: int
    planned_techniques: int
    executed: ExecutionCounts
    by_tactic: list[TacticExecutionRow]
    tactics: int
    crown_jewels: CrownJewelSummary
    threat_actors: int
    offensive_tools: int
    defensive_tools: int
    outcomes: OutcomeRates
    timing: TimingBucketizer
    tactic_resilience: list[TacticRollupRow] = field(default_factory=list)
    crown_jewel_targets: list[CrownJewelTargetStats] = field(default_factory=list)
    threat_actor_resilience: list[ThreatActorResilience] = field(default_factory=list)
    warnings: list[ReferenceDataWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to the camelCase dictionary returned by the API."""
        return {
            "operations": self.operations,
            "techniques": {
                "planned": self.planned_techniques,
                "executed": {
                    "total": self.executed.total,
                    "successes": self.executed.successes,
                    "failures": self.executed.failures,
                    "unknown": self.executed.unknown,
                    "byTactic": [row.to_dict() for row in self.by_tactic],
                },
            },
            "tactics": self.tactics,
            "crownJewelCompromises": self.crown_jewels.to_dict(),
            "threatActors": self.threat_actors,
            "offensiveTools": self.offensive_tools,
            "defensiveTools": self.defensive_tools,
            "outcomes": self.outcomes.to_dict(),
            "timing": self.timing.to_dict(),
            "tacticResilience": [row.to_dict() for row in self.tactic_resilience],
            "crownJewelTargets": [t.to_dict() for t in self.crown_jewel_targets],
            "threatActorResilience": [
                a.to_dict() for a in self.threat_actor_resilience
            ],
            "warnings": [w.to_dict() for w in self.warnings],
        }


class MetricsAggregator:
    """Builds a MetricsReport from a pre-filtered snapshot."""

    def __init__(self, taxonomy: Optional[ReferenceTaxonomy] = None):
        self.taxonomy = taxonomy or enterprise_taxonomy()
        self.logger = logger.bind(component="MetricsAggregator")

    def aggregate(
        self,
        snapshot: MetricsSnapshot,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        actor_scope: ActorScope = ActorScope.ALL,
    ) -> MetricsReport:
        """Aggregate the snapshot into a report.

        Args:
            snapshot: Rows already filtered to the window, tags and caller's
                visibility by the storage layer
            start: Window start, validated against end when both are given
            end: Window end
            actor_scope: Operation scope for threat actor resilience

        Returns:
            MetricsReport with every tactic present in tactic-level output

        Raises:
            InvalidRangeError: If end is before start
        """
        if start is not None and end is not None:
            validate_range(start, end)

        self.logger.info(
            "aggregating_metrics",
            operations=len(snapshot.operations),
            techniques=len(snapshot.techniques),
            actor_scope=ActorScope(actor_scope).value,
        )

        operation_lookup = snapshot.operations_by_id()
        rollup = TacticRollup(self.taxonomy)
        crown_jewels = CrownJewelAssessor(snapshot.targets, snapshot.operations)
        actor_calculators = [
            ThreatActorResilienceCalculator(actor, actor_scope)
            for actor in sorted(snapshot.threat_actors, key=lambda a: a.id)
        ]
        timing = TimingBucketizer()
        outcome_rates = OutcomeRates.empty()
        executed = ExecutionCounts()

        operation_ids: set[str] = set(operation_lookup)
        threat_actor_ids: set[str] = set()
        offensive_tool_ids: set[str] = set()
        defensive_tool_ids: set[str] = set()
        warnings: dict[tuple[str, str], ReferenceDataWarning] = {}

        for technique in snapshot.techniques:
            operation = operation_lookup.get(technique.operation_id)
            operation_ids.add(technique.operation_id)

            tactic_id = self._resolve_tactic(technique, rollup, warnings)
            if tactic_id is not None:
                rollup.add(technique, tactic_id)

            crown_jewels.add(technique)
            for calculator in actor_calculators:
                calculator.add(technique, operation)

            if technique.is_executed:
                executed.record(technique.executed_successfully)
                if operation is not None and operation.threat_actor_id:
                    threat_actor_ids.add(operation.threat_actor_id)
                offensive_tool_ids.update(technique.offensive_tool_ids)

            for outcome in technique.outcomes:
                if technique.is_executed:
                    defensive_tool_ids.update(outcome.defensive_tool_ids)
                if not outcome_rates.record(outcome) or not outcome.is_success:
                    continue
                minutes = elapsed_minutes(technique.start_time, outcome.detection_time)
                if minutes is None:
                    continue
                if outcome.type == OutcomeType.DETECTION:
                    timing.add_detection(minutes)
                elif outcome.type == OutcomeType.ATTRIBUTION:
                    timing.add_attribution(minutes)

        operation_names = {op.id: op.name for op in snapshot.operations}
        report = MetricsReport(
            operations=len(operation_ids),
            planned_techniques=len(snapshot.techniques),
            executed=executed,
            by_tactic=rollup.execution_rows(operation_names),
            tactics=len(rollup.executed_tactic_ids),
            crown_jewels=crown_jewels.summary(),
            threat_actors=len(threat_actor_ids),
            offensive_tools=len(offensive_tool_ids),
            defensive_tools=len(defensive_tool_ids),
            outcomes=outcome_rates,
            timing=timing,
            tactic_resilience=rollup.rows(),
            crown_jewel_targets=crown_jewels.target_stats(),
            threat_actor_resilience=[c.result() for c in actor_calculators],
            warnings=list(warnings.values()),
        )

        self.logger.info(
            "metrics_aggregated",
            operations=report.operations,
            executed=executed.total,
            tactics=report.tactics,
            detection_rate=outcome_rates.detection.rate,
            warnings=len(report.warnings),
        )
        return report

    def _resolve_tactic(
        self,
        technique: Technique,
        rollup: TacticRollup,
        warnings: dict[tuple[str, str], ReferenceDataWarning],
    ) -> Optional[str]:
        """Find the taxonomy tactic for a record, or None to skip its rollup.

        Unknown technique/tactic ids are reported as soft warnings; the record
        still counts toward technique-level totals. A technique id that maps
        to no tactic, through the record or the catalogue, is unknown.
        """
        mitre_id = technique.mitre_technique_id
        tactic_id = technique.tactic_id

        if mitre_id and self.taxonomy.has_technique_catalogue:
            catalogued = self.taxonomy.get_technique(mitre_id)
            if catalogued is None:
                self._warn(warnings, "technique", mitre_id, technique.id)
                return None
            tactic_id = tactic_id or catalogued.tactic_id

        if tactic_id is None:
            if mitre_id:
                self._warn(warnings, "technique", mitre_id, technique.id)
            return None

        if not rollup.has_tactic(tactic_id):
            self._warn(warnings, "tactic", tactic_id, technique.id)
            return None
        return tactic_id

    def _warn(
        self,
        warnings: dict[tuple[str, str], ReferenceDataWarning],
        kind: str,
        reference_id: str,
        technique_record_id: str,
    ) -> None:
        key = (kind, reference_id)
        if key in warnings:
            return
        warnings[key] = ReferenceDataWarning(
            kind=kind,
            reference_id=reference_id,
            technique_record_id=technique_record_id,
        )
        self.logger.warning(
            "reference_data_missing",
            kind=kind,
            reference_id=reference_id,
            technique_record_id=technique_record_id,
        )


def aggregate_metrics(
    snapshot: MetricsSnapshot,
    taxonomy: Optional[ReferenceTaxonomy] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    actor_scope: ActorScope = ActorScope.ALL,
) -> MetricsReport:
    """Run a fresh MetricsAggregator over the snapshot."""
    return MetricsAggregator(taxonomy).aggregate(
        snapshot, start=start, end=end, actor_scope=actor_scope
    )
