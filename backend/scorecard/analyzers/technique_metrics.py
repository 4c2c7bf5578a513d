"""Per-technique and per-sub-technique execution metrics.

Executed means a start time is recorded. Outcome rates only look at
executed records; a rate with no attempts reads 0 with its ``available``
flag false so heatmaps can grey the cell out.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog

from scorecard.analyzers.rate_calculator import OutcomeRates, round_half_up
from scorecard.data.mitre_tactics import enterprise_taxonomy, tactic_sort_key
from scorecard.models.mitre import ReferenceTaxonomy
from scorecard.models.operation import Technique

logger = structlog.get_logger()


def _rate_or_zero(rates: OutcomeRates, kind: str) -> tuple[int, bool]:
    counter = getattr(rates, kind)
    return (counter.rate or 0, counter.available)


@dataclass
class TechniqueMetric:
    """Execution metrics for one MITRE technique."""

    technique_id: str
    technique_name: str
    tactic_id: str
    tactic_name: str
    execution_count: int = 0  # every record referencing the technique
    executed_count: int = 0  # records with a start time
    outcome_rates: OutcomeRates = field(default_factory=OutcomeRates.empty)

    @property
    def executed(self) -> bool:
        return self.executed_count > 0

    @property
    def avg_effectiveness(self) -> int:
        """Mean of the non-zero available rates, 0 when there are none."""
        rates = [
            _rate_or_zero(self.outcome_rates, kind)[0]
            for kind in ("detection", "prevention", "attribution")
        ]
        valid = [r for r in rates if r > 0]
        if not valid:
            return 0
        return round_half_up(sum(valid) / len(valid))

    def to_dict(self) -> dict:
        detection_rate, detection_available = _rate_or_zero(
            self.outcome_rates, "detection"
        )
        prevention_rate, prevention_available = _rate_or_zero(
            self.outcome_rates, "prevention"
        )
        attribution_rate, attribution_available = _rate_or_zero(
            self.outcome_rates, "attribution"
        )
        return {
            "techniqueId": self.technique_id,
            "techniqueName": self.technique_name,
            "tacticId": self.tactic_id,
            "tacticName": self.tactic_name,
            "executed": self.executed,
            "executionCount": self.execution_count,
            "executedCount": self.executed_count,
            "detectionRate": detection_rate,
            "detectionAvailable": detection_available,
            "preventionRate": prevention_rate,
            "preventionAvailable": prevention_available,
            "attributionRate": attribution_rate,
            "attributionAvailable": attribution_available,
            "avgEffectiveness": self.avg_effectiveness,
        }


@dataclass
class SubTechniqueMetric:
    """Execution metrics for one MITRE sub-technique."""

    sub_technique_id: str
    sub_technique_name: str
    technique_id: str
    technique_name: str
    tactic_id: str
    tactic_name: str
    execution_count: int = 0
    outcome_rates: OutcomeRates = field(default_factory=OutcomeRates.empty)

    def to_dict(self) -> dict:
        detection_rate, detection_available = _rate_or_zero(
            self.outcome_rates, "detection"
        )
        prevention_rate, prevention_available = _rate_or_zero(
            self.outcome_rates, "prevention"
        )
        attribution_rate, attribution_available = _rate_or_zero(
            self.outcome_rates, "attribution"
        )
        return {
            "subTechniqueId": self.sub_technique_id,
            "subTechniqueName": self.sub_technique_name,
            "techniqueId": self.technique_id,
            "techniqueName": self.technique_name,
            "tacticId": self.tactic_id,
            "tacticName": self.tactic_name,
            "executionCount": self.execution_count,
            "detectionRate": detection_rate,
            "detectionAvailable": detection_available,
            "preventionRate": prevention_rate,
            "preventionAvailable": prevention_available,
            "attributionRate": attribution_rate,
            "attributionAvailable": attribution_available,
        }


class TechniqueMetricsAnalyzer:
    """Builds technique and sub-technique heatmap metrics."""

    def __init__(self, taxonomy: Optional[ReferenceTaxonomy] = None):
        self.taxonomy = taxonomy or enterprise_taxonomy()
        self.logger = logger.bind(component="TechniqueMetricsAnalyzer")

    def _tactic_name(self, tactic_id: str) -> str:
        tactic = self.taxonomy.get_tactic(tactic_id)
        return tactic.name if tactic else tactic_id

    def technique_metrics(
        self, techniques: Iterable[Technique]
    ) -> list[TechniqueMetric]:
        """One row per catalogue technique plus any uncatalogued id in the data."""
        metrics: dict[str, TechniqueMetric] = {}
        for mitre in self.taxonomy.techniques:
            metrics[mitre.technique_id] = TechniqueMetric(
                technique_id=mitre.technique_id,
                technique_name=mitre.name,
                tactic_id=mitre.tactic_id,
                tactic_name=self._tactic_name(mitre.tactic_id),
            )

        for technique in techniques:
            mitre_id = technique.mitre_technique_id
            if not mitre_id:
                continue
            metric = metrics.get(mitre_id)
            if metric is None:
                tactic_id = technique.tactic_id or ""
                metric = TechniqueMetric(
                    technique_id=mitre_id,
                    technique_name=mitre_id,
                    tactic_id=tactic_id,
                    tactic_name=self._tactic_name(tactic_id) if tactic_id else "",
                )
                metrics[mitre_id] = metric

            metric.execution_count += 1
            if not technique.is_executed:
                continue
            metric.executed_count += 1
            for outcome in technique.outcomes:
                metric.outcome_rates.record(outcome)

        rows = sorted(
            metrics.values(),
            key=lambda m: (tactic_sort_key(m.tactic_id), m.technique_id),
        )
        self.logger.debug(
            "technique_metrics_calculated",
            techniques=len(rows),
            executed=sum(1 for m in rows if m.executed),
        )
        return rows

    def sub_technique_metrics(
        self, techniques: Iterable[Technique]
    ) -> list[SubTechniqueMetric]:
        """One row per sub-technique referenced by any record."""
        metrics: dict[str, SubTechniqueMetric] = {}
        for technique in techniques:
            sub_id = technique.mitre_sub_technique_id
            if not sub_id:
                continue
            metric = metrics.get(sub_id)
            if metric is None:
                metric = self._new_sub_technique_metric(sub_id, technique)
                metrics[sub_id] = metric
            metric.execution_count += 1
            for outcome in technique.outcomes:
                metric.outcome_rates.record(outcome)

        return sorted(
            metrics.values(),
            key=lambda m: (tactic_sort_key(m.tactic_id), m.sub_technique_id),
        )

    def _new_sub_technique_metric(
        self, sub_id: str, technique: Technique
    ) -> SubTechniqueMetric:
        catalogued = self.taxonomy.get_sub_technique(sub_id)
        parent_id = (
            catalogued.technique_id
            if catalogued
            else technique.mitre_technique_id or sub_id.split(".")[0]
        )
        parent = self.taxonomy.get_technique(parent_id)
        tactic_id = parent.tactic_id if parent else technique.tactic_id or ""
        return SubTechniqueMetric(
            sub_technique_id=sub_id,
            sub_technique_name=catalogued.name if catalogued else sub_id,
            technique_id=parent_id,
            technique_name=parent.name if parent else parent_id,
            tactic_id=tactic_id,
            tactic_name=self._tactic_name(tactic_id) if tactic_id else "",
        )

    def sub_technique_usage(self, techniques: Iterable[Technique]) -> list[dict]:
        """Executed record count per sub-technique id."""
        counts: dict[str, int] = {}
        for technique in techniques:
            sub_id = technique.mitre_sub_technique_id
            if sub_id and technique.is_executed:
                counts[sub_id] = counts.get(sub_id, 0) + 1
        return [
            {"subTechniqueId": sub_id, "count": count}
            for sub_id, count in sorted(counts.items())
        ]
