"""Per-tactic rollup of planned/executed techniques and outcome rates.

Every tactic in the reference taxonomy gets an accumulator before any record
is folded in, so output is complete even for an empty input set.
"""

from dataclasses import dataclass, field
from typing import Optional

from scorecard.analyzers.rate_calculator import OutcomeRates
from scorecard.data.mitre_tactics import tactic_sort_key
from scorecard.models.mitre import ReferenceTaxonomy
from scorecard.models.operation import Technique


@dataclass
class TacticAccumulator:
    """Running state for a single tactic."""

    tactic_id: str
    tactic_name: str
    planned_techniques: set[str] = field(default_factory=set)
    executed_techniques: set[str] = field(default_factory=set)
    executed_attempts: int = 0
    operation_ids: set[str] = field(default_factory=set)
    outcome_rates: OutcomeRates = field(default_factory=OutcomeRates.empty)

    # Execution result breakdown (executed records only)
    successes: int = 0
    failures: int = 0
    unknown: int = 0
    executed_operation_ids: set[str] = field(default_factory=set)

    @property
    def executed_total(self) -> int:
        return self.successes + self.failures + self.unknown


@dataclass
class TacticRollupRow:
    """Resilience row for one tactic."""

    tactic_id: str
    tactic_name: str
    planned_count: int
    executed_count: int
    executed_attempt_count: int
    operation_count: int
    detection_rate: Optional[int]
    detection_count: int
    prevention_rate: Optional[int]
    prevention_count: int
    attribution_rate: Optional[int]
    attribution_count: int

    def to_dict(self) -> dict:
        return {
            "tacticId": self.tactic_id,
            "tacticName": self.tactic_name,
            "plannedCount": self.planned_count,
            "executedCount": self.executed_count,
            "executedAttemptCount": self.executed_attempt_count,
            "operationCount": self.operation_count,
            "detectionRate": self.detection_rate,
            "detectionCount": self.detection_count,
            "preventionRate": self.prevention_rate,
            "preventionCount": self.prevention_count,
            "attributionRate": self.attribution_rate,
            "attributionCount": self.attribution_count,
        }


@dataclass
class TacticExecutionRow:
    """Execution success/failure breakdown for one tactic."""

    tactic_id: str
    tactic_name: str
    successes: int
    failures: int
    unknown: int
    total: int
    operations: list[dict] = field(default_factory=list)  # [{"id", "name"}]

    def to_dict(self) -> dict:
        return {
            "tacticId": self.tactic_id,
            "tacticName": self.tactic_name,
            "successes": self.successes,
            "failures": self.failures,
            "unknown": self.unknown,
            "total": self.total,
            "operations": [dict(op) for op in self.operations],
        }


class TacticRollup:
    """Groups technique records by MITRE tactic."""

    def __init__(self, taxonomy: ReferenceTaxonomy):
        self._accumulators: dict[str, TacticAccumulator] = {
            tactic.tactic_id: TacticAccumulator(
                tactic_id=tactic.tactic_id, tactic_name=tactic.name
            )
            for tactic in taxonomy.tactics
        }

    def has_tactic(self, tactic_id: str) -> bool:
        return tactic_id in self._accumulators

    def add(self, technique: Technique, tactic_id: str) -> None:
        """Fold one technique record into its tactic's accumulator.

        The caller resolves the tactic and must only pass ids that exist in
        the taxonomy; entries are never created lazily.
        """
        entry = self._accumulators[tactic_id]

        if technique.mitre_technique_id:
            entry.planned_techniques.add(technique.mitre_technique_id)
            if technique.is_executed:
                entry.executed_techniques.add(technique.mitre_technique_id)
                entry.executed_attempts += 1
        entry.operation_ids.add(technique.operation_id)

        if technique.is_executed:
            if technique.executed_successfully is True:
                entry.successes += 1
            elif technique.executed_successfully is False:
                entry.failures += 1
            else:
                entry.unknown += 1
            entry.executed_operation_ids.add(technique.operation_id)

        for outcome in technique.outcomes:
            entry.outcome_rates.record(outcome)

    @property
    def executed_tactic_ids(self) -> set[str]:
        """Tactics with at least one executed technique."""
        return {
            tactic_id
            for tactic_id, entry in self._accumulators.items()
            if entry.executed_total > 0
        }

    def _ordered(self) -> list[TacticAccumulator]:
        return sorted(
            self._accumulators.values(), key=lambda e: tactic_sort_key(e.tactic_id)
        )

    def rows(self) -> list[TacticRollupRow]:
        """Rollup rows for every taxonomy tactic in canonical order."""
        rows = []
        for entry in self._ordered():
            rates = entry.outcome_rates
            rows.append(
                TacticRollupRow(
                    tactic_id=entry.tactic_id,
                    tactic_name=entry.tactic_name,
                    planned_count=len(entry.planned_techniques),
                    executed_count=len(entry.executed_techniques),
                    executed_attempt_count=entry.executed_attempts,
                    operation_count=len(entry.operation_ids),
                    detection_rate=rates.detection.rate,
                    detection_count=rates.detection.attempts,
                    prevention_rate=rates.prevention.rate,
                    prevention_count=rates.prevention.attempts,
                    attribution_rate=rates.attribution.rate,
                    attribution_count=rates.attribution.attempts,
                )
            )
        return rows

    def execution_rows(
        self, operation_names: dict[str, str]
    ) -> list[TacticExecutionRow]:
        """Execution breakdown for every taxonomy tactic in canonical order.

        Args:
            operation_names: operation id -> display name; ids without a
                name fall back to the id itself.
        """
        rows = []
        for entry in self._ordered():
            rows.append(
                TacticExecutionRow(
                    tactic_id=entry.tactic_id,
                    tactic_name=entry.tactic_name,
                    successes=entry.successes,
                    failures=entry.failures,
                    unknown=entry.unknown,
                    total=entry.executed_total,
                    operations=[
                        {"id": op_id, "name": operation_names.get(op_id) or op_id}
                        for op_id in sorted(entry.executed_operation_ids)
                    ],
                )
            )
        return rows
