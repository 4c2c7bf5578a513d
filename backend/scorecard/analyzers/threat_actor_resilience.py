"""Threat actor TTP coverage and resilience.

Coverage compares an actor's known technique set against techniques that
were planned/executed in scope. Resilience restricts outcome rates to the
actor's techniques; an actor with no known techniques is measured against
every technique in scope instead.
"""

from dataclasses import dataclass
from typing import Optional
import enum

from scorecard.analyzers.rate_calculator import OutcomeRates, rate
from scorecard.models.operation import Operation, Technique, ThreatActor


class ActorScope(str, enum.Enum):
    """Which operations count toward an actor's numbers."""

    ALL = "all"  # every operation in range
    ASSIGNED = "assigned"  # only operations emulating this actor


@dataclass
class ThreatActorResilience:
    """Coverage and outcome rates for one threat actor."""

    id: str
    name: str
    top_threat: bool
    scope: ActorScope
    known_count: int
    planned_count: int
    executed_count: int
    coverage_planned_percent: Optional[int]
    coverage_executed_percent: Optional[int]
    operation_count: int
    outcome_rates: OutcomeRates

    def to_dict(self) -> dict:
        rates = self.outcome_rates
        return {
            "id": self.id,
            "name": self.name,
            "topThreat": self.top_threat,
            "scope": self.scope.value,
            "knownCount": self.known_count,
            "plannedCount": self.planned_count,
            "executedCount": self.executed_count,
            "coveragePlannedPercent": self.coverage_planned_percent,
            "coverageExecutedPercent": self.coverage_executed_percent,
            "operationCount": self.operation_count,
            "detectionRate": rates.detection.rate,
            "detectionCount": rates.detection.attempts,
            "preventionRate": rates.prevention.rate,
            "preventionCount": rates.prevention.attempts,
            "attributionRate": rates.attribution.rate,
            "attributionCount": rates.attribution.attempts,
        }


class ThreatActorResilienceCalculator:
    """Accumulates one actor's coverage over a stream of technique records."""

    def __init__(self, actor: ThreatActor, scope: ActorScope = ActorScope.ALL):
        self.actor = actor
        self.scope = ActorScope(scope)
        self._known = frozenset(actor.known_technique_ids)
        self._planned: set[str] = set()
        self._executed: set[str] = set()
        self._operations: set[str] = set()
        self._rates = OutcomeRates.empty()

    def in_scope(self, operation: Optional[Operation]) -> bool:
        if self.scope == ActorScope.ALL:
            return True
        return operation is not None and operation.threat_actor_id == self.actor.id

    def add(self, technique: Technique, operation: Optional[Operation]) -> None:
        """Fold one technique record in, given its owning operation."""
        if not self.in_scope(operation):
            return

        known_member = (
            technique.mitre_technique_id is not None
            and technique.mitre_technique_id in self._known
        )
        if known_member:
            self._planned.add(technique.mitre_technique_id)
            if technique.is_executed:
                self._executed.add(technique.mitre_technique_id)
            self._operations.add(technique.operation_id)

        if known_member or not self._known:
            for outcome in technique.outcomes:
                self._rates.record(outcome)

    def result(self) -> ThreatActorResilience:
        known_count = len(self._known)
        return ThreatActorResilience(
            id=self.actor.id,
            name=self.actor.name,
            top_threat=self.actor.top_threat,
            scope=self.scope,
            known_count=known_count,
            planned_count=len(self._planned),
            executed_count=len(self._executed),
            coverage_planned_percent=rate(len(self._planned), known_count),
            coverage_executed_percent=rate(len(self._executed), known_count),
            operation_count=len(self._operations),
            outcome_rates=self._rates,
        )


def calculate_threat_actor_resilience(
    actor: ThreatActor,
    techniques: list[Technique],
    operations: dict[str, Operation],
    scope: ActorScope = ActorScope.ALL,
) -> ThreatActorResilience:
    """Convenience wrapper running a single actor over a technique list."""
    calculator = ThreatActorResilienceCalculator(actor, scope)
    for technique in techniques:
        calculator.add(technique, operations.get(technique.operation_id))
    return calculator.result()
