"""Crown jewel targeting and compromise assessment.

Attempts are never counted per assignment row: a technique with several
assignments to crown jewels is one targeting technique, and an operation
with several such techniques is one targeted operation. Planned-only
techniques (no start time) never count as attempts.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from scorecard.analyzers.rate_calculator import OutcomeRates, ratio_percent
from scorecard.models.operation import (
    Operation,
    Target,
    TargetAssignment,
    Technique,
)


@dataclass
class CrownJewelSummary:
    """Aggregate crown jewel compromise counts."""

    successes: int  # targeted operations with at least one compromise
    attempts: int  # operations with a crown-jewel-targeting technique
    operations: int
    technique_attempts: int  # techniques with a crown jewel assignment
    technique_compromises: int

    def to_dict(self) -> dict:
        return {
            "successes": self.successes,
            "attempts": self.attempts,
            "operations": self.operations,
            "techniqueAttempts": self.technique_attempts,
            "techniqueCompromises": self.technique_compromises,
        }


@dataclass
class CrownJewelTargetStats:
    """Per-target crown jewel statistics."""

    id: str
    name: str
    times_targeted: int
    times_compromised: int
    compromise_rate: int  # 0 when never targeted, never None
    detection_rate: Optional[int] = None
    prevention_rate: Optional[int] = None
    attribution_rate: Optional[int] = None
    operation_ids: list[str] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.times_targeted > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "timesTargeted": self.times_targeted,
            "timesCompromised": self.times_compromised,
            "compromiseRate": self.compromise_rate,
            "detectionRate": self.detection_rate,
            "preventionRate": self.prevention_rate,
            "attributionRate": self.attribution_rate,
            "operationIds": list(self.operation_ids),
            "hasData": self.has_data,
        }


class CrownJewelAssessor:
    """Tracks technique -> crown jewel assignments during one aggregation pass."""

    def __init__(
        self,
        targets: Iterable[Target] = (),
        operations: Iterable[Operation] = (),
    ):
        self._targets: dict[str, Target] = {t.id: t for t in targets}

        # Global counters
        self._technique_attempts = 0
        self._technique_compromises = 0
        self._targeted_operations: set[str] = set()
        self._compromised_operations: set[str] = set()

        # Per-target: target id -> operations targeting / compromising it
        self._targeting_ops: dict[str, set[str]] = {
            t.id: set() for t in self._targets.values() if t.is_crown_jewel
        }
        self._compromising_ops: dict[str, set[str]] = {
            target_id: set() for target_id in self._targeting_ops
        }

        # Operation-level target lists also mark an operation as targeting
        for operation in operations:
            for target_id in operation.target_ids:
                if target_id in self._targeting_ops:
                    self._targeting_ops[target_id].add(operation.id)

        # Outcome tallies per operation, merged per target at the end
        self._operation_outcomes: dict[str, OutcomeRates] = {}

    def is_crown_jewel(self, assignment: TargetAssignment) -> bool:
        if assignment.is_crown_jewel:
            return True
        target = self._targets.get(assignment.target_id)
        return bool(target and target.is_crown_jewel)

    def add(self, technique: Technique) -> None:
        """Fold one technique record in."""
        rates = self._operation_outcomes.setdefault(
            technique.operation_id, OutcomeRates.empty()
        )
        for outcome in technique.outcomes:
            rates.record(outcome)

        if not technique.is_executed:
            return

        jewel_assignments = [a for a in technique.targets if self.is_crown_jewel(a)]
        if not jewel_assignments:
            return

        compromised = any(a.was_compromised for a in jewel_assignments)
        self._technique_attempts += 1
        self._targeted_operations.add(technique.operation_id)
        if compromised:
            self._technique_compromises += 1
            self._compromised_operations.add(technique.operation_id)

        for assignment in jewel_assignments:
            self._targeting_ops.setdefault(assignment.target_id, set()).add(
                technique.operation_id
            )
            compromising = self._compromising_ops.setdefault(
                assignment.target_id, set()
            )
            if assignment.was_compromised:
                compromising.add(technique.operation_id)

    def summary(self) -> CrownJewelSummary:
        return CrownJewelSummary(
            successes=len(self._compromised_operations),
            attempts=len(self._targeted_operations),
            operations=len(self._targeted_operations),
            technique_attempts=self._technique_attempts,
            technique_compromises=self._technique_compromises,
        )

    def target_stats(self) -> list[CrownJewelTargetStats]:
        """Per-target statistics sorted by target name, then id."""
        stats = []
        for target_id, op_ids in self._targeting_ops.items():
            target = self._targets.get(target_id)
            compromised = self._compromising_ops.get(target_id, set()) & op_ids

            rates = OutcomeRates.empty()
            for op_id in op_ids:
                op_rates = self._operation_outcomes.get(op_id)
                if op_rates is not None:
                    rates.merge(op_rates)

            stats.append(
                CrownJewelTargetStats(
                    id=target_id,
                    name=target.name if target else target_id,
                    times_targeted=len(op_ids),
                    times_compromised=len(compromised),
                    compromise_rate=ratio_percent(len(compromised), len(op_ids)),
                    detection_rate=rates.detection.rate,
                    prevention_rate=rates.prevention.rate,
                    attribution_rate=rates.attribution.rate,
                    operation_ids=sorted(op_ids),
                )
            )
        stats.sort(key=lambda s: (s.name, s.id))
        return stats
