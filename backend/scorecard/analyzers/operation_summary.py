"""Operation portfolio summary."""

from dataclasses import dataclass
from typing import Iterable

from scorecard.analyzers.rate_calculator import round_half_up
from scorecard.models.operation import Operation, OperationStatus, Technique

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class OperationSummary:
    total: int
    active: int
    completed: int
    planning: int
    cancelled: int
    total_techniques: int
    avg_techniques_per_operation: int
    avg_duration_days: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "active": self.active,
            "completed": self.completed,
            "planning": self.planning,
            "cancelled": self.cancelled,
            "totalTechniques": self.total_techniques,
            "avgTechniquesPerOperation": self.avg_techniques_per_operation,
            "avgDurationDays": self.avg_duration_days,
        }


def summarize_operations(
    operations: Iterable[Operation],
    techniques: Iterable[Technique],
) -> OperationSummary:
    """Count operations by status and average their size and duration.

    Duration is averaged over completed operations that have both a start
    and an end date.
    """
    operations = list(operations)
    total = len(operations)
    by_status = {status: 0 for status in OperationStatus}
    for operation in operations:
        by_status[OperationStatus(operation.status)] += 1

    technique_count = sum(1 for _ in techniques)

    durations = [
        (op.end_date - op.start_date).total_seconds() / SECONDS_PER_DAY
        for op in operations
        if op.status == OperationStatus.COMPLETED
        and op.start_date is not None
        and op.end_date is not None
    ]
    avg_duration = round_half_up(sum(durations) / len(durations)) if durations else 0

    return OperationSummary(
        total=total,
        active=by_status[OperationStatus.ACTIVE],
        completed=by_status[OperationStatus.COMPLETED],
        planning=by_status[OperationStatus.PLANNING],
        cancelled=by_status[OperationStatus.CANCELLED],
        total_techniques=technique_count,
        avg_techniques_per_operation=(
            round_half_up(technique_count / total) if total > 0 else 0
        ),
        avg_duration_days=avg_duration,
    )
