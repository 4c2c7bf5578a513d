"""Exercise activity and defensive effectiveness over time.

Operation and effectiveness trends only look at completed operations and
bucket by completion: an operation by its end date, a technique by its end
time. The timeline lists the most recently started operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

from scorecard.analyzers.crown_jewel_trends import (
    TrendGrouping,
    TrendPeriod,
    group_key,
    period_start,
)
from scorecard.analyzers.rate_calculator import OutcomeRates, ratio_percent
from scorecard.analyzers.timing_bucketizer import TimingBucketizer, elapsed_minutes
from scorecard.models.operation import (
    Operation,
    OperationStatus,
    OutcomeType,
    Technique,
)

logger = structlog.get_logger()

DEFAULT_TIMELINE_SIZE = 10


def activity_grouping(period: TrendPeriod) -> TrendGrouping:
    """7d groups by day, 30d by week, anything longer by month."""
    period = TrendPeriod(period)
    if period == TrendPeriod.SEVEN_DAYS:
        return TrendGrouping.DAY
    if period == TrendPeriod.THIRTY_DAYS:
        return TrendGrouping.WEEK
    return TrendGrouping.MONTH


def _on_or_after(moment: Optional[datetime], since: Optional[datetime]) -> bool:
    return moment is not None and (since is None or moment >= since)


@dataclass
class OperationTrendPoint:
    date: str
    total: int = 0
    active: int = 0
    completed: int = 0
    planning: int = 0
    cancelled: int = 0
    technique_count: int = 0

    def count(self, status: OperationStatus) -> None:
        self.total += 1
        status = OperationStatus(status)
        if status == OperationStatus.ACTIVE:
            self.active += 1
        elif status == OperationStatus.COMPLETED:
            self.completed += 1
        elif status == OperationStatus.PLANNING:
            self.planning += 1
        else:
            self.cancelled += 1

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "total": self.total,
            "active": self.active,
            "completed": self.completed,
            "planning": self.planning,
            "cancelled": self.cancelled,
            "techniqueCount": self.technique_count,
        }


@dataclass
class EffectivenessTrendPoint:
    """Outcome rates and response timing for one bucket.

    Rates read 0 rather than None for a bucket with no attempts of a type;
    the mean times stay None without samples.
    """

    date: str
    outcome_rates: OutcomeRates = field(default_factory=OutcomeRates.empty)
    timing: TimingBucketizer = field(default_factory=TimingBucketizer)

    def to_dict(self) -> dict:
        rates = self.outcome_rates
        return {
            "date": self.date,
            "detectionRate": ratio_percent(
                rates.detection.successes, rates.detection.attempts
            ),
            "preventionRate": ratio_percent(
                rates.prevention.successes, rates.prevention.attempts
            ),
            "attributionRate": ratio_percent(
                rates.attribution.successes, rates.attribution.attempts
            ),
            "avgTimeToDetect": self.timing.detection.mean,
            "avgTimeToAttribute": self.timing.attribution.mean,
        }


@dataclass(frozen=True)
class TimelineEntry:
    id: str
    name: str
    start_date: datetime
    end_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat() if self.end_date else None,
        }


class ActivityTrends:
    """Builds operation, effectiveness and timeline views for one period."""

    def __init__(
        self,
        period: TrendPeriod = TrendPeriod.ONE_YEAR,
        group_by: Optional[TrendGrouping] = None,
    ):
        self.period = TrendPeriod(period)
        self.group_by = (
            TrendGrouping(group_by) if group_by else activity_grouping(self.period)
        )
        self.logger = logger.bind(component="ActivityTrends")

    def _completed_ids(self, operations: Iterable[Operation]) -> set[str]:
        return {
            op.id for op in operations if op.status == OperationStatus.COMPLETED
        }

    def operations(
        self,
        operations: Iterable[Operation],
        techniques: Iterable[Technique],
        now: Optional[datetime] = None,
    ) -> list[OperationTrendPoint]:
        """Completed operations per bucket plus the techniques they finished.

        The period bound is truncated to midnight.
        """
        now = now or datetime.now(timezone.utc)
        since = period_start(self.period, now, start_of_day=True)
        operations = list(operations)
        completed = self._completed_ids(operations)

        groups: dict[str, OperationTrendPoint] = {}

        def point_for(moment: datetime) -> OperationTrendPoint:
            key = group_key(moment, self.group_by)
            return groups.setdefault(key, OperationTrendPoint(date=key))

        for operation in operations:
            if operation.id in completed and _on_or_after(operation.end_date, since):
                point_for(operation.end_date).count(operation.status)

        for technique in techniques:
            if technique.operation_id in completed and _on_or_after(
                technique.end_time, since
            ):
                point_for(technique.end_time).technique_count += 1

        points = [groups[key] for key in sorted(groups)]
        self.logger.debug(
            "operation_trend_calculated",
            period=self.period.value,
            group_by=self.group_by.value,
            points=len(points),
        )
        return points

    def effectiveness(
        self,
        operations: Iterable[Operation],
        techniques: Iterable[Technique],
        now: Optional[datetime] = None,
    ) -> list[EffectivenessTrendPoint]:
        """Outcome rates and mean response times per bucket.

        Techniques of completed operations are bucketed by end time. N/A
        outcomes are skipped, and a technique with nothing but N/A outcomes
        creates no bucket.
        """
        now = now or datetime.now(timezone.utc)
        since = period_start(self.period, now)
        completed = self._completed_ids(operations)

        groups: dict[str, EffectivenessTrendPoint] = {}
        for technique in techniques:
            if technique.operation_id not in completed or not _on_or_after(
                technique.end_time, since
            ):
                continue

            for outcome in technique.outcomes:
                if outcome.is_not_applicable:
                    continue
                key = group_key(technique.end_time, self.group_by)
                point = groups.setdefault(key, EffectivenessTrendPoint(date=key))
                point.outcome_rates.record(outcome)
                if not outcome.is_success:
                    continue

                minutes = elapsed_minutes(technique.start_time, outcome.detection_time)
                if minutes is None:
                    continue
                if outcome.type == OutcomeType.DETECTION:
                    point.timing.add_detection(minutes)
                elif outcome.type == OutcomeType.ATTRIBUTION:
                    point.timing.add_attribution(minutes)

        points = [groups[key] for key in sorted(groups)]
        self.logger.debug(
            "effectiveness_trend_calculated",
            period=self.period.value,
            group_by=self.group_by.value,
            points=len(points),
        )
        return points

    def timeline(
        self,
        operations: Iterable[Operation],
        now: Optional[datetime] = None,
        top_n: int = DEFAULT_TIMELINE_SIZE,
    ) -> list[TimelineEntry]:
        """Most recently started operations, newest first."""
        now = now or datetime.now(timezone.utc)
        since = period_start(self.period, now, start_of_day=True)
        started = [op for op in operations if _on_or_after(op.start_date, since)]
        started.sort(key=lambda op: (op.start_date, op.id), reverse=True)
        return [
            TimelineEntry(
                id=op.id,
                name=op.name,
                start_date=op.start_date,
                end_date=op.end_date,
            )
            for op in started[:top_n]
        ]
