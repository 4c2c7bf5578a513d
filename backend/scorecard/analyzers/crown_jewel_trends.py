"""Crown jewel targeting trends over time.

Techniques that target at least one crown jewel are grouped by the owning
operation's start date (creation date when the operation has not started)
into day, week or month buckets.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
import enum

import structlog

from scorecard.analyzers.rate_calculator import ratio_percent
from scorecard.models.operation import Operation, Target, Technique

logger = structlog.get_logger()


class TrendPeriod(str, enum.Enum):
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    ONE_YEAR = "1y"
    ALL = "all"  # no lower bound


class TrendGrouping(str, enum.Enum):
    DAY = "day"
    WEEK = "week"  # weeks start on Sunday
    MONTH = "month"


PERIOD_DAYS = {
    TrendPeriod.SEVEN_DAYS: 7,
    TrendPeriod.THIRTY_DAYS: 30,
    TrendPeriod.NINETY_DAYS: 90,
    TrendPeriod.ONE_YEAR: 365,
}


def period_start(
    period: TrendPeriod, now: datetime, start_of_day: bool = False
) -> Optional[datetime]:
    """Earliest moment inside the period ending at now, or None for ALL.

    With start_of_day the bound is truncated to midnight, so the first day of
    the period is counted whole.
    """
    days = PERIOD_DAYS.get(TrendPeriod(period))
    if days is None:
        return None
    since = now - timedelta(days=days)
    if start_of_day:
        since = since.replace(hour=0, minute=0, second=0, microsecond=0)
    return since


def default_grouping(period: TrendPeriod) -> TrendGrouping:
    days = PERIOD_DAYS.get(TrendPeriod(period))
    if days is None:
        return TrendGrouping.MONTH
    if days <= 30:
        return TrendGrouping.DAY
    if days <= 90:
        return TrendGrouping.WEEK
    return TrendGrouping.MONTH


def group_key(moment: datetime, grouping: TrendGrouping) -> str:
    """Bucket key for a timestamp: YYYY-MM-DD for day/week, YYYY-MM for month."""
    day = moment.date()
    if grouping == TrendGrouping.DAY:
        return day.isoformat()
    if grouping == TrendGrouping.WEEK:
        # Python weeks start on Monday (weekday 0)
        days_since_sunday = (day.weekday() + 1) % 7
        return (day - timedelta(days=days_since_sunday)).isoformat()
    return f"{day.year:04d}-{day.month:02d}"


@dataclass
class CrownJewelTrendPoint:
    date: str
    attempts: int = 0
    successes: int = 0
    targeted_ops: set[str] = field(default_factory=set)

    @property
    def success_rate(self) -> int:
        return ratio_percent(self.successes, self.attempts)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "attempts": self.attempts,
            "successes": self.successes,
            "targetedOps": len(self.targeted_ops),
            "successRate": self.success_rate,
        }


class CrownJewelTrend:
    """Groups crown-jewel-targeting techniques into trend points."""

    def __init__(
        self,
        targets: Iterable[Target] = (),
        period: TrendPeriod = TrendPeriod.ONE_YEAR,
        group_by: Optional[TrendGrouping] = None,
    ):
        self.crown_jewel_ids = {t.id for t in targets if t.is_crown_jewel}
        self.period = TrendPeriod(period)
        self.group_by = (
            TrendGrouping(group_by) if group_by else default_grouping(self.period)
        )
        self.logger = logger.bind(component="CrownJewelTrend")

    def analyze(
        self,
        techniques: Iterable[Technique],
        operations: Iterable[Operation],
        now: Optional[datetime] = None,
    ) -> list[CrownJewelTrendPoint]:
        """Build trend points for operations that started inside the period.

        Args:
            techniques: Technique records to consider
            operations: Operations owning those records
            now: End of the period; defaults to the current UTC time

        Returns:
            Trend points sorted by group key
        """
        now = now or datetime.now(timezone.utc)
        since = period_start(self.period, now)

        base_dates: dict[str, datetime] = {}
        for operation in operations:
            base = operation.start_date or operation.created_at
            if base is not None and (since is None or base >= since):
                base_dates[operation.id] = base

        groups: dict[str, CrownJewelTrendPoint] = {}
        for technique in techniques:
            base = base_dates.get(technique.operation_id)
            if base is None:
                continue
            assignments = [
                a
                for a in technique.targets
                if a.is_crown_jewel or a.target_id in self.crown_jewel_ids
            ]
            if not assignments:
                continue

            key = group_key(base, self.group_by)
            point = groups.setdefault(key, CrownJewelTrendPoint(date=key))
            point.attempts += 1
            point.targeted_ops.add(technique.operation_id)
            if any(a.was_compromised for a in assignments):
                point.successes += 1

        points = [groups[key] for key in sorted(groups)]
        self.logger.debug(
            "crown_jewel_trend_calculated",
            period=self.period.value,
            group_by=self.group_by.value,
            points=len(points),
        )
        return points
