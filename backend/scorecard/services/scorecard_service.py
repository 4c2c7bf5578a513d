"""Scorecard service: filters a snapshot and runs the analyzers.

No database access. The caller hands over rows it already fetched and
access-controlled; this module narrows them to the reporting window and tag
filter the same way the storage query would, then runs the engine.
"""

import time
from dataclasses import replace
from datetime import datetime
from typing import Optional

import structlog

from scorecard.analyzers.activity_trends import ActivityTrends, DEFAULT_TIMELINE_SIZE
from scorecard.analyzers.crown_jewel_assessor import CrownJewelAssessor
from scorecard.analyzers.crown_jewel_trends import (
    CrownJewelTrend,
    TrendGrouping,
    TrendPeriod,
)
from scorecard.analyzers.dashboard_summary import summarize_dashboard
from scorecard.analyzers.errors import MetricsError, validate_range
from scorecard.analyzers.metrics_aggregator import MetricsAggregator
from scorecard.analyzers.operation_summary import summarize_operations
from scorecard.analyzers.technique_metrics import TechniqueMetricsAnalyzer
from scorecard.analyzers.threat_actor_resilience import (
    ActorScope,
    ThreatActorResilienceCalculator,
)
from scorecard.analyzers.tool_effectiveness import DefensiveToolEffectiveness
from scorecard.core.config import get_settings
from scorecard.core.metrics import record_aggregation
from scorecard.data.mitre_tactics import enterprise_taxonomy
from scorecard.models.mitre import ReferenceTaxonomy
from scorecard.models.operation import MetricsSnapshot, Operation, Technique

logger = structlog.get_logger()


class SnapshotTooLargeError(MetricsError):
    """Snapshot carries more technique rows than the service accepts."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Snapshot has {size} technique records; the limit is {limit}"
        )


# ---------------------------------------------------------------------------
# Snapshot filtering
# ---------------------------------------------------------------------------


def _in_window(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    return value is not None and start <= value <= end


def _has_any_tag(operation: Operation, tag_ids: Optional[list[str]]) -> bool:
    if not tag_ids:
        return True
    return any(tag_id in tag_ids for tag_id in operation.tag_ids)


def technique_in_window(technique: Technique, start: datetime, end: datetime) -> bool:
    """Start time in the window, or no start time and created in the window."""
    if technique.start_time is not None:
        return _in_window(technique.start_time, start, end)
    return _in_window(technique.created_at, start, end)


def operation_in_window(operation: Operation, start: datetime, end: datetime) -> bool:
    """Start date in the window, or no start date and created in the window."""
    if operation.start_date is not None:
        return _in_window(operation.start_date, start, end)
    return _in_window(operation.created_at, start, end)


def filter_by_tags(
    snapshot: MetricsSnapshot, tag_ids: Optional[list[str]]
) -> MetricsSnapshot:
    """Keep operations carrying any of the tags, and their techniques."""
    if not tag_ids:
        return snapshot
    operations = tuple(op for op in snapshot.operations if _has_any_tag(op, tag_ids))
    kept = {op.id for op in operations}
    return replace(
        snapshot,
        operations=operations,
        techniques=tuple(t for t in snapshot.techniques if t.operation_id in kept),
    )


def filter_snapshot(
    snapshot: MetricsSnapshot,
    start: datetime,
    end: datetime,
    tag_ids: Optional[list[str]] = None,
) -> MetricsSnapshot:
    """Narrow a snapshot to a reporting window and tag filter.

    Techniques are kept when they fall in the window. Operations are kept when
    they own a kept technique or themselves started in the window. Reference
    catalogues (targets, actors, tools, log sources) pass through untouched.

    Raises:
        InvalidRangeError: If end is before start
    """
    validate_range(start, end)
    tagged = filter_by_tags(snapshot, tag_ids)
    techniques = tuple(
        t for t in tagged.techniques if technique_in_window(t, start, end)
    )
    owners = {t.operation_id for t in techniques}
    operations = tuple(
        op
        for op in tagged.operations
        if op.id in owners or operation_in_window(op, start, end)
    )
    return replace(tagged, operations=operations, techniques=techniques)


def _apply_query(
    snapshot: MetricsSnapshot,
    start: Optional[datetime],
    end: Optional[datetime],
    tag_ids: Optional[list[str]],
) -> MetricsSnapshot:
    if start is not None and end is not None:
        return filter_snapshot(snapshot, start, end, tag_ids)
    return filter_by_tags(snapshot, tag_ids)


def check_snapshot_size(snapshot: MetricsSnapshot) -> None:
    limit = get_settings().max_snapshot_techniques
    if len(snapshot.techniques) > limit:
        raise SnapshotTooLargeError(len(snapshot.techniques), limit)


def _resolve_scope(actor_scope: Optional[ActorScope]) -> ActorScope:
    return ActorScope(actor_scope or get_settings().default_actor_scope)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def taxonomy_for(snapshot: MetricsSnapshot) -> ReferenceTaxonomy:
    """Enterprise tactics plus any technique catalogue sent with the snapshot."""
    return enterprise_taxonomy().with_catalogue(
        snapshot.mitre_techniques, snapshot.mitre_sub_techniques
    )


# ---------------------------------------------------------------------------
# Scorecard
# ---------------------------------------------------------------------------


def build_scorecard(
    snapshot: MetricsSnapshot,
    start: datetime,
    end: datetime,
    tag_ids: Optional[list[str]] = None,
    actor_scope: Optional[ActorScope] = None,
    actor_id: Optional[str] = None,
) -> dict:
    """Filter the snapshot to the window and build the full scorecard.

    Args:
        snapshot: Access-controlled rows supplied by the caller
        start: Window start (inclusive)
        end: Window end (inclusive)
        tag_ids: Keep only operations carrying any of these tags
        actor_scope: Threat actor scope, defaults to the configured scope
        actor_id: Restrict threat actor resilience to a single actor

    Returns:
        The camelCase MetricsReport dictionary
    """
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = filter_snapshot(snapshot, start, end, tag_ids)
    if actor_id is not None:
        filtered = replace(
            filtered,
            threat_actors=tuple(a for a in filtered.threat_actors if a.id == actor_id),
        )

    report = MetricsAggregator(taxonomy_for(filtered)).aggregate(
        filtered, start=start, end=end, actor_scope=_resolve_scope(actor_scope)
    )
    record_aggregation(
        _elapsed_ms(started), "metrics", len(filtered.techniques), len(report.warnings)
    )
    return report.to_dict()


def build_threat_actor_resilience(
    snapshot: MetricsSnapshot,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tag_ids: Optional[list[str]] = None,
    actor_scope: Optional[ActorScope] = None,
) -> list[dict]:
    """Resilience rows for every actor in the snapshot, sorted by actor id."""
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = _apply_query(snapshot, start, end, tag_ids)
    scope = _resolve_scope(actor_scope)
    operations = filtered.operations_by_id()

    calculators = [
        ThreatActorResilienceCalculator(actor, scope)
        for actor in sorted(filtered.threat_actors, key=lambda a: a.id)
    ]
    for technique in filtered.techniques:
        operation = operations.get(technique.operation_id)
        for calculator in calculators:
            calculator.add(technique, operation)

    record_aggregation(_elapsed_ms(started), "threat_actors", len(filtered.techniques))
    return [c.result().to_dict() for c in calculators]


def build_crown_jewel_report(
    snapshot: MetricsSnapshot,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tag_ids: Optional[list[str]] = None,
) -> dict:
    """Crown jewel summary plus per-target statistics."""
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = _apply_query(snapshot, start, end, tag_ids)
    assessor = CrownJewelAssessor(filtered.targets, filtered.operations)
    for technique in filtered.techniques:
        assessor.add(technique)

    record_aggregation(_elapsed_ms(started), "crown_jewels", len(filtered.techniques))
    return {
        "summary": assessor.summary().to_dict(),
        "targets": [t.to_dict() for t in assessor.target_stats()],
    }


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


def build_technique_metrics(
    snapshot: MetricsSnapshot,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tag_ids: Optional[list[str]] = None,
) -> list[dict]:
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = _apply_query(snapshot, start, end, tag_ids)
    rows = TechniqueMetricsAnalyzer(taxonomy_for(filtered)).technique_metrics(
        filtered.techniques
    )
    record_aggregation(_elapsed_ms(started), "techniques", len(filtered.techniques))
    return [row.to_dict() for row in rows]


def build_sub_technique_metrics(
    snapshot: MetricsSnapshot,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tag_ids: Optional[list[str]] = None,
) -> dict:
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = _apply_query(snapshot, start, end, tag_ids)
    analyzer = TechniqueMetricsAnalyzer(taxonomy_for(filtered))
    rows = analyzer.sub_technique_metrics(filtered.techniques)
    usage = analyzer.sub_technique_usage(filtered.techniques)
    record_aggregation(
        _elapsed_ms(started), "sub_techniques", len(filtered.techniques)
    )
    return {
        "subTechniques": [row.to_dict() for row in rows],
        "usage": usage,
    }


def build_tool_effectiveness(
    snapshot: MetricsSnapshot,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tag_ids: Optional[list[str]] = None,
) -> dict:
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = _apply_query(snapshot, start, end, tag_ids)
    report = DefensiveToolEffectiveness(
        filtered.tools, filtered.log_sources
    ).analyze(filtered.techniques)
    record_aggregation(_elapsed_ms(started), "tools", len(filtered.techniques))
    return report.to_dict()


def build_operation_summary(
    snapshot: MetricsSnapshot,
    tag_ids: Optional[list[str]] = None,
) -> dict:
    """Portfolio summary over every operation the caller can see."""
    check_snapshot_size(snapshot)
    filtered = filter_by_tags(snapshot, tag_ids)
    return summarize_operations(filtered.operations, filtered.techniques).to_dict()


def build_crown_jewel_trend(
    snapshot: MetricsSnapshot,
    period: Optional[TrendPeriod] = None,
    group_by: Optional[TrendGrouping] = None,
    tag_ids: Optional[list[str]] = None,
    now: Optional[datetime] = None,
) -> list[dict]:
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = filter_by_tags(snapshot, tag_ids)
    trend = CrownJewelTrend(
        filtered.targets,
        period=period or TrendPeriod(get_settings().crown_jewel_trend_period),
        group_by=group_by,
    )
    points = trend.analyze(filtered.techniques, filtered.operations, now=now)
    record_aggregation(
        _elapsed_ms(started), "crown_jewel_trend", len(filtered.techniques)
    )
    logger.debug("crown_jewel_trend_built", points=len(points))
    return [p.to_dict() for p in points]


# ---------------------------------------------------------------------------
# Dashboard and activity trends
# ---------------------------------------------------------------------------


def build_dashboard(
    snapshot: MetricsSnapshot,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tag_ids: Optional[list[str]] = None,
) -> dict:
    """Headline operation, outcome and timing numbers.

    The window selects operations (by start date, or creation date when not
    started); every technique of a selected operation counts, whenever it ran.

    Raises:
        InvalidRangeError: If end is before start
    """
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    tagged = filter_by_tags(snapshot, tag_ids)
    operations = tagged.operations
    if start is not None and end is not None:
        validate_range(start, end)
        operations = tuple(
            op for op in operations if operation_in_window(op, start, end)
        )
    kept = {op.id for op in operations}
    techniques = tuple(t for t in tagged.techniques if t.operation_id in kept)

    summary = summarize_dashboard(operations, techniques)
    record_aggregation(_elapsed_ms(started), "dashboard", len(techniques))
    return summary.to_dict()


def build_operation_trend(
    snapshot: MetricsSnapshot,
    period: TrendPeriod = TrendPeriod.ONE_YEAR,
    group_by: Optional[TrendGrouping] = None,
    tag_ids: Optional[list[str]] = None,
    now: Optional[datetime] = None,
) -> list[dict]:
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = filter_by_tags(snapshot, tag_ids)
    points = ActivityTrends(period, group_by).operations(
        filtered.operations, filtered.techniques, now=now
    )
    record_aggregation(
        _elapsed_ms(started), "operation_trend", len(filtered.techniques)
    )
    return [p.to_dict() for p in points]


def build_effectiveness_trend(
    snapshot: MetricsSnapshot,
    period: TrendPeriod = TrendPeriod.ONE_YEAR,
    group_by: Optional[TrendGrouping] = None,
    tag_ids: Optional[list[str]] = None,
    now: Optional[datetime] = None,
) -> list[dict]:
    check_snapshot_size(snapshot)
    started = time.perf_counter()
    filtered = filter_by_tags(snapshot, tag_ids)
    points = ActivityTrends(period, group_by).effectiveness(
        filtered.operations, filtered.techniques, now=now
    )
    record_aggregation(
        _elapsed_ms(started), "effectiveness_trend", len(filtered.techniques)
    )
    return [p.to_dict() for p in points]


def build_operation_timeline(
    snapshot: MetricsSnapshot,
    period: TrendPeriod = TrendPeriod.ONE_YEAR,
    tag_ids: Optional[list[str]] = None,
    now: Optional[datetime] = None,
    top_n: int = DEFAULT_TIMELINE_SIZE,
) -> list[dict]:
    """Most recently started operations in the period, newest first."""
    check_snapshot_size(snapshot)
    filtered = filter_by_tags(snapshot, tag_ids)
    entries = ActivityTrends(period).timeline(filtered.operations, now=now, top_n=top_n)
    logger.debug("operation_timeline_built", entries=len(entries))
    return [e.to_dict() for e in entries]
