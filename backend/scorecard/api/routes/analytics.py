"""Analytics endpoints: technique heatmaps, tools, operations and trends."""

from fastapi import APIRouter

from scorecard.api.routes.scorecard import run_analysis
from scorecard.schemas.scorecard import (
    ActivityTrendRequest,
    AnalyticsRequest,
    CrownJewelTrendRequest,
)
from scorecard.services.scorecard_service import (
    build_crown_jewel_trend,
    build_dashboard,
    build_effectiveness_trend,
    build_operation_summary,
    build_operation_timeline,
    build_operation_trend,
    build_sub_technique_metrics,
    build_technique_metrics,
    build_tool_effectiveness,
)

router = APIRouter()


def _query_kwargs(body: AnalyticsRequest) -> dict:
    query = body.query
    if query is None:
        return {}
    return {"start": query.start, "end": query.end, "tag_ids": query.tag_ids}


@router.post("/techniques")
def technique_metrics(body: AnalyticsRequest) -> list[dict]:
    """Per-technique execution and outcome metrics for the ATT&CK heatmap."""
    return run_analysis(
        "techniques",
        build_technique_metrics,
        body.snapshot.to_domain(),
        **_query_kwargs(body),
    )


@router.post("/sub-techniques")
def sub_technique_metrics(body: AnalyticsRequest) -> dict:
    return run_analysis(
        "sub_techniques",
        build_sub_technique_metrics,
        body.snapshot.to_domain(),
        **_query_kwargs(body),
    )


@router.post("/tools")
def tool_effectiveness(body: AnalyticsRequest) -> dict:
    """Defensive tool and log source effectiveness."""
    return run_analysis(
        "tools",
        build_tool_effectiveness,
        body.snapshot.to_domain(),
        **_query_kwargs(body),
    )


@router.post("/operations/summary")
def operation_summary(body: AnalyticsRequest) -> dict:
    """Operation counts by status; the reporting window is not applied."""
    return run_analysis(
        "operations_summary",
        build_operation_summary,
        body.snapshot.to_domain(),
        tag_ids=body.query.tag_ids if body.query else None,
    )


@router.post("/crown-jewels/trend")
def crown_jewel_trend(body: CrownJewelTrendRequest) -> list[dict]:
    return run_analysis(
        "crown_jewel_trend",
        build_crown_jewel_trend,
        body.snapshot.to_domain(),
        period=body.period,
        group_by=body.group_by,
        tag_ids=body.tag_ids,
        now=body.now,
    )


@router.post("/dashboard")
def dashboard(body: AnalyticsRequest) -> dict:
    """Headline numbers; the window selects operations, not techniques."""
    return run_analysis(
        "dashboard",
        build_dashboard,
        body.snapshot.to_domain(),
        **_query_kwargs(body),
    )


@router.post("/trends/operations")
def operation_trend(body: ActivityTrendRequest) -> list[dict]:
    return run_analysis(
        "operation_trend",
        build_operation_trend,
        body.snapshot.to_domain(),
        period=body.period,
        group_by=body.group_by,
        tag_ids=body.tag_ids,
        now=body.now,
    )


@router.post("/trends/effectiveness")
def effectiveness_trend(body: ActivityTrendRequest) -> list[dict]:
    """Detection, prevention and attribution rates of completed operations."""
    return run_analysis(
        "effectiveness_trend",
        build_effectiveness_trend,
        body.snapshot.to_domain(),
        period=body.period,
        group_by=body.group_by,
        tag_ids=body.tag_ids,
        now=body.now,
    )


@router.post("/trends/operation-timeline")
def operation_timeline(body: ActivityTrendRequest) -> list[dict]:
    return run_analysis(
        "operation_timeline",
        build_operation_timeline,
        body.snapshot.to_domain(),
        period=body.period,
        tag_ids=body.tag_ids,
        now=body.now,
        top_n=body.top_n,
    )
