"""Scorecard API endpoints.

Ephemeral: the request body carries the access-controlled snapshot and the
response is computed from it alone. Nothing is stored or cached. Handlers
are plain functions, so FastAPI runs the aggregation in its threadpool.
"""

from typing import Callable, TypeVar

import structlog
from fastapi import APIRouter, HTTPException, status

from scorecard.analyzers.errors import InvalidRangeError
from scorecard.schemas.scorecard import (
    AnalyticsRequest,
    MetricsRequest,
    ThreatActorsRequest,
)
from scorecard.services.scorecard_service import (
    SnapshotTooLargeError,
    build_crown_jewel_report,
    build_scorecard,
    build_threat_actor_resilience,
)

logger = structlog.get_logger()

router = APIRouter()

T = TypeVar("T")


def run_analysis(endpoint: str, fn: Callable[..., T], *args, **kwargs) -> T:
    """Run a service call, mapping domain errors to HTTP errors."""
    try:
        return fn(*args, **kwargs)
    except InvalidRangeError as e:
        logger.warning("scorecard_invalid_range", endpoint=endpoint, error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SnapshotTooLargeError as e:
        logger.warning(
            "scorecard_snapshot_too_large",
            endpoint=endpoint,
            size=e.size,
            limit=e.limit,
        )
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e)
        )


@router.post("/metrics")
def scorecard_metrics(body: MetricsRequest) -> dict:
    """Full scorecard for a reporting window."""
    logger.info(
        "scorecard_metrics_request",
        operations=len(body.snapshot.operations),
        techniques=len(body.snapshot.techniques),
        tag_filter=bool(body.query.tag_ids),
    )
    return run_analysis(
        "metrics",
        build_scorecard,
        body.snapshot.to_domain(),
        body.query.start,
        body.query.end,
        tag_ids=body.query.tag_ids,
        actor_scope=body.actor_scope,
        actor_id=body.actor_id,
    )


@router.post("/threat-actors")
def threat_actor_resilience(body: ThreatActorsRequest) -> list[dict]:
    """Coverage and resilience for each threat actor in the snapshot."""
    query = body.query
    return run_analysis(
        "threat_actors",
        build_threat_actor_resilience,
        body.snapshot.to_domain(),
        start=query.start if query else None,
        end=query.end if query else None,
        tag_ids=query.tag_ids if query else None,
        actor_scope=body.actor_scope,
    )


@router.post("/crown-jewels")
def crown_jewels(body: AnalyticsRequest) -> dict:
    query = body.query
    return run_analysis(
        "crown_jewels",
        build_crown_jewel_report,
        body.snapshot.to_domain(),
        start=query.start if query else None,
        end=query.end if query else None,
        tag_ids=query.tag_ids if query else None,
    )
