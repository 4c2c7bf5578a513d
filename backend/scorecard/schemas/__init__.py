"""Pydantic schemas for API request validation."""

from scorecard.schemas.scorecard import (
    AnalyticsRequest,
    CrownJewelTrendRequest,
    MetricsQuery,
    MetricsRequest,
    SnapshotIn,
    ThreatActorsRequest,
)

__all__ = [
    "AnalyticsRequest",
    "CrownJewelTrendRequest",
    "MetricsQuery",
    "MetricsRequest",
    "SnapshotIn",
    "ThreatActorsRequest",
]
