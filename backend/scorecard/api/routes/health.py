"""Health check endpoints."""

from fastapi import APIRouter

from scorecard.core.config import get_settings
from scorecard.core.metrics import get_metrics_collector
from scorecard.data.mitre_tactics import enterprise_taxonomy

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "mitre_attack_version": settings.mitre_attack_version,
        "tactics_loaded": len(enterprise_taxonomy().tactics),
    }


@router.get("/health/metrics")
async def aggregation_metrics():
    """Rolling-window statistics for recent aggregation calls."""
    return get_metrics_collector().get_all_stats()
