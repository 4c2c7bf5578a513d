"""Service layer for scorecard requests."""

from scorecard.services.scorecard_service import build_scorecard, filter_snapshot

__all__ = ["build_scorecard", "filter_snapshot"]
