"""Defensive tool and log source effectiveness."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog

from scorecard.analyzers.rate_calculator import OutcomeRates, ratio_percent
from scorecard.models.operation import (
    LogSource,
    OutcomeType,
    Technique,
    Tool,
    ToolType,
)

logger = structlog.get_logger()


@dataclass
class ToolEffectiveness:
    """Outcome tallies for one defensive tool."""

    id: str
    name: str
    category: Optional[str] = None
    outcome_rates: OutcomeRates = field(default_factory=OutcomeRates.empty)

    @property
    def total_usage(self) -> int:
        rates = self.outcome_rates
        return (
            rates.detection.attempts
            + rates.prevention.attempts
            + rates.attribution.attempts
        )

    def to_dict(self) -> dict:
        rates = self.outcome_rates
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "totalUsage": self.total_usage,
            "detectionRate": ratio_percent(
                rates.detection.successes, rates.detection.attempts
            ),
            "preventionRate": ratio_percent(
                rates.prevention.successes, rates.prevention.attempts
            ),
            "attributionRate": ratio_percent(
                rates.attribution.successes, rates.attribution.attempts
            ),
            "detectionTotal": rates.detection.attempts,
            "preventionTotal": rates.prevention.attempts,
            "attributionTotal": rates.attribution.attempts,
        }


@dataclass
class LogSourceEffectiveness:
    """Outcome tallies for one log source. Prevention is not tracked."""

    id: str
    name: str
    description: Optional[str] = None
    outcome_rates: OutcomeRates = field(default_factory=OutcomeRates.empty)

    @property
    def total_usage(self) -> int:
        rates = self.outcome_rates
        return rates.detection.attempts + rates.attribution.attempts

    def to_dict(self) -> dict:
        rates = self.outcome_rates
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "totalUsage": self.total_usage,
            "detectionRate": ratio_percent(
                rates.detection.successes, rates.detection.attempts
            ),
            "attributionRate": ratio_percent(
                rates.attribution.successes, rates.attribution.attempts
            ),
            "detectionTotal": rates.detection.attempts,
            "attributionTotal": rates.attribution.attempts,
        }


@dataclass
class DefensiveToolReport:
    tools: list[ToolEffectiveness]
    log_sources: list[LogSourceEffectiveness]

    def to_dict(self) -> dict:
        return {
            "tools": [t.to_dict() for t in self.tools],
            "logSources": [ls.to_dict() for ls in self.log_sources],
        }


class DefensiveToolEffectiveness:
    """Scores each catalogued defensive tool and log source.

    Every outcome that lists a tool (or log source) counts toward it,
    whether or not the technique was executed. N/A outcomes are ignored.
    """

    def __init__(
        self,
        tools: Iterable[Tool] = (),
        log_sources: Iterable[LogSource] = (),
    ):
        self.tools = [t for t in tools if t.type == ToolType.DEFENSIVE]
        self.log_sources = list(log_sources)
        self.logger = logger.bind(component="DefensiveToolEffectiveness")

    def analyze(self, techniques: Iterable[Technique]) -> DefensiveToolReport:
        tool_rows = {
            t.id: ToolEffectiveness(id=t.id, name=t.name, category=t.category)
            for t in self.tools
        }
        source_rows = {
            ls.id: LogSourceEffectiveness(
                id=ls.id, name=ls.name, description=ls.description
            )
            for ls in self.log_sources
        }

        for technique in techniques:
            for outcome in technique.outcomes:
                if outcome.is_not_applicable:
                    continue
                for tool_id in set(outcome.defensive_tool_ids):
                    row = tool_rows.get(tool_id)
                    if row is not None:
                        row.outcome_rates.record(outcome)
                if outcome.type == OutcomeType.PREVENTION:
                    continue
                for source_id in set(outcome.log_source_ids):
                    source = source_rows.get(source_id)
                    if source is not None:
                        source.outcome_rates.record(outcome)

        tools = sorted(tool_rows.values(), key=lambda r: (-r.total_usage, r.id))
        log_sources = sorted(
            source_rows.values(), key=lambda r: (-r.total_usage, r.id)
        )
        self.logger.debug(
            "tool_effectiveness_calculated",
            tools=len(tools),
            log_sources=len(log_sources),
        )
        return DefensiveToolReport(tools=tools, log_sources=log_sources)
