"""Unit tests for defensive tool and log source effectiveness."""

from scorecard.analyzers.tool_effectiveness import DefensiveToolEffectiveness
from scorecard.models import LogSource, OutcomeStatus, Tool, ToolType

from factories import attribution, detection, prevention, technique

TOOLS = [
    Tool("edr", "EDR", ToolType.DEFENSIVE, "Endpoint"),
    Tool("siem", "SIEM", ToolType.DEFENSIVE),
    Tool("c2", "Cobalt Strike", ToolType.OFFENSIVE),
]
LOG_SOURCES = [LogSource("sysmon", "Sysmon"), LogSource("dns", "DNS logs")]


class TestDefensiveToolEffectiveness:
    def setup_method(self):
        self.analyzer = DefensiveToolEffectiveness(TOOLS, LOG_SOURCES)

    def test_offensive_tools_excluded(self):
        report = self.analyzer.analyze([])
        assert [t.id for t in report.tools] == ["edr", "siem"]

    def test_tool_rates_and_usage_order(self):
        report = self.analyzer.analyze(
            [
                technique(
                    outcomes=(
                        detection(OutcomeStatus.DETECTED, tools=("siem",)),
                        detection(OutcomeStatus.MISSED, tools=("siem",)),
                        prevention(OutcomeStatus.PREVENTED, tools=("siem", "edr")),
                        attribution(OutcomeStatus.NOT_APPLICABLE, tools=("edr",)),
                    )
                )
            ]
        )

        siem, edr = report.tools
        assert siem.id == "siem"
        assert siem.to_dict()["totalUsage"] == 3
        assert siem.to_dict()["detectionRate"] == 50
        assert siem.to_dict()["preventionRate"] == 100
        assert edr.to_dict()["totalUsage"] == 1
        assert edr.to_dict()["attributionTotal"] == 0
        assert edr.to_dict()["attributionRate"] == 0

    def test_log_sources_skip_prevention(self):
        report = self.analyzer.analyze(
            [
                technique(
                    start=None,
                    outcomes=(
                        detection(OutcomeStatus.DETECTED, log_sources=("dns",)),
                        attribution(OutcomeStatus.NOT_ATTRIBUTED, log_sources=("dns",)),
                    ),
                )
            ]
        )

        data = report.to_dict()["logSources"]
        assert [ls["id"] for ls in data] == ["dns", "sysmon"]
        assert data[0]["totalUsage"] == 2
        assert data[0]["detectionRate"] == 100
        assert data[0]["attributionRate"] == 0
        assert "preventionRate" not in data[0]
        assert data[1]["totalUsage"] == 0
