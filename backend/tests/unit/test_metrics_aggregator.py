"""Unit tests for the scorecard metrics aggregator."""

import json
from datetime import timedelta

import pytest

from scorecard.analyzers.errors import InvalidRangeError
from scorecard.analyzers.metrics_aggregator import MetricsAggregator, aggregate_metrics
from scorecard.analyzers.threat_actor_resilience import ActorScope
from scorecard.data.mitre_tactics import TACTIC_ORDER
from scorecard.models import (
    MetricsSnapshot,
    MitreTechnique,
    OutcomeStatus,
    ReferenceTaxonomy,
    Tactic,
)

from factories import (
    T0,
    actor,
    attribution,
    crown_jewel,
    crown_jewel_hit,
    detection,
    operation,
    prevention,
    snapshot,
    technique,
)


class TestEmptyInput:
    """Zero rows produce a complete all-zero report."""

    def setup_method(self):
        self.report = aggregate_metrics(MetricsSnapshot()).to_dict()

    def test_counts_are_zero(self):
        assert self.report["operations"] == 0
        assert self.report["techniques"]["planned"] == 0
        assert self.report["techniques"]["executed"]["total"] == 0
        assert self.report["tactics"] == 0
        assert self.report["threatActors"] == 0
        assert self.report["offensiveTools"] == 0
        assert self.report["defensiveTools"] == 0

    def test_rates_are_null(self):
        for kind in ("detection", "prevention", "attribution"):
            assert self.report["outcomes"][kind] == {
                "attempts": 0,
                "successes": 0,
                "rate": None,
            }
        assert self.report["timing"]["avgTimeToDetect"] is None
        assert self.report["timing"]["avgTimeToAttribute"] is None

    def test_by_tactic_lists_every_tactic(self):
        by_tactic = self.report["techniques"]["executed"]["byTactic"]
        assert [row["tacticId"] for row in by_tactic] == list(TACTIC_ORDER)
        assert all(row["total"] == 0 for row in by_tactic)
        assert len(self.report["tacticResilience"]) == 14

    def test_no_warnings(self):
        assert self.report["warnings"] == []


class TestTiming:
    def test_detection_at_ninety_seconds(self):
        report = aggregate_metrics(
            snapshot(
                [
                    technique(
                        outcomes=(
                            detection(
                                OutcomeStatus.DETECTED,
                                at=T0 + timedelta(seconds=90),
                            ),
                        )
                    )
                ]
            )
        ).to_dict()

        timing = report["timing"]
        assert timing["detectionDistribution"]["1-5 min"] == 1
        assert timing["avgTimeToDetect"] == 2
        assert timing["detectionSamples"] == 1

    def test_only_successful_outcomes_sampled(self):
        report = aggregate_metrics(
            snapshot(
                [
                    technique(
                        outcomes=(
                            detection(OutcomeStatus.MISSED, at=T0 + timedelta(minutes=3)),
                            attribution(
                                OutcomeStatus.ATTRIBUTED, at=T0 + timedelta(hours=2)
                            ),
                            attribution(
                                OutcomeStatus.NOT_APPLICABLE,
                                at=T0 + timedelta(minutes=1),
                            ),
                        )
                    )
                ]
            )
        ).to_dict()

        timing = report["timing"]
        assert timing["detectionSamples"] == 0
        assert timing["avgTimeToDetect"] is None
        assert timing["attributionSamples"] == 1
        assert timing["avgTimeToAttribute"] == 120
        assert timing["attributionDistribution"]["1-6 hrs"] == 1

    def test_detection_before_start_discarded(self):
        report = aggregate_metrics(
            snapshot(
                [
                    technique(
                        outcomes=(
                            detection(
                                OutcomeStatus.DETECTED, at=T0 - timedelta(minutes=5)
                            ),
                        )
                    )
                ]
            )
        ).to_dict()

        assert report["timing"]["detectionSamples"] == 0
        assert report["outcomes"]["detection"]["successes"] == 1


class TestOutcomes:
    def test_not_applicable_excluded(self):
        report = aggregate_metrics(
            snapshot(
                [
                    technique(
                        outcomes=(
                            detection(OutcomeStatus.DETECTED),
                            detection(OutcomeStatus.NOT_APPLICABLE),
                            prevention(OutcomeStatus.NOT_APPLICABLE),
                            attribution(OutcomeStatus.NOT_ATTRIBUTED),
                        )
                    )
                ]
            )
        ).to_dict()

        assert report["outcomes"]["detection"] == {
            "attempts": 1,
            "successes": 1,
            "rate": 100,
        }
        assert report["outcomes"]["prevention"]["rate"] is None
        assert report["outcomes"]["attribution"]["rate"] == 0


class TestCrownJewels:
    def test_one_operation_two_techniques(self):
        report = aggregate_metrics(
            snapshot(
                [
                    technique("a", targets=(crown_jewel_hit("tgt-db"),)),
                    technique(
                        "b", targets=(crown_jewel_hit("tgt-dc", compromised=True),)
                    ),
                ],
                targets=(crown_jewel("tgt-db"), crown_jewel("tgt-dc", "DC")),
            )
        ).to_dict()

        cj = report["crownJewelCompromises"]
        assert (cj["successes"], cj["attempts"], cj["operations"]) == (1, 1, 1)
        assert [t["id"] for t in report["crownJewelTargets"]] == ["tgt-db", "tgt-dc"]

    def test_planned_only_targeting_ignored(self):
        report = aggregate_metrics(
            snapshot(
                [technique(start=None, targets=(crown_jewel_hit(),))],
                targets=(crown_jewel(),),
            )
        ).to_dict()

        assert report["techniques"]["executed"]["total"] == 0
        cj = report["crownJewelCompromises"]
        assert (cj["successes"], cj["attempts"], cj["operations"]) == (0, 0, 0)


class TestCounts:
    def setup_method(self):
        self.snapshot = snapshot(
            [
                technique(
                    "a",
                    operation_id="op-1",
                    tactic_id="TA0001",
                    success=True,
                    tools=("tool-cs",),
                    outcomes=(detection(tools=("tool-edr",)),),
                ),
                technique(
                    "b",
                    operation_id="op-1",
                    mitre_id="T1059",
                    tactic_id="TA0002",
                    success=False,
                    tools=("tool-cs", "tool-mimikatz"),
                ),
                technique(
                    "c",
                    operation_id="op-2",
                    mitre_id="T1003",
                    tactic_id="TA0006",
                ),
                technique(
                    "d",
                    operation_id="op-3",
                    mitre_id="T1021",
                    tactic_id="TA0008",
                    start=None,
                    tools=("tool-planned",),
                    outcomes=(detection(tools=("tool-siem",)),),
                ),
            ],
            operations=(
                operation("op-1", threat_actor_id="apt-1"),
                operation("op-2", threat_actor_id="apt-2"),
                operation("op-3", threat_actor_id="apt-3"),
                operation("op-4"),
            ),
        )
        self.report = aggregate_metrics(self.snapshot).to_dict()

    def test_operation_and_technique_counts(self):
        assert self.report["operations"] == 4
        assert self.report["techniques"]["planned"] == 4
        executed = self.report["techniques"]["executed"]
        assert (
            executed["total"],
            executed["successes"],
            executed["failures"],
            executed["unknown"],
        ) == (3, 1, 1, 1)

    def test_tactics_counts_executed_only(self):
        assert self.report["tactics"] == 3

    def test_actor_and_tool_counts_use_executed_techniques(self):
        assert self.report["threatActors"] == 2
        assert self.report["offensiveTools"] == 2
        assert self.report["defensiveTools"] == 1

    def test_by_tactic_operations(self):
        by_tactic = {
            row["tacticId"]: row
            for row in self.report["techniques"]["executed"]["byTactic"]
        }
        assert by_tactic["TA0001"]["operations"] == [
            {"id": "op-1", "name": "Operation op-1"}
        ]
        assert by_tactic["TA0008"]["total"] == 0

    def test_technique_owner_without_operation_row_counts(self):
        report = aggregate_metrics(
            snapshot([technique(operation_id="op-x")], operations=())
        ).to_dict()
        assert report["operations"] == 1

    def test_idempotent(self):
        first = json.dumps(aggregate_metrics(self.snapshot).to_dict())
        second = json.dumps(aggregate_metrics(self.snapshot).to_dict())
        assert first == second


class TestReferenceData:
    def test_unknown_tactic_warns_and_skips_rollup(self):
        report = aggregate_metrics(
            snapshot(
                [
                    technique("a", tactic_id="TA9999"),
                    technique("b", tactic_id="TA9999"),
                ]
            )
        ).to_dict()

        assert report["techniques"]["executed"]["total"] == 2
        assert report["tactics"] == 0
        assert report["warnings"] == [
            {
                "kind": "tactic",
                "referenceId": "TA9999",
                "techniqueRecordId": "a",
                "message": "Unknown tactic 'TA9999' in reference taxonomy",
            }
        ]

    def test_technique_catalogue_resolves_and_warns(self):
        taxonomy = ReferenceTaxonomy(
            tactics=(Tactic("TA0001", "Initial Access"),),
            techniques=(MitreTechnique("T1078", "Valid Accounts", "TA0001"),),
        )
        report = MetricsAggregator(taxonomy).aggregate(
            snapshot(
                [
                    technique("a", mitre_id="T1078", tactic_id=None),
                    technique("b", mitre_id="T9999", tactic_id="TA0001"),
                ]
            )
        )

        (row,) = report.by_tactic
        assert row.total == 1
        assert [(w.kind, w.reference_id) for w in report.warnings] == [
            ("technique", "T9999")
        ]

    def test_technique_without_tactic_warns(self):
        report = aggregate_metrics(
            snapshot([technique("a", mitre_id="T9999", tactic_id=None)])
        )

        assert report.executed.total == 1
        assert sum(row.total for row in report.by_tactic) == 0
        (warning,) = report.warnings
        assert warning.kind == "technique"
        assert warning.reference_id == "T9999"
        assert warning.technique_record_id == "a"

    def test_catalogue_on_taxonomy_resolves_tactic(self):
        taxonomy = ReferenceTaxonomy(
            tactics=(Tactic("TA0001", "Initial Access"),)
        ).with_catalogue((MitreTechnique("T1078", "Valid Accounts", "TA0001"),))

        report = MetricsAggregator(taxonomy).aggregate(
            snapshot([technique("a", mitre_id="T1078", tactic_id=None)])
        )

        (row,) = report.by_tactic
        assert row.tactic_id == "TA0001"
        assert report.warnings == []

    def test_missing_ids_skip_silently(self):
        report = aggregate_metrics(
            snapshot([technique(mitre_id=None, tactic_id=None)])
        )
        assert report.warnings == []
        assert report.executed.total == 1


class TestValidationAndActors:
    def test_end_before_start_rejected(self):
        with pytest.raises(InvalidRangeError):
            aggregate_metrics(MetricsSnapshot(), start=T0, end=T0 - timedelta(days=1))

    def test_invalid_range_is_value_error(self):
        with pytest.raises(ValueError):
            aggregate_metrics(MetricsSnapshot(), start=T0, end=T0 - timedelta(seconds=1))

    def test_equal_bounds_allowed(self):
        report = aggregate_metrics(MetricsSnapshot(), start=T0, end=T0)
        assert report.operations == 0

    def test_threat_actor_resilience_rows(self):
        report = aggregate_metrics(
            snapshot(
                [technique(mitre_id="T1078")],
                operations=(operation("op-1", threat_actor_id="apt-2"),),
                threat_actors=(actor("apt-2", known=("T1078",)), actor("apt-1")),
            ),
            actor_scope=ActorScope.ASSIGNED,
        ).to_dict()

        rows = report["threatActorResilience"]
        assert [r["id"] for r in rows] == ["apt-1", "apt-2"]
        assert rows[0]["operationCount"] == 0
        assert rows[0]["coveragePlannedPercent"] is None
        assert rows[1]["coverageExecutedPercent"] == 100
        assert rows[1]["scope"] == "assigned"
