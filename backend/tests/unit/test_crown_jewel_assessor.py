"""Unit tests for crown jewel assessment."""

from scorecard.analyzers.crown_jewel_assessor import CrownJewelAssessor
from scorecard.models import OutcomeStatus, Target, TargetAssignment

from factories import crown_jewel, crown_jewel_hit, detection, operation, technique


class TestCrownJewelCounting:
    """Attempts are never counted per assignment row."""

    def test_two_assignments_one_technique_is_one_attempt(self):
        assessor = CrownJewelAssessor([crown_jewel()])
        assessor.add(
            technique(targets=(crown_jewel_hit(), crown_jewel_hit(compromised=True)))
        )

        summary = assessor.summary()
        assert summary.technique_attempts == 1
        assert summary.technique_compromises == 1
        assert summary.attempts == 1
        assert summary.successes == 1

    def test_one_operation_two_techniques_one_compromised(self):
        assessor = CrownJewelAssessor(
            [crown_jewel("tgt-db"), crown_jewel("tgt-dc", "Domain Controller")]
        )
        assessor.add(technique("a", targets=(crown_jewel_hit("tgt-db"),)))
        assessor.add(
            technique("b", targets=(crown_jewel_hit("tgt-dc", compromised=True),))
        )

        summary = assessor.summary().to_dict()
        assert summary["successes"] == 1
        assert summary["attempts"] == 1
        assert summary["operations"] == 1
        assert summary["techniqueAttempts"] == 2
        assert summary["techniqueCompromises"] == 1

    def test_planned_only_technique_not_an_attempt(self):
        assessor = CrownJewelAssessor([crown_jewel()])
        assessor.add(
            technique(start=None, targets=(crown_jewel_hit(compromised=True),))
        )

        summary = assessor.summary()
        assert summary.attempts == 0
        assert summary.operations == 0
        assert summary.technique_attempts == 0
        (stats,) = assessor.target_stats()
        assert stats.times_targeted == 0
        assert stats.compromise_rate == 0

    def test_target_catalogue_flags_crown_jewels(self):
        assessor = CrownJewelAssessor([crown_jewel("tgt-db")])
        assessor.add(
            technique(targets=(TargetAssignment("tgt-db", was_compromised=True),))
        )

        assert assessor.summary().attempts == 1

    def test_ordinary_targets_ignored(self):
        assessor = CrownJewelAssessor([Target("tgt-web", "Web Server")])
        assessor.add(
            technique(targets=(TargetAssignment("tgt-web", was_compromised=True),))
        )

        summary = assessor.summary()
        assert summary.attempts == 0
        assert summary.technique_attempts == 0
        assert assessor.target_stats() == []

    def test_empty(self):
        summary = CrownJewelAssessor().summary().to_dict()
        assert summary == {
            "successes": 0,
            "attempts": 0,
            "operations": 0,
            "techniqueAttempts": 0,
            "techniqueCompromises": 0,
        }


class TestCrownJewelTargetStats:
    def test_per_target_operation_counts(self):
        assessor = CrownJewelAssessor([crown_jewel("tgt-db")])
        assessor.add(technique("a", operation_id="op-1", targets=(crown_jewel_hit(),)))
        assessor.add(
            technique(
                "b",
                operation_id="op-1",
                targets=(crown_jewel_hit(compromised=True),),
            )
        )
        assessor.add(technique("c", operation_id="op-2", targets=(crown_jewel_hit(),)))

        (stats,) = assessor.target_stats()
        assert stats.times_targeted == 2
        assert stats.times_compromised == 1
        assert stats.compromise_rate == 50
        assert stats.operation_ids == ["op-1", "op-2"]
        assert stats.has_data is True

    def test_untargeted_crown_jewel_reads_zero_not_null(self):
        assessor = CrownJewelAssessor([crown_jewel("tgt-db")])

        (stats,) = assessor.target_stats()
        assert stats.to_dict() == {
            "id": "tgt-db",
            "name": "Customer DB",
            "timesTargeted": 0,
            "timesCompromised": 0,
            "compromiseRate": 0,
            "detectionRate": None,
            "preventionRate": None,
            "attributionRate": None,
            "operationIds": [],
            "hasData": False,
        }

    def test_outcome_rates_cover_targeting_operations(self):
        assessor = CrownJewelAssessor([crown_jewel("tgt-db")])
        assessor.add(
            technique(
                "a",
                targets=(crown_jewel_hit(),),
                outcomes=(detection(OutcomeStatus.DETECTED),),
            )
        )
        # Same operation, no crown jewel assignment: still part of the operation
        assessor.add(technique("b", outcomes=(detection(OutcomeStatus.MISSED),)))
        # Different operation never targeting the crown jewel
        assessor.add(
            technique(
                "c", operation_id="op-2", outcomes=(detection(OutcomeStatus.MISSED),)
            )
        )

        (stats,) = assessor.target_stats()
        assert stats.detection_rate == 50
        assert stats.prevention_rate is None

    def test_operation_target_list_counts_as_targeting(self):
        assessor = CrownJewelAssessor(
            [crown_jewel("tgt-db")],
            [operation("op-9", target_ids=("tgt-db",))],
        )

        (stats,) = assessor.target_stats()
        assert stats.times_targeted == 1
        assert stats.times_compromised == 0

    def test_sorted_by_name(self):
        assessor = CrownJewelAssessor(
            [crown_jewel("b", "Zeta"), crown_jewel("a", "Alpha"), crown_jewel("c", "Alpha")]
        )

        assert [s.id for s in assessor.target_stats()] == ["a", "c", "b"]
