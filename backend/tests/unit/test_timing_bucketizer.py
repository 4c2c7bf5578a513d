"""Unit tests for response-timing buckets."""

from datetime import timedelta

import pytest

from scorecard.analyzers.timing_bucketizer import (
    BUCKET_LABELS,
    TimingAccumulator,
    TimingBucketizer,
    bucket_for_minutes,
    elapsed_minutes,
)

from factories import T0


class TestBucketForMinutes:
    """Inclusive lower / exclusive upper bucket bounds."""

    @pytest.mark.parametrize(
        "minutes,label",
        [
            (0, "<1 min"),
            (0.999, "<1 min"),
            (1.0, "1-5 min"),
            (4.999, "1-5 min"),
            (5, "5-15 min"),
            (15, "15-60 min"),
            (59.999, "15-60 min"),
            (60.0, "1-6 hrs"),
            (359.99, "1-6 hrs"),
            (360, "6-24 hrs"),
            (1439.9, "6-24 hrs"),
            (1440, ">24 hrs"),
            (100000, ">24 hrs"),
        ],
    )
    def test_boundaries(self, minutes, label):
        assert bucket_for_minutes(minutes) == label

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            bucket_for_minutes(-0.1)

    def test_label_order(self):
        assert BUCKET_LABELS == (
            "<1 min",
            "1-5 min",
            "5-15 min",
            "15-60 min",
            "1-6 hrs",
            "6-24 hrs",
            ">24 hrs",
        )


class TestElapsedMinutes:
    def test_fractional_minutes(self):
        assert elapsed_minutes(T0, T0 + timedelta(seconds=90)) == 1.5

    def test_missing_timestamp(self):
        assert elapsed_minutes(None, T0) is None
        assert elapsed_minutes(T0, None) is None

    def test_negative_elapsed_discarded(self):
        assert elapsed_minutes(T0, T0 - timedelta(minutes=1)) is None


class TestTimingAccumulator:
    def test_empty_mean_is_null(self):
        assert TimingAccumulator().mean is None

    def test_mean_rounds_half_up(self):
        acc = TimingAccumulator()
        acc.add(1.5)
        assert acc.mean == 2

    def test_mean_has_no_outlier_trimming(self):
        acc = TimingAccumulator()
        for minutes in (1, 1, 1, 997):
            acc.add(minutes)
        assert acc.mean == 250

    def test_add_returns_bucket(self):
        acc = TimingAccumulator()
        assert acc.add(30) == "15-60 min"
        assert acc.distribution["15-60 min"] == 1
        assert acc.samples == 1


class TestTimingBucketizer:
    def test_empty_summary(self):
        summary = TimingBucketizer().to_dict()

        assert summary["avgTimeToDetect"] is None
        assert summary["avgTimeToAttribute"] is None
        assert summary["detectionSamples"] == 0
        assert list(summary["detectionDistribution"]) == list(BUCKET_LABELS)
        assert all(v == 0 for v in summary["attributionDistribution"].values())

    def test_families_are_independent(self):
        bucketizer = TimingBucketizer()
        bucketizer.add_detection(0.5)
        bucketizer.add_attribution(120)

        summary = bucketizer.to_dict()
        assert summary["avgTimeToDetect"] == 1
        assert summary["avgTimeToAttribute"] == 120
        assert summary["detectionDistribution"]["<1 min"] == 1
        assert summary["attributionDistribution"]["1-6 hrs"] == 1
        assert summary["attributionDistribution"]["<1 min"] == 0

    def test_bucket_does_not_record(self):
        bucketizer = TimingBucketizer()

        assert bucketizer.bucket(59.999) == "15-60 min"
        assert bucketizer.to_dict()["detectionSamples"] == 0
