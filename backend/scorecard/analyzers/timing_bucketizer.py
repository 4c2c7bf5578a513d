"""Response-timing buckets and running means.

Buckets use inclusive lower / exclusive upper bounds in minutes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from scorecard.analyzers.rate_calculator import round_half_up

# (label, exclusive upper bound in minutes); last bucket is open-ended
TIMING_BUCKETS: list[tuple[str, Optional[float]]] = [
    ("<1 min", 1),
    ("1-5 min", 5),
    ("5-15 min", 15),
    ("15-60 min", 60),
    ("1-6 hrs", 360),
    ("6-24 hrs", 1440),
    (">24 hrs", None),
]

BUCKET_LABELS: tuple[str, ...] = tuple(label for label, _ in TIMING_BUCKETS)


def bucket_for_minutes(minutes: float) -> str:
    """Classify a non-negative elapsed time into its bucket label."""
    if minutes < 0:
        raise ValueError(f"Elapsed minutes must be non-negative, got {minutes}")
    for label, upper in TIMING_BUCKETS:
        if upper is None or minutes < upper:
            return label
    return BUCKET_LABELS[-1]


def elapsed_minutes(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Minutes from start to end, or None when either is missing or end < start."""
    if start is None or end is None:
        return None
    minutes = (end - start).total_seconds() / 60
    if minutes < 0:
        return None
    return minutes


def _empty_distribution() -> dict[str, int]:
    return {label: 0 for label in BUCKET_LABELS}


@dataclass
class TimingAccumulator:
    """Distribution plus running mean for one metric family."""

    distribution: dict[str, int] = field(default_factory=_empty_distribution)
    total_minutes: float = 0.0
    samples: int = 0

    def add(self, minutes: float) -> str:
        label = bucket_for_minutes(minutes)
        self.distribution[label] += 1
        self.total_minutes += minutes
        self.samples += 1
        return label

    @property
    def mean(self) -> Optional[int]:
        """Arithmetic mean in whole minutes; no outlier trimming."""
        if self.samples == 0:
            return None
        return round_half_up(self.total_minutes / self.samples)


class TimingBucketizer:
    """Tracks detection and attribution latency for one aggregation call."""

    def __init__(self):
        self.detection = TimingAccumulator()
        self.attribution = TimingAccumulator()

    def bucket(self, minutes: float) -> str:
        return bucket_for_minutes(minutes)

    def add_detection(self, minutes: float) -> str:
        return self.detection.add(minutes)

    def add_attribution(self, minutes: float) -> str:
        return self.attribution.add(minutes)

    def to_dict(self) -> dict:
        return {
            "avgTimeToDetect": self.detection.mean,
            "avgTimeToAttribute": self.attribution.mean,
            "detectionDistribution": dict(self.detection.distribution),
            "attributionDistribution": dict(self.attribution.distribution),
            "detectionSamples": self.detection.samples,
            "attributionSamples": self.attribution.samples,
        }
