"""Success-rate arithmetic shared by every analyzer."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from scorecard.models.operation import Outcome, OutcomeType


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rate(successes: int, attempts: int) -> Optional[int]:
    """Integer percentage of successes, or None when nothing was attempted.

    100 is reserved for a perfect record: 199/200 reads 99, not 100.
    """
    if attempts <= 0:
        return None
    percent = round_half_up(100 * successes / attempts)
    if percent == 100 and successes < attempts:
        return 99
    return percent


def ratio_percent(part: int, whole: int) -> int:
    """Integer percentage that reads 0 instead of None for an empty whole.

    Used for plain ratios (compromise rates, coverage bars) that are shown as
    numbers rather than as success-rate KPIs.
    """
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)


@dataclass
class RateCounter:
    """Attempt/success tally for one outcome type."""

    attempts: int = 0
    successes: int = 0

    def record(self, success: bool) -> None:
        self.attempts += 1
        if success:
            self.successes += 1

    def merge(self, other: "RateCounter") -> None:
        self.attempts += other.attempts
        self.successes += other.successes

    @property
    def rate(self) -> Optional[int]:
        return rate(self.successes, self.attempts)

    @property
    def available(self) -> bool:
        return self.attempts > 0

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "rate": self.rate,
        }


@dataclass
class OutcomeRates:
    """Detection/prevention/attribution tallies for one grouping key.

    Outcomes with status NOT_APPLICABLE are ignored entirely: they count as
    neither an attempt nor a success.
    """

    detection: RateCounter
    prevention: RateCounter
    attribution: RateCounter

    @classmethod
    def empty(cls) -> "OutcomeRates":
        return cls(RateCounter(), RateCounter(), RateCounter())

    def counter_for(self, outcome_type: OutcomeType) -> RateCounter:
        if outcome_type == OutcomeType.DETECTION:
            return self.detection
        if outcome_type == OutcomeType.PREVENTION:
            return self.prevention
        return self.attribution

    def record(self, outcome: Outcome) -> bool:
        """Tally an outcome. Returns False when it was skipped as N/A."""
        if outcome.is_not_applicable:
            return False
        self.counter_for(outcome.type).record(outcome.is_success)
        return True

    def merge(self, other: "OutcomeRates") -> None:
        self.detection.merge(other.detection)
        self.prevention.merge(other.prevention)
        self.attribution.merge(other.attribution)

    def to_dict(self) -> dict:
        return {
            "detection": self.detection.to_dict(),
            "prevention": self.prevention.to_dict(),
            "attribution": self.attribution.to_dict(),
        }
