"""Errors and soft warnings raised by the metrics engine."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class MetricsError(Exception):
    """Base class for metrics engine failures."""


class InvalidRangeError(MetricsError, ValueError):
    """Raised when a reporting window ends before it starts."""

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end
        super().__init__(
            f"Invalid date range: end ({end.isoformat()}) is before "
            f"start ({start.isoformat()})"
        )


@dataclass(frozen=True)
class ReferenceDataWarning:
    """A record referenced a tactic or technique missing from the taxonomy.

    Indicates stale reference data rather than caller error, so it never
    aborts aggregation.
    """

    kind: str  # "tactic" or "technique"
    reference_id: str
    technique_record_id: Optional[str] = None

    @property
    def message(self) -> str:
        return f"Unknown {self.kind} '{self.reference_id}' in reference taxonomy"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "referenceId": self.reference_id,
            "techniqueRecordId": self.technique_record_id,
            "message": self.message,
        }


def validate_range(start: datetime, end: datetime) -> None:
    """Reject windows where end precedes start."""
    if end < start:
        raise InvalidRangeError(start, end)
