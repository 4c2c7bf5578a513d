"""MITRE ATT&CK reference taxonomy records."""

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True)
class Tactic:
    """MITRE ATT&CK Tactic (TA####)."""

    tactic_id: str  # e.g., TA0001
    name: str
    short_name: str = ""  # e.g., "initial-access"


@dataclass(frozen=True)
class MitreTechnique:
    """MITRE ATT&CK Technique (T####)."""

    technique_id: str  # e.g., T1078
    name: str
    tactic_id: str


@dataclass(frozen=True)
class MitreSubTechnique:
    """MITRE ATT&CK Sub-technique (T####.###)."""

    sub_technique_id: str  # e.g., T1078.004
    name: str
    technique_id: str  # parent technique


@dataclass(frozen=True)
class ReferenceTaxonomy:
    """Fixed reference data the engine groups against.

    Tactics are kept in the order supplied; presentation order is decided
    by the canonical tactic order table, not by this tuple.
    """

    tactics: tuple[Tactic, ...]
    techniques: tuple[MitreTechnique, ...] = ()
    sub_techniques: tuple[MitreSubTechnique, ...] = ()
    version: str = "14.1"

    # Lookups built once per taxonomy instance
    _tactics_by_id: dict = field(init=False, repr=False, compare=False)
    _techniques_by_id: dict = field(init=False, repr=False, compare=False)
    _sub_techniques_by_id: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_tactics_by_id", {t.tactic_id: t for t in self.tactics}
        )
        object.__setattr__(
            self, "_techniques_by_id", {t.technique_id: t for t in self.techniques}
        )
        object.__setattr__(
            self,
            "_sub_techniques_by_id",
            {s.sub_technique_id: s for s in self.sub_techniques},
        )

    def get_tactic(self, tactic_id: str) -> Optional[Tactic]:
        return self._tactics_by_id.get(tactic_id)

    def get_technique(self, technique_id: str) -> Optional[MitreTechnique]:
        return self._techniques_by_id.get(technique_id)

    def get_sub_technique(self, sub_technique_id: str) -> Optional[MitreSubTechnique]:
        return self._sub_techniques_by_id.get(sub_technique_id)

    @property
    def has_technique_catalogue(self) -> bool:
        """Whether technique ids can be checked against a catalogue."""
        return bool(self.techniques)

    def with_catalogue(
        self,
        techniques: tuple[MitreTechnique, ...] = (),
        sub_techniques: tuple[MitreSubTechnique, ...] = (),
    ) -> "ReferenceTaxonomy":
        """Copy of this taxonomy with catalogue rows added; self is returned if none."""
        if not techniques and not sub_techniques:
            return self
        return replace(
            self,
            techniques=self.techniques + tuple(techniques),
            sub_techniques=self.sub_techniques + tuple(sub_techniques),
        )
