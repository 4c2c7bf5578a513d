"""MITRE ATT&CK Enterprise tactic reference data.

Used to pre-seed every tactic-level accumulator so tactic output is complete
even when the data touches only a handful of tactics.
"""

import sys
from functools import lru_cache

from scorecard.models.mitre import ReferenceTaxonomy, Tactic

# MITRE ATT&CK v14.1 - Enterprise tactics (tactic_id, name, short_name)
TACTICS = [
    ("TA0043", "Reconnaissance", "reconnaissance"),
    ("TA0042", "Resource Development", "resource-development"),
    ("TA0001", "Initial Access", "initial-access"),
    ("TA0002", "Execution", "execution"),
    ("TA0003", "Persistence", "persistence"),
    ("TA0004", "Privilege Escalation", "privilege-escalation"),
    ("TA0005", "Defense Evasion", "defense-evasion"),
    ("TA0006", "Credential Access", "credential-access"),
    ("TA0007", "Discovery", "discovery"),
    ("TA0008", "Lateral Movement", "lateral-movement"),
    ("TA0009", "Collection", "collection"),
    ("TA0010", "Exfiltration", "exfiltration"),
    ("TA0011", "Command and Control", "command-and-control"),
    ("TA0040", "Impact", "impact"),
]

# Canonical kill-chain order (Recon/Resource first, Impact last)
TACTIC_ORDER: tuple[str, ...] = tuple(tactic_id for tactic_id, _, _ in TACTICS)

_ORDER_INDEX = {tactic_id: idx for idx, tactic_id in enumerate(TACTIC_ORDER)}


def tactic_order_index(tactic_id: str) -> int:
    """Position in the canonical order; unknown tactics sort last."""
    return _ORDER_INDEX.get(tactic_id, sys.maxsize)


def tactic_sort_key(tactic_id: str) -> tuple[int, str]:
    """Canonical order, tie-broken by tactic id."""
    return (tactic_order_index(tactic_id), tactic_id)


@lru_cache
def enterprise_taxonomy() -> ReferenceTaxonomy:
    """Default reference taxonomy with the 14 Enterprise tactics."""
    return ReferenceTaxonomy(
        tactics=tuple(
            Tactic(tactic_id=tactic_id, name=name, short_name=short_name)
            for tactic_id, name, short_name in TACTICS
        )
    )
