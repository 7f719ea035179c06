"""
Item policy registry.

A versioned table of part numbers the engine owns. Auto-managed parts have
their presence and quantity controlled by board configuration; formula
priced parts additionally have a computed price that a catalog refresh must
never overwrite.

The table is built once and handed to the synthesizer, the reconciler and
the services, so tests can swap in their own.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping


@dataclass(frozen=True)
class PartPolicy:
    """Policy for one part number or part-number family."""
    part_number: str
    auto_managed: bool = True
    formula_priced: bool = False
    formula: str | None = None
    # Used when a formula priced part has no catalog entry
    description: str | None = None


@dataclass(frozen=True)
class PolicyTable:
    """
    Immutable lookup of part policies.

    Auto-managed matching is by exact part number or prefix; formula
    priced matching is by exact part number only.
    """
    version: str
    policies: Mapping[str, PartPolicy] = field(default_factory=dict)

    @classmethod
    def from_policies(cls, version: str, policies: Iterable[PartPolicy]) -> "PolicyTable":
        return cls(version, MappingProxyType({p.part_number: p for p in policies}))

    def is_auto_managed(self, part_number: str | None) -> bool:
        if not part_number:
            return False
        return any(
            policy.auto_managed and part_number.startswith(key)
            for key, policy in self.policies.items()
        )

    def is_formula_priced(self, part_number: str | None) -> bool:
        policy = self.policies.get(part_number or "")
        return bool(policy and policy.formula_priced)

    def lookup(self, part_number: str) -> PartPolicy | None:
        return self.policies.get(part_number)

    def auto_managed_part_numbers(self) -> frozenset[str]:
        return frozenset(k for k, p in self.policies.items() if p.auto_managed)


def _managed(*part_numbers: str) -> list[PartPolicy]:
    return [PartPolicy(pn) for pn in part_numbers]


def _formula(part_number: str, formula: str, description: str | None = None) -> PartPolicy:
    return PartPolicy(part_number, formula_priced=True, formula=formula, description=description)


DEFAULT_POLICY_TABLE = PolicyTable.from_policies(
    "2024.2",
    [
        # Tiers and sheet metal
        _formula("1A-TIERS", "tier_schedule", "Cubic tier"),
        _formula("1B-TIERS-400", "tier_schedule", "Custom tier 400mm deep"),
        _formula("1B-BASE", "base_per_tier", "Plinth base"),
        _formula("1B-SS-2B", "stainless_uplift", "316 stainless steel uplift (2B finish)"),
        _formula("1B-SS-NO4", "stainless_uplift", "316 stainless steel uplift (No.4 finish)"),
        _formula("1B-600MM", "depth_per_tier", "600mm depth extra"),
        _formula("1B-800MM", "depth_per_tier", "800mm depth extra"),
        *_managed("1B-DOORS"),
        # Cubic options
        *_managed("1A-COMPARTMENTS"),
        _formula("1A-50KA", "fault_rating_uplift", "Over 50kA fault rating uplift"),
        _formula("1A-COLOUR", "non_standard_colour", "Non-standard colour"),
        # Per-tier sundries and delivery
        *_managed("MISC-LABELS", "MISC-HARDWARE", "MISC-TEST-TIERS"),
        *_managed("MISC-DELIVERY-UTE", "MISC-DELIVERY-HIAB"),
        _formula("MISC-SITE-RECONNECTION", "site_reconnection", "Site reconnection of shipping sections"),
        # CT metering and meter panels
        *_managed("CT-COMPARTMENTS", "CT-PANEL", "CT-TEST-BLOCK", "CT-WIRING"),
        *_managed("CT-S-TYPE", "CT-T-TYPE", "CT-W-TYPE", "CT-U-TYPE"),
        *_managed(
            "CT-400A", "CT-630A", "CT-800A", "CT-1200A",
            "CT-1600A", "CT-2000A", "CT-2500A", "CT-3200A",
        ),
        # Whole current metering
        *_managed("100A-PANEL", "100A-FUSE", "100A-NEUTRAL-LINK", "100A-MCB-1PH", "100A-MCB-3PH"),
        # Fixed-price synthesized items
        _formula("Busbar Insulation", "busbar_insulation", "Busbar insulation"),
        _formula("Custom Enclosure", "enclosure_reference"),
        _formula("Cubic Enclosure", "enclosure_reference"),
        _formula("Surge Protection Device", "fixed", "Type 2 SPD"),
    ],
)
