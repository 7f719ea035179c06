"""
Board configuration synthesizer.

Turns a board configuration into the complete list of line items it
implies. Every rule is evaluated on every call; there is no incremental
mode. The function is pure: catalog data comes in as a snapshot and the
result is a list of proposals for the reconciler.

A rule that cannot be fully evaluated raises instead of dropping its
items, so a board is never left with a partially correct item set.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from switchboard_quoting.engine.catalog_classifier import MASTER_CATEGORY
from switchboard_quoting.engine.item_identity import ProposedItem, fold_proposals
from switchboard_quoting.engine.item_policy import DEFAULT_POLICY_TABLE, PolicyTable
from switchboard_quoting.schemas.board_config import BoardConfig
from switchboard_quoting.utils.exceptions import (
    IdentityConflictError,
    InvalidConfigurationError,
    NotFoundError,
)
from switchboard_quoting.utils.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")
HOURS = Decimal("0.0001")

BASICS_CATEGORY = "Basics"
BUSBAR_CATEGORY = "BUSBAR"
BUSBAR_PREFIXES = ("BB-", "BBC-")

CT_BASE_ITEMS = ("CT-COMPARTMENTS", "CT-PANEL", "CT-TEST-BLOCK", "CT-WIRING")
METER_PANEL_ITEMS = ("100A-PANEL", "CT-TEST-BLOCK", "CT-WIRING")
TIER_SUNDRIES = ("MISC-LABELS", "MISC-HARDWARE", "MISC-TEST-TIERS")
SHEET_METAL_ITEMS = ("1B-TIERS-400", "1B-COMPARTMENTS", "1B-BASE", "1B-DOORS", "1B-600MM", "1B-800MM")

# Upper bound in amps -> CT chamber labour part
CT_LABOUR_BANDS: tuple[tuple[int, str], ...] = (
    (400, "CT-400A"),
    (630, "CT-630A"),
    (800, "CT-800A"),
    (1250, "CT-1200A"),
    (1600, "CT-1600A"),
    (2000, "CT-2000A"),
    (2500, "CT-2500A"),
)
CT_LABOUR_ABOVE_BANDS = "CT-3200A"


def money(value: Any) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def hours(value: Any) -> Decimal:
    return Decimal(value).quantize(HOURS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CatalogRecord:
    """Catalog values the synthesizer copies onto line items."""
    part_number: str
    category: str
    subcategory: str | None
    description: str | None
    unit_price: Decimal
    labour_hours: Decimal = Decimal("0")
    default_quantity: int = 1
    is_auto_add: bool = False

    @classmethod
    def from_entry(cls, entry: Any) -> "CatalogRecord":
        return cls(
            part_number=entry.part_number or "",
            category=entry.category,
            subcategory=entry.subcategory,
            description=entry.description or None,
            unit_price=Decimal(entry.unit_price or 0),
            labour_hours=Decimal(entry.labour_hours or 0),
            default_quantity=entry.default_quantity or 1,
            is_auto_add=bool(entry.is_auto_add),
        )


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Catalog entries needed for one synthesis pass.

    ``entries`` maps a part number to every entry carrying it, so an
    ambiguous part number is detected rather than resolved arbitrarily.
    """
    entries: Mapping[str, tuple[CatalogRecord, ...]] = field(default_factory=dict)
    basics: tuple[CatalogRecord, ...] = ()

    @classmethod
    def from_records(
        cls,
        records: Iterable[CatalogRecord],
        basics: Iterable[CatalogRecord] = (),
    ) -> "CatalogSnapshot":
        grouped: dict[str, list[CatalogRecord]] = {}
        for record in records:
            if record.part_number:
                grouped.setdefault(record.part_number, []).append(record)
        return cls({pn: tuple(rs) for pn, rs in grouped.items()}, tuple(basics))

    def get(self, part_number: str) -> CatalogRecord | None:
        records = self.entries.get(part_number, ())
        if len(records) > 1:
            raise IdentityConflictError(
                f"Catalog part number {part_number} is ambiguous ({len(records)} entries)",
                part_number=part_number,
            )
        return records[0] if records else None

    def require(self, part_number: str) -> CatalogRecord:
        record = self.get(part_number)
        if record is None:
            raise NotFoundError("CatalogEntry", part_number)
        return record


@dataclass(frozen=True)
class SynthesisRules:
    """Prices and factors used by the formula rules."""
    enclosure_reference_price: Decimal = Decimal("500")
    spd_price: Decimal = Decimal("150")
    spd_labour_hours: Decimal = Decimal("0.5")
    # Tier count -> price per tier; counts above the last key use its price
    custom_tier_schedule: Mapping[int, Decimal] = field(
        default_factory=lambda: {1: Decimal("1800"), 2: Decimal("1400")}
    )
    cubic_tier_schedule: Mapping[int, Decimal] = field(
        default_factory=lambda: {1: Decimal("1500")}
    )
    base_fixed_price: Decimal = Decimal("200")
    base_price_per_tier: Decimal = Decimal("200")
    # Material -> (uplift part number, factor on sheet metal cost)
    stainless_uplifts: Mapping[str, tuple[str, Decimal]] = field(
        default_factory=lambda: {
            "Powder 316 Stainless Steel": ("1B-SS-2B", Decimal("0.65")),
            "316 Stainless Steel Natural Finish": ("1B-SS-NO4", Decimal("0.75")),
        }
    )
    non_standard_colour_price: Decimal = Decimal("80")
    fault_rating_divisor: Decimal = Decimal("4")
    insulation_factors: Mapping[str, Decimal] = field(
        default_factory=lambda: {"air": Decimal("0.25"), "fully": Decimal("1.0")}
    )
    insulation_material_share: Decimal = Decimal("0.6")
    insulation_labour_share: Decimal = Decimal("0.4")
    reconnection_min_width: Decimal = Decimal("4")
    reconnection_min_sections: int = 2


DEFAULT_RULES = SynthesisRules()


def tier_unit_price(schedule: Mapping[int, Decimal], tier_count: int) -> Decimal:
    """Per-tier price for a board with ``tier_count`` tiers."""
    eligible = [count for count in schedule if count <= tier_count]
    if not eligible:
        raise InvalidConfigurationError(
            f"No tier price defined for {tier_count} tiers",
            field="tierCount",
        )
    return money(schedule[max(eligible)])


def ct_labour_part(amps: int) -> str:
    for upper, part_number in CT_LABOUR_BANDS:
        if amps <= upper:
            return part_number
    return CT_LABOUR_ABOVE_BANDS


def is_busbar(item: Any) -> bool:
    category = (getattr(item, "category", None) or "").upper()
    name = getattr(item, "name", None) or getattr(item, "part_number", None) or ""
    return category == BUSBAR_CATEGORY or name.startswith(BUSBAR_PREFIXES)


class _ProposalBuilder:
    """Collects proposals, copying catalog metadata onto each one."""

    def __init__(self, catalog: CatalogSnapshot, policy: PolicyTable):
        self.catalog = catalog
        self.policy = policy
        self.proposals: list[ProposedItem] = []

    def add(self, item: ProposedItem) -> None:
        if item.quantity > 0:
            self.proposals.append(item)

    def add_part(
        self,
        part_number: str,
        quantity: int,
        unit_price: Decimal | None = None,
        labour_hours: Decimal | None = None,
    ) -> None:
        """
        Propose a catalog part.

        Without an explicit ``unit_price`` the catalog entry is required. A
        computed price falls back to the policy description when the part is
        not in the catalog.
        """
        record = self.catalog.get(part_number)
        if record is None and unit_price is None:
            raise NotFoundError("CatalogEntry", part_number)

        if record is not None:
            category, subcategory, description = record.category, record.subcategory, record.description
        else:
            policy = self.policy.lookup(part_number)
            category, subcategory = MASTER_CATEGORY, None
            description = policy.description if policy else None

        price = unit_price if unit_price is not None else record.unit_price
        if labour_hours is None:
            labour_hours = record.labour_hours if record is not None else Decimal("0")

        self.add(ProposedItem(
            category=category,
            subcategory=subcategory,
            name=part_number,
            description=description,
            quantity=quantity,
            unit_price=money(price),
            labour_hours=hours(labour_hours),
        ))

    def sheet_metal_cost(self) -> Decimal:
        return sum(
            (p.cost for p in self.proposals if p.name in SHEET_METAL_ITEMS),
            Decimal("0"),
        )


def _basics(builder: _ProposalBuilder, catalog: CatalogSnapshot) -> None:
    for record in catalog.basics:
        if record.category != BASICS_CATEGORY or not record.is_auto_add:
            continue
        # Parts owned by another rule are never proposed as basics
        if builder.policy.is_auto_managed(record.part_number) or is_busbar(record):
            continue
        builder.add(ProposedItem(
            category=record.category,
            subcategory=record.subcategory,
            name=record.part_number or record.description or "",
            description=record.description,
            quantity=record.default_quantity or 1,
            unit_price=money(record.unit_price),
            labour_hours=hours(record.labour_hours),
        ))


def _enclosure(builder: _ProposalBuilder, config: BoardConfig, rules: SynthesisRules) -> None:
    if config.enclosure_type is None:
        return
    label = f"{config.enclosure_type} Enclosure"
    builder.add(ProposedItem(
        category=MASTER_CATEGORY,
        subcategory="Enclosure",
        name=label,
        description=f"{config.ip_rating} {label}" if config.ip_rating else label,
        quantity=1,
        unit_price=money(rules.enclosure_reference_price),
    ))


def _surge_protection(builder: _ProposalBuilder, config: BoardConfig, rules: SynthesisRules) -> None:
    if config.spd != "Yes":
        return
    builder.add(ProposedItem(
        category=MASTER_CATEGORY,
        subcategory="Circuit Breakers > SPD",
        name="Surge Protection Device",
        description="Type 2 SPD",
        quantity=1,
        unit_price=money(rules.spd_price),
        labour_hours=hours(rules.spd_labour_hours),
    ))


def _tiers(builder: _ProposalBuilder, config: BoardConfig, rules: SynthesisRules) -> None:
    tiers = config.tiers
    if tiers <= 0:
        return

    if config.is_cubic:
        part_number, schedule = "1A-TIERS", rules.cubic_tier_schedule
    else:
        part_number, schedule = "1B-TIERS-400", rules.custom_tier_schedule
    price = tier_unit_price(schedule, tiers)
    logger.debug("tier_price_selected", part_number=part_number, tiers=tiers, unit_price=str(price))
    builder.add_part(part_number, tiers, unit_price=price)

    for part in TIER_SUNDRIES:
        builder.add_part(part, tiers)
    builder.add_part("MISC-DELIVERY-UTE" if tiers == 1 else "MISC-DELIVERY-HIAB", 1)

    if config.is_custom and config.location == "Outdoor":
        builder.add_part("1B-DOORS", tiers)

    if not config.is_cubic and config.base_required == "Yes":
        base_price = (rules.base_fixed_price + rules.base_price_per_tier * tiers) / tiers
        builder.add_part("1B-BASE", tiers, unit_price=money(base_price))

    if config.is_custom and config.enclosure_depth in (600, 800):
        part = f"1B-{config.enclosure_depth}MM"
        per_tier = builder.catalog.require(part).unit_price
        builder.add_part(part, 1, unit_price=money(per_tier * tiers))


def _ct_metering(builder: _ProposalBuilder, config: BoardConfig) -> None:
    if config.ct_metering != "Yes":
        return
    quantity = config.ct_quantity
    for part in CT_BASE_ITEMS:
        builder.add_part(part, quantity)
    builder.add_part(f"CT-{config.ct_type}-TYPE", quantity)
    builder.add_part(ct_labour_part(config.current_amps), quantity)


def _meter_panel(builder: _ProposalBuilder, config: BoardConfig) -> None:
    if config.meter_panel != "Yes":
        return
    for part in METER_PANEL_ITEMS:
        builder.add_part(part, config.ct_quantity)


def _whole_current(builder: _ProposalBuilder, config: BoardConfig) -> None:
    if config.whole_current_metering != "Yes":
        return
    quantity = config.wc_quantity
    three_phase = config.wc_type == "100A wiring 3-phase"
    builder.add_part("100A-FUSE", quantity * 3 if three_phase else quantity)
    builder.add_part("100A-PANEL", quantity)
    builder.add_part("100A-NEUTRAL-LINK", quantity)
    builder.add_part("100A-MCB-3PH" if three_phase else "100A-MCB-1PH", quantity)


def _cubic_options(builder: _ProposalBuilder, config: BoardConfig, rules: SynthesisRules) -> None:
    compartments = config.total_compartments or 0
    if not config.is_cubic or compartments <= 0:
        return
    compartment = builder.catalog.require("1A-COMPARTMENTS")
    builder.add_part("1A-COMPARTMENTS", compartments)

    if config.is_over_50ka == "Yes":
        uplift = compartments * compartment.unit_price / rules.fault_rating_divisor
        builder.add_part("1A-50KA", 1, unit_price=money(uplift))
    if config.is_non_standard_colour == "Yes":
        builder.add_part("1A-COLOUR", compartments, unit_price=money(rules.non_standard_colour_price))


def _site_reconnection(builder: _ProposalBuilder, config: BoardConfig, rules: SynthesisRules) -> None:
    width = config.board_width or 0
    sections = config.shipping_sections or 0
    if Decimal(str(width)) <= rules.reconnection_min_width or sections < rules.reconnection_min_sections:
        return
    builder.add_part("MISC-SITE-RECONNECTION", (sections + 1) // 2)


def _stainless_uplift(
    builder: _ProposalBuilder,
    config: BoardConfig,
    rules: SynthesisRules,
    manual_items: Sequence[Any],
) -> None:
    uplift = rules.stainless_uplifts.get(config.material or "")
    if uplift is None or config.tiers <= 0 or not config.is_custom:
        return
    part_number, factor = uplift
    sheet_metal = builder.sheet_metal_cost() + sum(
        (money(Decimal(i.unit_price) * i.quantity) for i in manual_items if i.name in SHEET_METAL_ITEMS),
        Decimal("0"),
    )
    logger.debug("stainless_uplift_computed", part_number=part_number, sheet_metal=str(sheet_metal))
    builder.add_part(part_number, 1, unit_price=money(sheet_metal * factor))


def _busbar_insulation(
    builder: _ProposalBuilder,
    config: BoardConfig,
    rules: SynthesisRules,
    manual_items: Sequence[Any],
) -> None:
    factor = rules.insulation_factors.get(config.insulation_level or "none")
    busbars = [i for i in manual_items if is_busbar(i)]
    if not factor or not busbars:
        return
    material = sum((Decimal(b.unit_price) * b.quantity for b in busbars), Decimal("0"))
    labour = sum((Decimal(b.labour_hours) * b.quantity for b in busbars), Decimal("0"))
    builder.add_part(
        "Busbar Insulation",
        1,
        unit_price=money(material * factor * rules.insulation_material_share),
        labour_hours=hours(labour * factor * rules.insulation_labour_share),
    )


def synthesize(
    config: "BoardConfig | Mapping[str, Any]",
    catalog: CatalogSnapshot,
    *,
    manual_items: Sequence[Any] = (),
    rules: SynthesisRules = DEFAULT_RULES,
    policy: PolicyTable = DEFAULT_POLICY_TABLE,
) -> list[ProposedItem]:
    """
    Compute the full set of system items a board configuration implies.

    Args:
        config: Board configuration, raw or already validated
        catalog: Catalog snapshot holding every part the rules may need
        manual_items: The board's user-owned items (busbars, compartments)
        rules: Prices and factors for the formula rules
        policy: Policy table used to keep basics away from managed parts

    Returns:
        Proposals with unique identities, in rule order

    Raises:
        InvalidConfigurationError: configuration fails validation
        NotFoundError: a required catalog part is missing
        IdentityConflictError: a required catalog part number is ambiguous
    """
    config = BoardConfig.parse(config)
    builder = _ProposalBuilder(catalog, policy)

    _basics(builder, catalog)
    _enclosure(builder, config, rules)
    _surge_protection(builder, config, rules)
    _tiers(builder, config, rules)
    _ct_metering(builder, config)
    _meter_panel(builder, config)
    _whole_current(builder, config)
    _cubic_options(builder, config, rules)
    _site_reconnection(builder, config, rules)
    # Both depend on items proposed above
    _stainless_uplift(builder, config, rules, manual_items)
    _busbar_insulation(builder, config, rules, manual_items)

    return fold_proposals(builder.proposals)
