"""
Tests for the board configuration synthesizer.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from switchboard_quoting.engine.item_policy import DEFAULT_POLICY_TABLE
from switchboard_quoting.engine.synthesizer import (
    CatalogRecord,
    CatalogSnapshot,
    SynthesisRules,
    ct_labour_part,
    synthesize,
    tier_unit_price,
)
from switchboard_quoting.utils.exceptions import (
    IdentityConflictError,
    InvalidConfigurationError,
    NotFoundError,
)

WC_BUNDLE = {"100A-FUSE", "100A-PANEL", "100A-NEUTRAL-LINK", "100A-MCB-3PH", "100A-MCB-1PH"}


def by_name(proposals):
    return {p.name: p for p in proposals}


def manual(name, price, quantity=1, labour="0", category="BUSBAR"):
    return SimpleNamespace(
        name=name,
        category=category,
        unit_price=Decimal(price),
        quantity=quantity,
        labour_hours=Decimal(labour),
    )


class TestBasicsAndFixedItems:
    """Tests for basics, enclosure and SPD rules."""

    def test_basics_always_proposed(self, catalog_snapshot):
        items = by_name(synthesize({}, catalog_snapshot))
        assert items["BASIC-GLAND"].quantity == 2
        assert items["BASIC-GLAND"].category == "Basics"
        # No part number: the description is the name
        assert items["Phase labels"].description == "Phase labels"

    def test_managed_basics_excluded(self, bare_snapshot):
        """Test a basics entry owned by another rule is not proposed as a basic."""
        snapshot = CatalogSnapshot(
            bare_snapshot.entries,
            basics=(CatalogRecord("MISC-LABELS", "Basics", None, "Labels", Decimal("20"), is_auto_add=True),),
        )
        assert synthesize({}, snapshot) == []

    def test_enclosure_item(self, bare_snapshot):
        items = synthesize({"enclosureType": "Custom", "ipRating": "IP56"}, bare_snapshot)
        assert len(items) == 1
        enclosure = items[0]
        assert enclosure.name == "Custom Enclosure"
        assert enclosure.subcategory == "Enclosure"
        assert enclosure.description == "IP56 Custom Enclosure"
        assert enclosure.unit_price == Decimal("500.00")

    def test_enclosure_price_configurable(self, bare_snapshot):
        rules = SynthesisRules(enclosure_reference_price=Decimal("750"))
        items = synthesize({"enclosureType": "Cubic"}, bare_snapshot, rules=rules)
        assert items[0].unit_price == Decimal("750.00")
        assert items[0].description == "Cubic Enclosure"

    def test_spd(self, bare_snapshot):
        items = by_name(synthesize({"spd": "Yes"}, bare_snapshot))
        spd = items["Surge Protection Device"]
        assert spd.quantity == 1
        assert spd.unit_price == Decimal("150.00")
        assert spd.labour_hours == Decimal("0.5000")
        assert synthesize({"spd": "No"}, bare_snapshot) == []


class TestTierRules:
    """Tests for tier pricing and per-tier items."""

    def test_tier_schedule_lookup(self):
        schedule = {1: Decimal("1800"), 2: Decimal("1400")}
        assert tier_unit_price(schedule, 1) == Decimal("1800.00")
        assert tier_unit_price(schedule, 2) == Decimal("1400.00")
        assert tier_unit_price(schedule, 7) == Decimal("1400.00")

    def test_tier_schedule_gap_rejected(self):
        with pytest.raises(InvalidConfigurationError):
            tier_unit_price({2: Decimal("1400")}, 1)

    def test_single_tier(self, bare_snapshot):
        items = by_name(synthesize({"enclosureType": "Custom", "tierCount": 1}, bare_snapshot))
        tier = items["1B-TIERS-400"]
        assert tier.quantity == 1
        assert tier.unit_price == Decimal("1800.00")
        assert tier.labour_hours == Decimal("1.0000")
        for sundry in ("MISC-LABELS", "MISC-HARDWARE", "MISC-TEST-TIERS"):
            assert items[sundry].quantity == 1
        assert "MISC-DELIVERY-UTE" in items
        assert "MISC-DELIVERY-HIAB" not in items

    def test_two_tiers_reprice_whole_quantity(self, bare_snapshot):
        items = by_name(synthesize({"enclosureType": "Custom", "tierCount": 2}, bare_snapshot))
        tier = items["1B-TIERS-400"]
        assert tier.quantity == 2
        assert tier.unit_price == Decimal("1400.00")
        assert tier.cost == Decimal("2800.00")
        assert items["MISC-DELIVERY-HIAB"].quantity == 1
        assert "MISC-DELIVERY-UTE" not in items

    def test_cubic_tiers(self, bare_snapshot):
        items = by_name(synthesize({"enclosureType": "Cubic", "tierCount": 3}, bare_snapshot))
        assert items["1A-TIERS"].quantity == 3
        assert items["1A-TIERS"].unit_price == Decimal("1500.00")
        assert "1B-TIERS-400" not in items

    def test_zero_tiers_propose_nothing(self, bare_snapshot):
        assert synthesize({"enclosureType": "Custom", "tierCount": 0}, bare_snapshot)[1:] == []

    def test_outdoor_doors(self, bare_snapshot):
        items = by_name(synthesize(
            {"enclosureType": "Custom", "tierCount": 3, "location": "Outdoor"},
            bare_snapshot,
        ))
        assert items["1B-DOORS"].quantity == 3
        assert items["1B-DOORS"].unit_price == Decimal("1200.00")

    def test_base_price_formula(self, bare_snapshot):
        """Test base unit price is (200 + 200 * tiers) / tiers."""
        items = by_name(synthesize(
            {"enclosureType": "Custom", "tierCount": 2, "baseRequired": "Yes"},
            bare_snapshot,
        ))
        base = items["1B-BASE"]
        assert base.quantity == 2
        assert base.unit_price == Decimal("300.00")
        # Not in the catalog: falls back to the policy description
        assert base.description == "Plinth base"

    def test_depth_extra(self, bare_snapshot):
        items = by_name(synthesize(
            {"enclosureType": "Custom", "tierCount": 3, "enclosureDepth": "800"},
            bare_snapshot,
        ))
        depth = items["1B-800MM"]
        assert depth.quantity == 1
        assert depth.unit_price == Decimal("6000.00")

    def test_stainless_uplift(self, bare_snapshot):
        """Test uplift is a factor of all sheet metal, including manual compartments."""
        config = {
            "enclosureType": "Custom",
            "tierCount": 2,
            "material": "Powder 316 Stainless Steel",
            "baseRequired": "Yes",
        }
        compartments = manual("1B-COMPARTMENTS", "350", quantity=2, category="Switchboard")
        items = by_name(synthesize(config, bare_snapshot, manual_items=[compartments]))
        # tiers 2800 + base 600 + compartments 700 = 4100
        assert items["1B-SS-2B"].unit_price == Decimal("2665.00")
        assert "1B-SS-NO4" not in items

    def test_natural_finish_uplift(self, bare_snapshot):
        config = {"enclosureType": "Custom", "tierCount": 1, "material": "316 Stainless Steel Natural Finish"}
        items = by_name(synthesize(config, bare_snapshot))
        assert items["1B-SS-NO4"].unit_price == Decimal("1350.00")

    def test_no_uplift_without_tiers(self, bare_snapshot):
        config = {"enclosureType": "Custom", "material": "Powder 316 Stainless Steel"}
        names = {p.name for p in synthesize(config, bare_snapshot)}
        assert not names & {"1B-SS-2B", "1B-SS-NO4"}


class TestMeteringRules:
    """Tests for whole current, CT metering and meter panel bundles."""

    WC = {"wholeCurrentMetering": "Yes", "wcType": "100A wiring 3-phase"}

    def test_whole_current_bundle(self, bare_snapshot):
        items = by_name(synthesize({**self.WC, "wcQuantity": 1}, bare_snapshot))
        assert set(items) == {"100A-FUSE", "100A-PANEL", "100A-NEUTRAL-LINK", "100A-MCB-3PH"}
        assert items["100A-FUSE"].quantity == 3
        assert all(items[n].quantity == 1 for n in ("100A-PANEL", "100A-NEUTRAL-LINK", "100A-MCB-3PH"))

    def test_whole_current_scales_together(self, bare_snapshot):
        items = by_name(synthesize({**self.WC, "wcQuantity": 3}, bare_snapshot))
        assert items["100A-FUSE"].quantity == 9
        assert all(items[n].quantity == 3 for n in ("100A-PANEL", "100A-NEUTRAL-LINK", "100A-MCB-3PH"))

    def test_single_phase_bundle(self, bare_snapshot):
        config = {"wholeCurrentMetering": "Yes", "wcType": "100A wiring 1-phase", "wcQuantity": 2}
        items = by_name(synthesize(config, bare_snapshot))
        assert items["100A-FUSE"].quantity == 2
        assert "100A-MCB-1PH" in items
        assert "100A-MCB-3PH" not in items

    def test_whole_current_disabled(self, bare_snapshot):
        items = synthesize({**self.WC, "wholeCurrentMetering": "No", "wcQuantity": 3}, bare_snapshot)
        assert not {p.name for p in items} & WC_BUNDLE

    @pytest.mark.parametrize(
        "amps, part",
        [(200, "CT-400A"), (400, "CT-400A"), (630, "CT-630A"), (1000, "CT-1200A"),
         (1250, "CT-1200A"), (2500, "CT-2500A"), (3200, "CT-3200A"), (4000, "CT-3200A")],
    )
    def test_ct_labour_bands(self, amps, part):
        assert ct_labour_part(amps) == part

    def test_ct_metering(self, bare_snapshot):
        config = {"ctMetering": "Yes", "ctType": "W", "ctQuantity": 2, "currentRating": "630A"}
        items = by_name(synthesize(config, bare_snapshot))
        assert set(items) == {
            "CT-COMPARTMENTS", "CT-PANEL", "CT-TEST-BLOCK", "CT-WIRING", "CT-W-TYPE", "CT-630A",
        }
        assert all(p.quantity == 2 for p in items.values())
        assert not any(name.startswith(("BB-", "BBC-")) for name in items)

    def test_ct_and_meter_panel_share_items(self, bare_snapshot):
        """Test shared parts are folded into one proposal with summed quantity."""
        config = {
            "ctMetering": "Yes", "ctType": "S", "ctQuantity": 1, "currentRating": "400A",
            "meterPanel": "Yes",
        }
        proposals = synthesize(config, bare_snapshot)
        names = [p.name for p in proposals]
        assert names.count("CT-TEST-BLOCK") == 1
        items = by_name(proposals)
        assert items["CT-TEST-BLOCK"].quantity == 2
        assert items["CT-WIRING"].quantity == 2
        assert items["100A-PANEL"].quantity == 1


class TestOtherRules:
    """Tests for cubic options, site reconnection and busbar insulation."""

    def test_cubic_options(self, bare_snapshot):
        config = {
            "enclosureType": "Cubic",
            "totalCompartments": 8,
            "isOver50kA": "Yes",
            "isNonStandardColour": "Yes",
        }
        items = by_name(synthesize(config, bare_snapshot))
        assert items["1A-COMPARTMENTS"].quantity == 8
        assert items["1A-50KA"].quantity == 1
        assert items["1A-50KA"].unit_price == Decimal("600.00")
        assert items["1A-COLOUR"].quantity == 8
        assert items["1A-COLOUR"].unit_price == Decimal("80.00")

    def test_cubic_options_ignored_for_custom(self, bare_snapshot):
        config = {"enclosureType": "Custom", "totalCompartments": 8, "isOver50kA": "Yes"}
        names = {p.name for p in synthesize(config, bare_snapshot)}
        assert not names & {"1A-COMPARTMENTS", "1A-50KA"}

    @pytest.mark.parametrize(
        "width, sections, expected",
        [(3.5, 2, None), (4.5, 1, None), (4.5, 2, 1), (6, 3, 2), (16, 4, 2), (6, 5, 3)],
    )
    def test_site_reconnection(self, bare_snapshot, width, sections, expected):
        items = by_name(synthesize({"boardWidth": width, "shippingSections": sections}, bare_snapshot))
        if expected is None:
            assert "MISC-SITE-RECONNECTION" not in items
        else:
            assert items["MISC-SITE-RECONNECTION"].quantity == expected

    def test_busbar_insulation(self, bare_snapshot):
        busbars = [manual("BB-630A", "1000", quantity=2, labour="5")]
        items = by_name(synthesize({"insulationLevel": "fully"}, bare_snapshot, manual_items=busbars))
        insulation = items["Busbar Insulation"]
        assert insulation.unit_price == Decimal("1200.00")
        assert insulation.labour_hours == Decimal("4.0000")

    def test_air_insulation_factor(self, bare_snapshot):
        busbars = [manual("Copper bar", "400", category="BUSBAR")]
        items = by_name(synthesize({"insulationLevel": "Air"}, bare_snapshot, manual_items=busbars))
        assert items["Busbar Insulation"].unit_price == Decimal("60.00")

    def test_no_insulation_without_busbars(self, bare_snapshot):
        assert synthesize({"insulationLevel": "fully"}, bare_snapshot) == []

    def test_busbars_never_proposed(self, catalog_snapshot):
        snapshot = CatalogSnapshot(
            catalog_snapshot.entries,
            basics=catalog_snapshot.basics + (
                CatalogRecord("BB-400A", "Basics", None, "Busbar 400A", Decimal("900"), is_auto_add=True),
            ),
        )
        config = {"enclosureType": "Custom", "tierCount": 2, "ctMetering": "Yes", "ctType": "S",
                  "ctQuantity": 1, "currentRating": "400A"}
        assert not any(p.name.startswith(("BB-", "BBC-")) for p in synthesize(config, snapshot))


class TestSynthesisFailures:
    """Tests for rules that cannot be evaluated."""

    def test_missing_catalog_part(self):
        with pytest.raises(NotFoundError):
            synthesize({"enclosureType": "Custom", "tierCount": 1}, CatalogSnapshot())

    def test_ambiguous_catalog_part(self, bare_snapshot):
        duplicate = CatalogRecord("CT-PANEL", "Switchboard", None, "Other CT panel", Decimal("90"))
        records = [r for rs in bare_snapshot.entries.values() for r in rs] + [duplicate]
        snapshot = CatalogSnapshot.from_records(records)
        config = {"meterPanel": "Yes", "ctQuantity": 1, "ctMetering": "Yes", "ctType": "S", "currentRating": "400A"}
        with pytest.raises(IdentityConflictError):
            synthesize(config, snapshot)

    def test_invalid_configuration(self, bare_snapshot):
        with pytest.raises(InvalidConfigurationError):
            synthesize({"wholeCurrentMetering": "Yes"}, bare_snapshot)

    def test_deterministic(self, catalog_snapshot):
        config = {"enclosureType": "Custom", "tierCount": 2, "spd": "Yes", "baseRequired": "Yes"}
        first = synthesize(config, catalog_snapshot, policy=DEFAULT_POLICY_TABLE)
        assert synthesize(config, catalog_snapshot) == first
