"""
Tests for the catalog classifier.
"""

import pytest

from switchboard_quoting.engine.catalog_classifier import (
    MeterType,
    classify_catalog_entry,
    classify_meter_type,
    infer_brand,
)


class TestBrandInference:
    """Tests for brand resolution."""

    def test_manual_brand_wins(self):
        """Test a manual brand overrides prefix rules."""
        assert infer_brand("A9F74206", "ABB") == "ABB"

    @pytest.mark.parametrize("part_number", ["A9F74206", "c10xyz", "LV429630"])
    def test_schneider_prefixes(self, part_number):
        """Test known prefixes infer Schneider Electric, case-insensitively."""
        assert infer_brand(part_number) == "Schneider Electric"

    def test_unknown_brand(self):
        """Test unmatched part numbers fall back to Unknown."""
        assert infer_brand("XYZ-123") == "Unknown"
        assert infer_brand(None, "  ") == "Unknown"


class TestClassifyCatalogEntry:
    """Tests for classify_catalog_entry."""

    def test_plain_entry_joins_vendor_path(self):
        """Test a non-meter entry keeps its vendor path as subcategory."""
        result = classify_catalog_entry(
            "4 pole MCCB 250A",
            "LV431630",
            "Circuit Breakers",
            "MCCB",
            None,
        )
        assert result.brand == "Schneider Electric"
        assert result.category == "Switchboard"
        assert result.subcategory == "Circuit Breakers > MCCB"
        assert result.meter_type is None

    def test_power_meter_by_path(self):
        """Test a metering path forces the Power Meters bucket."""
        result = classify_catalog_entry("PM5110 DIN rail meter", "METSEPM5110", "Metering", "Meters")
        assert result.subcategory == "Power Meters"
        assert result.meter_type is MeterType.DIRECT

    def test_power_meter_by_description(self):
        """Test description keywords detect a meter without a metering path."""
        result = classify_catalog_entry("Kilowatt hour meter, CT connected", "EM1", "Misc")
        assert result.subcategory == "Power Meters"
        assert result.meter_type is MeterType.CT

    def test_legacy_accessory_path_remapped(self):
        """Test the legacy accessory path maps to Power Meter Accessories."""
        result = classify_catalog_entry(
            "Meter mounting bracket",
            "BRK-1",
            "Miscellaneous",
            "Metering",
            "Power Meter Accessories",
        )
        assert result.subcategory == "Power Meter Accessories"
        assert result.meter_type is None

    def test_legacy_accessory_path_with_extra_levels(self):
        result = classify_catalog_entry(
            "Meter mounting bracket",
            "BRK-1",
            "Miscellaneous",
            "Metering",
            "Power Meter Accessories > Brackets",
        )
        assert result.subcategory == "Power Meter Accessories"
        assert result.meter_type is None

    def test_no_vendor_path(self):
        """Test an entry without vendor categories has no subcategory."""
        result = classify_catalog_entry("Gland plate", "GP-1")
        assert result.subcategory is None


class TestMeterTypePrecedence:
    """Tests for the Direct > CT > NMI > Special ordering."""

    def test_direct_beats_ct(self):
        """Test Direct keywords win over CT keywords."""
        assert classify_meter_type("Whole current meter, CT connected option", "X") is MeterType.DIRECT

    def test_ct_beats_nmi(self):
        """Test CT keywords win over NMI keywords."""
        assert classify_meter_type("NMI pattern approved measuring instrument", "X") is MeterType.CT

    def test_nmi_by_keyword(self):
        """Test NMI keywords."""
        assert classify_meter_type("Pattern approved revenue meter", "X") is MeterType.NMI

    def test_nmi_by_part_prefix(self):
        """Test the NMI part number prefix."""
        assert classify_meter_type("Revenue meter", "metsepm5560") is MeterType.NMI

    def test_special_fallback(self):
        """Test unmatched meters fall into Special."""
        assert classify_meter_type("Power quality analyser", "PQ1") is MeterType.SPECIAL
