"""
Catalog classifier.

Derives the normalized brand, category, subcategory and meter type of a
catalog entry from its vendor-supplied attributes. Pure function.
"""

from dataclasses import dataclass
from enum import Enum

MASTER_CATEGORY = "Switchboard"
UNKNOWN_BRAND = "Unknown"
SUBCATEGORY_DELIMITER = " > "

POWER_METERS = "Power Meters"
POWER_METER_ACCESSORIES = "Power Meter Accessories"
LEGACY_ACCESSORY_PATH = "Miscellaneous > Metering > Power Meter Accessories"

# Part number prefix (upper case) -> brand
BRAND_PREFIXES: tuple[tuple[str, str], ...] = (
    ("A9", "Schneider Electric"),
    ("C10", "Schneider Electric"),
    ("LV4", "Schneider Electric"),
)

METER_PATH_KEYWORDS = ("power meter", "metering")
METER_DESCRIPTION_KEYWORDS = ("power meter", "energy meter", "kilowatt hour meter")


class MeterType(str, Enum):
    """Power meter connection class."""
    DIRECT = "Direct"
    CT = "CT"
    NMI = "NMI"
    SPECIAL = "Special"


# Checked in this order; the first match wins
METER_TYPE_RULES: tuple[tuple[MeterType, tuple[str, ...], tuple[str, ...]], ...] = (
    (MeterType.DIRECT, ("direct", "whole current", "din rail", "63a", "100a"), ()),
    (MeterType.CT, ("ct connected", "current transformer connected", "measuring instrument"), ()),
    (MeterType.NMI, ("nmi", "pattern approved"), ("METSEPM5",)),
)


@dataclass(frozen=True)
class CatalogClassification:
    """Normalized catalog attributes."""
    brand: str
    category: str
    subcategory: str | None
    meter_type: MeterType | None = None


def infer_brand(part_number: str | None, manual_brand: str | None = None) -> str:
    """Manual brand wins, then part number prefix rules, then "Unknown"."""
    if manual_brand and manual_brand.strip():
        return manual_brand.strip()
    upper = (part_number or "").strip().upper()
    for prefix, brand in BRAND_PREFIXES:
        if upper.startswith(prefix):
            return brand
    return UNKNOWN_BRAND


def join_vendor_categories(*categories: str | None) -> str | None:
    parts = [c.strip() for c in categories if c and c.strip()]
    return SUBCATEGORY_DELIMITER.join(parts) if parts else None


def is_power_meter(vendor_path: str | None, description: str | None) -> bool:
    path = (vendor_path or "").lower()
    text = (description or "").lower()
    return (
        any(keyword in path for keyword in METER_PATH_KEYWORDS)
        or any(keyword in text for keyword in METER_DESCRIPTION_KEYWORDS)
    )


def classify_meter_type(description: str | None, part_number: str | None) -> MeterType:
    """Direct beats CT beats NMI; anything else is Special."""
    text = (description or "").lower()
    upper = (part_number or "").strip().upper()
    for meter_type, keywords, prefixes in METER_TYPE_RULES:
        if any(keyword in text for keyword in keywords):
            return meter_type
        if any(upper.startswith(prefix) for prefix in prefixes):
            return meter_type
    return MeterType.SPECIAL


def classify_catalog_entry(
    description: str | None,
    part_number: str | None,
    vendor_category_1: str | None = None,
    vendor_category_2: str | None = None,
    vendor_category_3: str | None = None,
    manual_brand: str | None = None,
) -> CatalogClassification:
    """
    Classify a raw catalog row.

    Args:
        description: Free-text description
        part_number: Vendor part number, may be empty
        vendor_category_1..3: Vendor category path, most general first
        manual_brand: Brand override entered by an administrator

    Returns:
        CatalogClassification with meter_type set only for power meters
    """
    brand = infer_brand(part_number, manual_brand)
    vendor_path = join_vendor_categories(vendor_category_1, vendor_category_2, vendor_category_3)

    # Accessories mention metering in their path but are not meters
    if vendor_path and LEGACY_ACCESSORY_PATH in vendor_path:
        return CatalogClassification(brand, MASTER_CATEGORY, POWER_METER_ACCESSORIES)

    if is_power_meter(vendor_path, description):
        return CatalogClassification(
            brand,
            MASTER_CATEGORY,
            POWER_METERS,
            classify_meter_type(description, part_number),
        )

    return CatalogClassification(brand, MASTER_CATEGORY, vendor_path)
