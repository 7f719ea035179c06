"""
Data models for the switchboard quoting engine.

- Parts catalog
- Quotes, boards and line items
- Global pricing settings
"""

from switchboard_quoting.models.catalog import CatalogEntry
from switchboard_quoting.models.pricing import GLOBAL_SETTINGS_ID, PricingSettings
from switchboard_quoting.models.quote import Board, Item, Quote, QuoteStatus

__all__ = [
    "CatalogEntry",
    "PricingSettings",
    "GLOBAL_SETTINGS_ID",
    "Quote",
    "QuoteStatus",
    "Board",
    "Item",
]
