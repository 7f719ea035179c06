"""
Pydantic schemas for service inputs.

Provides the validated board configuration and the quote/board/item DTOs.
"""

from switchboard_quoting.schemas.board_config import (
    BOARD_TYPES,
    ENCLOSURE_TYPES,
    STAINLESS_MATERIALS,
    BoardConfig,
)
from switchboard_quoting.schemas.quote import (
    BoardCreate,
    ItemProposal,
    QuoteCreate,
    QuoteUpdate,
    SettingsSnapshot,
    SettingsUpdate,
)

__all__ = [
    "BOARD_TYPES",
    "ENCLOSURE_TYPES",
    "STAINLESS_MATERIALS",
    "BoardConfig",
    "BoardCreate",
    "ItemProposal",
    "QuoteCreate",
    "QuoteUpdate",
    "SettingsSnapshot",
    "SettingsUpdate",
]
