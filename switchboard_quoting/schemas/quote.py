"""
Pydantic schemas for quote, board and item inputs.

Used at the service boundary; the API layer builds these from requests.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from switchboard_quoting.models.quote import QuoteStatus


class SettingsSnapshot(BaseModel):
    """Frozen copy of the global pricing settings stored on a quote."""

    model_config = ConfigDict(frozen=True)

    labour_rate: Decimal
    consumables_pct: Decimal
    overhead_pct: Decimal
    engineering_pct: Decimal
    target_margin_pct: Decimal
    gst_pct: Decimal
    rounding_increment: Decimal
    min_margin_alert_pct: Decimal
    company_name: str | None = None
    company_address: str | None = None

    def to_storage(self) -> dict[str, Any]:
        # Decimals as strings so JSON storage is lossless
        return self.model_dump(mode="json")


class SettingsUpdate(BaseModel):
    """Partial update of the global pricing settings."""

    labour_rate: Decimal | None = Field(default=None, ge=0)
    consumables_pct: Decimal | None = Field(default=None, ge=0)
    overhead_pct: Decimal | None = Field(default=None, ge=0)
    engineering_pct: Decimal | None = Field(default=None, ge=0)
    target_margin_pct: Decimal | None = Field(default=None, ge=0, lt=1)
    gst_pct: Decimal | None = Field(default=None, ge=0)
    rounding_increment: Decimal | None = Field(default=None, ge=0)
    min_margin_alert_pct: Decimal | None = Field(default=None, ge=0)
    company_name: str | None = None
    company_address: str | None = None


class QuoteCreate(BaseModel):
    """New quote header."""

    client_name: str | None = None
    client_company: str | None = None
    project_ref: str | None = None
    description: str | None = None
    global_discount: Decimal = Field(default=Decimal("0"), ge=0)
    global_contingency: Decimal = Field(default=Decimal("0"), ge=0)


class QuoteUpdate(BaseModel):
    """Partial update of a quote header."""

    client_name: str | None = None
    client_company: str | None = None
    project_ref: str | None = None
    description: str | None = None
    status: QuoteStatus | None = None
    global_discount: Decimal | None = Field(default=None, ge=0)
    global_contingency: Decimal | None = Field(default=None, ge=0)


class BoardCreate(BaseModel):
    """New board within a quote."""

    name: str = ""
    type: str | None = None
    is_optional: bool = False
    config: dict[str, Any] = Field(default_factory=dict)


class ItemProposal(BaseModel):
    """A manually added line item."""

    category: str
    subcategory: str | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    quantity: int = Field(default=1, gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    labour_hours: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str | None = None
