"""Global pricing settings record."""

from decimal import Decimal

from sqlalchemy import Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from switchboard_quoting.database.base import Base

GLOBAL_SETTINGS_ID = "global"


class PricingSettings(Base):
    """
    Process-wide singleton (``id == "global"``) read by the totals calculator.

    Quotes snapshot these values at creation, so edits here only affect
    quotes created afterwards.
    """

    __tablename__ = "pricing_settings"

    labour_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    consumables_pct: Mapped[Decimal] = mapped_column(Numeric(6, 4))
    overhead_pct: Mapped[Decimal] = mapped_column(Numeric(6, 4))
    engineering_pct: Mapped[Decimal] = mapped_column(Numeric(6, 4))
    target_margin_pct: Mapped[Decimal] = mapped_column(Numeric(6, 4))
    gst_pct: Mapped[Decimal] = mapped_column(Numeric(6, 4))
    rounding_increment: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    min_margin_alert_pct: Mapped[Decimal] = mapped_column(Numeric(6, 4))

    company_name: Mapped[str | None] = mapped_column(String(255))
    company_address: Mapped[str | None] = mapped_column(Text)
