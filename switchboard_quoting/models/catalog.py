"""
Parts catalog model.

Line items copy catalog values rather than holding a foreign key, so catalog
edits never change historical quotes.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from switchboard_quoting.database.base import Base


class CatalogEntry(Base):
    """
    A purchasable or labour part.

    Brand, category, subcategory and meter type are normally derived by the
    catalog classifier from the vendor-supplied attributes.
    """

    __tablename__ = "catalog_entries"

    part_number: Mapped[str] = mapped_column(String(100), default="", index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    subcategory: Mapped[str | None] = mapped_column(String(255))
    brand: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text, default="")

    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    labour_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=Decimal("0"))
    default_quantity: Mapped[int] = mapped_column(Integer, default=1)
    is_auto_add: Mapped[bool] = mapped_column(Boolean, default=False)
    meter_type: Mapped[str | None] = mapped_column(String(20))
