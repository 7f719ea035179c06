"""
Quote, board and line item models.

A quote owns an ordered collection of boards; each board owns its line
items. Both collections cascade deletes.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON, Boolean, Enum as SQLEnum, ForeignKey,
    Integer, Numeric, String, Text, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from switchboard_quoting.database.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class QuoteStatus(str, Enum):
    """Quote lifecycle status."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Quote(Base):
    """
    Customer quote.

    ``settings_snapshot`` is frozen when the quote is created and carried
    verbatim into duplicates; totals are always computed from it.
    """

    __tablename__ = "quotes"

    quote_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    client_name: Mapped[str | None] = mapped_column(String(255))
    client_company: Mapped[str | None] = mapped_column(String(255))
    project_ref: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[QuoteStatus] = mapped_column(
        SQLEnum(QuoteStatus, native_enum=False, length=20),
        default=QuoteStatus.DRAFT,
    )

    settings_snapshot: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    # Absolute currency amounts
    global_discount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    global_contingency: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))

    boards: Mapped[list["Board"]] = relationship(
        "Board",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="Board.order",
    )


class Board(Base):
    """
    One switchboard configuration within a quote.

    ``version`` is the optimistic lock: every reconciliation bumps it, so
    two interleaved reconciliations of the same board cannot both commit.
    """

    __tablename__ = "boards"

    quote_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), default="")
    type: Mapped[str | None] = mapped_column(String(100))
    order: Mapped[int] = mapped_column(Integer, default=0)
    config: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    is_optional: Mapped[bool] = mapped_column(Boolean, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    quote: Mapped["Quote"] = relationship("Quote", back_populates="boards")
    items: Mapped[list["Item"]] = relationship(
        "Item",
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="Item.order",
    )

    __mapper_args__ = {"version_id_col": version}


class Item(Base):
    """
    Board line item.

    ``cost`` always equals ``unit_price * quantity`` rounded to cents; it is
    recomputed by ``recalculate_cost`` on every mutation and never edited
    directly.
    """

    __tablename__ = "items"

    board_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Identity tuple
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    labour_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=Decimal("0"))
    cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, default=0)

    board: Mapped["Board"] = relationship("Board", back_populates="items")

    # NULL subcategory/description are enforced by the reconciler, not here
    __table_args__ = (
        UniqueConstraint(
            "board_id", "category", "subcategory", "name", "description",
            name="uq_item_identity",
        ),
    )

    def recalculate_cost(self) -> Decimal:
        self.cost = (Decimal(self.unit_price) * self.quantity).quantize(Decimal("0.01"))
        return self.cost
