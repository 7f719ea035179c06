"""
Quote totals calculator.

Compounding order is fixed:

    material      = sum(unit_price * quantity)
    labour        = sum(labour_hours * quantity) * labour_rate
    base          = material + labour
    consumables   = material * consumables_pct
    overhead      = base * overhead_pct
    engineering   = base * engineering_pct
    total_cost    = base + consumables + overhead + engineering + contingency
    sell          = total_cost / (1 - target_margin_pct) - discount
    sell_rounded  = sell rounded UP to rounding_increment
    profit        = sell_rounded - total_cost
    margin_pct    = profit / sell_rounded
    gst           = sell_rounded * gst_pct   (display only)

Contingency and discount are absolute amounts. All arithmetic is Decimal.
"""

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_up(value: Decimal, increment: Decimal) -> Decimal:
    """Round ``value`` up to the next multiple of ``increment``."""
    if increment <= 0:
        return _money(value)
    steps = (value / increment).to_integral_value(rounding=ROUND_CEILING)
    return _money(steps * increment)


@dataclass(frozen=True)
class BoardTotals:
    board_id: str
    name: str
    is_optional: bool
    material: Decimal
    labour_hours: Decimal
    labour: Decimal


@dataclass(frozen=True)
class QuoteTotals:
    """Computed totals for a quote. Never stored."""
    total_material: Decimal
    total_labour_hours: Decimal
    total_labour: Decimal
    consumables: Decimal
    overhead: Decimal
    engineering: Decimal
    contingency: Decimal
    total_cost: Decimal
    discount: Decimal
    sell_price: Decimal
    sell_price_rounded: Decimal
    profit: Decimal
    margin_pct: Decimal
    margin_alert: bool
    gst: Decimal
    sell_price_inc_gst: Decimal
    boards: list[BoardTotals] = field(default_factory=list)


def _board_totals(board: Any, labour_rate: Decimal) -> BoardTotals:
    material = sum((Decimal(i.unit_price) * i.quantity for i in board.items), ZERO)
    hours = sum((Decimal(i.labour_hours) * i.quantity for i in board.items), ZERO)
    return BoardTotals(
        board_id=board.id,
        name=board.name,
        is_optional=bool(board.is_optional),
        material=_money(material),
        labour_hours=hours,
        labour=_money(hours * labour_rate),
    )


def compute_quote_totals(
    boards: Sequence[Any],
    snapshot: Any,
    contingency: Decimal = ZERO,
    discount: Decimal = ZERO,
    include_optional: bool = True,
) -> QuoteTotals:
    """
    Aggregate board items into cost, sell price and margin.

    Args:
        boards: Boards with loaded ``items``
        snapshot: Settings snapshot of the quote
        contingency: Absolute amount added to cost
        discount: Absolute amount taken off the sell price
        include_optional: Whether optional boards count towards the totals

    Returns:
        QuoteTotals with a per-board breakdown of every board
    """
    labour_rate = Decimal(snapshot.labour_rate)
    breakdown = [_board_totals(board, labour_rate) for board in boards]
    counted: Iterable[BoardTotals] = [
        b for b in breakdown if include_optional or not b.is_optional
    ]

    material = sum((b.material for b in counted), ZERO)
    labour_hours = sum((b.labour_hours for b in counted), ZERO)
    labour = _money(labour_hours * labour_rate)
    base = material + labour

    consumables = _money(material * Decimal(snapshot.consumables_pct))
    overhead = _money(base * Decimal(snapshot.overhead_pct))
    engineering = _money(base * Decimal(snapshot.engineering_pct))
    contingency = _money(Decimal(contingency or ZERO))
    total_cost = base + consumables + overhead + engineering + contingency

    margin = Decimal(snapshot.target_margin_pct)
    # A margin of 100% or more has no finite sell price; sell at cost
    sell = total_cost / (1 - margin) if margin < 1 else total_cost
    discount = _money(Decimal(discount or ZERO))
    sell = max(_money(sell) - discount, ZERO)

    sell_rounded = round_up(sell, Decimal(snapshot.rounding_increment))
    profit = sell_rounded - total_cost
    margin_pct = (profit / sell_rounded).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP) if sell_rounded else ZERO
    gst = _money(sell_rounded * Decimal(snapshot.gst_pct))

    return QuoteTotals(
        total_material=material,
        total_labour_hours=labour_hours,
        total_labour=labour,
        consumables=consumables,
        overhead=overhead,
        engineering=engineering,
        contingency=contingency,
        total_cost=total_cost,
        discount=discount,
        sell_price=sell,
        sell_price_rounded=sell_rounded,
        profit=profit,
        margin_pct=margin_pct,
        margin_alert=margin_pct < Decimal(snapshot.min_margin_alert_pct),
        gst=gst,
        sell_price_inc_gst=sell_rounded + gst,
        boards=breakdown,
    )
