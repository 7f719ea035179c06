"""
Item identity and merge resolution.

Two line items on the same board are the same item when their
(category, subcategory, name, description) tuples match exactly. Missing
subcategory/description compare equal to None, never to an empty string.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Sequence

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ItemIdentity:
    """Deduplication key of a line item within one board."""
    category: str
    subcategory: str | None
    name: str
    description: str | None

    @classmethod
    def of(cls, item: Any) -> "ItemIdentity":
        return cls(
            item.category,
            getattr(item, "subcategory", None),
            item.name,
            getattr(item, "description", None),
        )


@dataclass(frozen=True)
class ProposedItem:
    """A line item the engine wants on a board."""
    category: str
    subcategory: str | None
    name: str
    description: str | None
    quantity: int
    unit_price: Decimal
    labour_hours: Decimal = Decimal("0")

    @property
    def identity(self) -> ItemIdentity:
        return ItemIdentity.of(self)

    @property
    def cost(self) -> Decimal:
        return line_cost(self.unit_price, self.quantity)


class MergeAction(str, Enum):
    CREATE = "create"
    INCREMENT = "increment"


@dataclass(frozen=True)
class MergeInstruction:
    """What to do with a proposal: create a new row or grow an existing one."""
    action: MergeAction
    quantity: int
    cost: Decimal
    existing: Any = None
    proposal: ProposedItem | None = None


def line_cost(unit_price: Decimal, quantity: int) -> Decimal:
    return (Decimal(unit_price) * quantity).quantize(CENTS)


def find_match(identity: ItemIdentity, existing_items: Iterable[Any]) -> Any | None:
    for item in existing_items:
        if ItemIdentity.of(item) == identity:
            return item
    return None


def resolve_merge(
    proposal: ProposedItem,
    existing_items: Iterable[Any],
    delta: int | None = None,
) -> MergeInstruction:
    """
    Decide between creating ``proposal`` and incrementing a matching item.

    On a match the existing item's unit price is authoritative.
    """
    delta = proposal.quantity if delta is None else delta
    match = find_match(proposal.identity, existing_items)
    if match is None:
        return MergeInstruction(
            MergeAction.CREATE,
            quantity=delta,
            cost=line_cost(proposal.unit_price, delta),
            proposal=replace(proposal, quantity=delta),
        )
    new_quantity = match.quantity + delta
    return MergeInstruction(
        MergeAction.INCREMENT,
        quantity=new_quantity,
        cost=line_cost(match.unit_price, new_quantity),
        existing=match,
    )


def fold_proposals(proposals: Sequence[ProposedItem]) -> list[ProposedItem]:
    """
    Merge proposals that share an identity, summing quantities.

    The first proposal's price and labour win. Order of first appearance is
    preserved.
    """
    folded: dict[ItemIdentity, ProposedItem] = {}
    for proposal in proposals:
        current = folded.get(proposal.identity)
        if current is None:
            folded[proposal.identity] = proposal
        else:
            folded[proposal.identity] = replace(current, quantity=current.quantity + proposal.quantity)
    return list(folded.values())
