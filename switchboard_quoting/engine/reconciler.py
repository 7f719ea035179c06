"""
Board reconciliation engine.

Diffs the synthesizer's proposals against a board's stored items and
returns the minimal change set. Applying the change set is the caller's
job and must happen in one transaction.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

from switchboard_quoting.engine.item_identity import ItemIdentity, ProposedItem, fold_proposals
from switchboard_quoting.engine.item_policy import DEFAULT_POLICY_TABLE, PolicyTable
from switchboard_quoting.utils.exceptions import IdentityConflictError
from switchboard_quoting.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ItemUpdate:
    """New system-owned values for an existing item."""
    item: Any
    quantity: int
    unit_price: Decimal
    labour_hours: Decimal


@dataclass
class ChangeSet:
    to_create: list[ProposedItem] = field(default_factory=list)
    to_update: list[ItemUpdate] = field(default_factory=list)
    to_delete: list[Any] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)

    def summary(self) -> dict[str, int]:
        return {
            "created": len(self.to_create),
            "updated": len(self.to_update),
            "deleted": len(self.to_delete),
        }


def is_system_owned(item: Any, policy: PolicyTable = DEFAULT_POLICY_TABLE) -> bool:
    """Items created by the engine or controlled by configuration. Everything else belongs to the user."""
    return bool(item.is_default) or policy.is_auto_managed(item.name)


def _differs(item: Any, proposal: ProposedItem) -> bool:
    return (
        item.quantity != proposal.quantity
        or Decimal(item.unit_price) != proposal.unit_price
        or Decimal(item.labour_hours) != proposal.labour_hours
    )


def reconcile(
    board_id: str,
    proposed: Sequence[ProposedItem],
    existing: Sequence[Any],
    policy: PolicyTable = DEFAULT_POLICY_TABLE,
) -> ChangeSet:
    """
    Compute the changes that bring ``existing`` in line with ``proposed``.

    System-owned items matching a proposal are updated in place when their
    quantity, price or labour differ. An auto-managed row stored as a user
    item is taken over: it is updated and flagged as a default item. System
    owned items with no proposal are deleted, including surplus rows sharing
    one identity. User-owned items are never changed, and a user item equal
    to a basics proposal satisfies it.

    Raises:
        IdentityConflictError: an auto-managed part stored as a user item
            carries a different category or description than its proposal
    """
    system: dict[ItemIdentity, list[Any]] = {}
    user: dict[ItemIdentity, Any] = {}
    # Auto-managed rows stored as user items, by part number
    adopted: dict[str, Any] = {}
    for item in existing:
        identity = ItemIdentity.of(item)
        if is_system_owned(item, policy):
            system.setdefault(identity, []).append(item)
            if not item.is_default:
                adopted.setdefault(item.name, item)
        else:
            user.setdefault(identity, item)

    changes = ChangeSet()
    claimed: set[int] = set()

    for proposal in fold_proposals(proposed):
        matches = system.get(proposal.identity)
        if matches:
            keeper = matches[0]
            claimed.add(id(keeper))
            if _differs(keeper, proposal) or not keeper.is_default:
                changes.to_update.append(ItemUpdate(
                    keeper,
                    quantity=proposal.quantity,
                    unit_price=proposal.unit_price,
                    labour_hours=proposal.labour_hours,
                ))
            continue

        if proposal.identity in user:
            continue

        legacy = adopted.get(proposal.name)
        if legacy is not None and id(legacy) not in claimed:
            raise IdentityConflictError(
                f"Item {proposal.name} on board {board_id} is stored by the user with a different "
                f"category or description than the configuration proposes",
                board_id=board_id,
                name=proposal.name,
                item_id=getattr(legacy, "id", None),
            )

        changes.to_create.append(proposal)

    for items in system.values():
        changes.to_delete.extend(item for item in items if id(item) not in claimed)

    logger.debug("board_reconciled", board_id=board_id, policy_version=policy.version, **changes.summary())
    return changes
