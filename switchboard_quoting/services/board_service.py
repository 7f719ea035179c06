"""
Board service.

Owns every write to boards and their line items: board CRUD, the
synthesize-and-reconcile pass run whenever a configuration is replaced,
manual item edits, and catalog price refresh.

Writes that depend on what is already on a board lock the board row and
bump its version, so concurrent writers to one board serialize or fail
with a ConcurrencyConflictError instead of both committing.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from switchboard_quoting.config.settings import settings
from switchboard_quoting.database.base import utcnow
from switchboard_quoting.engine.board_naming import apply_board_prefix
from switchboard_quoting.engine.item_identity import (
    ItemIdentity,
    MergeAction,
    ProposedItem,
    line_cost,
    resolve_merge,
)
from switchboard_quoting.engine.item_policy import DEFAULT_POLICY_TABLE, PolicyTable
from switchboard_quoting.engine.reconciler import ChangeSet, is_system_owned, reconcile
from switchboard_quoting.engine.synthesizer import SynthesisRules, synthesize
from switchboard_quoting.models.catalog import CatalogEntry
from switchboard_quoting.models.quote import Board, Item, Quote
from switchboard_quoting.schemas.board_config import BoardConfig
from switchboard_quoting.schemas.quote import BoardCreate, ItemProposal
from switchboard_quoting.services.base import BaseService
from switchboard_quoting.services.catalog_service import CatalogService
from switchboard_quoting.utils.exceptions import (
    InvalidConfigurationError,
    NotFoundError,
    OperationNotPermittedError,
    QuotingError,
)


@dataclass
class ReconcileResult:
    """Items touched by one synthesize-and-reconcile pass."""
    created: list[Item] = field(default_factory=list)
    updated: list[Item] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)


@dataclass
class RefreshResult:
    """Outcome of a catalog price refresh on one board."""
    updated: list[str] = field(default_factory=list)
    formula_priced: list[str] = field(default_factory=list)
    ambiguous: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def default_rules() -> SynthesisRules:
    quoting = settings.quoting
    return SynthesisRules(
        enclosure_reference_price=quoting.enclosure_reference_price,
        spd_price=quoting.spd_price,
        spd_labour_hours=quoting.spd_labour_hours,
    )


class BoardService(BaseService):
    """
    Service for boards and line items.

    Provides:
    - Board CRUD with type-prefixed names
    - Configuration-driven item synthesis and reconciliation
    - Manual item add/merge, edit and delete with auto-managed protection
    - Catalog price refresh that leaves formula-priced items alone
    """

    service_name = "board"

    def __init__(
        self,
        session: AsyncSession,
        policy: PolicyTable = DEFAULT_POLICY_TABLE,
        rules: SynthesisRules | None = None,
    ):
        super().__init__(session)
        self.policy = policy
        self.rules = rules or default_rules()
        self.catalog_service = CatalogService(session)

    async def get_board(self, board_id: str, for_update: bool = False) -> Board:
        """Fetch a board with its items, optionally locking the row."""
        query = (
            select(Board)
            .where(Board.id == board_id)
            .options(selectinload(Board.items), selectinload(Board.quote))
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        board = result.scalar_one_or_none()
        if board is None:
            raise NotFoundError("Board", board_id)
        return board

    async def get_item(self, item_id: str) -> Item:
        item = await self.session.get(Item, item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    async def create_board(self, quote_id: str, data: BoardCreate) -> Board:
        """
        Create a board at the end of the quote and synthesize its items.

        Args:
            quote_id: Owning quote
            data: Name, type, optional flag and initial configuration

        Returns:
            The new board with its system items
        """
        self.logger.log_operation_start("create_board", quote_id=quote_id, board_type=data.type)
        if await self.session.get(Quote, quote_id) is None:
            raise NotFoundError("Quote", quote_id)
        config = BoardConfig.parse(data.config, board_type=data.type)

        sibling_count = await self.session.scalar(
            select(func.count()).select_from(Board).where(Board.quote_id == quote_id)
        )
        board = Board(
            quote_id=quote_id,
            name=apply_board_prefix(data.type, data.name),
            type=data.type,
            order=sibling_count or 0,
            is_optional=data.is_optional,
            config={},
            items=[],
        )
        self.session.add(board)
        await self._flush()

        result = await self.synthesize_and_reconcile(board.id, config)
        self.logger.log_operation_complete(
            "create_board",
            quote_id=quote_id,
            board_id=board.id,
            items_created=len(result.created),
        )
        return board

    async def update_board(
        self,
        board_id: str,
        name: str | None = None,
        board_type: str | None = None,
        is_optional: bool | None = None,
        config: Mapping[str, Any] | BoardConfig | None = None,
    ) -> tuple[Board, ReconcileResult]:
        """
        Update board attributes; a new configuration replaces the old one
        wholesale and triggers reconciliation.
        """
        board = await self.get_board(board_id)
        if board_type is not None:
            if config is None:
                board.config = BoardConfig.parse(board.config, board_type=board_type).to_storage()
            board.type = board_type
        if is_optional is not None:
            board.is_optional = is_optional
        board.name = apply_board_prefix(board.type, name if name is not None else board.name)

        result = ReconcileResult()
        if config is not None:
            result = await self.synthesize_and_reconcile(board_id, config)
        else:
            await self._flush()
        return board, result

    async def delete_board(self, board_id: str) -> None:
        """Delete a board and its items. Sibling order is not renumbered."""
        board = await self.get_board(board_id)
        await self.session.delete(board)
        await self._flush()
        self.logger.log_operation_complete("delete_board", board_id=board_id)

    async def synthesize_and_reconcile(
        self,
        board_id: str,
        new_config: Mapping[str, Any] | BoardConfig,
    ) -> ReconcileResult:
        """
        Replace a board's configuration and bring its items in line.

        Safe to retry: with unchanged configuration and catalog the second
        run changes nothing.

        Raises:
            NotFoundError: board or a required catalog part missing
            InvalidConfigurationError: configuration rejected
            IdentityConflictError: proposal collides with a user-owned item
            ConcurrencyConflictError: board changed underneath us
        """
        start_time = time.time()
        self.logger.log_operation_start("synthesize_and_reconcile", board_id=board_id)
        try:
            board = await self.get_board(board_id, for_update=True)
            config = BoardConfig.parse(new_config, board_type=board.type)
            catalog = await self.catalog_service.build_snapshot(self.policy)
            manual_items = [item for item in board.items if not is_system_owned(item, self.policy)]

            proposals = synthesize(
                config,
                catalog,
                manual_items=manual_items,
                rules=self.rules,
                policy=self.policy,
            )
            changes = reconcile(board.id, proposals, list(board.items), self.policy)

            board.config = config.to_storage()
            board.updated_at = utcnow()
            result = await self._apply_changes(board, changes)
        except QuotingError as e:
            self.logger.log_operation_failed("synthesize_and_reconcile", e, board_id=board_id)
            raise

        self.logger.log_operation_complete(
            "synthesize_and_reconcile",
            board_id=board_id,
            duration_ms=(time.time() - start_time) * 1000,
            policy_version=self.policy.version,
            **changes.summary(),
        )
        return result

    async def _apply_changes(self, board: Board, changes: ChangeSet) -> ReconcileResult:
        result = ReconcileResult()

        # Deletes go first so a re-created identity never trips the unique constraint
        for item in changes.to_delete:
            result.deleted.append(item.id)
            board.items.remove(item)
        await self._flush()

        for update in changes.to_update:
            item = update.item
            item.quantity = update.quantity
            item.unit_price = update.unit_price
            item.labour_hours = update.labour_hours
            item.is_default = True
            item.recalculate_cost()
            result.updated.append(item)

        next_order = self._next_order(board)
        for proposal in changes.to_create:
            item = self._new_item(board, proposal, next_order, is_default=True)
            next_order += 1
            result.created.append(item)

        await self._flush()
        return result

    @staticmethod
    def _next_order(board: Board) -> int:
        return max((item.order for item in board.items), default=-1) + 1

    @staticmethod
    def _new_item(
        board: Board,
        proposal: ProposedItem,
        order: int,
        is_default: bool,
        notes: str | None = None,
    ) -> Item:
        item = Item(
            board_id=board.id,
            category=proposal.category,
            subcategory=proposal.subcategory,
            name=proposal.name,
            description=proposal.description,
            quantity=proposal.quantity,
            unit_price=proposal.unit_price,
            labour_hours=proposal.labour_hours,
            is_default=is_default,
            notes=notes,
            order=order,
        )
        item.recalculate_cost()
        board.items.append(item)
        return item

    async def add_or_merge_item(self, board_id: str, proposal: ItemProposal) -> Item:
        """
        Add a manual item, or grow the matching item already on the board.

        A matching item keeps its own unit price. Adopting a system basics
        item this way hands it to the user, so reconciliation stops
        resetting its quantity.
        """
        self.logger.log_operation_start("add_or_merge_item", board_id=board_id, name=proposal.name)
        if self.policy.is_auto_managed(proposal.name):
            error = OperationNotPermittedError(
                f"{proposal.name} is managed by the board configuration",
                name=proposal.name,
            )
            self.logger.log_operation_failed("add_or_merge_item", error, board_id=board_id)
            raise error

        board = await self.get_board(board_id, for_update=True)
        proposed = ProposedItem(
            category=proposal.category,
            subcategory=proposal.subcategory,
            name=proposal.name,
            description=proposal.description,
            quantity=proposal.quantity,
            unit_price=proposal.unit_price,
            labour_hours=proposal.labour_hours,
        )
        instruction = resolve_merge(proposed, board.items, proposal.quantity)

        if instruction.action is MergeAction.INCREMENT:
            item = instruction.existing
            item.quantity = instruction.quantity
            item.cost = instruction.cost
            item.is_default = False
        else:
            item = self._new_item(
                board,
                instruction.proposal,
                self._next_order(board),
                is_default=False,
                notes=proposal.notes,
            )

        board.updated_at = utcnow()
        await self._flush()
        self.logger.log_operation_complete(
            "add_or_merge_item",
            board_id=board_id,
            item_id=item.id,
            action=instruction.action.value,
            quantity=item.quantity,
        )
        return item

    async def update_item(
        self,
        item_id: str,
        quantity: int | None = None,
        notes: str | None = None,
        unit_price: Decimal | None = None,
    ) -> Item:
        """
        Edit a line item. Identity fields are never editable.

        Quantity of an auto-managed item belongs to its configuration and
        the price of an auto-managed or formula-priced item to the engine;
        both edits are rejected. Notes are always editable.
        """
        item = await self.get_item(item_id)
        board = await self.get_board(item.board_id, for_update=True)
        if quantity is not None or unit_price is not None:
            if self.policy.is_auto_managed(item.name) or self.policy.is_formula_priced(item.name):
                error = OperationNotPermittedError(
                    f"{item.name} is managed by the board configuration",
                    item_id=item_id,
                )
                self.logger.log_operation_failed("update_item", error, item_id=item_id)
                raise error

        if quantity is not None:
            if quantity <= 0:
                raise InvalidConfigurationError("Quantity must be positive", field="quantity")
            item.quantity = quantity
            item.is_default = False
        if unit_price is not None:
            if unit_price < 0:
                raise InvalidConfigurationError("Unit price cannot be negative", field="unit_price")
            item.unit_price = unit_price
            item.is_default = False
        if notes is not None:
            item.notes = notes

        item.recalculate_cost()
        board.updated_at = utcnow()
        await self._flush()
        return item

    async def delete_item(self, item_id: str) -> None:
        """Delete a line item. Auto-managed items cannot be deleted by hand."""
        item = await self.get_item(item_id)
        if self.policy.is_auto_managed(item.name):
            error = OperationNotPermittedError(
                f"{item.name} is managed by the board configuration",
                item_id=item_id,
            )
            self.logger.log_operation_failed("delete_item", error, item_id=item_id)
            raise error

        board = await self.get_board(item.board_id, for_update=True)
        board.items.remove(item)
        board.updated_at = utcnow()
        await self._flush()
        self.logger.log_operation_complete("delete_item", board_id=board.id, item_id=item_id)

    async def refresh_catalog_prices(self, board_id: str) -> RefreshResult:
        """
        Re-copy catalog price, labour and metadata onto a board's items.

        Formula-priced items only get their description and subcategory
        synced. Part numbers that are missing or appear more than once in
        the catalog are skipped.

        Raises:
            OperationNotPermittedError: the quote is sent or decided
        """
        start_time = time.time()
        board = await self.get_board(board_id, for_update=True)
        quote = board.quote
        self.logger.log_operation_start("refresh_catalog_prices", quote_id=quote.id, board_id=board_id)
        if quote.status.value in settings.quoting.locked_statuses:
            error = OperationNotPermittedError(
                f"Quote {quote.quote_number} is {quote.status.value} and cannot be repriced",
                quote_id=quote.id,
            )
            self.logger.log_operation_failed("refresh_catalog_prices", error, quote_id=quote.id)
            raise error

        entries = await self.catalog_service.get_by_part_numbers(item.name for item in board.items)
        by_part: dict[str, list[CatalogEntry]] = {}
        for entry in entries:
            by_part.setdefault(entry.part_number, []).append(entry)

        result = RefreshResult()
        for item in board.items:
            matches = by_part.get(item.name, [])
            if not matches:
                result.missing.append(item.name)
                continue
            if len(matches) > 1:
                result.ambiguous.append(item.name)
                continue
            entry = matches[0]

            if not self._sync_metadata(board, item, entry):
                result.ambiguous.append(item.name)
                continue
            if self.policy.is_formula_priced(item.name):
                result.formula_priced.append(item.name)
                continue

            item.unit_price = entry.unit_price
            item.labour_hours = entry.labour_hours
            item.cost = line_cost(entry.unit_price, item.quantity)
            result.updated.append(item.name)

        board.updated_at = utcnow()
        await self._flush()
        self.logger.log_operation_complete(
            "refresh_catalog_prices",
            quote_id=quote.id,
            board_id=board_id,
            duration_ms=(time.time() - start_time) * 1000,
            updated=len(result.updated),
            formula_priced=len(result.formula_priced),
            ambiguous=len(result.ambiguous),
        )
        return result

    @staticmethod
    def _sync_metadata(board: Board, item: Item, entry: CatalogEntry) -> bool:
        """Copy description/subcategory unless that would duplicate another item's identity."""
        description = entry.description or None
        target = ItemIdentity(item.category, entry.subcategory, item.name, description)
        if any(other is not item and ItemIdentity.of(other) == target for other in board.items):
            return False
        item.description = description
        item.subcategory = entry.subcategory
        return True
