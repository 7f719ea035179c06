"""
Quote management service.

Handles quote CRUD, quote number allocation, duplication and totals.
"""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from switchboard_quoting.config.settings import settings
from switchboard_quoting.engine.numbering import QUOTE_NUMBER_PREFIX, next_quote_number
from switchboard_quoting.engine.totals import QuoteTotals, compute_quote_totals
from switchboard_quoting.models.quote import Board, Item, Quote, QuoteStatus
from switchboard_quoting.schemas.quote import QuoteCreate, QuoteUpdate, SettingsSnapshot
from switchboard_quoting.services.base import BaseService
from switchboard_quoting.services.settings_service import SettingsService
from switchboard_quoting.utils.exceptions import NotFoundError, QuotingError

# Transaction-scoped advisory lock serializing number allocation on PostgreSQL
QUOTE_NUMBER_LOCK_KEY = 710_001

COPY_SUFFIX = " (Copy)"


class QuoteService(BaseService):
    """
    Service for managing quotes.

    Provides:
    - Quote CRUD operations
    - Sequential Q-<n> numbering
    - Deep duplication of a quote with its boards and items
    - Totals computed from the quote's settings snapshot
    """

    service_name = "quote"

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.settings_service = SettingsService(session)

    async def create_quote(self, data: QuoteCreate) -> Quote:
        """
        Create a draft quote with a fresh number and a settings snapshot.

        Raises:
            ConcurrencyConflictError: the allocated number was taken
                concurrently; retry
        """
        self.logger.log_operation_start("create_quote", client_name=data.client_name)
        quote_number = await self.allocate_quote_number()
        snapshot = await self.settings_service.snapshot()

        quote = Quote(
            quote_number=quote_number,
            client_name=data.client_name,
            client_company=data.client_company,
            project_ref=data.project_ref,
            description=data.description,
            status=QuoteStatus.DRAFT,
            settings_snapshot=snapshot.to_storage(),
            global_discount=data.global_discount,
            global_contingency=data.global_contingency,
            boards=[],
        )
        self.session.add(quote)
        await self._flush()

        self.logger.log_operation_complete("create_quote", quote_id=quote.id, quote_number=quote_number)
        return quote

    async def get_quote(self, quote_id: str) -> Quote:
        """Fetch a quote with all boards and items loaded."""
        result = await self.session.execute(
            select(Quote)
            .where(Quote.id == quote_id)
            .options(selectinload(Quote.boards).selectinload(Board.items))
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError("Quote", quote_id)
        return quote

    async def list_quotes(
        self,
        status: QuoteStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Quote]:
        query = select(Quote).order_by(Quote.created_at.desc(), Quote.quote_number.desc())
        if status is not None:
            query = query.where(Quote.status == status)
        result = await self.session.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def update_quote(self, quote_id: str, data: QuoteUpdate) -> Quote:
        """Partial header update. The settings snapshot is never touched."""
        quote = await self.get_quote(quote_id)
        changes = data.model_dump(exclude_unset=True)
        for name, value in changes.items():
            setattr(quote, name, value)
        await self._flush()
        self.logger.log_operation_complete("update_quote", quote_id=quote_id, fields=sorted(changes))
        return quote

    async def delete_quote(self, quote_id: str) -> None:
        quote = await self.get_quote(quote_id)
        await self.session.delete(quote)
        await self._flush()
        self.logger.log_operation_complete("delete_quote", quote_id=quote_id)

    async def allocate_quote_number(self) -> str:
        """
        Next ``Q-<n>`` above the highest existing number and the floor.

        On PostgreSQL allocation is serialized for the rest of the
        transaction; elsewhere the unique constraint on quote_number is the
        backstop.
        """
        if self._dialect_name() == "postgresql":
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": QUOTE_NUMBER_LOCK_KEY},
            )
        result = await self.session.execute(
            select(Quote.quote_number).where(Quote.quote_number.like(f"{QUOTE_NUMBER_PREFIX}%"))
        )
        return next_quote_number(result.scalars().all(), floor=settings.quoting.quote_number_floor)

    async def duplicate_quote(self, quote_id: str) -> Quote:
        """
        Deep-copy a quote with its boards and items.

        The copy gets a new number, DRAFT status, " (Copy)" appended to the
        project reference and the original's settings snapshot. Everything
        is written in the caller's transaction, so either the whole tree is
        copied or nothing is.
        """
        self.logger.log_operation_start("duplicate_quote", quote_id=quote_id)
        try:
            original = await self.get_quote(quote_id)
            quote_number = await self.allocate_quote_number()

            copy = Quote(
                quote_number=quote_number,
                client_name=original.client_name,
                client_company=original.client_company,
                project_ref=f"{original.project_ref}{COPY_SUFFIX}" if original.project_ref else COPY_SUFFIX.strip(),
                description=original.description,
                status=QuoteStatus.DRAFT,
                settings_snapshot=dict(original.settings_snapshot or {}),
                global_discount=original.global_discount,
                global_contingency=original.global_contingency,
                boards=[self._copy_board(board) for board in original.boards],
            )
            self.session.add(copy)
            await self._flush()
        except QuotingError as e:
            self.logger.log_operation_failed("duplicate_quote", e, quote_id=quote_id)
            raise

        self.logger.log_operation_complete(
            "duplicate_quote",
            quote_id=quote_id,
            copy_id=copy.id,
            quote_number=quote_number,
            boards=len(copy.boards),
        )
        return copy

    @staticmethod
    def _copy_board(board: Board) -> Board:
        return Board(
            name=board.name,
            type=board.type,
            order=board.order,
            config=dict(board.config or {}),
            is_optional=board.is_optional,
            items=[
                Item(
                    category=item.category,
                    subcategory=item.subcategory,
                    name=item.name,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    labour_hours=item.labour_hours,
                    cost=item.cost,
                    is_default=item.is_default,
                    notes=item.notes,
                    order=item.order,
                )
                for item in board.items
            ],
        )

    async def compute_totals(self, quote_id: str, include_optional: bool = True) -> QuoteTotals:
        """
        Totals from the quote's own settings snapshot. Read-only.

        Quotes created before snapshots existed fall back to live settings.
        """
        quote = await self.get_quote(quote_id)
        if quote.settings_snapshot:
            snapshot = SettingsSnapshot.model_validate(quote.settings_snapshot)
        else:
            snapshot = await self.settings_service.snapshot()
        return compute_quote_totals(
            quote.boards,
            snapshot,
            contingency=quote.global_contingency,
            discount=quote.global_discount,
            include_optional=include_optional,
        )
