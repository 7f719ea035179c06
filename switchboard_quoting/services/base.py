"""Shared plumbing for the async quoting services."""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from switchboard_quoting.database.session import translate_storage_error
from switchboard_quoting.utils.logging import ServiceLogger


class BaseService:
    """
    Base class holding the session and a service logger.

    Services never commit; the caller's unit of work does.
    """

    service_name = "quoting"

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = ServiceLogger(self.service_name)

    async def _flush(self) -> None:
        """Flush pending writes, translating storage errors."""
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise translate_storage_error(e) from e

    def _dialect_name(self) -> str:
        return self.session.get_bind().dialect.name
