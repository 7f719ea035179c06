"""
Services for the switchboard quoting engine.

Async service classes over an AsyncSession. Services flush but never
commit; callers wrap each operation in one unit of work.
"""

from switchboard_quoting.services.board_service import BoardService, ReconcileResult, RefreshResult
from switchboard_quoting.services.catalog_service import CatalogService, IntegrityIssue, IntegrityReport
from switchboard_quoting.services.quote_service import QuoteService
from switchboard_quoting.services.settings_service import SettingsService

__all__ = [
    "BoardService",
    "ReconcileResult",
    "RefreshResult",
    "CatalogService",
    "IntegrityIssue",
    "IntegrityReport",
    "QuoteService",
    "SettingsService",
]
