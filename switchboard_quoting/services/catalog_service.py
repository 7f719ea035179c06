"""
Catalog service.

Admin create/update of catalog entries and the catalog lookups the
synthesizer and the price refresh need.
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import and_, func, not_, or_, select

from switchboard_quoting.engine.catalog_classifier import classify_catalog_entry
from switchboard_quoting.engine.item_policy import PolicyTable
from switchboard_quoting.engine.synthesizer import BASICS_CATEGORY, CatalogRecord, CatalogSnapshot
from switchboard_quoting.models.catalog import CatalogEntry
from switchboard_quoting.services.base import BaseService
from switchboard_quoting.utils.exceptions import NotFoundError

EDITABLE_FIELDS = (
    "part_number", "category", "subcategory", "brand", "description",
    "unit_price", "labour_hours", "default_quantity", "is_auto_add", "meter_type",
)

# Rows describing a catalog section rather than a part carry no price
HEADER_MARKER = "header"


class IssueType(str, Enum):
    MISSING_CODE = "missing_code"
    DUPLICATE_CODE = "duplicate_code"
    ZERO_PRICE = "zero_price"
    MISSING_CATEGORY = "missing_category"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


@dataclass
class IntegrityIssue:
    type: IssueType
    severity: Severity
    message: str
    part_numbers: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.part_numbers)


@dataclass
class IntegrityReport:
    """Catalog problems that would break or degrade synthesis."""
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not any(issue.severity is Severity.CRITICAL for issue in self.issues)

    def find(self, issue_type: IssueType, severity: Severity) -> IntegrityIssue | None:
        for issue in self.issues:
            if issue.type is issue_type and issue.severity is severity:
                return issue
        return None

    def add(self, issue_type: IssueType, severity: Severity, message: str, part_numbers: list[str]) -> None:
        if part_numbers:
            self.issues.append(IntegrityIssue(issue_type, severity, message, part_numbers))


class CatalogService(BaseService):
    """Catalog entry lookups and admin edits."""

    service_name = "catalog"

    async def get_entry(self, entry_id: str) -> CatalogEntry:
        entry = await self.session.get(CatalogEntry, entry_id)
        if entry is None:
            raise NotFoundError("CatalogEntry", entry_id)
        return entry

    async def get_by_part_numbers(self, part_numbers: Iterable[str]) -> list[CatalogEntry]:
        """All entries whose part number is in ``part_numbers``, duplicates included."""
        wanted = sorted({pn for pn in part_numbers if pn})
        if not wanted:
            return []
        result = await self.session.execute(
            select(CatalogEntry)
            .where(CatalogEntry.part_number.in_(wanted))
            .order_by(CatalogEntry.part_number, CatalogEntry.created_at)
        )
        return list(result.scalars().all())

    async def get_auto_add_basics(self) -> list[CatalogEntry]:
        result = await self.session.execute(
            select(CatalogEntry)
            .where(
                and_(
                    CatalogEntry.category == BASICS_CATEGORY,
                    CatalogEntry.is_auto_add.is_(True),
                )
            )
            .order_by(CatalogEntry.part_number, CatalogEntry.description)
        )
        return list(result.scalars().all())

    async def build_snapshot(self, policy: PolicyTable) -> CatalogSnapshot:
        """Catalog data for a synthesis pass: every managed part plus the basics."""
        managed = await self.get_by_part_numbers(policy.auto_managed_part_numbers())
        basics = await self.get_auto_add_basics()
        return CatalogSnapshot.from_records(
            (CatalogRecord.from_entry(e) for e in managed),
            basics=(CatalogRecord.from_entry(e) for e in basics),
        )

    async def create_entry(self, **fields: Any) -> CatalogEntry:
        """Create an entry from already-normalized fields."""
        entry = CatalogEntry(**{k: v for k, v in fields.items() if k in EDITABLE_FIELDS})
        self.session.add(entry)
        await self._flush()
        self.logger.log_operation_complete(
            "create_catalog_entry",
            entry_id=entry.id,
            part_number=entry.part_number,
        )
        return entry

    async def create_from_vendor_row(
        self,
        description: str,
        part_number: str | None = None,
        vendor_category_1: str | None = None,
        vendor_category_2: str | None = None,
        vendor_category_3: str | None = None,
        manual_brand: str | None = None,
        unit_price: Decimal = Decimal("0"),
        labour_hours: Decimal = Decimal("0"),
        default_quantity: int = 1,
    ) -> CatalogEntry:
        """Classify a raw vendor row and store it."""
        classification = classify_catalog_entry(
            description,
            part_number,
            vendor_category_1,
            vendor_category_2,
            vendor_category_3,
            manual_brand,
        )
        return await self.create_entry(
            part_number=part_number or "",
            description=description,
            brand=classification.brand,
            category=classification.category,
            subcategory=classification.subcategory,
            meter_type=classification.meter_type.value if classification.meter_type else None,
            unit_price=unit_price,
            labour_hours=labour_hours,
            default_quantity=default_quantity,
        )

    async def update_entry(self, entry_id: str, **fields: Any) -> CatalogEntry:
        """
        Update an entry. Existing line items keep the values they copied.
        """
        entry = await self.get_entry(entry_id)
        for name, value in fields.items():
            if name in EDITABLE_FIELDS:
                setattr(entry, name, value)
        await self._flush()
        self.logger.log_operation_complete("update_catalog_entry", entry_id=entry_id, fields=sorted(fields))
        return entry

    async def list_addable(
        self,
        policy: PolicyTable,
        search: str | None = None,
        category: str | None = None,
        limit: int = 100,
    ) -> list[CatalogEntry]:
        """
        Entries offered in manual add menus.

        Auto-managed parts are hidden; their presence on a board is
        controlled by its configuration.
        """
        query = select(CatalogEntry)
        managed = sorted(policy.auto_managed_part_numbers())
        if managed:
            query = query.where(not_(or_(*(CatalogEntry.part_number.startswith(pn, autoescape=True) for pn in managed))))
        if category:
            query = query.where(CatalogEntry.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(CatalogEntry.part_number).like(pattern),
                    func.lower(CatalogEntry.description).like(pattern),
                )
            )
        query = query.order_by(CatalogEntry.category, CatalogEntry.part_number, CatalogEntry.description).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def check_integrity(self, policy: PolicyTable) -> IntegrityReport:
        """
        Scan the catalog for problems synthesis would trip over.

        A missing or duplicated managed part makes synthesis fail, so those
        are critical. Missing formula-priced parts fall back to the policy
        description and are only a warning, as are duplicated unmanaged
        parts, unpriced rows and rows without a category.
        """
        self.logger.log_operation_start("check_integrity", policy_version=policy.version)
        result = await self.session.execute(select(CatalogEntry))
        entries = list(result.scalars().all())

        counts = Counter(entry.part_number for entry in entries if entry.part_number)
        codes = policy.auto_managed_part_numbers()
        missing = sorted(code for code in codes if code not in counts)
        duplicates = sorted(pn for pn, count in counts.items() if count > 1)

        report = IntegrityReport()
        report.add(
            IssueType.MISSING_CODE,
            Severity.CRITICAL,
            "Required system codes are missing from the catalog",
            [code for code in missing if not policy.is_formula_priced(code)],
        )
        report.add(
            IssueType.MISSING_CODE,
            Severity.WARNING,
            "Formula priced codes have no catalog entry and use their default description",
            [code for code in missing if policy.is_formula_priced(code)],
        )
        report.add(
            IssueType.DUPLICATE_CODE,
            Severity.CRITICAL,
            "Managed part numbers appear more than once",
            [pn for pn in duplicates if policy.is_auto_managed(pn)],
        )
        report.add(
            IssueType.DUPLICATE_CODE,
            Severity.WARNING,
            "Part numbers appear more than once",
            [pn for pn in duplicates if not policy.is_auto_managed(pn)],
        )
        report.add(
            IssueType.ZERO_PRICE,
            Severity.WARNING,
            "Entries have no price and no labour",
            sorted(
                entry.part_number or entry.description
                for entry in entries
                if not entry.unit_price
                and not entry.labour_hours
                and HEADER_MARKER not in (entry.description or "").lower()
            ),
        )
        report.add(
            IssueType.MISSING_CATEGORY,
            Severity.WARNING,
            "Entries are missing a category or subcategory",
            sorted(entry.part_number or entry.description for entry in entries if not entry.category or not entry.subcategory),
        )

        self.logger.log_operation_complete(
            "check_integrity",
            policy_version=policy.version,
            healthy=report.is_healthy,
            issues=len(report.issues),
        )
        return report
