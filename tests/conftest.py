"""
Shared fixtures for the quoting engine tests.

Database tests run each scenario inside ``asyncio.run`` against a fresh
in-memory SQLite database seeded with a small catalog.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import switchboard_quoting.models  # noqa: F401  registers mappers
from switchboard_quoting.database.base import Base
from switchboard_quoting.database.session import create_session_factory, get_db_session
from switchboard_quoting.engine.synthesizer import CatalogRecord, CatalogSnapshot
from switchboard_quoting.models.catalog import CatalogEntry

# part_number, category, subcategory, description, unit_price, labour_hours
CATALOG_ROWS = [
    ("1A-TIERS", "Switchboard", "Tiers", "Cubic tier", "1500", "6"),
    ("1A-COMPARTMENTS", "Switchboard", "Compartments", "Cubic compartment", "300", "1.2"),
    ("1B-TIERS-400", "Switchboard", "Tiers", "Custom tier 400mm", "1400", "1"),
    ("1B-COMPARTMENTS", "Switchboard", "Compartments", "Custom compartment", "350", "0"),
    ("1B-DOORS", "Switchboard", "Doors", "Outdoor doors per tier", "1200", "0"),
    ("1B-600MM", "Switchboard", "Depth", "600mm depth per tier", "1000", "0"),
    ("1B-800MM", "Switchboard", "Depth", "800mm depth per tier", "2000", "0"),
    ("MISC-LABELS", "Switchboard", "Miscellaneous", "Labels per tier", "20", "0.25"),
    ("MISC-HARDWARE", "Switchboard", "Miscellaneous", "Hardware per tier", "50", "0"),
    ("MISC-TEST-TIERS", "Switchboard", "Miscellaneous", "Testing per tier", "100", "0.5"),
    ("MISC-DELIVERY-UTE", "Switchboard", "Delivery", "Delivery by ute", "150", "0"),
    ("MISC-DELIVERY-HIAB", "Switchboard", "Delivery", "Delivery by hiab", "450", "0"),
    ("MISC-SITE-RECONNECTION", "Switchboard", "Site Works", "Site reconnection", "800", "4"),
    ("CT-COMPARTMENTS", "Switchboard", "CT Metering", "CT compartment", "120", "2.5"),
    ("CT-PANEL", "Switchboard", "CT Metering", "CT panel", "80", "1"),
    ("CT-TEST-BLOCK", "Switchboard", "CT Metering", "CT test block", "50", "0.2"),
    ("CT-WIRING", "Switchboard", "CT Metering", "CT wiring", "60", "1.5"),
    ("CT-S-TYPE", "Switchboard", "CT Metering", "S type CTs", "450", "0"),
    ("CT-T-TYPE", "Switchboard", "CT Metering", "T type CTs", "690", "0"),
    ("CT-W-TYPE", "Switchboard", "CT Metering", "W type CTs", "750", "0"),
    ("CT-U-TYPE", "Switchboard", "CT Metering", "U type CTs", "1575", "0"),
    ("CT-400A", "Switchboard", "CT Labour", "CT chamber labour 400A", "0", "3"),
    ("CT-630A", "Switchboard", "CT Labour", "CT chamber labour 630A", "0", "4"),
    ("CT-800A", "Switchboard", "CT Labour", "CT chamber labour 800A", "0", "5"),
    ("CT-1200A", "Switchboard", "CT Labour", "CT chamber labour 1200A", "0", "6"),
    ("CT-1600A", "Switchboard", "CT Labour", "CT chamber labour 1600A", "0", "7"),
    ("CT-2000A", "Switchboard", "CT Labour", "CT chamber labour 2000A", "0", "8"),
    ("CT-2500A", "Switchboard", "CT Labour", "CT chamber labour 2500A", "0", "9"),
    ("CT-3200A", "Switchboard", "CT Labour", "CT chamber labour 3200A", "0", "10"),
    ("100A-PANEL", "Switchboard", "Whole Current", "100A meter panel", "220", "1"),
    ("100A-FUSE", "Switchboard", "Whole Current", "100A service fuse", "15", "0.1"),
    ("100A-NEUTRAL-LINK", "Switchboard", "Whole Current", "100A neutral link", "12", "0.1"),
    ("100A-MCB-3PH", "Switchboard", "Whole Current", "100A 3 pole breaker", "95", "0.3"),
    ("100A-MCB-1PH", "Switchboard", "Whole Current", "100A 1 pole breaker", "45", "0.2"),
]

# part_number, description, unit_price, labour_hours, default_quantity
BASICS_ROWS = [
    ("BASIC-GLAND", "Cable gland kit", "25", "0.1", 2),
    ("", "Phase labels", "5", "0", 1),
]


def _records() -> list[CatalogRecord]:
    return [
        CatalogRecord(pn, category, sub, desc, Decimal(price), Decimal(labour))
        for pn, category, sub, desc, price, labour in CATALOG_ROWS
    ]


def _basics() -> list[CatalogRecord]:
    return [
        CatalogRecord(pn, "Basics", "General", desc, Decimal(price), Decimal(labour), qty, True)
        for pn, desc, price, labour, qty in BASICS_ROWS
    ]


@pytest.fixture
def catalog_snapshot() -> CatalogSnapshot:
    """Snapshot of the full test catalog, basics included."""
    return CatalogSnapshot.from_records(_records(), basics=_basics())


@pytest.fixture
def bare_snapshot() -> CatalogSnapshot:
    """Snapshot without basics, for rules tested in isolation."""
    return CatalogSnapshot.from_records(_records())


async def seed_catalog(session) -> None:
    for pn, category, sub, desc, price, labour in CATALOG_ROWS:
        session.add(CatalogEntry(
            part_number=pn,
            category=category,
            subcategory=sub,
            description=desc,
            unit_price=Decimal(price),
            labour_hours=Decimal(labour),
        ))
    for pn, desc, price, labour, qty in BASICS_ROWS:
        session.add(CatalogEntry(
            part_number=pn,
            category="Basics",
            subcategory="General",
            description=desc,
            unit_price=Decimal(price),
            labour_hours=Decimal(labour),
            default_quantity=qty,
            is_auto_add=True,
        ))


@pytest.fixture
def run_db():
    """
    Run ``scenario(session_factory)`` against a fresh seeded database.

    Usage:
        def test_x(run_db):
            async def scenario(factory):
                async with get_db_session(factory) as session:
                    ...
            run_db(scenario)
    """
    def runner(scenario, seed: bool = True):
        async def main():
            engine = create_async_engine(
                "sqlite+aiosqlite:///:memory:",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            factory = create_session_factory(engine)
            try:
                if seed:
                    async with get_db_session(factory) as session:
                        await seed_catalog(session)
                return await scenario(factory)
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner
