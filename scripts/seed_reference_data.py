#!/usr/bin/env python3
"""
Reference Data Seed Script.

Upserts the expense item-type catalogue (A1 Entertainment ... R3 Deposit
Paid) and the currency list, keyed by code.

Usage:
    python scripts/seed_reference_data.py [--create-tables] [--demo-employees]

Options:
    --create-tables   Create missing tables first (development databases)
    --demo-employees  Also add the demo employees
"""

import argparse
import asyncio
import sys

from expense_claims.api.config import settings
from expense_claims.db.connection import close_db_connection, get_session_maker, init_models
from expense_claims.db.seed import seed_demo_employees, upsert_reference_data
from expense_claims.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def main(create_tables: bool = False, demo_employees: bool = False) -> int:
    """
    Seed the database.

    Returns:
        Exit code (0 for success)
    """
    try:
        if create_tables:
            await init_models()

        async with get_session_maker()() as session:
            await upsert_reference_data(session)
            if demo_employees:
                await seed_demo_employees(session)

        logger.info("Seeding complete")
        return 0

    except Exception as e:
        logger.exception(f"Seeding failed: {e}")
        return 1

    finally:
        await close_db_connection()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed expense claim reference data")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before seeding",
    )
    parser.add_argument(
        "--demo-employees",
        action="store_true",
        help="Add the demo employees",
    )
    args = parser.parse_args()

    setup_logging(level=settings.LOG_LEVEL)
    sys.exit(asyncio.run(main(create_tables=args.create_tables, demo_employees=args.demo_employees)))
