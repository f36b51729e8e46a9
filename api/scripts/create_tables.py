#!/usr/bin/env python3
"""Create database tables from SQLAlchemy models.

Run this once when setting up a new database. create_all() only creates
missing tables - it won't modify existing ones.

Usage:
    cd api
    python -m scripts.create_tables
"""

import asyncio

from core.database import create_engine, create_tables, dispose_engine
from core.logger import configure_logging


async def main() -> None:
    engine = create_engine()
    try:
        await create_tables(engine)
    finally:
        await dispose_engine(engine)


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
