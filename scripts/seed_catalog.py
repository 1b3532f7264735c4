"""
Script to seed the default achievement and daily task catalogs.
Run with: python -m scripts.seed_catalog [--force]
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from questlearn.core.database import async_session_maker, engine
from questlearn.models import Base
from questlearn.services.catalog_seeder import seed_catalog

logger = logging.getLogger("seed_catalog")


async def run(force: bool = False) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        inserted = await seed_catalog(session, force=force)
        await session.commit()

    for table, count in inserted.items():
        if count:
            logger.info(f"Seeded {count} rows into {table}")
        else:
            logger.info(f"{table} already seeded. Use --force to re-seed.")

    await engine.dispose()


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    force = "--force" in sys.argv
    asyncio.run(run(force))


if __name__ == "__main__":
    main()
