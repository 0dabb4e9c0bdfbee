import asyncio
import logging
import sys

from sqlalchemy.ext.asyncio import AsyncEngine

from src.sushflix.db.session import engine
from src.sushflix.models import Base

logger = logging.getLogger(__name__)


async def create_tables(bind: AsyncEngine) -> None:
    """Create every table, check constraint and index of the schema if missing.

    Includes the partial unique index that allows a single active
    subscription per (subscriber, creator) pair.
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Initialize the database schema."""
    try:
        await create_tables(engine)
        logger.info("Database initialization completed successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise
    finally:
        await engine.dispose()


def main() -> None:
    """Main function to run database initialization."""
    try:
        asyncio.run(init_db())
        print("✅ Database initialization completed successfully!")
    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
