import asyncio
import logging
import sys

from src.sushflix.crud.crud_subscription import subscription as subscription_ledger
from src.sushflix.db.session import AsyncSessionLocal, engine

logger = logging.getLogger(__name__)


async def expire_subscriptions() -> int:
    """Run one expiry sweep. Entitlement never depends on it having run."""
    async with AsyncSessionLocal() as db:
        try:
            return await subscription_ledger.expire_stale(db)
        except Exception as e:
            logger.error(f"Subscription sweep failed: {str(e)}")
            await db.rollback()
            raise


async def run_sweep() -> int:
    """Run the sweep and release pooled connections on the same event loop."""
    try:
        return await expire_subscriptions()
    finally:
        await engine.dispose()


def main() -> None:
    """Entry point for scheduled runs."""
    try:
        expired = asyncio.run(run_sweep())
        print(f"✅ Expired {expired} stale subscriptions")
    except Exception as e:
        print(f"❌ Subscription sweep failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
