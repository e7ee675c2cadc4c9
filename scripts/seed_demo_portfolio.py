"""Seed a demo user's purchases and run a metrics backfill for them.

Usage:
    PYTHONPATH=src python scripts/seed_demo_portfolio.py [USER_ID]

Idempotent: purchases are only added when the user has none. The backfill
always regenerates the user's full daily series.
"""

import asyncio
import logging
import sys
import uuid
from datetime import date
from decimal import Decimal

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
logger = logging.getLogger("seed_demo_portfolio")
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

DEMO_USER_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")

PURCHASES = [
    # Coin from a bank, pure gold
    {"weight_grams": "10.000", "purchase_date": date(2025, 3, 1), "price": "8662.00", "carat": 24, "description": "24k coin"},
    # Jewellery, priced per gram of 22k
    {"weight_grams": "8.000", "purchase_date": date(2025, 5, 12), "price": "8510.00", "carat": 22, "description": "22k chain"},
    {"weight_grams": "5.000", "purchase_date": date(2025, 7, 14), "price": "9988.00", "carat": 24, "description": None},
]


def separator(title: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}\n")


async def main(user_id: uuid.UUID) -> None:
    from goldfolio.config import settings
    from goldfolio.db.session import build_engine, build_session_factory
    from goldfolio.metrics.backfill import MetricsBackfillEngine

    separator("Seed: Demo Gold Portfolio")
    print(f"Database: {settings.db_host}:{settings.db_port}/{settings.db_name}\n")

    engine = build_engine(settings.database_url, echo=False)
    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        try:
            await seed(session, user_id)
            await session.commit()
            result = await MetricsBackfillEngine(session).run(user_id)
        except Exception:
            await session.rollback()
            logger.exception("Seeding failed")
            sys.exit(1)

    await engine.dispose()
    print(f"Backfilled {result.days} day(s) ({result.first_date} → {result.last_date}), "
          f"{result.fallback_days} priced with fallback")
    separator("Seeding Complete")


async def seed(session, user_id: uuid.UUID) -> None:
    from goldfolio.db.repos.purchase_repo import PurchaseRepo

    repo = PurchaseRepo(session)
    if await repo.get_all(user_id):
        print(f"User {user_id} already has purchases, skipping")
        return

    for item in PURCHASES:
        purchase = await repo.create(
            user_id=user_id,
            weight_grams=Decimal(item["weight_grams"]),
            purchase_date=item["purchase_date"],
            purchase_price_per_gram=Decimal(item["price"]),
            carat=item["carat"],
            description=item["description"],
        )
        print(f"  + {purchase.weight_grams}g {purchase.carat}k on {purchase.purchase_date}  total={purchase.total_amount}")


if __name__ == "__main__":
    asyncio.run(main(uuid.UUID(sys.argv[1]) if len(sys.argv) > 1 else DEMO_USER_ID))
