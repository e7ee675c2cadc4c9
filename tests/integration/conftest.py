from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from goldfolio.api.deps import get_db, get_price_service, get_valuation_service
from goldfolio.api.main import app
from goldfolio.db.session import Base
from goldfolio.domain.day_window import market_timezone
from goldfolio.domain.models.portfolio import KeyRotationState, SpotQuote
from goldfolio.infra.price.service import GoldPriceService
from goldfolio.valuation.service import ValuationService
from goldfolio.valuation.single_flight import SingleFlight
import goldfolio.db.models  # noqa: F401


def live_quote(price_24k: str = "9988", price_22k: str = "9155") -> tuple[SpotQuote, KeyRotationState]:
    quote = SpotQuote(
        price_24k=Decimal(price_24k),
        price_22k=Decimal(price_22k),
        observed_at=datetime.now(timezone.utc),
        source_label="goldapi",
        key_index=0,
    )
    return quote, KeyRotationState()


@pytest.fixture()
def provider():
    """Stands in for GoldApiProvider; tests reconfigure ``fetch_spot_price``."""
    mock = MagicMock()
    mock.fetch_spot_price = AsyncMock(return_value=live_quote())
    return mock


@pytest.fixture()
async def db_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def client(db_factory, provider):
    valuation = ValuationService(SingleFlight(), min_price_24k=Decimal("1000"), min_days=30)

    async def override_get_db():
        async with db_factory() as session:
            yield session

    async def override_get_price_service(db: AsyncSession = Depends(get_db)):
        return GoldPriceService(
            db,
            provider,
            tz=market_timezone(330),
            fallback_price_24k=Decimal("7200"),
            min_price_24k=Decimal("1000"),
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_price_service] = override_get_price_service
    app.dependency_overrides[get_valuation_service] = lambda: valuation
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
