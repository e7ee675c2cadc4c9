import uuid
from typing import AsyncGenerator

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from goldfolio.config import settings
from goldfolio.container import Container
from goldfolio.infra.http.rate_limited_client import RateLimitedClient
from goldfolio.infra.price.goldapi import GoldApiProvider
from goldfolio.infra.price.service import GoldPriceService
from goldfolio.valuation.service import ValuationService


@inject
async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(Provide[Container.session_factory]),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@inject
def get_valuation_service(
    service: ValuationService = Depends(Provide[Container.valuation_service]),
) -> ValuationService:
    return service


async def resolve_user_id(
    x_user_id: str | None = Header(None, description="Authenticated user, set by the gateway"),
) -> uuid.UUID:
    """Authentication happens upstream; the gateway forwards the user id."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-User-Id header")


async def get_price_service(db: AsyncSession = Depends(get_db)) -> AsyncGenerator[GoldPriceService, None]:
    """GoldPriceService wired with the GoldAPI provider; the HTTP client lives for one request."""
    async with RateLimitedClient(rate_per_second=5.0, timeout=settings.goldapi_timeout) as http_client:
        provider = GoldApiProvider(http_client, settings.goldapi_key_list, url=settings.goldapi_url)
        yield GoldPriceService(db, provider)
