from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.api.deps import get_db, get_price_service
from goldfolio.api.schemas.prices import (
    CurrentPriceResponse,
    DailyPriceResponse,
    ManualPriceCreate,
    PriceObservationResponse,
    PricePoint,
)
from goldfolio.config import settings
from goldfolio.db.models.price_history import PriceObservation
from goldfolio.db.repos.price_history_repo import PURITY_22K, PriceHistoryRepo
from goldfolio.domain.day_window import local_date, market_timezone
from goldfolio.domain.enums import PriceSource
from goldfolio.domain.errors import PriceUnavailable
from goldfolio.infra.price.service import GoldPriceService

router = APIRouter(prefix="/api/prices", tags=["prices"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
PriceServiceDep = Annotated[GoldPriceService, Depends(get_price_service)]

MONEY = Decimal("0.01")


def daily_points(observations: list[PriceObservation], tz, markup: Decimal = Decimal(1)) -> list[PricePoint]:
    """One chart point per market day; the day's last observation wins.

    The realistic series is spot times the retail ``markup``, with 22k derived
    from 24k when the row predates the 22k column.
    """
    by_day: dict = {}
    for obs in observations:
        by_day[local_date(obs.observed_at, tz)] = obs

    points = []
    for day, obs in sorted(by_day.items()):
        price_24k = Decimal(obs.price_per_gram_24k)
        price_22k = obs.price_per_gram_22k
        spot_22k = Decimal(price_22k) if price_22k is not None else price_24k * PURITY_22K
        points.append(
            PricePoint(
                date=day,
                price_24k=price_24k,
                price_22k=price_22k,
                realistic_price_24k=(price_24k * markup).quantize(MONEY),
                realistic_price_22k=(spot_22k * markup).quantize(MONEY),
            )
        )
    return points


@router.get("/current", response_model=CurrentPriceResponse)
async def current_price(db: DbDep, price_service: PriceServiceDep) -> CurrentPriceResponse:
    price = await price_service.get_current_price()
    await db.commit()  # persist the key rotation the fetch produced
    return CurrentPriceResponse(
        price_24k=price.price_24k,
        price_22k=price.price_22k,
        observed_at=price.observed_at,
        source=price.source.value,
        is_live=price.is_live,
        badge="live" if price.is_live else "estimated",
        message=price.message,
    )


@router.get("/history", response_model=list[PricePoint])
async def price_history(db: DbDep, days: int = Query(365, ge=1, le=3650)) -> list[PricePoint]:
    since = datetime.now(timezone.utc) - timedelta(days=days)
    observations = await PriceHistoryRepo(db).list_since(since)
    return daily_points(
        observations,
        market_timezone(settings.market_tz_offset_minutes),
        markup=Decimal(str(settings.retail_markup)),
    )


@router.get("/yesterday", response_model=PriceObservationResponse)
async def yesterday_price(db: DbDep) -> PriceObservationResponse:
    """Last price known at the end of yesterday (market time)."""
    tz = market_timezone(settings.market_tz_offset_minutes)
    obs = await PriceHistoryRepo(db).latest_as_of_yesterday(datetime.now(timezone.utc), tz)
    if obs is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No price recorded before today")
    return PriceObservationResponse.model_validate(obs)


@router.post("/daily", response_model=DailyPriceResponse)
async def record_daily_price(db: DbDep, price_service: PriceServiceDep) -> DailyPriceResponse:
    """Scheduler entry point; safe to call repeatedly on the same day."""
    try:
        outcome = await price_service.record_daily_price()
    except PriceUnavailable as exc:
        await db.commit()  # keep the rotation state the failed round produced
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    await db.commit()
    return DailyPriceResponse(status=outcome)


@router.post("/manual", response_model=PriceObservationResponse, status_code=status.HTTP_201_CREATED)
async def add_manual_price(body: ManualPriceCreate, db: DbDep) -> PriceObservationResponse:
    obs = await PriceHistoryRepo(db).insert(
        price_24k=body.price_per_gram_24k,
        price_22k=body.price_per_gram_22k,
        observed_at=body.observed_at or datetime.now(timezone.utc),
        source=PriceSource.MANUAL,
    )
    await db.commit()
    return PriceObservationResponse.model_validate(obs)


@router.post("/backfill-22k")
async def backfill_22k(db: DbDep) -> dict:
    """Fill the 22k column on legacy rows that only recorded 24k."""
    updated = await PriceHistoryRepo(db).backfill_22k()
    await db.commit()
    return {"updated": updated}
