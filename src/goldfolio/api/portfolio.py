import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.api.deps import get_db, get_price_service, get_valuation_service, resolve_user_id
from goldfolio.api.schemas.portfolio import MetricPoint, MetricSeries, PortfolioStatsResponse
from goldfolio.config import settings
from goldfolio.db.repos.portfolio_metric_repo import PortfolioMetricRepo
from goldfolio.domain.day_window import local_date, market_timezone
from goldfolio.domain.models.portfolio import BackfillResult
from goldfolio.infra.price.service import GoldPriceService
from goldfolio.metrics.backfill import MetricsBackfillEngine
from goldfolio.valuation.service import ValuationService

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
UserDep = Annotated[uuid.UUID, Depends(resolve_user_id)]


@router.get("/stats", response_model=PortfolioStatsResponse)
async def portfolio_stats(
    db: DbDep,
    user_id: UserDep,
    price_service: Annotated[GoldPriceService, Depends(get_price_service)],
    valuation: Annotated[ValuationService, Depends(get_valuation_service)],
) -> PortfolioStatsResponse:
    """Stats at the current price. Falls back to the last good result when a recompute is dropped."""
    price = await price_service.get_current_price()
    await db.commit()  # persist the key rotation the fetch produced
    stats = await valuation.recompute(db, user_id, price.price_24k)
    return PortfolioStatsResponse(
        stats=stats,
        price_is_live=price.is_live,
        shows_pure_average=stats.shows_pure_average if stats else False,
    )


@router.get("/metrics", response_model=MetricSeries)
async def portfolio_metrics(
    db: DbDep, user_id: UserDep, days: int | None = Query(None, ge=1, le=3650)
) -> MetricSeries:
    since = None
    if days is not None:
        today = local_date(datetime.now(timezone.utc), market_timezone(settings.market_tz_offset_minutes))
        since = today - timedelta(days=days - 1)
    rows = await PortfolioMetricRepo(db).get_series(user_id, since=since)
    return MetricSeries(user_id=user_id, points=[MetricPoint.model_validate(r) for r in rows])


@router.post("/metrics/backfill", response_model=BackfillResult)
async def backfill_metrics(db: DbDep, user_id: UserDep) -> BackfillResult:
    """Regenerate the daily value series from the purchase ledger and price history."""
    return await MetricsBackfillEngine(db).run(user_id)


@router.post("/metrics/backfill/enqueue", status_code=202)
async def enqueue_backfill(user_id: UserDep) -> dict:
    """Enqueue a Celery task to regenerate the series in the background."""
    from goldfolio.workers.tasks import backfill_portfolio_metrics_task

    task = backfill_portfolio_metrics_task.delay(str(user_id))
    return {"status": "queued", "task_id": task.id}
