"""Celery tasks for the daily price fetch and metrics backfill."""

import asyncio
import logging
import uuid

from goldfolio.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="fetch_daily_gold_price", max_retries=2, default_retry_delay=600)
def fetch_daily_gold_price_task(self) -> dict:
    """Record today's gold price once.

    Runs the async service under asyncio.run() with its own engine and
    session. Re-running on the same market day is a no-op.
    """
    return asyncio.run(_fetch_daily_gold_price_async())


async def _fetch_daily_gold_price_async() -> dict:
    from goldfolio.config import settings
    from goldfolio.db.session import build_engine, build_session_factory
    from goldfolio.domain.errors import PriceUnavailable
    from goldfolio.infra.http.rate_limited_client import RateLimitedClient
    from goldfolio.infra.price.goldapi import GoldApiProvider
    from goldfolio.infra.price.service import GoldPriceService

    engine = build_engine(settings.database_url, echo=False)
    session_factory = build_session_factory(engine)

    try:
        async with session_factory() as session:
            async with RateLimitedClient(rate_per_second=5.0, timeout=settings.goldapi_timeout) as http_client:
                provider = GoldApiProvider(http_client, settings.goldapi_key_list, url=settings.goldapi_url)
                service = GoldPriceService(session, provider)
                try:
                    outcome = await service.record_daily_price()
                except PriceUnavailable as exc:
                    await session.commit()
                    logger.error("Daily gold price fetch failed: %s", exc)
                    return {"status": "error", "message": str(exc)}
            await session.commit()
            return {"status": outcome.value}
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="backfill_portfolio_metrics", max_retries=2, default_retry_delay=30)
def backfill_portfolio_metrics_task(self, user_id: str) -> dict:
    """Regenerate one user's daily portfolio metrics."""
    return asyncio.run(_backfill_async(uuid.UUID(user_id)))


async def _backfill_async(user_id: uuid.UUID) -> dict:
    from goldfolio.config import settings
    from goldfolio.db.session import build_engine, build_session_factory
    from goldfolio.metrics.backfill import MetricsBackfillEngine

    engine = build_engine(settings.database_url, echo=False)
    session_factory = build_session_factory(engine)

    try:
        async with session_factory() as session:
            result = await MetricsBackfillEngine(session).run(user_id)
            return {"status": "ok", **result.model_dump(mode="json")}
    finally:
        await engine.dispose()
