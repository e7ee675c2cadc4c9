"""MetricsBackfillEngine: replays purchases against price history, one row per day."""

import bisect
import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.config import settings
from goldfolio.db.models.price_history import PriceObservation
from goldfolio.db.repos.portfolio_metric_repo import PortfolioMetricRepo
from goldfolio.db.repos.price_history_repo import PriceHistoryRepo
from goldfolio.db.repos.purchase_repo import PurchaseRepo
from goldfolio.domain.day_window import as_utc, day_window_utc, iter_days, local_date, market_timezone
from goldfolio.domain.errors import PersistenceFailure
from goldfolio.domain.models.portfolio import BackfillResult, DailySnapshot
from goldfolio.valuation.engine import FINE_CARAT, PurchaseLike

logger = logging.getLogger(__name__)

MONEY = Decimal("0.01")
GRAMS = Decimal("0.001")


class PriceTimeline:
    """Sorted price history answering "latest price as of end of day" lookups."""

    def __init__(self, observations: Iterable[PriceObservation], tz: tzinfo) -> None:
        ordered = sorted(observations, key=lambda o: as_utc(o.observed_at))
        self._instants = [as_utc(o.observed_at) for o in ordered]
        self._prices = [Decimal(o.price_per_gram_24k) for o in ordered]
        self._tz = tz

    def as_of(self, day: date) -> Decimal | None:
        """24k price of the last observation before the end of ``day``, or None."""
        end = day_window_utc(day, self._tz).end
        idx = bisect.bisect_left(self._instants, end)
        if idx == 0:
            return None
        return self._prices[idx - 1]


class _DayAccumulator:
    __slots__ = ("investment", "weight", "carat_grams")

    def __init__(self) -> None:
        self.investment = Decimal(0)
        self.weight = Decimal(0)
        self.carat_grams = Decimal(0)  # sum of weight * carat


def build_snapshots(
    purchases: Sequence[PurchaseLike],
    timeline: PriceTimeline,
    today: date,
    fallback_price_24k: Decimal,
) -> tuple[list[DailySnapshot], int]:
    """Forward-fill every purchase into each day from its date through ``today``.

    Returns the snapshots ordered by day and the number of days priced with
    the fallback because no observation existed on or before them.
    """
    days: dict[date, _DayAccumulator] = defaultdict(_DayAccumulator)
    for purchase in purchases:
        grams = Decimal(purchase.weight_grams)
        carat_grams = grams * Decimal(purchase.carat)
        amount = Decimal(purchase.total_amount)
        for day in iter_days(purchase.purchase_date, today):
            acc = days[day]
            acc.investment += amount
            acc.weight += grams
            acc.carat_grams += carat_grams

    snapshots: list[DailySnapshot] = []
    fallback_days = 0
    for day in sorted(days):
        acc = days[day]
        price = timeline.as_of(day)
        if price is None:
            price = fallback_price_24k
            fallback_days += 1
        snapshots.append(
            DailySnapshot(
                day=day,
                investment=acc.investment.quantize(MONEY),
                current_value=(acc.carat_grams * price / FINE_CARAT).quantize(MONEY),
                total_weight_grams=acc.weight.quantize(GRAMS),
                price_per_gram_24k=price,
            )
        )
    return snapshots, fallback_days


class MetricsBackfillEngine:
    """Regenerate a user's whole PortfolioMetric series in one transaction."""

    def __init__(
        self,
        session: AsyncSession,
        tz: tzinfo | None = None,
        fallback_price_24k: Decimal | None = None,
    ) -> None:
        self._session = session
        self._tz = tz or market_timezone(settings.market_tz_offset_minutes)
        self._fallback_24k = fallback_price_24k or Decimal(str(settings.fallback_price_24k))

    async def run(self, user_id: uuid.UUID, today: date | None = None) -> BackfillResult:
        today = today or local_date(datetime.now(timezone.utc), self._tz)

        # Load errors propagate before anything is written
        purchases = await PurchaseRepo(self._session).get_all(user_id)
        if not purchases:
            logger.info("No purchases for user %s, nothing to backfill", user_id)
            return BackfillResult(user_id=user_id, days=0)
        observations = await PriceHistoryRepo(self._session).list_all()

        timeline = PriceTimeline(observations, self._tz)
        snapshots, fallback_days = build_snapshots(purchases, timeline, today, self._fallback_24k)

        try:
            await PortfolioMetricRepo(self._session).replace_all(user_id, snapshots)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.exception("Portfolio metrics write failed for user %s", user_id)
            raise PersistenceFailure(f"Could not store portfolio metrics for {user_id}") from exc

        if fallback_days:
            logger.warning("User %s: %d day(s) priced with fallback %s", user_id, fallback_days, self._fallback_24k)
        logger.info("Backfilled %d day(s) of portfolio metrics for user %s", len(snapshots), user_id)

        return BackfillResult(
            user_id=user_id,
            days=len(snapshots),
            first_date=snapshots[0].day if snapshots else None,
            last_date=snapshots[-1].day if snapshots else None,
            fallback_days=fallback_days,
        )
