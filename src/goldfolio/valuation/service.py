"""ValuationService: single-flight recomputation of per-user PortfolioStats."""

import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.config import settings
from goldfolio.db.repos.purchase_repo import PurchaseRepo
from goldfolio.domain.errors import ComputationSkipped, InvalidPriceData
from goldfolio.domain.models.portfolio import PortfolioStats
from goldfolio.valuation.engine import compute_portfolio_stats, validate_price
from goldfolio.valuation.single_flight import SingleFlight

logger = logging.getLogger(__name__)


class ValuationService:
    """Recompute stats at most once at a time per user, keeping the last good result.

    A trigger that arrives while the same user's computation is running is
    dropped and answered with the last good stats; the caller re-triggers if
    the ledger changed again. If loading purchases fails the error propagates
    and the last good stats are left untouched.
    """

    def __init__(
        self,
        single_flight: SingleFlight | None = None,
        min_price_24k: Decimal | None = None,
        min_days: int | None = None,
        max_cached_users: int = 1024,
    ) -> None:
        self._flight = single_flight or SingleFlight()
        self._min_24k = min_price_24k or Decimal(str(settings.min_sane_price_24k))
        self._min_days = min_days if min_days is not None else settings.annualized_min_days
        self._max_cached = max_cached_users
        # Least recently computed users are evicted first
        self._last_good: OrderedDict[uuid.UUID, PortfolioStats] = OrderedDict()

    def last_good(self, user_id: uuid.UUID) -> PortfolioStats | None:
        return self._last_good.get(user_id)

    async def recompute(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        price_24k,
        as_of: datetime | None = None,
    ) -> PortfolioStats | None:
        try:
            price = validate_price(price_24k)
        except InvalidPriceData as exc:
            logger.warning("Ignored invalid gold price for user %s: %s", user_id, exc)
            return self.last_good(user_id)
        if price < self._min_24k:
            logger.warning("Ignored suspicious gold price %s for user %s", price, user_id)
            return self.last_good(user_id)

        async def _compute() -> PortfolioStats:
            purchases = await PurchaseRepo(session).get_all(user_id)
            return compute_portfolio_stats(purchases, price, as_of=as_of, min_days=self._min_days)

        try:
            stats = await self._flight.run(user_id, _compute)
        except ComputationSkipped:
            logger.debug("Valuation already running for user %s, dropped trigger", user_id)
            return self.last_good(user_id)

        if not stats.is_consistent():
            logger.error("Inconsistent stats for user %s, keeping previous result", user_id)
            return self.last_good(user_id)

        self._last_good[user_id] = stats
        self._last_good.move_to_end(user_id)
        while len(self._last_good) > self._max_cached:
            self._last_good.popitem(last=False)
        return stats
