"""GoldPriceService: live price acquisition, fallback and daily recording."""

import logging
from datetime import datetime, timezone, tzinfo
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.config import settings
from goldfolio.db.repos.price_history_repo import PURITY_22K, PriceHistoryRepo
from goldfolio.db.repos.price_source_state_repo import PriceSourceStateRepo
from goldfolio.domain.day_window import local_date, market_timezone
from goldfolio.domain.enums import DailyPriceOutcome, PriceSource
from goldfolio.domain.errors import InvalidPriceData, PriceUnavailable
from goldfolio.domain.models.portfolio import CurrentPrice, KeyRotationState, SpotQuote
from goldfolio.infra.price.goldapi import PROVIDER_NAME, GoldApiProvider

logger = logging.getLogger(__name__)

MONEY = Decimal("0.01")


def check_plausible(quote: SpotQuote, min_price_24k: Decimal) -> SpotQuote:
    """Reject quotes far below any historical gold price."""
    if quote.price_24k < min_price_24k:
        raise InvalidPriceData(f"24k price {quote.price_24k} below plausibility floor {min_price_24k}")
    return quote


class GoldPriceService:
    """Orchestrator: provider fetch → sanity gate → stored fallback → static fallback."""

    def __init__(
        self,
        session: AsyncSession,
        provider: GoldApiProvider | None = None,
        tz: tzinfo | None = None,
        fallback_price_24k: Decimal | None = None,
        min_price_24k: Decimal | None = None,
    ) -> None:
        self._session = session
        self._provider = provider
        self._tz = tz or market_timezone(settings.market_tz_offset_minutes)
        self._fallback_24k = fallback_price_24k or Decimal(str(settings.fallback_price_24k))
        self._min_24k = min_price_24k or Decimal(str(settings.min_sane_price_24k))
        self._history = PriceHistoryRepo(session, self._tz)
        self._state = PriceSourceStateRepo(session)

    async def fetch_live(self) -> SpotQuote:
        """One provider round with persisted key rotation. Raises PriceUnavailable."""
        if self._provider is None:
            raise PriceUnavailable("No price provider configured")

        state = await self._state.load(PROVIDER_NAME)
        quote, new_state = await self._provider.fetch_spot_price(state)
        if new_state != state:
            await self._state.save(PROVIDER_NAME, new_state)
        return check_plausible(quote, self._min_24k)

    async def get_current_price(self) -> CurrentPrice:
        """Live price if possible, else the last stored one, else the static fallback."""
        try:
            quote = await self.fetch_live()
            return CurrentPrice(
                price_24k=quote.price_24k,
                price_22k=quote.price_22k,
                observed_at=quote.observed_at,
                source=PriceSource.API,
                is_live=True,
            )
        except PriceUnavailable as exc:
            logger.warning("Live gold price unavailable, falling back: %s", exc)
            reason = str(exc)

        latest = await self._history.latest()
        if latest is not None and Decimal(latest.price_per_gram_24k) >= self._min_24k:
            price_24k = Decimal(latest.price_per_gram_24k)
            price_22k = latest.price_per_gram_22k
            return CurrentPrice(
                price_24k=price_24k,
                price_22k=Decimal(price_22k) if price_22k is not None else (price_24k * PURITY_22K).quantize(MONEY),
                observed_at=latest.observed_at,
                source=PriceSource(latest.source),
                is_live=False,
                message=f"Live price unavailable, using last recorded price ({reason})",
            )

        return CurrentPrice(
            price_24k=self._fallback_24k,
            price_22k=(self._fallback_24k * PURITY_22K).quantize(MONEY),
            observed_at=datetime.now(timezone.utc),
            source=PriceSource.FALLBACK,
            is_live=False,
            message=f"Live price unavailable, using fallback price ({reason})",
        )

    async def record_daily_price(self, now: datetime | None = None) -> DailyPriceOutcome:
        """Store today's live price once per market day.

        Checks for an existing non-manual observation before calling the
        provider so repeated scheduler runs cost no upstream requests.
        The unique market-day index settles races between overlapping runs.
        Raises PriceUnavailable when no live price can be obtained.
        """
        now = now or datetime.now(timezone.utc)
        today = local_date(now, self._tz)
        if await self._history.exists_non_manual_on(today, self._tz):
            logger.info("Gold price already recorded for %s", today)
            return DailyPriceOutcome.ALREADY_RECORDED

        quote = await self.fetch_live()
        try:
            await self._history.insert(
                price_24k=quote.price_24k,
                price_22k=quote.price_22k,
                observed_at=now,
                source=PriceSource.SCHEDULED_API,
            )
        except IntegrityError:
            # A concurrent run stored today's row between the check and the insert
            await self._session.rollback()
            await self._state.save(PROVIDER_NAME, KeyRotationState(last_good_index=quote.key_index))
            logger.info("Gold price for %s recorded concurrently", today)
            return DailyPriceOutcome.ALREADY_RECORDED
        logger.info("Stored gold prices for %s: 24k %s, 22k %s per gram", today, quote.price_24k, quote.price_22k)
        return DailyPriceOutcome.RECORDED
