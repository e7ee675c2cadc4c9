from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.config import settings
from goldfolio.db.models.price_history import PriceObservation
from goldfolio.domain.day_window import as_utc, day_window_utc, local_date, market_timezone, yesterday
from goldfolio.domain.enums import PriceSource

PURITY_22K = Decimal(22) / Decimal(24)


class PriceHistoryRepo:
    def __init__(self, session: AsyncSession, tz: Optional[tzinfo] = None) -> None:
        self._session = session
        self._tz = tz or market_timezone(settings.market_tz_offset_minutes)

    async def insert(
        self,
        price_24k: Decimal,
        price_22k: Optional[Decimal],
        observed_at: datetime,
        source: PriceSource,
    ) -> PriceObservation:
        observation = PriceObservation(
            price_per_gram_24k=price_24k,
            price_per_gram_22k=price_22k,
            observed_at=as_utc(observed_at),
            market_date=local_date(observed_at, self._tz),
            source=source.value,
        )
        self._session.add(observation)
        await self._session.flush()
        return observation

    async def list_all(self) -> list[PriceObservation]:
        """Full history, oldest first."""
        result = await self._session.execute(
            select(PriceObservation).order_by(PriceObservation.observed_at.asc())
        )
        return list(result.scalars().all())

    async def list_since(self, start: datetime) -> list[PriceObservation]:
        result = await self._session.execute(
            select(PriceObservation)
            .where(PriceObservation.observed_at >= as_utc(start))
            .order_by(PriceObservation.observed_at.asc())
        )
        return list(result.scalars().all())

    async def latest(self) -> Optional[PriceObservation]:
        result = await self._session.execute(
            select(PriceObservation).order_by(PriceObservation.observed_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_before(self, instant: datetime) -> Optional[PriceObservation]:
        """Most recent observation strictly before ``instant``."""
        result = await self._session.execute(
            select(PriceObservation)
            .where(PriceObservation.observed_at < as_utc(instant))
            .order_by(PriceObservation.observed_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_as_of_date(self, day: date, tz: tzinfo) -> Optional[PriceObservation]:
        """Last price known at the end of ``day`` in ``tz``."""
        return await self.latest_before(day_window_utc(day, tz).end)

    async def latest_as_of_yesterday(self, now: datetime, tz: tzinfo) -> Optional[PriceObservation]:
        return await self.latest_as_of_date(yesterday(now, tz), tz)

    async def exists_non_manual_on(self, day: date, tz: tzinfo) -> bool:
        """Whether a non-manual observation was already recorded for ``day``."""
        window = day_window_utc(day, tz)
        result = await self._session.execute(
            select(PriceObservation.id)
            .where(
                PriceObservation.observed_at >= window.start,
                PriceObservation.observed_at < window.end,
                PriceObservation.source != PriceSource.MANUAL.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def backfill_22k(self) -> int:
        """Derive the 22k column for legacy rows that only carry 24k. Returns rows touched."""
        result = await self._session.execute(
            update(PriceObservation)
            .where(PriceObservation.price_per_gram_22k.is_(None))
            .values(price_per_gram_22k=PriceObservation.price_per_gram_24k * PURITY_22K)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount or 0
