import uuid
from datetime import date
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.db.models.portfolio_metric import PortfolioMetric
from goldfolio.domain.models.portfolio import DailySnapshot


class PortfolioMetricRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_series(self, user_id: uuid.UUID, since: Optional[date] = None) -> list[PortfolioMetric]:
        stmt = select(PortfolioMetric).where(PortfolioMetric.user_id == user_id)
        if since is not None:
            stmt = stmt.where(PortfolioMetric.date >= since)
        result = await self._session.execute(stmt.order_by(PortfolioMetric.date.asc()))
        return list(result.scalars().all())

    async def replace_all(self, user_id: uuid.UUID, snapshots: list[DailySnapshot]) -> int:
        """Make the user's series equal ``snapshots``. Caller owns the transaction.

        Days no longer covered are deleted, existing days are updated in place
        (keeping their id and created_at) and new days are inserted, so an
        unchanged rerun writes nothing.
        """
        await self._session.execute(
            delete(PortfolioMetric).where(
                PortfolioMetric.user_id == user_id,
                PortfolioMetric.date.not_in([s.day for s in snapshots]),
            )
        )

        existing = {row.date: row for row in await self.get_series(user_id)}
        for s in snapshots:
            row = existing.get(s.day)
            if row is None:
                row = PortfolioMetric(user_id=user_id, date=s.day)
                self._session.add(row)
            row.investment = s.investment
            row.current_value = s.current_value
            row.total_weight_grams = s.total_weight_grams
        await self._session.flush()
        return len(snapshots)
