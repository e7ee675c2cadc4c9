from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.db.models.price_source_state import PriceSourceState
from goldfolio.domain.models.portfolio import KeyRotationState


class PriceSourceStateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def load(self, provider: str) -> KeyRotationState:
        result = await self._session.execute(
            select(PriceSourceState).where(PriceSourceState.provider == provider)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return KeyRotationState()
        return KeyRotationState(last_good_index=row.last_good_index)

    async def save(self, provider: str, state: KeyRotationState) -> None:
        row = await self._session.get(PriceSourceState, provider)
        if row is None:
            self._session.add(PriceSourceState(provider=provider, last_good_index=state.last_good_index))
        else:
            row.last_good_index = state.last_good_index
        await self._session.flush()
