import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from goldfolio.db.models.purchase import GoldPurchase

MONEY = Decimal("0.01")

# Fields a user may edit after creation
EDITABLE_FIELDS = {"weight_grams", "purchase_date", "purchase_price_per_gram", "carat", "description"}


def total_amount(weight_grams: Decimal, price_per_gram: Decimal) -> Decimal:
    return (weight_grams * price_per_gram).quantize(MONEY)


class PurchaseRepo:
    """Purchase ledger. Every query is scoped by the owning user."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_all(self, user_id: uuid.UUID) -> list[GoldPurchase]:
        """All purchases for a user, oldest purchase date first."""
        result = await self._session.execute(
            select(GoldPurchase)
            .where(GoldPurchase.user_id == user_id)
            .order_by(GoldPurchase.purchase_date.asc(), GoldPurchase.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, user_id: uuid.UUID, purchase_id: uuid.UUID) -> Optional[GoldPurchase]:
        result = await self._session.execute(
            select(GoldPurchase).where(GoldPurchase.id == purchase_id, GoldPurchase.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def earliest_purchase_date(self, user_id: uuid.UUID) -> Optional[date]:
        result = await self._session.execute(
            select(func.min(GoldPurchase.purchase_date)).where(GoldPurchase.user_id == user_id)
        )
        return result.scalar()

    async def create(
        self,
        user_id: uuid.UUID,
        weight_grams: Decimal,
        purchase_date: date,
        purchase_price_per_gram: Decimal,
        carat: int = 24,
        description: Optional[str] = None,
    ) -> GoldPurchase:
        purchase = GoldPurchase(
            user_id=user_id,
            weight_grams=weight_grams,
            purchase_date=purchase_date,
            purchase_price_per_gram=purchase_price_per_gram,
            carat=carat,
            total_amount=total_amount(weight_grams, purchase_price_per_gram),
            description=description,
        )
        self._session.add(purchase)
        await self._session.flush()
        return purchase

    async def update(self, user_id: uuid.UUID, purchase_id: uuid.UUID, **patch) -> Optional[GoldPurchase]:
        """Apply a partial edit. ``total_amount`` follows weight and price; ``updated_at`` is touched."""
        purchase = await self.get_by_id(user_id, purchase_id)
        if purchase is None:
            return None
        for key, value in patch.items():
            if key in EDITABLE_FIELDS and value is not None:
                setattr(purchase, key, value)
        purchase.total_amount = total_amount(
            Decimal(purchase.weight_grams), Decimal(purchase.purchase_price_per_gram)
        )
        purchase.updated_at = func.now()
        await self._session.flush()
        await self._session.refresh(purchase)
        return purchase

    async def delete(self, user_id: uuid.UUID, purchase_id: uuid.UUID) -> bool:
        purchase = await self.get_by_id(user_id, purchase_id)
        if purchase is None:
            return False
        await self._session.delete(purchase)
        await self._session.flush()
        return True
