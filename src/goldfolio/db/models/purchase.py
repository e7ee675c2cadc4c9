import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from goldfolio.db.session import Base, TimestampMixin, UUIDPrimaryKey


class GoldPurchase(UUIDPrimaryKey, TimestampMixin, Base):
    """A single gold buy owned by one user."""

    __tablename__ = "gold_purchases"
    __table_args__ = (
        CheckConstraint("carat >= 1 AND carat <= 24", name="carat_range"),
        CheckConstraint("weight_grams > 0", name="weight_positive"),
        CheckConstraint("purchase_price_per_gram > 0", name="price_positive"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    weight_grams: Mapped[Decimal] = mapped_column(Numeric(10, 3))
    purchase_date: Mapped[date] = mapped_column(Date, index=True)
    purchase_price_per_gram: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    carat: Mapped[int] = mapped_column(Integer, default=24)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))  # weight_grams * purchase_price_per_gram
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
