"""Per-user daily portfolio value, regenerated wholesale by the backfill."""

import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from goldfolio.db.session import Base, TimestampMixin, UUIDPrimaryKey


class PortfolioMetric(UUIDPrimaryKey, TimestampMixin, Base):
    __tablename__ = "portfolio_metrics"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_portfolio_metrics_user_id_date"),)

    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    investment: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal(0))
    current_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal(0))
    total_weight_grams: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal(0))
