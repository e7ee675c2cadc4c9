"""Append-only ledger of observed gold prices."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Index, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from goldfolio.db.session import Base, UTCDateTime, UUIDPrimaryKey
from goldfolio.domain.enums import PriceSource

NON_MANUAL = text("source <> 'manual'")


class PriceObservation(UUIDPrimaryKey, Base):
    """One observed INR-per-gram price. Never updated except for 22k backfill."""

    __tablename__ = "gold_price_history"
    __table_args__ = (
        # At most one scheduled/API row per market day; manual entries are unrestricted
        Index(
            "uq_gold_price_history_market_date",
            "market_date",
            unique=True,
            postgresql_where=NON_MANUAL,
            sqlite_where=NON_MANUAL,
        ),
    )

    price_per_gram_24k: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    price_per_gram_22k: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), default=None)
    observed_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    market_date: Mapped[date] = mapped_column(Date)  # observed_at's calendar day in market time
    source: Mapped[str] = mapped_column(String(20), default=PriceSource.API.value)  # api / scheduled-api / manual / fallback
