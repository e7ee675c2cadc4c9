from datetime import datetime

from sqlalchemy import Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from goldfolio.db.session import Base, UTCDateTime


class PriceSourceState(Base):
    """Persisted credential rotation start for a price provider."""

    __tablename__ = "price_source_state"

    provider: Mapped[str] = mapped_column(String(50), primary_key=True)
    last_good_index: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now(), onupdate=func.now())
