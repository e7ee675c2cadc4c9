"""Domain types for spot quotes, portfolio valuation and daily metrics."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from goldfolio.domain.enums import PriceSource

# Max |current_value - total_investment - total_gain| after rounding
GAIN_TOLERANCE = Decimal("0.05")
# Relative gap above which the purity-adjusted average is worth showing
PURE_AVERAGE_THRESHOLD = Decimal("0.0001")


class KeyRotationState(BaseModel):
    """Where the next provider call starts its credential rotation."""

    last_good_index: int = 0


class SpotQuote(BaseModel):
    """Normalized spot price from an upstream provider."""

    price_24k: Decimal  # INR per gram
    price_22k: Decimal
    observed_at: datetime
    source_label: str
    key_index: int


class CurrentPrice(BaseModel):
    """Price handed to valuation, flagged live or estimated."""

    price_24k: Decimal
    price_22k: Decimal
    observed_at: datetime
    source: PriceSource
    is_live: bool
    message: Optional[str] = None


class PortfolioStats(BaseModel):
    """Aggregate valuation of a purchase ledger at one 24k price."""

    total_weight: Decimal
    pure_gold_weight: Decimal
    total_investment: Decimal
    current_value: Decimal
    total_gain: Decimal
    gain_percentage: Decimal
    average_purchase_price: Decimal
    average_pure_purchase_price: Decimal
    annualized_return: Optional[Decimal] = None  # None = not enough history
    purchase_count: int
    price_per_gram_24k: Decimal
    computed_at: datetime

    @property
    def shows_pure_average(self) -> bool:
        avg = self.average_purchase_price
        if avg <= 0:
            return False
        return abs(self.average_pure_purchase_price - avg) / avg > PURE_AVERAGE_THRESHOLD

    def is_consistent(self) -> bool:
        """Sanity check used before serving cached stats."""
        if min(self.total_weight, self.total_investment, self.current_value) < 0:
            return False
        return abs((self.current_value - self.total_investment) - self.total_gain) <= GAIN_TOLERANCE


class DailySnapshot(BaseModel):
    """One backfilled day of portfolio value."""

    day: date
    investment: Decimal
    current_value: Decimal
    total_weight_grams: Decimal
    price_per_gram_24k: Decimal


class BackfillResult(BaseModel):
    user_id: uuid.UUID
    days: int
    first_date: Optional[date] = None
    last_date: Optional[date] = None
    fallback_days: int = 0  # Days with no stored price on or before them
