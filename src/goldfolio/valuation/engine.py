"""Portfolio valuation: pure functions over a purchase ledger and one price."""

import math
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Protocol

from goldfolio.domain.day_window import as_utc
from goldfolio.domain.errors import InvalidPriceData
from goldfolio.domain.models.portfolio import PortfolioStats

FINE_CARAT = Decimal(24)
DAYS_PER_YEAR = 365.25
DEFAULT_MIN_DAYS = 30

MONEY = Decimal("0.01")
RATE = Decimal("0.01")
WEIGHT = Decimal("0.000001")
UNIT_PRICE = Decimal("0.0001")


class PurchaseLike(Protocol):
    weight_grams: Decimal
    total_amount: Decimal
    carat: int
    purchase_date: date


def pure_weight(purchase: PurchaseLike) -> Decimal:
    """Pure-gold-equivalent grams of one purchase."""
    return Decimal(purchase.weight_grams) * Decimal(purchase.carat) / FINE_CARAT


def purchase_value(purchase: PurchaseLike, price_24k: Decimal) -> Decimal:
    """Value of one purchase at a 24k price, scaled by its own purity."""
    return Decimal(purchase.weight_grams) * Decimal(purchase.carat) * price_24k / FINE_CARAT


def validate_price(price_24k) -> Decimal:
    try:
        price = Decimal(str(price_24k))
    except InvalidOperation as exc:
        raise InvalidPriceData(f"Unparseable price: {price_24k!r}") from exc
    if not price.is_finite() or price <= 0:
        raise InvalidPriceData(f"Price must be positive and finite, got {price_24k!r}")
    return price


def annualized_return(
    total_investment: Decimal,
    current_value: Decimal,
    start: date,
    as_of: datetime,
    min_days: int = DEFAULT_MIN_DAYS,
) -> Optional[float]:
    """Single-cash-flow CAGR as a percentage, or None when not meaningful.

    Treats the whole investment as made on ``start`` (the earliest purchase)
    and ``current_value`` as realised at ``as_of``. None below ``min_days`` of
    history or with non-positive inputs, so 0.0 always means a real 0% return.
    """
    if total_investment <= 0 or current_value <= 0:
        return None

    start_at = datetime.combine(start, time.min, tzinfo=timezone.utc)
    elapsed_days = (as_utc(as_of) - start_at).total_seconds() / 86400
    if elapsed_days < min_days or elapsed_days <= 0:
        return None

    ratio = float(current_value) / float(total_investment)
    rate = (ratio ** (DAYS_PER_YEAR / elapsed_days) - 1) * 100
    if not math.isfinite(rate):
        return None
    return rate


def compute_portfolio_stats(
    purchases: Iterable[PurchaseLike],
    price_24k,
    as_of: datetime | None = None,
    min_days: int = DEFAULT_MIN_DAYS,
) -> PortfolioStats:
    """Aggregate a purchase ledger into PortfolioStats at ``price_24k``.

    Current value is summed per purchase at its own purity, not aggregate
    weight × price, so mixed-carat portfolios are priced correctly. All
    arithmetic is exact Decimal; rounding is applied once on the way out.
    """
    price = validate_price(price_24k)
    as_of = as_of or datetime.now(timezone.utc)
    purchases = list(purchases)

    total_weight = sum((Decimal(p.weight_grams) for p in purchases), Decimal(0))
    total_investment = sum((Decimal(p.total_amount) for p in purchases), Decimal(0))
    pure_gold_weight = sum((pure_weight(p) for p in purchases), Decimal(0))
    current_value = sum((purchase_value(p, price) for p in purchases), Decimal(0))
    total_gain = current_value - total_investment

    gain_percentage = total_gain / total_investment * 100 if total_investment > 0 else Decimal(0)
    average_price = total_investment / total_weight if total_weight > 0 else Decimal(0)
    average_pure_price = total_investment / pure_gold_weight if pure_gold_weight > 0 else Decimal(0)

    rate = None
    if purchases:
        earliest = min(p.purchase_date for p in purchases)
        rate = annualized_return(total_investment, current_value, earliest, as_of, min_days)

    return PortfolioStats(
        total_weight=total_weight.quantize(WEIGHT),
        pure_gold_weight=pure_gold_weight.quantize(WEIGHT),
        total_investment=total_investment.quantize(MONEY),
        current_value=current_value.quantize(MONEY),
        total_gain=total_gain.quantize(MONEY),
        gain_percentage=gain_percentage.quantize(RATE),
        average_purchase_price=average_price.quantize(UNIT_PRICE),
        average_pure_purchase_price=average_pure_price.quantize(UNIT_PRICE),
        annualized_return=Decimal(str(rate)).quantize(RATE) if rate is not None else None,
        purchase_count=len(purchases),
        price_per_gram_24k=price.quantize(MONEY),
        computed_at=as_of,
    )
