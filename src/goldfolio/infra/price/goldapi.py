"""GoldAPI spot-price provider with multi-key failover."""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from goldfolio.domain.errors import UpstreamUnavailable
from goldfolio.domain.models.portfolio import KeyRotationState, SpotQuote
from goldfolio.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)

GOLDAPI_URL = "https://www.goldapi.io/api/XAU/INR"
PROVIDER_NAME = "goldapi"

GRAMS_PER_TROY_OUNCE = Decimal("31.1035")
PURITY_22K = Decimal(22) / Decimal(24)
MONEY = Decimal("0.01")


def _positive_decimal(value: Any) -> Decimal | None:
    """Coerce a JSON number to Decimal, rejecting non-finite and non-positive values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(as_float) or as_float <= 0:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_prices(payload: dict[str, Any]) -> tuple[Decimal, Decimal] | None:
    """Extract (24k, 22k) INR-per-gram prices from a GoldAPI response body.

    Prefers the native per-gram fields; otherwise derives 24k from the
    troy-ounce ``price`` and 22k as 22/24 of 24k.
    """
    price_24k = _positive_decimal(payload.get("price_gram_24k"))
    if price_24k is None:
        per_ounce = _positive_decimal(payload.get("price"))
        if per_ounce is not None:
            price_24k = per_ounce / GRAMS_PER_TROY_OUNCE
    if price_24k is None:
        return None

    price_22k = _positive_decimal(payload.get("price_gram_22k"))
    if price_22k is None:
        price_22k = price_24k * PURITY_22K

    return price_24k.quantize(MONEY), price_22k.quantize(MONEY)


def rotation_order(start: int, count: int) -> list[int]:
    """Key indexes to try, beginning at ``start`` and wrapping around."""
    if count == 0:
        return []
    start = start % count if start >= 0 else 0
    return [(start + i) % count for i in range(count)]


class GoldApiProvider:
    """Fetch the INR spot price, trying each access key once per call."""

    def __init__(self, http_client: RateLimitedClient, api_keys: list[str], url: str = GOLDAPI_URL) -> None:
        self._http = http_client
        self._keys = list(api_keys)
        self._url = url

    async def fetch_spot_price(self, state: KeyRotationState) -> tuple[SpotQuote, KeyRotationState]:
        """Return the first usable quote and the rotation state to use next time.

        Starts at ``state.last_good_index`` so a key that worked last time is
        tried first and a failing one is pushed back. Raises
        UpstreamUnavailable once every key has failed.
        """
        for index in rotation_order(state.last_good_index, len(self._keys)):
            try:
                response = await self._http.get(
                    self._url,
                    headers={"x-access-token": self._keys[index], "Accept": "application/json"},
                )
                if not response.is_success:
                    logger.warning("GoldAPI key %d returned HTTP %d", index, response.status_code)
                    continue

                prices = parse_prices(response.json())
            except Exception:
                logger.warning("GoldAPI key %d request failed", index, exc_info=True)
                continue

            if prices is None:
                logger.warning("GoldAPI key %d returned no usable price", index)
                continue

            price_24k, price_22k = prices
            logger.info("GoldAPI key %d succeeded: 24k=%s 22k=%s", index, price_24k, price_22k)
            quote = SpotQuote(
                price_24k=price_24k,
                price_22k=price_22k,
                observed_at=datetime.now(timezone.utc),
                source_label=PROVIDER_NAME,
                key_index=index,
            )
            return quote, KeyRotationState(last_good_index=index)

        logger.error("All %d GoldAPI keys exhausted", len(self._keys))
        raise UpstreamUnavailable(f"No usable price from {len(self._keys)} GoldAPI keys")
