from goldfolio.domain.enums.outcome import DailyPriceOutcome
from goldfolio.domain.enums.price_source import PriceSource

__all__ = [
    "DailyPriceOutcome",
    "PriceSource",
]
