from goldfolio.db.models.portfolio_metric import PortfolioMetric
from goldfolio.db.models.price_history import PriceObservation
from goldfolio.db.models.price_source_state import PriceSourceState
from goldfolio.db.models.purchase import GoldPurchase

__all__ = [
    "GoldPurchase",
    "PortfolioMetric",
    "PriceObservation",
    "PriceSourceState",
]
