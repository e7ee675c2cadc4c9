from goldfolio.db.repos.portfolio_metric_repo import PortfolioMetricRepo
from goldfolio.db.repos.price_history_repo import PriceHistoryRepo
from goldfolio.db.repos.price_source_state_repo import PriceSourceStateRepo
from goldfolio.db.repos.purchase_repo import PurchaseRepo

__all__ = ["PortfolioMetricRepo", "PriceHistoryRepo", "PriceSourceStateRepo", "PurchaseRepo"]
