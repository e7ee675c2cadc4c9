import uuid
import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from goldfolio.domain.models.portfolio import PortfolioStats


class PortfolioStatsResponse(BaseModel):
    stats: Optional[PortfolioStats] = None
    price_is_live: bool
    shows_pure_average: bool = False


class MetricPoint(BaseModel):
    date: dt.date
    investment: Decimal
    current_value: Decimal
    total_weight_grams: Decimal

    model_config = {"from_attributes": True}


class MetricSeries(BaseModel):
    user_id: uuid.UUID
    points: list[MetricPoint]
