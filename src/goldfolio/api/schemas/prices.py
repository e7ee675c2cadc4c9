import uuid
import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from goldfolio.domain.enums import DailyPriceOutcome


class CurrentPriceResponse(BaseModel):
    price_24k: Decimal
    price_22k: Decimal
    observed_at: dt.datetime
    source: str
    is_live: bool
    badge: str  # "live" or "estimated"
    message: Optional[str] = None


class PriceObservationResponse(BaseModel):
    id: uuid.UUID
    price_per_gram_24k: Decimal
    price_per_gram_22k: Optional[Decimal] = None
    observed_at: dt.datetime
    source: str

    model_config = {"from_attributes": True}


class PricePoint(BaseModel):
    date: dt.date
    price_24k: Decimal
    price_22k: Optional[Decimal] = None
    realistic_price_24k: Decimal  # spot x retail markup
    realistic_price_22k: Decimal


class ManualPriceCreate(BaseModel):
    price_per_gram_24k: Decimal = Field(gt=0)
    price_per_gram_22k: Optional[Decimal] = Field(default=None, gt=0)
    observed_at: Optional[dt.datetime] = None


class DailyPriceResponse(BaseModel):
    status: DailyPriceOutcome
