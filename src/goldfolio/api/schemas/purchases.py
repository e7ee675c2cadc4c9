import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PurchaseCreate(BaseModel):
    weight_grams: Decimal = Field(gt=0, max_digits=10, decimal_places=3)
    purchase_date: date
    purchase_price_per_gram: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    carat: int = Field(default=24, ge=1, le=24)
    description: Optional[str] = None


class PurchaseUpdate(BaseModel):
    weight_grams: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=3)
    purchase_date: Optional[date] = None
    purchase_price_per_gram: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    carat: Optional[int] = Field(default=None, ge=1, le=24)
    description: Optional[str] = None


class PurchaseResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    weight_grams: Decimal
    purchase_date: date
    purchase_price_per_gram: Decimal
    carat: int
    total_amount: Decimal
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PurchaseList(BaseModel):
    purchases: list[PurchaseResponse]
    total: int
