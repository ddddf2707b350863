# backend/schemas/stock.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Optional

from models.stock import MovementType


def _non_zero(value: int) -> int:
    if value == 0:
        raise ValueError("Adjustment cannot be zero")
    return value


# Signed change to one product's on-hand quantity
class StockAdjustment(BaseModel):
    product_id: int
    adjustment: int
    reason: Optional[str] = Field(default=None, max_length=500)
    # When set, the product's stock at this location moves by the same amount
    location_id: Optional[int] = None

    @field_validator("adjustment")
    @classmethod
    def check_adjustment(cls, value: int) -> int:
        return _non_zero(value)


# One line of a bulk adjustment
class BulkAdjustmentLine(BaseModel):
    product_id: int
    adjustment: int
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("adjustment")
    @classmethod
    def check_adjustment(cls, value: int) -> int:
        return _non_zero(value)


class BulkAdjustment(BaseModel):
    adjustments: List[BulkAdjustmentLine] = Field(min_length=1)


class BulkDelete(BaseModel):
    product_ids: List[int] = Field(min_length=1)


# Filters for the movement ledger listing
class MovementFilters(BaseModel):
    product_id: Optional[int] = None
    location_id: Optional[int] = None
    type: Optional[MovementType] = None
    reference: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int = Field(default=500, ge=1, le=500)
