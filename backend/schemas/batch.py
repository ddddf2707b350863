# backend/schemas/batch.py
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional


def _check_dates(model):
    if model.manufacturing_date and model.expiry_date and model.manufacturing_date > model.expiry_date:
        raise ValueError("Manufacturing date must be before expiry date")
    return model


class BatchCreate(BaseModel):
    product_id: int
    batch_number: str = Field(min_length=1, max_length=50)
    quantity: int = Field(default=0, ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)
    expiry_date: Optional[datetime] = None
    manufacturing_date: Optional[datetime] = None
    purchase_order_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("batch_number", mode="before")
    @classmethod
    def strip_number(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_dates(self):
        return _check_dates(self)


# Metadata only. Quantity changes go through BatchAdjustment.
class BatchUpdate(BaseModel):
    batch_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    cost_price: Optional[float] = Field(default=None, ge=0)
    expiry_date: Optional[datetime] = None
    manufacturing_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self):
        return _check_dates(self)


class BatchAdjustment(BaseModel):
    batch_id: int
    adjustment: int
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("adjustment")
    @classmethod
    def check_non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("Adjustment cannot be zero")
        return value
