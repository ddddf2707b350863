# backend/schemas/location.py
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    address: Optional[str] = Field(default=None, max_length=500)
    is_default: bool = False
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


# Move stock of one product between two locations of the same tenant
class StockTransfer(BaseModel):
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: int = Field(gt=0)
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_distinct_locations(self):
        if self.from_location_id == self.to_location_id:
            raise ValueError("Source and destination locations must be different")
        return self
