# backend/schemas/sale.py
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional


class SaleItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)
    # Absolute amount taken off this line
    discount: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_discount(self):
        if self.discount > self.price * self.quantity:
            raise ValueError("Line discount cannot exceed the line amount")
        return self


class SaleCreate(BaseModel):
    items: List[SaleItemCreate] = Field(min_length=1)
    customer: Optional[str] = None
    payment_method: str = "cash"
    # Absolute amount taken off the subtotal
    overall_discount: float = Field(default=0, ge=0)
    # Percent applied after the discount
    tax_rate: float = Field(default=0, ge=0, le=100)
    notes: Optional[str] = Field(default=None, max_length=2000)
