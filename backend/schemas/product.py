# backend/schemas/product.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


# A single row of a product import. Category and supplier are matched by name.
class ProductImportRow(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sku: Optional[str] = Field(default=None, max_length=100)
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    price: float = Field(default=0, ge=0)
    quantity: int = Field(default=0, ge=0)
    low_stock_at: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("name", "sku", "category", "supplier", mode="before")
    @classmethod
    def strip_blank(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                return None
        return value


class ProductImport(BaseModel):
    rows: List[ProductImportRow] = Field(min_length=1)
