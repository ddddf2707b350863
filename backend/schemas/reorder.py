# backend/schemas/reorder.py
from pydantic import BaseModel, Field
from typing import Optional


class ReorderRuleCreate(BaseModel):
    product_id: int
    reorder_point: int = Field(ge=0)
    reorder_quantity: int = Field(gt=0)
    supplier_id: Optional[int] = None
    is_active: bool = True


class ReorderRuleUpdate(BaseModel):
    reorder_point: Optional[int] = Field(default=None, ge=0)
    reorder_quantity: Optional[int] = Field(default=None, gt=0)
    supplier_id: Optional[int] = None
    is_active: Optional[bool] = None
