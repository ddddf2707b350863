# backend/schemas/purchase_order.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional

from models.purchase_order import PurchaseOrderStatus


class PurchaseOrderItemCreate(BaseModel):
    product_id: Optional[int] = None
    product_name: str = Field(min_length=1)
    sku: Optional[str] = None
    ordered_quantity: int = Field(gt=0)
    unit_cost: float = Field(ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    expected_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    items: List[PurchaseOrderItemCreate] = Field(min_length=1)
    tax: float = Field(default=0, ge=0)
    shipping_cost: float = Field(default=0, ge=0)


class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus


class ReceiveItem(BaseModel):
    item_id: int
    received_quantity: int = Field(ge=0)


class ReceivePurchaseOrder(BaseModel):
    purchase_order_id: int
    items: List[ReceiveItem] = Field(min_length=1)
    notes: Optional[str] = None
