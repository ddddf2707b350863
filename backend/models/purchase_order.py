# backend/models/purchase_order.py
import enum
from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, Enum, CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base


# Lifecycle of a purchase order; allowed moves live in services/order_status.py
class PurchaseOrderStatus(str, enum.Enum):
    DRAFT = "draft"
    ORDERED = "ordered"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# An order placed with a supplier
class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)

    order_number = Column(String, nullable=False, index=True)
    status = Column(
        Enum(
            PurchaseOrderStatus,
            name="purchase_order_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PurchaseOrderStatus.DRAFT,
    )

    order_date = Column(DateTime(timezone=True), server_default=func.now())
    expected_date = Column(DateTime(timezone=True), nullable=True)
    received_date = Column(DateTime(timezone=True), nullable=True)

    # Totals
    subtotal = Column(Float, nullable=False, default=0)
    tax = Column(Float, nullable=False, default=0)
    shipping_cost = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False, default=0)

    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier")
    items = relationship(
        "PurchaseOrderItem", back_populates="purchase_order", cascade="all, delete",
        order_by="PurchaseOrderItem.id",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "order_number", name="uq_purchase_order_owner_number"),
    )


# A single ordered line. received_quantity never exceeds ordered_quantity.
class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(
        Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Lines may describe items that are not (yet) in the catalog
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)

    product_name = Column(String, nullable=False)
    sku = Column(String, nullable=True)
    ordered_quantity = Column(Integer, CheckConstraint("ordered_quantity > 0"), nullable=False)
    received_quantity = Column(Integer, CheckConstraint("received_quantity >= 0"), nullable=False, default=0)
    unit_cost = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)

    purchase_order = relationship("PurchaseOrder", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("received_quantity <= ordered_quantity", name="ck_po_item_not_over_received"),
    )
