# backend/models/batch.py
from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base


# A lot of a product with its own quantity, cost and dates
class Batch(Base):
    __tablename__ = "batches"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_order_id = Column(
        Integer, ForeignKey("purchase_orders.id", ondelete="SET NULL"), nullable=True, index=True
    )

    batch_number = Column(String(50), nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)
    cost_price = Column(Float, nullable=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    manufacturing_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="batches")
    purchase_order = relationship("PurchaseOrder")
    movements = relationship("StockMovement", back_populates="batch", cascade="all, delete")

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", "batch_number", name="uq_batch_owner_product_number"),
    )
