# backend/models/sale.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base


SALE_COMPLETED = "completed"
SALE_CANCELLED = "cancelled"


# A point-of-sale checkout
class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    sale_number = Column(String, nullable=False, index=True)

    customer = Column(String, nullable=True)
    payment_method = Column(String, nullable=False, default="cash")
    status = Column(String, nullable=False, default=SALE_COMPLETED, index=True)

    subtotal = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)
    tax = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    items = relationship("SaleItem", back_populates="sale", cascade="all, delete")

    __table_args__ = (
        UniqueConstraint("user_id", "sale_number", name="uq_sale_owner_number"),
    )


# A sold line. product_id has no cascade: sold products are protected by the foreign key.
class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)

    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)
    cost_price = Column(Float, nullable=True)
    total = Column(Float, nullable=False)

    sale = relationship("Sale", back_populates="items")
