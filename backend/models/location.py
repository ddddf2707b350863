# backend/models/location.py
from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base


# A warehouse, shop floor or shelf that can hold stock
class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    address = Column(String(500), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    stocks = relationship("ProductStock", back_populates="location", cascade="all, delete")


# Quantity of one product at one location.
# Maintained independently of Product.quantity: stock may be unlocated, so the sum of these rows
# is allowed to differ from the product total.
class ProductStock(Base):
    __tablename__ = "product_stocks"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)

    product = relationship("Product", back_populates="stocks")
    location = relationship("Location", back_populates="stocks")

    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_productstock_product_location"),
    )
