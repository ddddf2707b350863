# backend/models/product.py
from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base


# Product category, scoped to one tenant
class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_owner_name"),
    )


# Model Product
# A sellable, trackable item. `quantity` is the aggregate on-hand count across all locations
# and only changes through the stock services, which write a StockMovement for every change.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String, nullable=False, index=True)
    sku = Column(String, nullable=True, index=True)
    manufacturer = Column(String, nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False, default=0)

    # Stock data
    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)
    low_stock_at = Column(Integer, nullable=True)

    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category")
    supplier = relationship("Supplier")

    # Rows owned by the product go with it
    stocks = relationship("ProductStock", back_populates="product", cascade="all, delete")
    batches = relationship("Batch", back_populates="product", cascade="all, delete")
    movements = relationship("StockMovement", back_populates="product", cascade="all, delete")
    reorder_rule = relationship(
        "ReorderRule", back_populates="product", uselist=False, cascade="all, delete"
    )

    __table_args__ = (
        # SKU/barcode is unique per tenant
        UniqueConstraint("user_id", "sku", name="uq_product_owner_sku"),
    )
