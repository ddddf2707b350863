# backend/models/stock.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base


# Closed set of ledger entry kinds
class MovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    RECEIVE = "receive"


# What a movement's `reference` string points at
class ReferenceType(str, enum.Enum):
    SALE = "sale"
    PURCHASE_ORDER = "purchase_order"
    TRANSFER = "transfer"
    BATCH = "batch"
    IMPORT = "import"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Immutable, append-only ledger entry. Product.quantity is a projection of these rows.
class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id", ondelete="CASCADE"), nullable=True, index=True)

    type = Column(
        Enum(MovementType, name="movement_type", values_callable=_enum_values),
        nullable=False,
        index=True,
    )

    # Signed quantity delta
    quantity = Column(Integer, nullable=False)

    reference = Column(String, nullable=True)
    reference_type = Column(
        Enum(ReferenceType, name="movement_reference_type", values_callable=_enum_values),
        nullable=True,
    )
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    product = relationship("Product", back_populates="movements")
    location = relationship("Location")
    batch = relationship("Batch", back_populates="movements")
