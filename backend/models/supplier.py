# backend/models/supplier.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from database import Base


# Supplier contact details, scoped to one tenant
class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
