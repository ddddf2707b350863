# backend/models/users.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from database import Base


# Represents an account. Owners are their own tenant; staff accounts point at the owner they work for.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="ADMIN")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    # Owner account whose inventory this user manages (NULL for owners)
    tenant_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def owner_id(self) -> int:
        return self.tenant_id or self.id
