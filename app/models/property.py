"""Properties and leases.

Owned by the property/lease service; this app only reads them to resolve
lease -> property/tenant and which properties a manager looks after."""
from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class LeaseStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    expired = "expired"
    terminated = "terminated"


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(Integer, nullable=False, index=True)

    name = Column(String(255), nullable=True)  # e.g. "Marina Heights 1204"
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Soft delete: hidden from the manager's property set
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    leases = relationship("Lease", back_populates="property")


class Lease(Base):
    __tablename__ = "leases"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    tenant_user_id = Column(Integer, nullable=False, index=True)

    status = Column(SQLEnum(LeaseStatus), nullable=False, default=LeaseStatus.active)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    property = relationship("Property", back_populates="leases")
