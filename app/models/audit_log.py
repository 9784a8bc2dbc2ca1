"""Append-only audit log for permit decisions.
No updates or deletes - every record is permanent."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base, JSONType


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Scope: logs visible to a manager are filtered by property_id in their properties
    property_id = Column(Integer, nullable=True, index=True)
    permit_id = Column(String(36), ForeignKey("move_permits.id", ondelete="SET NULL"), nullable=True, index=True)

    # category: status_change | failed_attempt
    category = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Optional structured data (e.g. from_status, to_status, command)
    meta = Column(JSONType, nullable=True)

    # Who did it (if applicable)
    actor_user_id = Column(Integer, nullable=True)
    actor_role = Column(String(20), nullable=True)

    # Request context
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    # UTC only - server_default
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
