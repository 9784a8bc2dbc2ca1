"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; scripts/ only upgrades existing DBs.
"""
from app.models.property import Lease, LeaseStatus, Property
from app.models.move_permit import MovePermit, PermitCommand, PermitStatus, PermitType
from app.models.audit_log import AuditLog

__all__ = [
    "Property",
    "Lease",
    "LeaseStatus",
    "MovePermit",
    "PermitCommand",
    "PermitStatus",
    "PermitType",
    "AuditLog",
]
