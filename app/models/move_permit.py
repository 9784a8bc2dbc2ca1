"""Move-in / move-out permit requests."""
import enum
import uuid

from sqlalchemy import Column, Integer, String, Text, Date, Time, DateTime, Index, Enum as SQLEnum, text
from sqlalchemy.sql import func
from app.database import Base, JSONType


class PermitType(str, enum.Enum):
    move_in = "move_in"
    move_out = "move_out"


class PermitStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"
    completed = "completed"


class PermitCommand(str, enum.Enum):
    submit = "submit"
    begin_review = "begin_review"
    cancel = "cancel"
    approve = "approve"
    reject = "reject"
    complete = "complete"


TERMINAL_STATUSES = frozenset({PermitStatus.rejected, PermitStatus.cancelled, PermitStatus.completed})
NON_TERMINAL_STATUSES = frozenset(s for s in PermitStatus if s not in TERMINAL_STATUSES)

# Enum columns store member names, which equal the values here
_non_terminal_sql = text("status IN ('draft', 'submitted', 'under_review', 'approved')")


def _new_id() -> str:
    return str(uuid.uuid4())


class MovePermit(Base):
    __tablename__ = "move_permits"
    __table_args__ = (
        # One live request per lease and move direction
        Index(
            "uq_move_permits_active_lease_type",
            "lease_id",
            "permit_type",
            unique=True,
            postgresql_where=_non_terminal_sql,
            sqlite_where=_non_terminal_sql,
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(Integer, nullable=False, index=True)
    property_id = Column(Integer, nullable=False, index=True)
    lease_id = Column(Integer, nullable=False, index=True)

    permit_type = Column(SQLEnum(PermitType), nullable=False)
    status = Column(SQLEnum(PermitStatus), nullable=False, default=PermitStatus.draft, index=True)

    requested_move_date = Column(Date, nullable=False)
    time_window_start = Column(Time, nullable=True)
    time_window_end = Column(Time, nullable=True)

    # [{"key", "url", "filename"}]; slots not uploaded are absent
    documents = Column(JSONType, nullable=False, default=list)
    # [{"name", "url", "filename"}]
    additional_documents = Column(JSONType, nullable=False, default=list)
    # [{"plate_number", "description"}]
    vehicle_manifest = Column(JSONType, nullable=False, default=list)

    mover_name = Column(String(255), nullable=True)
    mover_trade_license_ref = Column(String(1024), nullable=True)
    mover_noc_ref = Column(String(1024), nullable=True)
    mover_contact_name = Column(String(255), nullable=True)
    mover_contact_mobile = Column(String(50), nullable=True)

    special_instructions = Column(Text, nullable=True)
    review_notes = Column(Text, nullable=True)
    reviewer_user_id = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Each set once, by the transition that owns it
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    review_started_at = Column(DateTime(timezone=True), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
