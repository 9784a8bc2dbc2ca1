"""Dashboard views: permit summary cards and the manager's audit log."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class PermitSummaryView(BaseModel):
    """Counts behind the dashboard cards: pending = submitted + under review;
    terminal = rejected + cancelled + completed."""
    pending: int
    approved: int
    terminal: int
    draft: int
    total: int


class PermitAuditLogEntry(BaseModel):
    """Single append-only audit log entry for the manager logs view."""
    id: int
    property_id: int | None
    permit_id: str | None
    category: str
    title: str
    message: str
    actor_user_id: int | None
    actor_role: str | None
    ip_address: str | None
    created_at: datetime
    property_name: str | None = None  # resolved for display

    model_config = ConfigDict(from_attributes=True)
