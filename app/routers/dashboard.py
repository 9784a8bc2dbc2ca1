"""Dashboard: move permit summary cards and manager audit logs."""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_lease_directory, require_manager, require_tenant
from app.models.audit_log import AuditLog
from app.schemas.dashboard import PermitAuditLogEntry, PermitSummaryView
from app.services.auth import Actor
from app.services.leases import LeaseDirectory
from app.services.permit_queries import PermitSummary, summary_for_manager, summary_for_tenant

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _summary_view(summary: PermitSummary) -> PermitSummaryView:
    return PermitSummaryView(
        pending=summary.pending,
        approved=summary.approved,
        terminal=summary.terminal,
        draft=summary.draft,
        total=summary.total,
    )


def _parse_optional_utc(value: str | None) -> datetime | None:
    if not value or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid timestamp: {value}")
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@router.get("/move-permits/tenant", response_model=PermitSummaryView)
def tenant_permit_summary(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_tenant),
):
    return _summary_view(summary_for_tenant(db, actor.id))


@router.get("/move-permits/manager", response_model=PermitSummaryView)
def manager_permit_summary(
    db: Session = Depends(get_db),
    leases: LeaseDirectory = Depends(get_lease_directory),
    actor: Actor = Depends(require_manager),
):
    return _summary_view(summary_for_manager(db, leases.properties_managed_by(actor)))


@router.get("/move-permits/logs", response_model=list[PermitAuditLogEntry])
def manager_permit_logs(
    db: Session = Depends(get_db),
    leases: LeaseDirectory = Depends(get_lease_directory),
    actor: Actor = Depends(require_manager),
    permit_id: str | None = None,
    from_ts: str | None = None,
    to_ts: str | None = None,
    category: str | None = None,
    search: str | None = None,
):
    """Append-only audit logs for the manager's properties. Filter by permit, time range (ISO UTC),
    category, and search (title/message)."""
    property_ids = leases.properties_managed_by(actor)
    if not property_ids:
        return []

    from_dt = _parse_optional_utc(from_ts)
    to_dt = _parse_optional_utc(to_ts)

    q = db.query(AuditLog).filter(AuditLog.property_id.in_(property_ids))
    if permit_id:
        q = q.filter(AuditLog.permit_id == permit_id)
    if from_dt is not None:
        q = q.filter(AuditLog.created_at >= from_dt)
    if to_dt is not None:
        q = q.filter(AuditLog.created_at <= to_dt)
    if category and category.strip():
        q = q.filter(AuditLog.category == category.strip())
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(
            (AuditLog.title.ilike(term)) | (AuditLog.message.ilike(term))
        )
    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).all()

    labels = leases.property_labels(r.property_id for r in rows)

    return [
        PermitAuditLogEntry(
            id=r.id,
            property_id=r.property_id,
            permit_id=r.permit_id,
            category=r.category or "-",
            title=r.title or "-",
            message=r.message or "-",
            actor_user_id=r.actor_user_id,
            actor_role=r.actor_role,
            ip_address=r.ip_address,
            created_at=r.created_at or datetime.now(timezone.utc),
            property_name=labels[r.property_id].display if r.property_id in labels else None,
        )
        for r in rows
    ]
