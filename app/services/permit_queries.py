"""Dashboard counts for move permits, recomputed on every request."""
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.move_permit import MovePermit, PermitStatus, TERMINAL_STATUSES

PENDING_STATUSES = frozenset({PermitStatus.submitted, PermitStatus.under_review})


@dataclass(frozen=True)
class PermitSummary:
    pending: int = 0
    approved: int = 0
    terminal: int = 0
    draft: int = 0
    total: int = 0


def _summarize(db: Session, *criteria) -> PermitSummary:
    rows = (
        db.query(MovePermit.status, func.count(MovePermit.id))
        .filter(*criteria)
        .group_by(MovePermit.status)
        .all()
    )
    counts = {PermitStatus(status): n for status, n in rows}
    return PermitSummary(
        pending=sum(n for s, n in counts.items() if s in PENDING_STATUSES),
        approved=counts.get(PermitStatus.approved, 0),
        terminal=sum(n for s, n in counts.items() if s in TERMINAL_STATUSES),
        draft=counts.get(PermitStatus.draft, 0),
        total=sum(counts.values()),
    )


def summary_for_tenant(db: Session, tenant_id: int) -> PermitSummary:
    return _summarize(db, MovePermit.tenant_id == tenant_id)


def summary_for_manager(db: Session, property_ids: list[int]) -> PermitSummary:
    if not property_ids:
        return PermitSummary()
    return _summarize(db, MovePermit.property_id.in_(property_ids))
