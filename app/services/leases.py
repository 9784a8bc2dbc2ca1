"""Lease/Property collaborator.

Permits only reference leases and properties; these lookups read the tables the
property service owns and never write to them."""
from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy.orm import Session

from app.models.property import Lease, LeaseStatus, Property
from app.services.auth import Actor, ActorRole


@dataclass(frozen=True)
class LeaseInfo:
    lease_id: int
    property_id: int
    tenant_id: int
    is_active: bool


@dataclass(frozen=True)
class PropertyLabel:
    name: str | None
    address: str | None

    @property
    def display(self) -> str | None:
        return self.name or self.address


class LeaseDirectory(Protocol):
    def lookup(self, lease_id: int) -> LeaseInfo | None: ...

    def properties_managed_by(self, actor: Actor) -> list[int]: ...

    def manages_property(self, actor: Actor, property_id: int) -> bool: ...

    def property_labels(self, property_ids: Iterable[int]) -> dict[int, PropertyLabel]: ...


class SqlLeaseDirectory:
    def __init__(self, db: Session):
        self.db = db

    def lookup(self, lease_id: int) -> LeaseInfo | None:
        lease = self.db.query(Lease).filter(Lease.id == lease_id).first()
        if not lease:
            return None
        return LeaseInfo(
            lease_id=lease.id,
            property_id=lease.property_id,
            tenant_id=lease.tenant_user_id,
            is_active=lease.status == LeaseStatus.active,
        )

    def properties_managed_by(self, actor: Actor) -> list[int]:
        """Admins see every live property; owners see their own; tenants none."""
        q = self.db.query(Property.id).filter(Property.deleted_at.is_(None))
        if actor.role == ActorRole.owner:
            q = q.filter(Property.owner_user_id == actor.id)
        elif actor.role != ActorRole.admin:
            return []
        return [row[0] for row in q.order_by(Property.id).all()]

    def manages_property(self, actor: Actor, property_id: int) -> bool:
        if actor.role == ActorRole.admin:
            return True
        if actor.role != ActorRole.owner:
            return False
        prop = self.db.query(Property).filter(Property.id == property_id).first()
        return bool(prop and prop.owner_user_id == actor.id)

    def property_labels(self, property_ids: Iterable[int]) -> dict[int, PropertyLabel]:
        """Name and street address per property, for listings."""
        ids = {p for p in property_ids if p}
        if not ids:
            return {}
        return {
            p.id: PropertyLabel(
                name=p.name or None,
                address=", ".join(x for x in (p.street, p.city) if x) or None,
            )
            for p in self.db.query(Property).filter(Property.id.in_(ids)).all()
        }
