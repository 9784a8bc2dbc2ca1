"""Pytest fixtures for move permit tests.

Provides reusable test fixtures for:
- In-memory SQLite session, tables created and dropped per test
- A property with an active lease (tenant 1, owner 100) and an expired lease
- Actors for each role, a controllable clock and a recording notifier
- A TestClient with database, clock, notifier and upload overrides

Usage:
    def test_create(client, tenant_headers, active_lease):
        response = client.post("/move-permits/", json={...}, headers=tenant_headers)
        assert response.status_code == 201
"""
import os
from datetime import date, datetime, time, timedelta, timezone

# Set environment variables BEFORE any app imports so Settings picks them up
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("PERMIT_TIMEZONE", "Asia/Dubai")
os.environ.setdefault("PERMIT_WEBHOOK_URL", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models import AuditLog, Lease, LeaseStatus, MovePermit, PermitType, Property  # noqa: F401
from app.schemas.documents import DocumentRef
from app.schemas.move_permit import MovePermitCreate, MoverCompany, VehicleEntry
from app.services import document_schema
from app.services.auth import Actor, ActorRole, create_access_token
from app.services.leases import SqlLeaseDirectory
from app.services.permit_lifecycle import PermitLifecycle
from app.services.permit_store import PermitStore
from app.services.uploads import LocalUploadStore

TENANT_ID = 1
OTHER_TENANT_ID = 2
OWNER_ID = 100
OTHER_OWNER_ID = 101
ADMIN_ID = 900

# 2026-03-10 12:00 in Dubai
START = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)
MOVE_DATE = date(2026, 3, 20)

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FakeClock:
    """Ticks one second per call so created_at ordering is stable."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str, str]] = []

    def notify(self, permit_id, new_status, recipient_role):
        if self.fail:
            raise RuntimeError("notification service unavailable")
        self.sent.append((permit_id, getattr(new_status, "value", new_status), recipient_role))


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def property_(db_session: Session) -> Property:
    prop = Property(owner_user_id=OWNER_ID, name="Marina Heights 1204", street="Al Marsa Street", city="Dubai")
    db_session.add(prop)
    db_session.commit()
    db_session.refresh(prop)
    return prop


@pytest.fixture
def active_lease(db_session: Session, property_: Property) -> Lease:
    lease = Lease(property_id=property_.id, tenant_user_id=TENANT_ID, status=LeaseStatus.active,
                  start_date=date(2025, 6, 1))
    db_session.add(lease)
    db_session.commit()
    db_session.refresh(lease)
    return lease


@pytest.fixture
def expired_lease(db_session: Session, property_: Property) -> Lease:
    lease = Lease(property_id=property_.id, tenant_user_id=TENANT_ID, status=LeaseStatus.expired,
                  start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
    db_session.add(lease)
    db_session.commit()
    db_session.refresh(lease)
    return lease


@pytest.fixture
def tenant() -> Actor:
    return Actor(id=TENANT_ID, role=ActorRole.tenant)


@pytest.fixture
def other_tenant() -> Actor:
    return Actor(id=OTHER_TENANT_ID, role=ActorRole.tenant)


@pytest.fixture
def owner() -> Actor:
    return Actor(id=OWNER_ID, role=ActorRole.owner)


@pytest.fixture
def other_owner() -> Actor:
    return Actor(id=OTHER_OWNER_ID, role=ActorRole.owner)


@pytest.fixture
def admin() -> Actor:
    return Actor(id=ADMIN_ID, role=ActorRole.admin)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store(db_session: Session, clock: FakeClock) -> PermitStore:
    return PermitStore(db_session, SqlLeaseDirectory(db_session), clock=clock)


@pytest.fixture
def lifecycle(store: PermitStore, notifier: RecordingNotifier) -> PermitLifecycle:
    return PermitLifecycle(store, notifier)


@pytest.fixture
def upload_store(tmp_path) -> LocalUploadStore:
    return LocalUploadStore(
        base_dir=str(tmp_path / "uploads"),
        base_url="http://files.test/files",
        max_bytes=1024,
        allowed_extensions={".pdf", ".doc", ".docx"},
    )


def full_documents(permit_type: PermitType) -> dict[str, DocumentRef]:
    return {
        slot.key: DocumentRef(url=f"http://files.test/{slot.key}.pdf", filename=f"{slot.key}.pdf")
        for slot in document_schema.required_slots(permit_type)
    }


def complete_mover() -> MoverCompany:
    return MoverCompany(
        name="Swift Movers LLC",
        trade_license_ref="http://files.test/trade-license.pdf",
        noc_ref="http://files.test/noc.pdf",
        contact_name="Omar Haddad",
        contact_mobile="+971501234567",
    )


def complete_draft(lease_id: int, permit_type: PermitType = PermitType.move_in, **overrides) -> MovePermitCreate:
    """Create payload that passes submission validation as-is."""
    data = dict(
        lease_id=lease_id,
        permit_type=permit_type,
        requested_move_date=MOVE_DATE,
        time_window_start=time(8, 0),
        time_window_end=time(10, 0),
        documents=full_documents(permit_type),
        vehicle_manifest=[VehicleEntry(plate_number="DXB-12345", description="3-ton truck")],
        mover_company=complete_mover(),
    )
    data.update(overrides)
    return MovePermitCreate(**data)


def auth_headers(user_id: int, role: ActorRole) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def tenant_headers() -> dict[str, str]:
    return auth_headers(TENANT_ID, ActorRole.tenant)


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return auth_headers(OWNER_ID, ActorRole.owner)


@pytest.fixture
def other_owner_headers() -> dict[str, str]:
    return auth_headers(OTHER_OWNER_ID, ActorRole.owner)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(ADMIN_ID, ActorRole.admin)


@pytest.fixture
def client(db_session: Session, clock: FakeClock, notifier: RecordingNotifier, upload_store: LocalUploadStore):
    """TestClient bound to the test database, clock, notifier and upload dir."""
    from app.dependencies import get_clock, get_permit_notifier, get_uploads
    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_permit_notifier] = lambda: notifier
    app.dependency_overrides[get_uploads] = lambda: upload_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
