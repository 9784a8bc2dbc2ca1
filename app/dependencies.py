"""Shared dependencies: DB session, current actor, permit services."""
from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.database import get_db
from app.services.auth import Actor, ActorRole, actor_from_payload, decode_token_with_error
from app.services.leases import LeaseDirectory, SqlLeaseDirectory
from app.services.notifications import PermitNotifier, get_notifier
from app.services.permit_lifecycle import PermitLifecycle, RequestContext
from app.services.permit_store import PermitStore, utcnow
from app.services.uploads import LocalUploadStore, get_upload_store

security = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    token_str = (credentials.credentials or "").strip()
    payload, _ = decode_token_with_error(token_str)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    actor = actor_from_payload(payload)
    if not actor:
        raise HTTPException(status_code=401, detail="Invalid token")
    return actor


def require_tenant(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role != ActorRole.tenant:
        raise HTTPException(status_code=403, detail="Tenant role required")
    return actor


def require_manager(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_manager:
        raise HTTPException(status_code=403, detail="Owner or admin role required")
    return actor


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_lease_directory(db: Session = Depends(get_db)) -> LeaseDirectory:
    return SqlLeaseDirectory(db)


def get_permit_store(
    db: Session = Depends(get_db),
    leases: LeaseDirectory = Depends(get_lease_directory),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> PermitStore:
    return PermitStore(db, leases, clock=clock)


def get_permit_notifier() -> PermitNotifier:
    return get_notifier()


def get_lifecycle(
    store: PermitStore = Depends(get_permit_store),
    notifier: PermitNotifier = Depends(get_permit_notifier),
) -> PermitLifecycle:
    return PermitLifecycle(store, notifier)


def get_uploads() -> LocalUploadStore:
    return get_upload_store()


def request_context(request: Request) -> RequestContext:
    ip = request.client.host if request.client else None
    ua = (request.headers.get("user-agent") or "").strip() or None
    return RequestContext(ip_address=ip, user_agent=ua)
