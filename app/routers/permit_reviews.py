"""Manager review of move permits (property owners and admins)."""
from fastapi import APIRouter, Depends, Query

from app.dependencies import get_lease_directory, get_lifecycle, get_permit_store, request_context, require_manager
from app.models.move_permit import PermitStatus, PermitType
from app.routers.move_permits import page_view, permit_view, raise_for_outcome
from app.schemas.move_permit import MovePermitPage, MovePermitResponse, TransitionRequest
from app.services.auth import Actor
from app.services.leases import LeaseDirectory
from app.services.permit_lifecycle import PermitLifecycle, RequestContext
from app.services.permit_store import PermitStore

router = APIRouter(prefix="/manager/move-permits", tags=["move-permits"])


@router.get("/", response_model=MovePermitPage)
def list_property_permits(
    status: PermitStatus | None = Query(None),
    permit_type: PermitType | None = Query(None),
    property_id: int | None = Query(None, description="Narrow to one of my properties"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: PermitStore = Depends(get_permit_store),
    leases: LeaseDirectory = Depends(get_lease_directory),
    actor: Actor = Depends(require_manager),
):
    property_ids = leases.properties_managed_by(actor)
    if property_id is not None:
        property_ids = [p for p in property_ids if p == property_id]
    return page_view(store.list_for_manager(property_ids, status, permit_type, page, limit), actor, leases)


@router.get("/{permit_id}", response_model=MovePermitResponse)
def get_property_permit(
    permit_id: str,
    store: PermitStore = Depends(get_permit_store),
    leases: LeaseDirectory = Depends(get_lease_directory),
    actor: Actor = Depends(require_manager),
):
    permit = raise_for_outcome(store.get_for_actor(permit_id, actor))
    return permit_view(permit, actor, leases)


@router.post("/{permit_id}/transition", response_model=MovePermitResponse)
def transition_permit(
    permit_id: str,
    data: TransitionRequest,
    lifecycle: PermitLifecycle = Depends(get_lifecycle),
    ctx: RequestContext = Depends(request_context),
    actor: Actor = Depends(require_manager),
):
    """begin_review, approve, reject (review_notes required) or complete
    (after the move date, or with confirm=true)."""
    permit = raise_for_outcome(lifecycle.apply(
        permit_id,
        data.command,
        actor,
        notes=data.review_notes,
        confirm=data.confirm,
        expected_status=data.expected_status,
        context=ctx,
    ))
    return permit_view(permit, actor)
