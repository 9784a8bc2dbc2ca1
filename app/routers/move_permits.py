"""Tenant move permits: drafts, documents, vehicles, submit and cancel."""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from app.dependencies import (
    get_current_actor,
    get_lease_directory,
    get_lifecycle,
    get_permit_store,
    get_uploads,
    request_context,
    require_tenant,
)
from app.models.move_permit import MovePermit, PermitStatus, PermitType
from app.schemas.documents import DocumentRef
from app.schemas.move_permit import (
    AdditionalDocument,
    CancelRequest,
    DocumentSchemaView,
    IssueView,
    MovePermitCreate,
    MovePermitPage,
    MovePermitResponse,
    MovePermitUpdate,
    SlotView,
    ValidationView,
    VehicleEntry,
)
from app.services import document_schema
from app.services.auth import Actor
from app.services.leases import LeaseDirectory
from app.services.permit_codec import to_response
from app.services.permit_lifecycle import PermitLifecycle, RequestContext
from app.services.permit_outcomes import IssueKind, Outcome, SUBMISSION_KINDS
from app.services.permit_store import PermitPage, PermitStore
from app.services.permit_validation import allowed_commands, validate_for_submission
from app.services.uploads import LocalUploadStore

router = APIRouter(prefix="/move-permits", tags=["move-permits"])

_HTTP_STATUS = {
    IssueKind.not_found: 404,
    IssueKind.unauthorized_actor: 403,
    IssueKind.invalid_transition: 409,
    IssueKind.stale_state: 409,
    IssueKind.duplicate_active_request: 409,
    IssueKind.inactive_lease: 400,
    IssueKind.invalid_document_slot: 422,
    IssueKind.missing_review_notes: 422,
    IssueKind.move_date_not_passed: 422,
}

_UPLOAD_HTTP_STATUS = {"too_large": 413, "bad_type": 415, "storage_failed": 502}


def raise_for_outcome(outcome: Outcome):
    """Return the outcome's value, or raise an HTTPException carrying every issue."""
    if outcome.ok:
        return outcome.value
    first = outcome.issues[0]
    if first.kind in SUBMISSION_KINDS:
        status_code = 422
    elif first.kind == IssueKind.upstream_upload_failure:
        status_code = _UPLOAD_HTTP_STATUS.get((first.detail or {}).get("reason"), 502)
    else:
        status_code = _HTTP_STATUS.get(first.kind, 400)
    raise HTTPException(
        status_code=status_code,
        detail={"message": first.message, "issues": [i.as_dict() for i in outcome.issues]},
    )


def permit_view(permit: MovePermit, actor: Actor, leases: LeaseDirectory | None = None) -> MovePermitResponse:
    """Pass leases to fill in the property name and address."""
    label = leases.property_labels([permit.property_id]).get(permit.property_id) if leases else None
    return to_response(permit, [c.value for c in allowed_commands(permit.status, actor.role)], label)


def page_view(page: PermitPage, actor: Actor, leases: LeaseDirectory) -> MovePermitPage:
    labels = leases.property_labels(p.property_id for p in page.permits)
    return MovePermitPage(
        permits=[
            to_response(p, [c.value for c in allowed_commands(p.status, actor.role)], labels.get(p.property_id))
            for p in page.permits
        ],
        page=page.page,
        limit=page.limit,
        total=page.total,
        total_pages=page.total_pages,
    )


@router.get("/document-schema/{permit_type}", response_model=DocumentSchemaView)
def get_document_schema(
    permit_type: PermitType,
    actor: Actor = Depends(get_current_actor),
):
    """Required and optional document slots for one permit type, in form order."""
    def view(slots):
        return [SlotView(key=s.key, label=s.label, description=s.description, required=s.required) for s in slots]

    return DocumentSchemaView(
        permit_type=permit_type,
        required=view(document_schema.required_slots(permit_type)),
        optional=view(document_schema.optional_slots(permit_type)),
    )


@router.get("/time-slots", response_model=list[str])
def get_time_slots(actor: Actor = Depends(get_current_actor)):
    return document_schema.MOVE_TIME_SLOTS


@router.post("/", response_model=MovePermitResponse, status_code=201)
def create_permit(
    data: MovePermitCreate,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.create(actor, data))
    return permit_view(permit, actor)


@router.get("/", response_model=MovePermitPage)
def list_my_permits(
    status: PermitStatus | None = Query(None),
    permit_type: PermitType | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: PermitStore = Depends(get_permit_store),
    leases: LeaseDirectory = Depends(get_lease_directory),
    actor: Actor = Depends(require_tenant),
):
    return page_view(store.list_for_tenant(actor.id, status, permit_type, page, limit), actor, leases)


@router.get("/{permit_id}", response_model=MovePermitResponse)
def get_permit(
    permit_id: str,
    store: PermitStore = Depends(get_permit_store),
    leases: LeaseDirectory = Depends(get_lease_directory),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.get_for_actor(permit_id, actor))
    return permit_view(permit, actor, leases)


@router.patch("/{permit_id}", response_model=MovePermitResponse)
def update_permit(
    permit_id: str,
    data: MovePermitUpdate,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.update_draft(permit_id, actor, data))
    return permit_view(permit, actor)


@router.get("/{permit_id}/validation", response_model=ValidationView)
def check_permit(
    permit_id: str,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    """Everything still missing before the draft can be submitted."""
    permit = raise_for_outcome(store.get_for_actor(permit_id, actor))
    result = validate_for_submission(permit, store.today())
    return ValidationView(
        submittable=result.ok and permit.status == PermitStatus.draft,
        issues=[IssueView(kind=i.kind.value, message=i.message, field=i.field) for i in result.issues],
    )


@router.put("/{permit_id}/documents/{slot_key}", response_model=MovePermitResponse)
def upload_document(
    permit_id: str,
    slot_key: str,
    file: UploadFile = File(...),
    store: PermitStore = Depends(get_permit_store),
    uploads: LocalUploadStore = Depends(get_uploads),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.editable_draft(permit_id, actor))
    if not document_schema.is_valid_slot(permit.permit_type, slot_key):
        raise_for_outcome(Outcome.fail(
            IssueKind.invalid_document_slot, f"'{slot_key}' is not a document for this permit", slot_key))
    result = uploads.upload(file.filename or "", file.file)
    permit = raise_for_outcome(store.attach_upload(permit_id, actor, slot_key, result))
    return permit_view(permit, actor)


@router.put("/{permit_id}/documents/{slot_key}/reference", response_model=MovePermitResponse)
def set_document_reference(
    permit_id: str,
    slot_key: str,
    ref: DocumentRef,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    """Attach a file already uploaded through POST /uploads."""
    permit = raise_for_outcome(store.set_document_slot(permit_id, actor, slot_key, ref))
    return permit_view(permit, actor)


@router.delete("/{permit_id}/documents/{slot_key}", response_model=MovePermitResponse)
def remove_document(
    permit_id: str,
    slot_key: str,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.clear_document_slot(permit_id, actor, slot_key))
    return permit_view(permit, actor)


@router.post("/{permit_id}/additional-documents", response_model=MovePermitResponse)
def upload_additional_document(
    permit_id: str,
    file: UploadFile = File(...),
    name: str = Form(""),
    store: PermitStore = Depends(get_permit_store),
    uploads: LocalUploadStore = Depends(get_uploads),
    actor: Actor = Depends(require_tenant),
):
    raise_for_outcome(store.editable_draft(permit_id, actor))
    result = uploads.upload(file.filename or "", file.file)
    permit = raise_for_outcome(store.attach_additional_upload(permit_id, actor, name, result))
    return permit_view(permit, actor)


@router.post("/{permit_id}/additional-documents/reference", response_model=MovePermitResponse)
def add_additional_document_reference(
    permit_id: str,
    doc: AdditionalDocument,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.add_additional_document(permit_id, actor, doc))
    return permit_view(permit, actor)


@router.delete("/{permit_id}/additional-documents/{index}", response_model=MovePermitResponse)
def remove_additional_document(
    permit_id: str,
    index: int,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.remove_additional_document(permit_id, actor, index))
    return permit_view(permit, actor)


@router.post("/{permit_id}/vehicles", response_model=MovePermitResponse)
def add_vehicle(
    permit_id: str,
    vehicle: VehicleEntry,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.append_vehicle(permit_id, actor, vehicle))
    return permit_view(permit, actor)


@router.delete("/{permit_id}/vehicles/{index}", response_model=MovePermitResponse)
def remove_vehicle(
    permit_id: str,
    index: int,
    store: PermitStore = Depends(get_permit_store),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(store.remove_vehicle(permit_id, actor, index))
    return permit_view(permit, actor)


@router.post("/{permit_id}/submit", response_model=MovePermitResponse)
def submit_permit(
    permit_id: str,
    lifecycle: PermitLifecycle = Depends(get_lifecycle),
    ctx: RequestContext = Depends(request_context),
    actor: Actor = Depends(require_tenant),
):
    permit = raise_for_outcome(lifecycle.submit(permit_id, actor, context=ctx))
    return permit_view(permit, actor)


@router.post("/{permit_id}/cancel", response_model=MovePermitResponse)
def cancel_permit(
    permit_id: str,
    data: CancelRequest | None = None,
    lifecycle: PermitLifecycle = Depends(get_lifecycle),
    ctx: RequestContext = Depends(request_context),
    actor: Actor = Depends(require_tenant),
):
    expected = data.expected_status if data else None
    permit = raise_for_outcome(lifecycle.cancel(permit_id, actor, expected_status=expected, context=ctx))
    return permit_view(permit, actor)
