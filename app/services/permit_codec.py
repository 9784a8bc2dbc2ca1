"""Translation between move_permits rows and typed values.

The JSON columns and mover_* columns are read and written only here; the rest
of the code works with DocumentRef, VehicleEntry, AdditionalDocument and
MoverCompany."""
from app.models.move_permit import MovePermit
from app.services.document_schema import ordered_documents
from app.services.leases import PropertyLabel
from app.schemas.documents import DocumentRef
from app.schemas.move_permit import AdditionalDocument, MoverCompany, MovePermitResponse, VehicleEntry

MOVER_FIELDS = ("name", "trade_license_ref", "noc_ref", "contact_name", "contact_mobile")


def read_documents(permit: MovePermit) -> dict[str, DocumentRef]:
    out: dict[str, DocumentRef] = {}
    for row in permit.documents or []:
        out[row["key"]] = DocumentRef(url=row["url"], filename=row.get("filename") or "")
    return out


def write_documents(permit: MovePermit, documents: dict[str, DocumentRef]) -> None:
    """Raises pydantic.ValidationError if a key is not a slot of the permit's type."""
    # Assign a fresh list so the JSON column is flagged dirty
    permit.documents = [
        {"key": key, "url": ref.url, "filename": ref.filename}
        for key, ref in ordered_documents(permit.permit_type, documents).items()
    ]


def read_vehicles(permit: MovePermit) -> list[VehicleEntry]:
    return [VehicleEntry(**row) for row in permit.vehicle_manifest or []]


def write_vehicles(permit: MovePermit, vehicles: list[VehicleEntry]) -> None:
    permit.vehicle_manifest = [v.model_dump() for v in vehicles]


def read_additional_documents(permit: MovePermit) -> list[AdditionalDocument]:
    return [AdditionalDocument(**row) for row in permit.additional_documents or []]


def write_additional_documents(permit: MovePermit, docs: list[AdditionalDocument]) -> None:
    permit.additional_documents = [d.model_dump() for d in docs]


def read_mover(permit: MovePermit) -> MoverCompany:
    return MoverCompany(**{f: getattr(permit, f"mover_{f}") for f in MOVER_FIELDS})


def write_mover(permit: MovePermit, mover: MoverCompany) -> None:
    for f in MOVER_FIELDS:
        setattr(permit, f"mover_{f}", getattr(mover, f) or None)


def to_response(
    permit: MovePermit,
    allowed_commands: list[str] | None = None,
    label: PropertyLabel | None = None,
) -> MovePermitResponse:
    return MovePermitResponse(
        id=permit.id,
        tenant_id=permit.tenant_id,
        property_id=permit.property_id,
        property_name=label.name if label else None,
        property_address=label.address if label else None,
        lease_id=permit.lease_id,
        permit_type=permit.permit_type,
        status=permit.status,
        requested_move_date=permit.requested_move_date,
        time_window_start=permit.time_window_start,
        time_window_end=permit.time_window_end,
        documents=ordered_documents(permit.permit_type, read_documents(permit)),
        additional_documents=read_additional_documents(permit),
        vehicle_manifest=read_vehicles(permit),
        mover_company=read_mover(permit),
        special_instructions=permit.special_instructions,
        review_notes=permit.review_notes,
        reviewer_user_id=permit.reviewer_user_id,
        allowed_commands=allowed_commands or [],
        created_at=permit.created_at,
        updated_at=permit.updated_at,
        submitted_at=permit.submitted_at,
        review_started_at=permit.review_started_at,
        decided_at=permit.decided_at,
        completed_at=permit.completed_at,
        cancelled_at=permit.cancelled_at,
    )
