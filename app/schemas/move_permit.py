"""Move permit request/response schemas."""
from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.move_permit import PermitCommand, PermitStatus, PermitType
from app.schemas.documents import DocumentRef


class VehicleEntry(BaseModel):
    plate_number: str = ""
    description: str = ""

    @field_validator("plate_number", mode="before")
    @classmethod
    def normalize_plate(cls, v: str | None) -> str:
        return (v or "").strip().upper()

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v: str | None) -> str:
        return (v or "").strip()


class MoverCompany(BaseModel):
    name: str = ""
    trade_license_ref: str = ""
    noc_ref: str = ""
    contact_name: str = ""
    contact_mobile: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def strip_all(cls, v: str | None) -> str:
        return (v or "").strip()


class AdditionalDocument(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    filename: str = ""


class MovePermitCreate(BaseModel):
    lease_id: int
    permit_type: PermitType
    requested_move_date: date
    time_window_start: time | None = None
    time_window_end: time | None = None
    documents: dict[str, DocumentRef] = Field(default_factory=dict)
    additional_documents: list[AdditionalDocument] = Field(default_factory=list)
    vehicle_manifest: list[VehicleEntry] = Field(default_factory=list)
    mover_company: MoverCompany = Field(default_factory=MoverCompany)
    special_instructions: str | None = None


class MovePermitUpdate(BaseModel):
    """Draft edits; only fields present in the request body are applied."""
    requested_move_date: date | None = None
    time_window_start: time | None = None
    time_window_end: time | None = None
    mover_company: MoverCompany | None = None
    special_instructions: str | None = None


class TransitionRequest(BaseModel):
    command: PermitCommand
    review_notes: str | None = None
    confirm: bool = False
    # Status the caller last saw; a mismatch is reported as stale instead of applied
    expected_status: PermitStatus | None = None


class CancelRequest(BaseModel):
    expected_status: PermitStatus | None = None


class MovePermitResponse(BaseModel):
    id: str
    tenant_id: int
    property_id: int
    property_name: str | None = None
    property_address: str | None = None
    lease_id: int
    permit_type: PermitType
    status: PermitStatus
    requested_move_date: date
    time_window_start: time | None = None
    time_window_end: time | None = None
    documents: dict[str, DocumentRef]
    additional_documents: list[AdditionalDocument]
    vehicle_manifest: list[VehicleEntry]
    mover_company: MoverCompany
    special_instructions: str | None = None
    review_notes: str | None = None
    reviewer_user_id: int | None = None
    allowed_commands: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    review_started_at: datetime | None = None
    decided_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MovePermitPage(BaseModel):
    permits: list[MovePermitResponse]
    page: int
    limit: int
    total: int
    total_pages: int


class SlotView(BaseModel):
    key: str
    label: str
    description: str
    required: bool


class DocumentSchemaView(BaseModel):
    permit_type: PermitType
    required: list[SlotView]
    optional: list[SlotView]


class IssueView(BaseModel):
    kind: str
    message: str
    field: str | None = None


class ValidationView(BaseModel):
    submittable: bool
    issues: list[IssueView]


class UploadResponse(BaseModel):
    reference: str
    filename: str
