"""Per-type document slot sets.

Each permit type has its own fixed-shape model; a key that belongs to the
other type is rejected (extra="forbid"). The field order is the order slots
are shown to tenants. The registry in app.services.document_schema reads
labels and required/optional flags straight from these fields."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class DocumentRef(BaseModel):
    """Reference returned by the upload collaborator; contents are never inspected."""
    url: str = Field(min_length=1)
    filename: str = ""


def _slot(label: str, description: str, required: bool = True):
    return Field(
        None,
        title=label,
        description=description,
        json_schema_extra={"slot": "required" if required else "optional"},
    )


class MoveInDocuments(BaseModel):
    model_config = ConfigDict(extra="forbid")

    permit_type: Literal["move_in"] = "move_in"

    emirates_id_front: DocumentRef | None = _slot(
        "Emirates ID (Front)", "Clear coloured scan of the front side of the Emirates ID")
    emirates_id_back: DocumentRef | None = _slot(
        "Emirates ID (Back)", "Clear coloured scan of the reverse side of the Emirates ID")
    passport_copy: DocumentRef | None = _slot(
        "Passport Copy", "Latest passport copy for the main tenant")
    residence_visa: DocumentRef | None = _slot(
        "Residence Visa Page", "Valid UAE residence visa page for the tenant")
    ejari_certificate: DocumentRef | None = _slot(
        "Ejari Certificate", "Registered Ejari certificate covering the lease period")
    tenancy_contract: DocumentRef | None = _slot(
        "Signed Tenancy Contract", "Signed tenancy / lease agreement")
    landlord_noc: DocumentRef | None = _slot(
        "Landlord / Property Owner NOC",
        "Move-in No Objection Certificate from the landlord or property manager")
    building_access_pass: DocumentRef | None = _slot(
        "Building / Community Access Pass", "Building-issued move-in permit or access letter")
    security_deposit_receipt: DocumentRef | None = _slot(
        "Security Deposit Receipt", "Proof of payment for security deposit and move-in fees")
    moving_company_license: DocumentRef | None = _slot(
        "Moving Company Trade License", "Current trade license copy for the appointed moving company")
    moving_company_insurance: DocumentRef | None = _slot(
        "Moving Company Insurance Certificate",
        "Public liability insurance certificate for the moving company")
    elevator_booking_form: DocumentRef | None = _slot(
        "Elevator / Service Lift Booking Form", "Approved service lift booking or reservation form")

    power_of_attorney: DocumentRef | None = _slot(
        "Power of Attorney", "Required only when someone else handles the move for the tenant",
        required=False)
    pet_registration: DocumentRef | None = _slot(
        "Pet Registration", "Community pet registration, if pets are moving in", required=False)


class MoveOutDocuments(BaseModel):
    model_config = ConfigDict(extra="forbid")

    permit_type: Literal["move_out"] = "move_out"

    emirates_id_front: DocumentRef | None = _slot(
        "Emirates ID (Front)", "Clear coloured scan of the front side of the Emirates ID")
    emirates_id_back: DocumentRef | None = _slot(
        "Emirates ID (Back)", "Clear coloured scan of the reverse side of the Emirates ID")
    passport_copy: DocumentRef | None = _slot(
        "Passport Copy", "Latest passport copy for the main tenant")
    residence_visa: DocumentRef | None = _slot(
        "Residence Visa Page", "Valid UAE residence visa page for the tenant")
    ejari_certificate: DocumentRef | None = _slot(
        "Ejari Certificate / Cancellation Receipt",
        "Ejari certificate or cancellation confirmation covering the tenancy")
    tenancy_contract: DocumentRef | None = _slot(
        "Signed Tenancy Contract", "Signed tenancy / lease agreement")
    building_clearance_certificate: DocumentRef | None = _slot(
        "Building Clearance Certificate",
        "Move-out clearance form signed by building / community management")
    utility_clearance_certificates: DocumentRef | None = _slot(
        "Utility Clearance Certificates",
        "DEWA / ADDC / SEWA clearance certificates and final meter readings")
    moving_company_license: DocumentRef | None = _slot(
        "Moving Company Trade License", "Current trade license copy for the appointed moving company")
    moving_company_insurance: DocumentRef | None = _slot(
        "Moving Company Insurance Certificate",
        "Public liability insurance certificate for the moving company")
    elevator_booking_form: DocumentRef | None = _slot(
        "Elevator / Service Lift Booking Form", "Approved service lift booking or reservation form")
    final_bill_receipts: DocumentRef | None = _slot(
        "Final Bills & Payment Receipts",
        "Receipts for any outstanding community, maintenance, or service charges")

    power_of_attorney: DocumentRef | None = _slot(
        "Power of Attorney", "Required only when someone else handles the move for the tenant",
        required=False)
    move_out_inspection_report: DocumentRef | None = _slot(
        "Move-out Inspection Report", "Joint inspection / snagging report, if already carried out",
        required=False)


DocumentSet = Annotated[Union[MoveInDocuments, MoveOutDocuments], Field(discriminator="permit_type")]
