"""Document slot registry: which documents each permit type asks for.

Pure lookups over the per-type models in app.schemas.documents, so the
required/optional split lives in exactly one place."""
from dataclasses import dataclass
from functools import lru_cache

from pydantic import BaseModel

from app.models.move_permit import PermitType
from app.schemas.documents import DocumentRef, MoveInDocuments, MoveOutDocuments

DOCUMENT_SETS: dict[PermitType, type[BaseModel]] = {
    PermitType.move_in: MoveInDocuments,
    PermitType.move_out: MoveOutDocuments,
}

# Standard service-lift booking slots offered by buildings
MOVE_TIME_SLOTS = [
    "08:00 – 10:00",
    "10:00 – 12:00",
    "12:00 – 14:00",
    "14:00 – 16:00",
    "16:00 – 18:00",
]


@dataclass(frozen=True)
class SlotSpec:
    key: str
    label: str
    description: str
    required: bool


@lru_cache
def _slots(permit_type: PermitType) -> tuple[SlotSpec, ...]:
    model = DOCUMENT_SETS[PermitType(permit_type)]
    out = []
    for name, info in model.model_fields.items():
        extra = info.json_schema_extra or {}
        if "slot" not in extra:
            continue
        out.append(SlotSpec(
            key=name,
            label=info.title or name,
            description=info.description or "",
            required=extra["slot"] == "required",
        ))
    return tuple(out)


def required_slots(permit_type: PermitType) -> list[SlotSpec]:
    return [s for s in _slots(permit_type) if s.required]


def optional_slots(permit_type: PermitType) -> list[SlotSpec]:
    return [s for s in _slots(permit_type) if not s.required]


def slot_keys(permit_type: PermitType) -> list[str]:
    return [s.key for s in _slots(permit_type)]


def is_valid_slot(permit_type: PermitType, key: str) -> bool:
    return key in slot_keys(permit_type)


def slot_label(key: str) -> str:
    return document_labels().get(key, key)


@lru_cache
def document_labels() -> dict[str, str]:
    """Label for every known key across both types; the move-in label wins on overlap."""
    labels: dict[str, str] = {}
    for permit_type in PermitType:
        for slot in _slots(permit_type):
            labels.setdefault(slot.key, slot.label)
    return labels


def document_set(permit_type: PermitType, documents: dict[str, DocumentRef]) -> BaseModel:
    """Typed view of a permit's documents. Raises pydantic.ValidationError on a key
    that is not a slot of this type (callers check is_valid_slot first)."""
    model = DOCUMENT_SETS[PermitType(permit_type)]
    return model(**documents)


def ordered_documents(permit_type: PermitType, documents: dict[str, DocumentRef]) -> dict[str, DocumentRef]:
    """Filled slots in registry order, checked against the permit type's document set."""
    docs = document_set(permit_type, documents)
    return {key: getattr(docs, key) for key in slot_keys(permit_type) if getattr(docs, key) is not None}
