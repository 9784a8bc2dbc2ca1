"""Typed outcomes for permit operations.

Business conditions (missing documents, illegal transitions, lost races) come
back as issues on an Outcome; only infrastructure failures raise."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class IssueKind(str, enum.Enum):
    # Submission validation (reported together)
    missing_required_document = "missing_required_document"
    missing_mover_details = "missing_mover_details"
    empty_vehicle_manifest = "empty_vehicle_manifest"
    invalid_vehicle_entry = "invalid_vehicle_entry"
    invalid_move_date = "invalid_move_date"
    invalid_time_window = "invalid_time_window"
    invalid_document_slot = "invalid_document_slot"
    # Transitions
    missing_review_notes = "missing_review_notes"
    move_date_not_passed = "move_date_not_passed"
    invalid_transition = "invalid_transition"
    stale_state = "stale_state"
    duplicate_active_request = "duplicate_active_request"
    unauthorized_actor = "unauthorized_actor"
    # Collaborators
    upstream_upload_failure = "upstream_upload_failure"
    inactive_lease = "inactive_lease"
    not_found = "not_found"


SUBMISSION_KINDS = frozenset({
    IssueKind.missing_required_document,
    IssueKind.missing_mover_details,
    IssueKind.empty_vehicle_manifest,
    IssueKind.invalid_vehicle_entry,
    IssueKind.invalid_move_date,
    IssueKind.invalid_time_window,
})


@dataclass(frozen=True)
class PermitIssue:
    kind: IssueKind
    message: str
    field: str | None = None
    # Extra detail for the caller, e.g. the upload error reason
    detail: dict | None = None

    def as_dict(self) -> dict:
        out = {"kind": self.kind.value, "message": self.message, "field": self.field}
        if self.detail:
            out["detail"] = self.detail
        return out


@dataclass
class Outcome(Generic[T]):
    value: T | None = None
    issues: list[PermitIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def kind(self) -> IssueKind | None:
        """Kind of the first issue; for single-issue failures this is the failure kind."""
        return self.issues[0].kind if self.issues else None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, *issues: PermitIssue) -> "Outcome[T]":
        return cls(issues=list(issues))

    @classmethod
    def fail(cls, kind: IssueKind, message: str, field: str | None = None, detail: dict | None = None) -> "Outcome[T]":
        return cls(issues=[PermitIssue(kind, message, field, detail)])
