"""Permit record store: persistence for move permits and their manifests.

Documents, vehicles and mover details change only while a permit is a draft
and only by its tenant. Status changes go through transition(), which checks
the command against app.services.permit_validation and then writes with a
compare-and-set on the status it read, so a concurrent decision is reported
as stale instead of being overwritten."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.move_permit import (
    MovePermit,
    NON_TERMINAL_STATUSES,
    PermitCommand,
    PermitStatus,
    PermitType,
)
from app.schemas.documents import DocumentRef
from app.schemas.move_permit import AdditionalDocument, MovePermitCreate, MovePermitUpdate, VehicleEntry
from app.services import document_schema
from app.services.auth import Actor, ActorRole
from app.services.leases import LeaseDirectory
from app.services.permit_codec import (
    read_additional_documents,
    read_documents,
    read_mover,
    read_vehicles,
    write_additional_documents,
    write_documents,
    write_mover,
    write_vehicles,
)
from app.services.permit_outcomes import IssueKind, Outcome, PermitIssue
from app.services.permit_validation import check_actor, check_time_window, local_today, validate_transition
from app.services.uploads import UploadError, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PermitPage:
    permits: list[MovePermit]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _duplicate(permit_type: PermitType) -> Outcome:
    return Outcome.fail(
        IssueKind.duplicate_active_request,
        f"An active {PermitType(permit_type).value.replace('_', '-')} permit already exists for this lease",
    )


def _upload_issue(error: UploadError, field: str | None = None) -> PermitIssue:
    return PermitIssue(
        IssueKind.upstream_upload_failure,
        error.message,
        field,
        detail={"reason": error.kind.value},
    )


class PermitStore:
    def __init__(self, db: Session, leases: LeaseDirectory, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.leases = leases
        self.clock = clock

    def today(self) -> date:
        return local_today(self.clock())

    # --- reads -----------------------------------------------------------

    def get(self, permit_id: str) -> MovePermit | None:
        return self.db.query(MovePermit).filter(MovePermit.id == permit_id).first()

    def get_for_actor(self, permit_id: str, actor: Actor) -> Outcome[MovePermit]:
        permit = self.get(permit_id)
        if not permit:
            return Outcome.fail(IssueKind.not_found, "Move permit not found")
        if actor.role == ActorRole.tenant:
            if permit.tenant_id != actor.id:
                # Same answer as a missing permit so other ids stay hidden
                return Outcome.fail(IssueKind.not_found, "Move permit not found")
        elif not self.leases.manages_property(actor, permit.property_id):
            return Outcome.fail(IssueKind.unauthorized_actor, "You do not manage this property")
        return Outcome.success(permit)

    def has_active_request(self, lease_id: int, permit_type: PermitType, exclude_id: str | None = None) -> bool:
        q = self.db.query(MovePermit.id).filter(
            MovePermit.lease_id == lease_id,
            MovePermit.permit_type == permit_type,
            MovePermit.status.in_(list(NON_TERMINAL_STATUSES)),
        )
        if exclude_id:
            q = q.filter(MovePermit.id != exclude_id)
        return q.first() is not None

    def _page(self, q, page: int, limit: int) -> PermitPage:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        total = q.count()
        permits = (
            q.order_by(MovePermit.created_at.desc(), MovePermit.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return PermitPage(permits=permits, page=page, limit=limit, total=total)

    def list_for_tenant(
        self,
        tenant_id: int,
        status: PermitStatus | None = None,
        permit_type: PermitType | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> PermitPage:
        q = self.db.query(MovePermit).filter(MovePermit.tenant_id == tenant_id)
        if status:
            q = q.filter(MovePermit.status == status)
        if permit_type:
            q = q.filter(MovePermit.permit_type == permit_type)
        return self._page(q, page, limit)

    def list_for_manager(
        self,
        property_ids: list[int],
        status: PermitStatus | None = None,
        permit_type: PermitType | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> PermitPage:
        if not property_ids:
            return PermitPage(permits=[], page=max(page, 1), limit=limit, total=0)
        q = self.db.query(MovePermit).filter(MovePermit.property_id.in_(property_ids))
        if status:
            q = q.filter(MovePermit.status == status)
        if permit_type:
            q = q.filter(MovePermit.permit_type == permit_type)
        return self._page(q, page, limit)

    # --- creation and draft edits ----------------------------------------

    def create(self, actor: Actor, draft: MovePermitCreate) -> Outcome[MovePermit]:
        if actor.role != ActorRole.tenant:
            return Outcome.fail(IssueKind.unauthorized_actor, "Only tenants can request move permits")

        lease = self.leases.lookup(draft.lease_id)
        if lease is None:
            return Outcome.fail(IssueKind.not_found, "Lease not found", "lease_id")
        if lease.tenant_id != actor.id:
            return Outcome.fail(IssueKind.unauthorized_actor, "Not your lease", "lease_id")
        if not lease.is_active:
            return Outcome.fail(
                IssueKind.inactive_lease,
                "Move permits can only be requested for properties with an active lease",
                "lease_id",
            )

        issues = [
            PermitIssue(IssueKind.invalid_document_slot,
                        f"'{key}' is not a {draft.permit_type.value.replace('_', '-')} document", key)
            for key in draft.documents
            if not document_schema.is_valid_slot(draft.permit_type, key)
        ]
        window_issue = check_time_window(draft.time_window_start, draft.time_window_end)
        if window_issue:
            issues.append(window_issue)
        if issues:
            return Outcome.failure(*issues)

        if self.has_active_request(lease.lease_id, draft.permit_type):
            return _duplicate(draft.permit_type)

        permit = MovePermit(
            tenant_id=actor.id,
            property_id=lease.property_id,
            lease_id=lease.lease_id,
            permit_type=draft.permit_type,
            status=PermitStatus.draft,
            requested_move_date=draft.requested_move_date,
            time_window_start=draft.time_window_start,
            time_window_end=draft.time_window_end,
            special_instructions=(draft.special_instructions or "").strip() or None,
            created_at=self.clock(),
        )
        write_documents(permit, dict(draft.documents))
        write_additional_documents(permit, list(draft.additional_documents))
        write_vehicles(permit, list(draft.vehicle_manifest))
        write_mover(permit, draft.mover_company)

        self.db.add(permit)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent request for the same lease and type
            self.db.rollback()
            return _duplicate(draft.permit_type)
        self.db.refresh(permit)
        logger.info("Move permit %s created (draft) by tenant %s for lease %s", permit.id, actor.id, lease.lease_id)
        return Outcome.success(permit)

    def editable_draft(self, permit_id: str, actor: Actor) -> Outcome[MovePermit]:
        if actor.role != ActorRole.tenant:
            return Outcome.fail(IssueKind.unauthorized_actor, "Only the tenant can edit a move permit")
        found = self.get_for_actor(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        if permit.status != PermitStatus.draft:
            return Outcome.fail(
                IssueKind.invalid_transition,
                f"Permit can only be edited while draft (currently {PermitStatus(permit.status).value})",
            )
        return found

    def _save(self, permit: MovePermit) -> Outcome[MovePermit]:
        permit.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(permit)
        return Outcome.success(permit)

    def update_draft(self, permit_id: str, actor: Actor, changes: MovePermitUpdate) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        fields = changes.model_fields_set

        start = changes.time_window_start if "time_window_start" in fields else permit.time_window_start
        end = changes.time_window_end if "time_window_end" in fields else permit.time_window_end
        window_issue = check_time_window(start, end)
        if window_issue:
            return Outcome.failure(window_issue)

        if "requested_move_date" in fields and changes.requested_move_date is not None:
            permit.requested_move_date = changes.requested_move_date
        permit.time_window_start = start
        permit.time_window_end = end
        if "mover_company" in fields and changes.mover_company is not None:
            sent = changes.mover_company
            merged = read_mover(permit).model_copy(update={f: getattr(sent, f) for f in sent.model_fields_set})
            write_mover(permit, merged)
        if "special_instructions" in fields:
            permit.special_instructions = (changes.special_instructions or "").strip() or None
        return self._save(permit)

    def append_vehicle(self, permit_id: str, actor: Actor, vehicle: VehicleEntry) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        write_vehicles(permit, read_vehicles(permit) + [vehicle])
        return self._save(permit)

    def remove_vehicle(self, permit_id: str, actor: Actor, index: int) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        vehicles = read_vehicles(permit)
        if not 0 <= index < len(vehicles):
            return Outcome.fail(IssueKind.not_found, f"No vehicle at position {index}", "vehicle_manifest")
        del vehicles[index]
        write_vehicles(permit, vehicles)
        return self._save(permit)

    def set_document_slot(self, permit_id: str, actor: Actor, key: str, ref: DocumentRef) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        if not document_schema.is_valid_slot(permit.permit_type, key):
            return Outcome.fail(
                IssueKind.invalid_document_slot,
                f"'{key}' is not a {PermitType(permit.permit_type).value.replace('_', '-')} document",
                key,
            )
        documents = read_documents(permit)
        documents[key] = ref
        write_documents(permit, documents)
        return self._save(permit)

    def clear_document_slot(self, permit_id: str, actor: Actor, key: str) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        documents = read_documents(permit)
        if key not in documents:
            return Outcome.fail(IssueKind.not_found, f"No document uploaded for '{key}'", key)
        del documents[key]
        write_documents(permit, documents)
        return self._save(permit)

    def attach_upload(
        self, permit_id: str, actor: Actor, key: str, upload: UploadResult | UploadError
    ) -> Outcome[MovePermit]:
        """Set a slot from an upload outcome; a failed upload leaves the slot as it was."""
        if isinstance(upload, UploadError):
            return Outcome.failure(_upload_issue(upload, key))
        return self.set_document_slot(permit_id, actor, key, DocumentRef(url=upload.reference, filename=upload.filename))

    def add_additional_document(self, permit_id: str, actor: Actor, doc: AdditionalDocument) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        write_additional_documents(permit, read_additional_documents(permit) + [doc])
        return self._save(permit)

    def attach_additional_upload(
        self, permit_id: str, actor: Actor, name: str, upload: UploadResult | UploadError
    ) -> Outcome[MovePermit]:
        if isinstance(upload, UploadError):
            return Outcome.failure(_upload_issue(upload))
        doc = AdditionalDocument(name=(name or "").strip() or upload.filename, url=upload.reference, filename=upload.filename)
        return self.add_additional_document(permit_id, actor, doc)

    def remove_additional_document(self, permit_id: str, actor: Actor, index: int) -> Outcome[MovePermit]:
        found = self.editable_draft(permit_id, actor)
        if not found.ok:
            return found
        permit = found.value
        docs = read_additional_documents(permit)
        if not 0 <= index < len(docs):
            return Outcome.fail(IssueKind.not_found, f"No additional document at position {index}", "additional_documents")
        del docs[index]
        write_additional_documents(permit, docs)
        return self._save(permit)

    # --- status transitions ----------------------------------------------

    def compare_and_set(self, permit_id: str, observed: PermitStatus, values: dict) -> bool:
        """UPDATE only if the stored status is still `observed`. Caller commits."""
        result = self.db.execute(
            update(MovePermit)
            .where(MovePermit.id == permit_id, MovePermit.status == observed)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _transition_values(
        self, command: PermitCommand, target: PermitStatus, actor: Actor, notes: str | None
    ) -> dict:
        now = self.clock()
        values: dict = {"status": target, "updated_at": now}
        notes = (notes or "").strip() or None
        if command == PermitCommand.submit:
            values["submitted_at"] = now
        elif command == PermitCommand.cancel:
            values["cancelled_at"] = now
        else:
            values["reviewer_user_id"] = actor.id
            if notes:
                values["review_notes"] = notes
            if command == PermitCommand.begin_review:
                values["review_started_at"] = now
            elif command in (PermitCommand.approve, PermitCommand.reject):
                values["decided_at"] = now
            elif command == PermitCommand.complete:
                values["completed_at"] = now
        return values

    def transition(
        self,
        permit_id: str,
        command: PermitCommand,
        actor: Actor,
        notes: str | None = None,
        confirm: bool = False,
        expected_status: PermitStatus | None = None,
    ) -> Outcome[MovePermit]:
        permit = self.get(permit_id)
        if not permit:
            return Outcome.fail(IssueKind.not_found, "Move permit not found")

        manages = actor.is_manager and self.leases.manages_property(actor, permit.property_id)
        # Strangers learn nothing about the current status
        allowed = check_actor(permit, command, actor, manages)
        if not allowed.ok:
            return Outcome.failure(*allowed.issues)

        observed = PermitStatus(permit.status)
        if expected_status is not None and PermitStatus(expected_status) != observed:
            return Outcome.fail(
                IssueKind.stale_state,
                f"Permit is now {observed.value}; reload and try again",
                detail={"status": observed.value},
            )

        check = validate_transition(
            permit,
            command,
            actor,
            manages_property=manages,
            notes=notes,
            confirm=confirm,
            today=self.today(),
        )
        if not check.ok:
            return Outcome.failure(*check.issues)

        command = PermitCommand(command)
        if command == PermitCommand.submit and self.has_active_request(
            permit.lease_id, permit.permit_type, exclude_id=permit.id
        ):
            return _duplicate(permit.permit_type)

        values = self._transition_values(command, check.value, actor, notes)
        try:
            applied = self.compare_and_set(permit.id, observed, values)
            if not applied:
                self.db.rollback()
                return Outcome.fail(
                    IssueKind.stale_state,
                    "Permit was changed by someone else; reload and try again",
                )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return _duplicate(permit.permit_type)

        self.db.refresh(permit)
        logger.info(
            "Move permit %s: %s -> %s (%s by %s %s)",
            permit.id, observed.value, PermitStatus(permit.status).value,
            command.value, actor.role.value, actor.id,
        )
        return Outcome.success(permit)
