"""Lifecycle commands end to end: store, audit log and notifier."""
import random

import pytest

from app.models.move_permit import MovePermit, PermitCommand, PermitStatus, PermitType, TERMINAL_STATUSES
from app.schemas.documents import DocumentRef
from app.schemas.move_permit import MovePermitCreate, MovePermitUpdate, VehicleEntry
from app.services import document_schema
from app.services.audit_log import CATEGORY_FAILED_ATTEMPT, CATEGORY_STATUS_CHANGE, logs_for_permit
from app.services.auth import Actor, ActorRole
from app.services.permit_lifecycle import PermitLifecycle, RequestContext, recipient_role
from app.services.permit_outcomes import IssueKind
from app.services.permit_queries import summary_for_manager, summary_for_tenant
from app.services.permit_validation import TRANSITIONS

from conftest import MOVE_DATE, TENANT_ID, RecordingNotifier, complete_draft, complete_mover


def submitted_permit(store, lifecycle, tenant, lease_id, permit_type=PermitType.move_in) -> MovePermit:
    permit = store.create(tenant, complete_draft(lease_id, permit_type)).value
    assert lifecycle.submit(permit.id, tenant).ok
    return permit


def test_tenant_builds_and_submits_move_in(store, lifecycle, tenant, active_lease, notifier):
    draft = MovePermitCreate(lease_id=active_lease.id, permit_type=PermitType.move_in, requested_move_date=MOVE_DATE)
    permit = store.create(tenant, draft).value

    for slot in document_schema.required_slots(PermitType.move_in):
        assert store.set_document_slot(
            permit.id, tenant, slot.key, DocumentRef(url=f"http://files.test/{slot.key}.pdf")).ok
    store.append_vehicle(permit.id, tenant, VehicleEntry(plate_number="DXB-12345", description="3-ton truck"))
    store.update_draft(permit.id, tenant, MovePermitUpdate(mover_company=complete_mover()))

    outcome = lifecycle.submit(permit.id, tenant, context=RequestContext(ip_address="10.0.0.5", user_agent="pytest"))

    assert outcome.ok
    permit = outcome.value
    assert permit.status == PermitStatus.submitted
    assert permit.submitted_at is not None
    assert notifier.sent == [(permit.id, "submitted", "owner")]

    logs = logs_for_permit(store.db, permit.id)
    assert [(l.category, l.meta["from_status"], l.meta["to_status"]) for l in logs] == [
        (CATEGORY_STATUS_CHANGE, "draft", "submitted"),
    ]
    assert logs[0].ip_address == "10.0.0.5"
    assert logs[0].actor_role == "tenant"


def test_manager_reviews_approves_and_completes(store, lifecycle, tenant, owner, active_lease, clock, notifier):
    permit = submitted_permit(store, lifecycle, tenant, active_lease.id)

    assert lifecycle.begin_review(permit.id, owner).value.status == PermitStatus.under_review
    approved = lifecycle.approve(permit.id, owner).value
    assert approved.status == PermitStatus.approved
    assert approved.reviewer_user_id == owner.id
    assert approved.decided_at is not None

    # Move date 2026-03-20; jump past it
    clock.advance(days=11)
    done = lifecycle.complete(permit.id, owner)

    assert done.ok
    assert done.value.status == PermitStatus.completed
    assert done.value.completed_at is not None
    assert [n[1:] for n in notifier.sent] == [
        ("submitted", "owner"),
        ("under_review", "tenant"),
        ("approved", "tenant"),
        ("completed", "tenant"),
    ]


def test_complete_before_move_date_needs_confirm(store, lifecycle, tenant, admin, active_lease):
    permit = submitted_permit(store, lifecycle, tenant, active_lease.id)
    lifecycle.begin_review(permit.id, admin)
    lifecycle.approve(permit.id, admin)

    early = lifecycle.complete(permit.id, admin)
    assert early.kind == IssueKind.move_date_not_passed
    assert store.get(permit.id).status == PermitStatus.approved

    assert lifecycle.complete(permit.id, admin, confirm=True).value.status == PermitStatus.completed


def test_reject_requires_notes_and_keeps_them(store, lifecycle, tenant, owner, active_lease):
    permit = submitted_permit(store, lifecycle, tenant, active_lease.id)
    lifecycle.begin_review(permit.id, owner)

    refused = lifecycle.reject(permit.id, owner, notes="  ")
    assert refused.kind == IssueKind.missing_review_notes
    assert store.get(permit.id).status == PermitStatus.under_review

    rejected = lifecycle.reject(permit.id, owner, notes="Ejari certificate has expired").value
    assert rejected.status == PermitStatus.rejected
    assert rejected.review_notes == "Ejari certificate has expired"
    assert logs_for_permit(store.db, permit.id)[-1].meta["review_notes"] == "Ejari certificate has expired"


def test_tenant_cancels_during_review(store, lifecycle, tenant, owner, active_lease, notifier):
    permit = submitted_permit(store, lifecycle, tenant, active_lease.id)
    lifecycle.begin_review(permit.id, owner)

    cancelled = lifecycle.cancel(permit.id, tenant).value

    assert cancelled.status == PermitStatus.cancelled
    assert cancelled.cancelled_at is not None
    assert notifier.sent[-1] == (permit.id, "cancelled", "owner")


def test_submit_incomplete_draft_stays_draft(store, lifecycle, tenant, active_lease, notifier):
    draft = MovePermitCreate(lease_id=active_lease.id, permit_type=PermitType.move_out, requested_move_date=MOVE_DATE)
    permit = store.create(tenant, draft).value

    outcome = lifecycle.submit(permit.id, tenant)

    assert not outcome.ok
    assert IssueKind.missing_required_document in {i.kind for i in outcome.issues}
    assert store.get(permit.id).status == PermitStatus.draft
    assert notifier.sent == []
    # Validation gaps are not audited as failed attempts
    assert logs_for_permit(store.db, permit.id) == []


def test_refused_command_is_audited(store, lifecycle, tenant, owner, active_lease):
    permit = submitted_permit(store, lifecycle, tenant, active_lease.id)

    outcome = lifecycle.approve(permit.id, owner)

    assert outcome.kind == IssueKind.invalid_transition
    failed = [l for l in logs_for_permit(store.db, permit.id) if l.category == CATEGORY_FAILED_ATTEMPT]
    assert len(failed) == 1
    assert failed[0].meta == {"command": "approve", "status": "submitted", "reason": "invalid_transition"}


def test_unknown_permit(lifecycle, owner, db_session):
    assert lifecycle.approve("no-such-permit", owner).kind == IssueKind.not_found


def test_notifier_failure_does_not_undo_transition(store, tenant, active_lease):
    lifecycle = PermitLifecycle(store, RecordingNotifier(fail=True))
    permit = store.create(tenant, complete_draft(active_lease.id)).value

    outcome = lifecycle.submit(permit.id, tenant)

    assert outcome.ok
    store.db.expire_all()
    assert store.get(permit.id).status == PermitStatus.submitted
    assert len(logs_for_permit(store.db, permit.id)) == 1


def test_new_permit_can_be_submitted_after_cancelling(store, lifecycle, tenant, active_lease):
    first = submitted_permit(store, lifecycle, tenant, active_lease.id)
    lifecycle.cancel(first.id, tenant)
    second = store.create(tenant, complete_draft(active_lease.id)).value

    assert lifecycle.submit(second.id, tenant).ok
    assert store.get(first.id).status == PermitStatus.cancelled


def test_recipients():
    assert recipient_role(PermitCommand.submit) == "owner"
    assert recipient_role(PermitCommand.cancel) == "owner"
    assert recipient_role(PermitCommand.reject) == "tenant"


def test_dashboard_counts(db_session, store, lifecycle, tenant, owner, active_lease, property_):
    move_in = submitted_permit(store, lifecycle, tenant, active_lease.id)
    move_out = store.create(tenant, complete_draft(active_lease.id, PermitType.move_out)).value
    lifecycle.begin_review(move_in.id, owner)
    lifecycle.approve(move_in.id, owner)

    tenant_summary = summary_for_tenant(db_session, TENANT_ID)
    assert (tenant_summary.pending, tenant_summary.approved, tenant_summary.terminal,
            tenant_summary.draft, tenant_summary.total) == (0, 1, 0, 1, 2)

    lifecycle.submit(move_out.id, tenant)
    manager_summary = summary_for_manager(db_session, [property_.id])
    assert manager_summary.pending == 1
    assert manager_summary.approved == 1
    assert summary_for_manager(db_session, []).total == 0


@pytest.mark.parametrize("seed", range(20))
def test_random_command_sequences_follow_the_table(seed, store, lifecycle, tenant, owner, admin, clock,
                                                   active_lease):
    """Whatever is thrown at a permit, it only moves along table edges and
    never leaves a terminal status."""
    rng = random.Random(seed)
    permit = store.create(tenant, complete_draft(active_lease.id)).value
    actors = [tenant, owner, admin, Actor(id=7, role=ActorRole.tenant)]
    targets = set(TRANSITIONS.values())

    status = PermitStatus.draft
    stamps: dict[str, object] = {}
    for _ in range(15):
        command = rng.choice(list(PermitCommand))
        actor = rng.choice(actors)
        if rng.random() < 0.3:
            clock.advance(days=rng.randint(1, 5))
        outcome = lifecycle.apply(
            permit.id,
            command,
            actor,
            notes=rng.choice([None, "", "Missing NOC"]),
            confirm=rng.random() < 0.5,
        )
        current = PermitStatus(store.get(permit.id).status)

        if outcome.ok:
            assert (status, command) in TRANSITIONS
            assert current == TRANSITIONS[(status, command)]
            assert current in targets
        else:
            assert current == status
        if status in TERMINAL_STATUSES:
            assert current == status

        # Lifecycle timestamps are written once
        refreshed = store.get(permit.id)
        for name in ("submitted_at", "review_started_at", "decided_at", "completed_at", "cancelled_at"):
            value = getattr(refreshed, name)
            if name in stamps:
                assert value == stamps[name]
            elif value is not None:
                stamps[name] = value
        status = current
