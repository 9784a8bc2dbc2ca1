"""Permit validation: submission completeness and transition legality.

State flow:
    draft -> submitted -> under_review -> approved -> completed
    submitted | under_review -> cancelled   (tenant)
    under_review -> rejected                (manager, notes required)

Terminal states: rejected, cancelled, completed.
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import get_settings
from app.models.move_permit import MovePermit, PermitCommand, PermitStatus, TERMINAL_STATUSES
from app.services import document_schema
from app.services.auth import Actor, ActorRole, MANAGER_ROLES
from app.services.permit_codec import read_documents, read_mover, read_vehicles
from app.services.permit_outcomes import IssueKind, Outcome, PermitIssue

# (from, command) -> to. The only place transition legality is defined.
TRANSITIONS: dict[tuple[PermitStatus, PermitCommand], PermitStatus] = {
    (PermitStatus.draft, PermitCommand.submit): PermitStatus.submitted,
    (PermitStatus.submitted, PermitCommand.begin_review): PermitStatus.under_review,
    (PermitStatus.submitted, PermitCommand.cancel): PermitStatus.cancelled,
    (PermitStatus.under_review, PermitCommand.cancel): PermitStatus.cancelled,
    (PermitStatus.under_review, PermitCommand.approve): PermitStatus.approved,
    (PermitStatus.under_review, PermitCommand.reject): PermitStatus.rejected,
    (PermitStatus.approved, PermitCommand.complete): PermitStatus.completed,
}

COMMAND_ROLES: dict[PermitCommand, frozenset[ActorRole]] = {
    PermitCommand.submit: frozenset({ActorRole.tenant}),
    PermitCommand.cancel: frozenset({ActorRole.tenant}),
    PermitCommand.begin_review: MANAGER_ROLES,
    PermitCommand.approve: MANAGER_ROLES,
    PermitCommand.reject: MANAGER_ROLES,
    PermitCommand.complete: MANAGER_ROLES,
}

_MOVER_LABELS = {
    "name": "Moving company name",
    "trade_license_ref": "Moving company trade license",
    "noc_ref": "Moving company NOC",
    "contact_name": "Moving company contact name",
    "contact_mobile": "Moving company contact mobile",
}


def local_today(now: datetime) -> date:
    """Calendar date at the buildings' timezone for an aware `now`."""
    return now.astimezone(ZoneInfo(get_settings().permit_timezone)).date()


def can_transition(from_status: PermitStatus, command: PermitCommand) -> bool:
    return (PermitStatus(from_status), PermitCommand(command)) in TRANSITIONS


def next_status(from_status: PermitStatus, command: PermitCommand) -> PermitStatus | None:
    return TRANSITIONS.get((PermitStatus(from_status), PermitCommand(command)))


def allowed_commands(status: PermitStatus, role: ActorRole | None = None) -> list[PermitCommand]:
    """Commands legal from `status`, optionally narrowed to what `role` may issue."""
    out = []
    for (from_status, command) in TRANSITIONS:
        if from_status != status:
            continue
        if role is not None and role not in COMMAND_ROLES[command]:
            continue
        out.append(command)
    return out


def is_terminal(status: PermitStatus) -> bool:
    return PermitStatus(status) in TERMINAL_STATUSES


def check_time_window(start, end) -> PermitIssue | None:
    if start is not None and end is not None and start >= end:
        return PermitIssue(
            IssueKind.invalid_time_window,
            "Time window start must be before its end",
            "time_window_end",
        )
    return None


def validate_for_submission(permit: MovePermit, today: date | None = None) -> Outcome[None]:
    """Every reason the draft cannot be submitted, in one pass."""
    issues: list[PermitIssue] = []

    documents = read_documents(permit)
    for slot in document_schema.required_slots(permit.permit_type):
        if slot.key not in documents:
            issues.append(PermitIssue(
                IssueKind.missing_required_document,
                f"Missing required document: {slot.label}",
                slot.key,
            ))

    mover = read_mover(permit)
    for name, label in _MOVER_LABELS.items():
        if not getattr(mover, name):
            issues.append(PermitIssue(
                IssueKind.missing_mover_details,
                f"{label} is required",
                f"mover_company.{name}",
            ))

    vehicles = read_vehicles(permit)
    if not vehicles:
        issues.append(PermitIssue(
            IssueKind.empty_vehicle_manifest,
            "At least one vehicle is required",
            "vehicle_manifest",
        ))
    for i, vehicle in enumerate(vehicles):
        if not vehicle.plate_number:
            issues.append(PermitIssue(
                IssueKind.invalid_vehicle_entry,
                f"Vehicle {i + 1}: plate number is required",
                f"vehicle_manifest[{i}].plate_number",
            ))
        if not vehicle.description:
            issues.append(PermitIssue(
                IssueKind.invalid_vehicle_entry,
                f"Vehicle {i + 1}: description is required",
                f"vehicle_manifest[{i}].description",
            ))

    if today is not None and permit.requested_move_date < today:
        issues.append(PermitIssue(
            IssueKind.invalid_move_date,
            "Requested move date is in the past",
            "requested_move_date",
        ))

    window_issue = check_time_window(permit.time_window_start, permit.time_window_end)
    if window_issue:
        issues.append(window_issue)

    return Outcome.failure(*issues) if issues else Outcome.success()


def check_actor(
    permit: MovePermit, command: PermitCommand, actor: Actor, manages_property: bool = False,
) -> Outcome[None]:
    """May this actor issue `command` on this permit at all, whatever its status."""
    command = PermitCommand(command)
    if actor.role not in COMMAND_ROLES[command]:
        return Outcome.fail(
            IssueKind.unauthorized_actor,
            f"Role '{actor.role.value}' cannot {command.value.replace('_', ' ')} a move permit",
        )
    if actor.role == ActorRole.tenant and permit.tenant_id != actor.id:
        return Outcome.fail(IssueKind.unauthorized_actor, "Not your move permit")
    if actor.is_manager and not manages_property:
        return Outcome.fail(IssueKind.unauthorized_actor, "You do not manage this property")
    return Outcome.success()


def validate_transition(
    permit: MovePermit,
    command: PermitCommand,
    actor: Actor,
    *,
    manages_property: bool = False,
    notes: str | None = None,
    confirm: bool = False,
    today: date | None = None,
) -> Outcome[PermitStatus]:
    """Role, ownership, state and guard checks for one command. On success the
    outcome carries the status the permit moves to. Duplicate-request checks
    need the database and are done by the store."""
    command = PermitCommand(command)

    allowed = check_actor(permit, command, actor, manages_property)
    if not allowed.ok:
        return Outcome.failure(*allowed.issues)

    if not can_transition(permit.status, command):
        return Outcome.fail(
            IssueKind.invalid_transition,
            f"Cannot {command.value.replace('_', ' ')} a permit that is {PermitStatus(permit.status).value}",
            detail={"status": PermitStatus(permit.status).value, "command": command.value},
        )
    target = next_status(permit.status, command)

    if command == PermitCommand.submit:
        submission = validate_for_submission(permit, today)
        if not submission.ok:
            return Outcome.failure(*submission.issues)

    if command == PermitCommand.reject and not (notes or "").strip():
        return Outcome.fail(
            IssueKind.missing_review_notes,
            "Review notes are required when rejecting a permit",
            "review_notes",
        )

    if command == PermitCommand.complete and not confirm:
        if today is None or not permit.requested_move_date < today:
            return Outcome.fail(
                IssueKind.move_date_not_passed,
                "The requested move date has not passed; confirm to complete early",
                "confirm",
            )

    return Outcome.success(target)
