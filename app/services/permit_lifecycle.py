"""Move permit lifecycle: role-scoped commands on top of the record store.

Each command is applied by PermitStore.transition as one compare-and-set
update. After it commits, the change is written to the audit log and the
notifier is told who should hear about it. Refused commands on an existing
permit are audited as failed attempts."""
import logging
from dataclasses import dataclass

from app.models.move_permit import MovePermit, PermitCommand, PermitStatus
from app.services.audit_log import CATEGORY_FAILED_ATTEMPT, CATEGORY_STATUS_CHANGE, create_log
from app.services.auth import Actor, ActorRole
from app.services.notifications import PermitNotifier, notify_safely
from app.services.permit_outcomes import IssueKind, Outcome
from app.services.permit_store import PermitStore

logger = logging.getLogger(__name__)

# Refusals worth keeping in the audit trail (validation gaps are not)
_AUDITED_FAILURES = frozenset({
    IssueKind.invalid_transition,
    IssueKind.stale_state,
    IssueKind.unauthorized_actor,
    IssueKind.duplicate_active_request,
})

_TITLES = {
    PermitCommand.submit: "Move permit submitted",
    PermitCommand.begin_review: "Move permit review started",
    PermitCommand.cancel: "Move permit cancelled",
    PermitCommand.approve: "Move permit approved",
    PermitCommand.reject: "Move permit rejected",
    PermitCommand.complete: "Move permit completed",
}


@dataclass(frozen=True)
class RequestContext:
    ip_address: str | None = None
    user_agent: str | None = None


def recipient_role(command: PermitCommand) -> str:
    """Tenant actions go to the property's manager; manager actions go to the tenant."""
    if command in (PermitCommand.submit, PermitCommand.cancel):
        return ActorRole.owner.value
    return ActorRole.tenant.value


class PermitLifecycle:
    def __init__(self, store: PermitStore, notifier: PermitNotifier):
        self.store = store
        self.notifier = notifier

    def submit(self, permit_id: str, actor: Actor, **kwargs) -> Outcome[MovePermit]:
        return self.apply(permit_id, PermitCommand.submit, actor, **kwargs)

    def cancel(self, permit_id: str, actor: Actor, **kwargs) -> Outcome[MovePermit]:
        return self.apply(permit_id, PermitCommand.cancel, actor, **kwargs)

    def begin_review(self, permit_id: str, actor: Actor, **kwargs) -> Outcome[MovePermit]:
        return self.apply(permit_id, PermitCommand.begin_review, actor, **kwargs)

    def approve(self, permit_id: str, actor: Actor, **kwargs) -> Outcome[MovePermit]:
        return self.apply(permit_id, PermitCommand.approve, actor, **kwargs)

    def reject(self, permit_id: str, actor: Actor, notes: str | None, **kwargs) -> Outcome[MovePermit]:
        return self.apply(permit_id, PermitCommand.reject, actor, notes=notes, **kwargs)

    def complete(self, permit_id: str, actor: Actor, confirm: bool = False, **kwargs) -> Outcome[MovePermit]:
        return self.apply(permit_id, PermitCommand.complete, actor, confirm=confirm, **kwargs)

    def apply(
        self,
        permit_id: str,
        command: PermitCommand,
        actor: Actor,
        *,
        notes: str | None = None,
        confirm: bool = False,
        expected_status: PermitStatus | None = None,
        context: RequestContext | None = None,
    ) -> Outcome[MovePermit]:
        command = PermitCommand(command)
        ctx = context or RequestContext()
        before = self.store.get(permit_id)
        from_status = PermitStatus(before.status).value if before else None
        property_id = before.property_id if before else None

        outcome = self.store.transition(
            permit_id,
            command,
            actor,
            notes=notes,
            confirm=confirm,
            expected_status=expected_status,
        )
        db = self.store.db

        if not outcome.ok:
            logger.warning(
                "Move permit %s: %s by %s %s refused (%s)",
                permit_id, command.value, actor.role.value, actor.id,
                ", ".join(i.kind.value for i in outcome.issues),
            )
            if before is not None and outcome.kind in _AUDITED_FAILURES:
                create_log(
                    db,
                    CATEGORY_FAILED_ATTEMPT,
                    f"Move permit {command.value.replace('_', ' ')} refused",
                    outcome.issues[0].message,
                    property_id=property_id,
                    permit_id=permit_id,
                    actor_user_id=actor.id,
                    actor_role=actor.role.value,
                    ip_address=ctx.ip_address,
                    user_agent=ctx.user_agent,
                    meta={"command": command, "status": from_status, "reason": outcome.kind},
                )
                db.commit()
            return outcome

        permit = outcome.value
        to_status = PermitStatus(permit.status)
        create_log(
            db,
            CATEGORY_STATUS_CHANGE,
            _TITLES[command],
            f"Move permit {permit.id} for property {permit.property_id}: {from_status} -> {to_status.value}.",
            property_id=permit.property_id,
            permit_id=permit.id,
            actor_user_id=actor.id,
            actor_role=actor.role.value,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            meta={
                "command": command,
                "from_status": from_status,
                "to_status": to_status,
                "review_notes": permit.review_notes if command == PermitCommand.reject else None,
            },
        )
        db.commit()
        db.refresh(permit)

        notify_safely(self.notifier, permit.id, to_status, recipient_role(command))
        return outcome
