"""Ministry form lifecycle: creation, editing, submission and review decisions.

Every state-changing operation runs as one unit of work. The form row is read
with ``FOR UPDATE`` and its status is written with a compare-and-swap, so two
reviewers acting on the same form at once cannot both succeed. Notifications
go out only after the transaction has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.db import unit_of_work
from app.core.errors import (
    Forbidden,
    InvalidMinistry,
    InvalidTransition,
    MissingReason,
    NotFound,
    NumberGenerationFailed,
    WorkflowError,
)
from app.models.ministry import Ministry, ministry_pillars
from app.models.ministry_form import FORM_SECTIONS, FormAuditLog, FormDecision, MinistryForm
from app.models.notification import Notification
from app.services import form_permissions, form_states, notifications
from app.services.audit import list_form_events, record_form_event
from app.services.form_numbers import generate_form_number
from app.services.form_permissions import Actor, FormContext, PermissionResult
from app.services.form_states import (
    ADMIN,
    DECISION_ACTIONS,
    DRAFT,
    MINISTRY_LEADER,
    NOTIFY_CREATOR,
    NOTIFY_PASTORS,
    NOTIFY_PILLARS,
    PASTOR,
    PILLAR,
    REJECT,
    SUBMIT,
    FormSnapshot,
    Transition,
)
from app.services.user_accounts import active_user_ids_with_role, load_active_users, now_utc

logger = logging.getLogger(__name__)

FORM_CREATOR_ROLES = (MINISTRY_LEADER, ADMIN)
PILLAR_PRIVATE_STATUSES = (DRAFT, form_states.PENDING_PILLAR)

_DECIDER_COLUMNS = {
    "pillar_approved_at": "pillar_approved_by",
    "pastor_approved_at": "pastor_approved_by",
    "rejected_at": "rejected_by",
}

_AUDIT_ACTIONS = {
    "submit": "form_submitted",
    "approve": "form_approved",
    "reject": "form_rejected",
    "query": "form_queried",
    "revoke": "decision_revoked",
}

Notifier = Callable[[Session, list], None]


@dataclass
class DecisionPayload:
    reason: Optional[str] = None
    comments: Optional[str] = None
    signature: Optional[str] = None


@dataclass
class DecisionResult:
    status: str
    revoked: bool
    notified_user_ids: list[int] = field(default_factory=list)
    form: Optional[MinistryForm] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def completion_percent(sections: dict[str, Any] | None) -> int:
    sections = sections or {}
    completed = sum(1 for key in FORM_SECTIONS if sections.get(key))
    return round(completed * 100 / len(FORM_SECTIONS))


def is_ready_to_submit(sections: dict[str, Any] | None) -> bool:
    return completion_percent(sections) >= settings.FORM_SUBMIT_COMPLETION_THRESHOLD


def filled_sections(form: MinistryForm) -> dict[str, Any]:
    """Section contents with event and goal rows counted as filled sections."""

    sections = dict(form.sections or {})
    if form.events:
        sections["events"] = [event.id for event in form.events]
    if form.goals:
        sections["goals"] = [goal.id for goal in form.goals]
    return sections


# --- loading ------------------------------------------------------------

def _lock_form(db: Session, form_id: int) -> MinistryForm:
    form = (
        db.query(MinistryForm)
        .filter(MinistryForm.id == form_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not form:
        raise NotFound()
    return form


def _load_form(db: Session, form_id: int) -> MinistryForm:
    form = (
        db.query(MinistryForm)
        .options(
            joinedload(MinistryForm.ministry).selectinload(Ministry.pillars),
            joinedload(MinistryForm.ministry_leader),
        )
        .filter(MinistryForm.id == form_id)
        .first()
    )
    if not form:
        raise NotFound()
    return form


# --- state machine plumbing ---------------------------------------------

def _authorize(form: MinistryForm, action: str, actor: Actor) -> Transition:
    snapshot = FormSnapshot(status=form.status, rejected_stage=form.rejected_stage)
    transition = form_states.resolve(snapshot, action, actor.role)
    permission = form_permissions.can_decide(
        actor, FormContext.from_form(form), action, transition.decided_by_field
    )
    if not permission.allowed:
        raise Forbidden(permission.reason)
    return transition


def _transition_changes(
    transition: Transition, actor: Actor, now: datetime, reason: Optional[str]
) -> dict[str, Any]:
    changes: dict[str, Any] = {column: None for column in transition.clears}
    changes["status"] = transition.target
    changes["updated_at"] = now
    if transition.stamp:
        changes[transition.stamp] = now
        decider_column = _DECIDER_COLUMNS.get(transition.stamp)
        if decider_column:
            changes[decider_column] = actor.id
    if transition.action == REJECT:
        changes["rejection_reason"] = reason
        changes["rejected_stage"] = transition.source
    return changes


def _compare_and_set(db: Session, form: MinistryForm, transition: Transition, changes: dict[str, Any]) -> None:
    updated = (
        db.query(MinistryForm)
        .filter(MinistryForm.id == form.id, MinistryForm.status == transition.source)
        .update(changes, synchronize_session=False)
    )
    if updated != 1:
        raise InvalidTransition("The form changed while your decision was being saved")


def _recipients(db: Session, form: MinistryForm, audience: Optional[str], actor: Actor) -> list[int]:
    if audience == NOTIFY_PASTORS:
        user_ids = active_user_ids_with_role(db, PASTOR)
    elif audience == NOTIFY_CREATOR:
        user_ids = [user.id for user in load_active_users(db, [form.ministry_leader_id])]
    elif audience == NOTIFY_PILLARS:
        user_ids = [user.id for user in form.ministry.pillars if user.is_active]
    else:
        return []
    return [user_id for user_id in user_ids if user_id != actor.id]


def _notify(db: Session, notifier: Notifier, form: MinistryForm, action: str, recipients: list[int], note) -> None:
    notices = notifications.build_form_notices(form, action, recipients, note)
    try:
        notifier(db, notices)
    except Exception:
        # The transition is already committed; delivery is best effort.
        logger.exception("notification_dispatch_failed", extra={"form_id": form.id, "action": action})


# --- operations ---------------------------------------------------------

def create_form(db: Session, ministry_id: int, actor: Actor, *, year: int | None = None) -> MinistryForm:
    if actor.role not in FORM_CREATOR_ROLES:
        raise Forbidden("Only ministry leaders can create forms")

    for attempt in range(1, settings.FORM_NUMBER_MAX_ATTEMPTS + 1):
        try:
            with unit_of_work(db, "create_form"):
                ministry = (
                    db.query(Ministry)
                    .filter(Ministry.id == ministry_id, Ministry.active.is_(True))
                    .first()
                )
                if not ministry:
                    raise InvalidMinistry()
                form_number = generate_form_number(db, year=year)
                form = MinistryForm(
                    form_number=form_number,
                    ministry_id=ministry.id,
                    ministry_leader_id=actor.id,
                    status=DRAFT,
                    sections={},
                )
                db.add(form)
                db.flush()
                record_form_event(
                    db,
                    action="form_created",
                    actor_id=actor.id,
                    form_id=form.id,
                    details=f"Created form {form_number} for {ministry.name}",
                )
        except IntegrityError:
            logger.warning("form_number_collision", extra={"ministry_id": ministry_id, "attempt": attempt})
            continue
        db.refresh(form)
        logger.info(
            "form_created",
            extra={"form_id": form.id, "form_number": form.form_number, "actor_id": actor.id},
        )
        return form

    raise NumberGenerationFailed("Could not allocate a unique form number")


def submit_form(db: Session, form_id: int, actor: Actor, *, now: datetime | None = None) -> MinistryForm:
    """Move a draft into pillar review.

    Section completeness is advisory (see ``is_ready_to_submit``); only the
    status and the submitter are enforced here.
    """

    now = now or now_utc()
    with unit_of_work(db, "submit_form"):
        form = _lock_form(db, form_id)
        transition = _authorize(form, SUBMIT, actor)
        _compare_and_set(db, form, transition, _transition_changes(transition, actor, now, None))
        db.add(
            FormDecision(
                form_id=form.id,
                user_id=actor.id,
                role=actor.role,
                action=SUBMIT,
                from_status=transition.source,
                to_status=transition.target,
            )
        )
        record_form_event(
            db,
            action=_AUDIT_ACTIONS[SUBMIT],
            actor_id=actor.id,
            form_id=form.id,
            details="Form submitted for pillar approval",
        )
    db.refresh(form)
    logger.info("form_submitted", extra={"form_id": form.id, "actor_id": actor.id})
    return form


def decide(
    db: Session,
    form_id: int,
    actor: Actor,
    action: str,
    payload: DecisionPayload | None = None,
    *,
    now: datetime | None = None,
    notifier: Notifier | None = None,
) -> DecisionResult:
    """Approve, reject, query or revoke a form on behalf of ``actor``.

    Nothing is written when any check fails. A decision repeated after the
    form has moved on fails with ``InvalidTransition``.
    """

    if action not in DECISION_ACTIONS:
        raise InvalidTransition(f"Unknown action: {action}")
    payload = payload or DecisionPayload()
    reason = _clean(payload.reason)
    comments = _clean(payload.comments)
    now = now or now_utc()

    with unit_of_work(db, "decide"):
        form = _lock_form(db, form_id)
        transition = _authorize(form, action, actor)
        if transition.requires_reason and not reason:
            raise MissingReason()

        _compare_and_set(db, form, transition, _transition_changes(transition, actor, now, reason))
        db.add(
            FormDecision(
                form_id=form.id,
                user_id=actor.id,
                role=actor.role,
                action=action,
                from_status=transition.source,
                to_status=transition.target,
                reason=reason,
                comments=comments,
                signature=payload.signature,
            )
        )
        record_form_event(
            db,
            action=_AUDIT_ACTIONS[action],
            actor_id=actor.id,
            form_id=form.id,
            details=f"{transition.source} -> {transition.target} by {actor.role}",
        )
        recipients = _recipients(db, form, transition.notify, actor)

    db.refresh(form)
    logger.info(
        "form_decided",
        extra={
            "form_id": form.id,
            "action": action,
            "from_status": transition.source,
            "to_status": transition.target,
            "actor_id": actor.id,
        },
    )
    _notify(db, notifier or notifications.dispatch, form, action, recipients, reason or comments)
    return DecisionResult(
        status=form.status,
        revoked=transition.revoked,
        notified_user_ids=recipients,
        form=form,
    )


def can_edit(db: Session, form_id: int, actor: Actor) -> PermissionResult:
    form = _load_form(db, form_id)
    return form_permissions.can_edit(actor, FormContext.from_form(form))


def available_actions(form: MinistryForm, actor: Actor) -> list[str]:
    actions = []
    for action in (SUBMIT,) + DECISION_ACTIONS:
        try:
            _authorize(form, action, actor)
        except WorkflowError:
            continue
        actions.append(action)
    return actions


def lock_editable_form(db: Session, form_id: int, actor: Actor) -> MinistryForm:
    """Lock the form for writing once ``actor`` is allowed to change its contents."""

    form = _lock_form(db, form_id)
    permission = form_permissions.can_edit(actor, FormContext.from_form(form))
    if not permission.allowed:
        raise Forbidden(permission.reason)
    if actor.role == MINISTRY_LEADER and form.status != DRAFT:
        raise InvalidTransition("Only draft forms can be edited")
    return form


def update_sections(db: Session, form_id: int, actor: Actor, sections: dict[str, Any]) -> MinistryForm:
    with unit_of_work(db, "update_sections"):
        form = lock_editable_form(db, form_id, actor)

        merged = dict(form.sections or {})
        merged.update(sections)
        form.sections = merged
        form.updated_at = now_utc()
        record_form_event(
            db,
            action="form_updated",
            actor_id=actor.id,
            form_id=form.id,
            details=f"Updated {len(sections)} section(s): {', '.join(sorted(sections))}",
        )
    db.refresh(form)
    return form


def delete_form(db: Session, form_id: int, actor: Actor) -> None:
    with unit_of_work(db, "delete_form"):
        form = _lock_form(db, form_id)
        if actor.role != ADMIN and not (actor.role == MINISTRY_LEADER and form.ministry_leader_id == actor.id):
            raise Forbidden("Only the form's creator or an admin can delete it")
        if form.status != DRAFT:
            raise InvalidTransition("Only draft forms can be deleted")

        form_number = form.form_number
        db.query(FormAuditLog).filter(FormAuditLog.form_id == form.id).update(
            {"form_id": None}, synchronize_session=False
        )
        db.query(Notification).filter(Notification.form_id == form.id).delete(synchronize_session=False)
        db.delete(form)
        record_form_event(db, action="form_deleted", actor_id=actor.id, details=f"Deleted form {form_number}")
    logger.info("form_deleted", extra={"form_id": form_id, "actor_id": actor.id})


# --- reads --------------------------------------------------------------

def get_form(db: Session, form_id: int, actor: Actor) -> MinistryForm:
    form = _load_form(db, form_id)
    if actor.role == MINISTRY_LEADER and form.ministry_leader_id != actor.id:
        raise Forbidden("You can only view your own forms")
    # Same rule as list_forms: early stages stay with the assigned pillars.
    if (
        actor.role == PILLAR
        and form.status in PILLAR_PRIVATE_STATUSES
        and actor.id not in form.ministry.assigned_pillar_ids
    ):
        raise Forbidden("You can only view forms from your assigned ministries")
    return form


def list_forms(
    db: Session,
    actor: Actor,
    *,
    status_filter: str | None = None,
    ministry_id: int | None = None,
    page: int = 1,
    page_size: int = 25,
) -> tuple[list[MinistryForm], int]:
    query = db.query(MinistryForm).options(
        joinedload(MinistryForm.ministry),
        joinedload(MinistryForm.ministry_leader),
    )

    if actor.role == MINISTRY_LEADER:
        query = query.filter(MinistryForm.ministry_leader_id == actor.id)
    elif actor.role == PILLAR:
        assigned = select(ministry_pillars.c.ministry_id).where(ministry_pillars.c.user_id == actor.id)
        query = query.filter(
            or_(
                MinistryForm.ministry_id.in_(assigned),
                MinistryForm.status.not_in(PILLAR_PRIVATE_STATUSES),
            )
        )
    elif actor.role not in (ADMIN, PASTOR):
        raise Forbidden("Insufficient permissions")

    if status_filter:
        query = query.filter(MinistryForm.status == status_filter)
    if ministry_id:
        query = query.filter(MinistryForm.ministry_id == ministry_id)

    total = query.count()
    items = (
        query.order_by(MinistryForm.updated_at.desc(), MinistryForm.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def list_decisions(db: Session, form_id: int, actor: Actor) -> list[FormDecision]:
    form = get_form(db, form_id, actor)
    return list(form.decisions)


def list_audit_events(db: Session, form_id: int, actor: Actor) -> list[FormAuditLog]:
    if actor.role not in (ADMIN, PASTOR):
        raise Forbidden("Only pastors and admins can view the audit log")
    form = get_form(db, form_id, actor)
    return list_form_events(db, form.id)
