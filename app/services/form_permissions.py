"""Who may edit or decide on a ministry form.

Every check is a pure function of the actor and a ``FormContext`` snapshot and
returns a ``PermissionResult``; nothing here mutates state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from app.services.form_states import (
    ADMIN,
    APPROVE,
    APPROVED,
    DRAFT,
    MINISTRY_LEADER,
    PASTOR,
    PENDING_PASTOR,
    PENDING_PILLAR,
    PILLAR,
    QUERY,
    REJECT,
    REJECTED,
    REVOKE,
    SUBMIT,
)

NOT_ASSIGNED = "You are not assigned to this ministry"


@dataclass(frozen=True)
class Actor:
    id: int
    role: str


@dataclass(frozen=True)
class PermissionResult:
    allowed: bool
    reason: Optional[str] = None


ALLOWED = PermissionResult(True)


def deny(reason: str) -> PermissionResult:
    return PermissionResult(False, reason)


@dataclass(frozen=True)
class FormContext:
    status: str
    ministry_leader_id: int
    assigned_pillar_ids: frozenset = frozenset()
    decided_by: dict = field(default_factory=dict)

    @classmethod
    def from_form(cls, form) -> "FormContext":
        return cls(
            status=form.status,
            ministry_leader_id=form.ministry_leader_id,
            assigned_pillar_ids=frozenset(form.ministry.assigned_pillar_ids if form.ministry else ()),
            decided_by={
                "pillar_approved_by": form.pillar_approved_by,
                "pastor_approved_by": form.pastor_approved_by,
                "rejected_by": form.rejected_by,
            },
        )


def _owns_form(actor: Actor, form: FormContext) -> Optional[str]:
    if form.ministry_leader_id != actor.id:
        return "You can only edit forms from ministries you lead"
    return None


def _assigned(actor: Actor, form: FormContext) -> Optional[str]:
    if not form.assigned_pillar_ids or actor.id not in form.assigned_pillar_ids:
        return NOT_ASSIGNED
    return None


# --- edit ---------------------------------------------------------------

def _edit_as_pillar(actor: Actor, form: FormContext) -> PermissionResult:
    if not form.assigned_pillar_ids:
        return deny("No pillars are assigned to this ministry, so you cannot edit this form")
    if actor.id not in form.assigned_pillar_ids:
        return deny("You can only edit forms from ministries you are assigned to")
    return ALLOWED


def _edit_as_leader(actor: Actor, form: FormContext) -> PermissionResult:
    reason = _owns_form(actor, form)
    return deny(reason) if reason else ALLOWED


EDIT_RULES: dict[str, Callable[[Actor, FormContext], PermissionResult]] = {
    ADMIN: lambda actor, form: ALLOWED,
    PASTOR: lambda actor, form: ALLOWED,
    MINISTRY_LEADER: _edit_as_leader,
    PILLAR: _edit_as_pillar,
}


def can_edit(actor: Actor, form: FormContext) -> PermissionResult:
    rule = EDIT_RULES.get(actor.role)
    if rule is None:
        return deny("You do not have permission to edit forms")
    return rule(actor, form)


# --- decisions ----------------------------------------------------------

@dataclass(frozen=True)
class DecisionRule:
    statuses: frozenset
    status_reason: str
    requires_assignment: bool = False
    requires_ownership: bool = False
    requires_decider: bool = False


_PILLAR_PENDING = "Form is not pending pillar approval"
_PASTOR_PENDING = "Form is not pending pastor approval"

DECISION_RULES: dict[tuple[str, str], DecisionRule] = {
    (MINISTRY_LEADER, SUBMIT): DecisionRule(
        frozenset({DRAFT}), "Only draft forms can be submitted", requires_ownership=True
    ),
    (PILLAR, APPROVE): DecisionRule(frozenset({PENDING_PILLAR}), _PILLAR_PENDING, requires_assignment=True),
    (PILLAR, REJECT): DecisionRule(frozenset({PENDING_PILLAR}), _PILLAR_PENDING, requires_assignment=True),
    (PILLAR, REVOKE): DecisionRule(
        frozenset({PENDING_PASTOR, REJECTED}),
        "There is no pillar decision to revoke",
        requires_assignment=True,
        requires_decider=True,
    ),
    (PASTOR, APPROVE): DecisionRule(frozenset({PENDING_PASTOR}), _PASTOR_PENDING),
    (PASTOR, REJECT): DecisionRule(frozenset({PENDING_PASTOR}), _PASTOR_PENDING),
    (PASTOR, QUERY): DecisionRule(
        frozenset({PENDING_PASTOR, APPROVED, REJECTED}), "Only forms under pastor review can be queried"
    ),
    (PASTOR, REVOKE): DecisionRule(
        frozenset({APPROVED, REJECTED}), "There is no pastor decision to revoke", requires_decider=True
    ),
}


def can_decide(
    actor: Actor,
    form: FormContext,
    action: str,
    decided_by_field: Optional[str] = None,
) -> PermissionResult:
    """Check ``actor`` may take ``action`` on ``form`` in its current status.

    ``decided_by_field`` names the column holding the user who made the
    decision being revoked. When that column is empty (rows written before
    deciders were recorded) any member of the role may revoke.
    """

    if actor.role == ADMIN:
        return ALLOWED

    rule = DECISION_RULES.get((actor.role, action))
    if rule is None:
        return deny(f"You do not have permission to {action} forms")
    if form.status not in rule.statuses:
        return deny(rule.status_reason)
    if rule.requires_ownership and form.ministry_leader_id != actor.id:
        return deny("You can only submit forms you created")

    decider = form.decided_by.get(decided_by_field) if decided_by_field else None
    if rule.requires_decider and decider is not None:
        if decider != actor.id:
            return deny("Only the reviewer who made this decision can revoke it")
        return ALLOWED

    if rule.requires_assignment:
        reason = _assigned(actor, form)
        if reason:
            return deny(reason)
    return ALLOWED
