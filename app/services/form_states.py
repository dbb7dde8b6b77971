"""Transition table for the ministry form approval workflow.

The table is the single source of truth for which role may move a form from
one status to another. Resolution is pure: it looks at a snapshot of the form
and never touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.core.errors import Forbidden, InvalidTransition

DRAFT = "draft"
PENDING_PILLAR = "pending_pillar"
PENDING_PASTOR = "pending_pastor"
APPROVED = "approved"
REJECTED = "rejected"

SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
QUERY = "query"
REVOKE = "revoke"

DECISION_ACTIONS = (APPROVE, REJECT, QUERY, REVOKE)

MINISTRY_LEADER = "ministry_leader"
PILLAR = "pillar"
PASTOR = "pastor"
ADMIN = "admin"

PILLAR_DECISION = ("pillar_approved_at", "pillar_approved_by")
PASTOR_DECISION = ("pastor_approved_at", "pastor_approved_by")
REJECTION = ("rejected_at", "rejected_by", "rejected_stage", "rejection_reason")
ALL_DECISIONS = PILLAR_DECISION + PASTOR_DECISION + REJECTION

# Notification audiences.
NOTIFY_PASTORS = "pastors"
NOTIFY_CREATOR = "creator"
NOTIFY_PILLARS = "pillars"

_ROLE_DENIED = {
    SUBMIT: "Only ministry leaders can submit forms",
    APPROVE: "You do not have permission to approve forms",
    REJECT: "You do not have permission to reject forms",
    QUERY: "Only a pastor can query a form",
    REVOKE: "You do not have permission to revoke decisions",
}


@dataclass(frozen=True)
class FormSnapshot:
    status: str
    rejected_stage: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    source: str
    action: str
    roles: frozenset
    target: str
    stamp: Optional[str] = None
    clears: tuple = ()
    notify: Optional[str] = None
    revoked: bool = False
    requires_reason: bool = False
    decided_by_field: Optional[str] = None
    rejected_stage: Optional[str] = None

    def applies_to(self, snapshot: FormSnapshot) -> bool:
        if self.source != snapshot.status:
            return False
        return self.rejected_stage is None or self.rejected_stage == snapshot.rejected_stage


def _t(source, action, roles, target, **kwargs) -> Transition:
    return Transition(source=source, action=action, roles=frozenset(roles), target=target, **kwargs)


TRANSITIONS: tuple[Transition, ...] = (
    _t(DRAFT, SUBMIT, {MINISTRY_LEADER, ADMIN}, PENDING_PILLAR, stamp="submitted_at"),
    _t(
        PENDING_PILLAR, APPROVE, {PILLAR, ADMIN}, PENDING_PASTOR,
        stamp="pillar_approved_at", notify=NOTIFY_PASTORS,
    ),
    _t(
        PENDING_PILLAR, REJECT, {PILLAR, ADMIN}, REJECTED,
        stamp="rejected_at", notify=NOTIFY_CREATOR, requires_reason=True,
    ),
    _t(
        PENDING_PASTOR, APPROVE, {PASTOR, ADMIN}, APPROVED,
        stamp="pastor_approved_at", notify=NOTIFY_CREATOR,
    ),
    _t(
        PENDING_PASTOR, REJECT, {PASTOR, ADMIN}, REJECTED,
        stamp="rejected_at", notify=NOTIFY_CREATOR, requires_reason=True,
    ),
    _t(
        PENDING_PASTOR, QUERY, {PASTOR}, PENDING_PILLAR,
        clears=PILLAR_DECISION, notify=NOTIFY_PILLARS, revoked=True,
    ),
    _t(
        APPROVED, QUERY, {PASTOR}, PENDING_PILLAR,
        clears=ALL_DECISIONS, notify=NOTIFY_PILLARS, revoked=True,
    ),
    _t(
        REJECTED, QUERY, {PASTOR}, PENDING_PILLAR,
        clears=ALL_DECISIONS, notify=NOTIFY_PILLARS, revoked=True,
    ),
    _t(
        PENDING_PASTOR, REVOKE, {PILLAR}, PENDING_PILLAR,
        clears=PILLAR_DECISION, notify=NOTIFY_PILLARS, revoked=True,
        decided_by_field="pillar_approved_by",
    ),
    _t(
        APPROVED, REVOKE, {PASTOR}, PENDING_PASTOR,
        clears=PASTOR_DECISION, revoked=True, decided_by_field="pastor_approved_by",
    ),
    _t(
        REJECTED, REVOKE, {PASTOR}, PENDING_PASTOR,
        clears=REJECTION, revoked=True, decided_by_field="rejected_by",
        rejected_stage=PENDING_PASTOR,
    ),
    _t(
        REJECTED, REVOKE, {PILLAR}, PENDING_PILLAR,
        clears=REJECTION, notify=NOTIFY_PILLARS, revoked=True, decided_by_field="rejected_by",
        rejected_stage=PENDING_PILLAR,
    ),
    _t(
        PENDING_PASTOR, REVOKE, {ADMIN}, PENDING_PILLAR,
        clears=ALL_DECISIONS, notify=NOTIFY_PILLARS, revoked=True,
    ),
    _t(
        APPROVED, REVOKE, {ADMIN}, PENDING_PILLAR,
        clears=ALL_DECISIONS, notify=NOTIFY_PILLARS, revoked=True,
    ),
    _t(
        REJECTED, REVOKE, {ADMIN}, PENDING_PILLAR,
        clears=ALL_DECISIONS, notify=NOTIFY_PILLARS, revoked=True,
    ),
)


def role_can_ever(role: str, action: str) -> bool:
    return any(role in transition.roles for transition in TRANSITIONS if transition.action == action)


def resolve(snapshot: FormSnapshot, action: str, role: str) -> Transition:
    """Return the transition ``role`` may take with ``action`` from ``snapshot``.

    Raises ``InvalidTransition`` when the action is not available from the
    current status (for anyone, or for this role while the role could act on
    the form at another stage). Raises ``Forbidden`` when the role can never
    take the action.
    """

    candidates = [t for t in TRANSITIONS if t.action == action and t.applies_to(snapshot)]
    if not candidates:
        raise InvalidTransition(f"Cannot {action} a form that is {snapshot.status.replace('_', ' ')}")

    for transition in candidates:
        if role in transition.roles:
            return transition

    if role_can_ever(role, action):
        raise InvalidTransition("This form is not pending your decision")
    raise Forbidden(_ROLE_DENIED.get(action))


def is_available(snapshot: FormSnapshot, action: str, role: str) -> bool:
    try:
        resolve(snapshot, action, role)
    except (Forbidden, InvalidTransition):
        return False
    return True
