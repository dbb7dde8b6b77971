from __future__ import annotations

from app.services.form_permissions import NOT_ASSIGNED, Actor, FormContext, can_decide, can_edit

LEADER = Actor(id=1, role="ministry_leader")
OTHER_LEADER = Actor(id=2, role="ministry_leader")
PILLAR = Actor(id=3, role="pillar")
OTHER_PILLAR = Actor(id=4, role="pillar")
PASTOR = Actor(id=5, role="pastor")
OTHER_PASTOR = Actor(id=6, role="pastor")
ADMIN = Actor(id=7, role="admin")


def _form(status="pending_pillar", pillars=(3,), **decided_by) -> FormContext:
    return FormContext(
        status=status,
        ministry_leader_id=LEADER.id,
        assigned_pillar_ids=frozenset(pillars),
        decided_by=decided_by,
    )


def test_leader_edits_only_own_forms():
    assert can_edit(LEADER, _form("draft")).allowed
    result = can_edit(OTHER_LEADER, _form("draft"))
    assert not result.allowed
    assert "ministries you lead" in result.reason


def test_pillar_edit_needs_assignment():
    assert can_edit(PILLAR, _form()).allowed
    assert not can_edit(OTHER_PILLAR, _form()).allowed
    result = can_edit(PILLAR, _form(pillars=()))
    assert not result.allowed
    assert "No pillars are assigned" in result.reason


def test_pastor_and_admin_edit_anything():
    for actor in (PASTOR, ADMIN):
        assert can_edit(actor, _form("approved", pillars=())).allowed


def test_unknown_role_cannot_edit():
    assert not can_edit(Actor(id=9, role="guest"), _form()).allowed


def test_assigned_pillar_may_approve():
    assert can_decide(PILLAR, _form(), "approve").allowed


def test_unassigned_pillar_is_denied():
    result = can_decide(OTHER_PILLAR, _form(), "approve")
    assert not result.allowed
    assert result.reason == NOT_ASSIGNED


def test_empty_assignment_blocks_every_pillar():
    result = can_decide(PILLAR, _form(pillars=()), "reject")
    assert not result.allowed
    assert result.reason == NOT_ASSIGNED


def test_status_gate_for_pastor():
    result = can_decide(PASTOR, _form("pending_pillar"), "approve")
    assert not result.allowed
    assert result.reason == "Form is not pending pastor approval"
    assert can_decide(PASTOR, _form("pending_pastor"), "approve").allowed


def test_pillar_revoke_limited_to_own_decision():
    form = _form("pending_pastor", pillars=(3, 4), pillar_approved_by=3)
    assert can_decide(PILLAR, form, "revoke", "pillar_approved_by").allowed
    result = can_decide(OTHER_PILLAR, form, "revoke", "pillar_approved_by")
    assert not result.allowed
    assert "made this decision" in result.reason


def test_pillar_revoke_without_recorded_decider_falls_back_to_assignment():
    form = _form("pending_pastor", pillars=(3,), pillar_approved_by=None)
    assert can_decide(PILLAR, form, "revoke", "pillar_approved_by").allowed
    assert not can_decide(OTHER_PILLAR, form, "revoke", "pillar_approved_by").allowed


def test_pastor_revoke_limited_to_own_decision():
    form = _form("approved", pastor_approved_by=PASTOR.id)
    assert can_decide(PASTOR, form, "revoke", "pastor_approved_by").allowed
    assert not can_decide(OTHER_PASTOR, form, "revoke", "pastor_approved_by").allowed


def test_submit_needs_ownership():
    assert can_decide(LEADER, _form("draft"), "submit").allowed
    assert not can_decide(OTHER_LEADER, _form("draft"), "submit").allowed


def test_admin_always_allowed():
    assert can_decide(ADMIN, _form("pending_pillar", pillars=()), "approve").allowed
    assert can_decide(ADMIN, _form("approved"), "revoke", "pastor_approved_by").allowed


def test_missing_rule_is_denied():
    assert not can_decide(LEADER, _form(), "approve").allowed
