from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy.orm import Session

from app.core.errors import Forbidden, InvalidMinistry, InvalidTransition, MissingReason, NotFound, NumberGenerationFailed
from app.models.ministry_form import FormAuditLog, FormDecision, MinistryForm
from app.models.notification import Notification
from app.services import form_workflow
from app.services.form_permissions import NOT_ASSIGNED, Actor
from app.services.form_workflow import DecisionPayload
from helpers import actor_for


def _reload(session: Session, form: MinistryForm) -> MinistryForm:
    session.expire_all()
    return session.get(MinistryForm, form.id)


def _decisions(session: Session, form: MinistryForm, action: str) -> list[FormDecision]:
    return session.query(FormDecision).filter_by(form_id=form.id, action=action).all()


def _notified(session: Session, user) -> list[Notification]:
    return session.query(Notification).filter_by(user_id=user.id).order_by(Notification.id).all()


# --- create / submit ----------------------------------------------------

def test_create_form_starts_as_draft(db_session, ministry, leader_user):
    form = form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    assert form.status == "draft"
    assert form.form_number == "TVC-2025-0001"
    assert form.ministry_leader_id == leader_user.id

    second = form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    assert second.form_number == "TVC-2025-0002"

    events = db_session.query(FormAuditLog).filter_by(action="form_created").count()
    assert events == 2


def test_create_form_rejects_other_roles(db_session, ministry, pillar_user):
    with pytest.raises(Forbidden):
        form_workflow.create_form(db_session, ministry.id, actor_for(pillar_user), year=2025)


def test_create_form_for_inactive_or_unknown_ministry(db_session, ministry, leader_user):
    ministry.active = False
    db_session.commit()
    with pytest.raises(InvalidMinistry):
        form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    with pytest.raises(InvalidMinistry):
        form_workflow.create_form(db_session, 9999, actor_for(leader_user), year=2025)
    assert db_session.query(MinistryForm).count() == 0


def test_create_form_retries_number_collision(db_session, ministry, leader_user, monkeypatch):
    form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    numbers = iter(["TVC-2025-0001", "TVC-2025-0002"])
    monkeypatch.setattr(form_workflow, "generate_form_number", lambda db, year=None: next(numbers))

    form = form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    assert form.form_number == "TVC-2025-0002"
    assert db_session.query(MinistryForm).count() == 2


def test_interleaved_sessions_get_distinct_numbers(db_session, ministry, leader_user, monkeypatch):
    bind = db_session.get_bind()
    sessions = [Session(bind=bind, autoflush=False, expire_on_commit=False) for _ in range(3)]
    waiting = list(sessions[1:])
    real_generate = form_workflow.generate_form_number
    created = []

    def generate_then_yield(db, year=None):
        number = real_generate(db, year=year)
        # Let the next session allocate and commit before this one inserts.
        if waiting:
            other = waiting.pop(0)
            created.append(form_workflow.create_form(other, ministry.id, actor_for(leader_user), year=2025))
        return number

    monkeypatch.setattr(form_workflow, "generate_form_number", generate_then_yield)
    try:
        created.append(form_workflow.create_form(sessions[0], ministry.id, actor_for(leader_user), year=2025))
    finally:
        for session in sessions:
            session.close()

    numbers = [form.form_number for form in created]
    assert len(set(numbers)) == 3
    assert sorted(numbers) == ["TVC-2025-0001", "TVC-2025-0002", "TVC-2025-0003"]
    db_session.expire_all()
    assert db_session.query(MinistryForm).count() == 3


def test_create_form_gives_up_after_repeated_collisions(db_session, ministry, leader_user, monkeypatch):
    form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    monkeypatch.setattr(form_workflow, "generate_form_number", lambda db, year=None: "TVC-2025-0001")

    with pytest.raises(NumberGenerationFailed):
        form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    assert db_session.query(MinistryForm).count() == 1


def test_submit_moves_draft_to_pillar_review(db_session, draft_form, leader_user):
    form = form_workflow.submit_form(db_session, draft_form.id, actor_for(leader_user))
    assert form.status == "pending_pillar"
    assert form.submitted_at is not None
    assert len(_decisions(db_session, form, "submit")) == 1

    with pytest.raises(InvalidTransition):
        form_workflow.submit_form(db_session, draft_form.id, actor_for(leader_user))


def test_submit_by_another_leader_is_forbidden(db_session, draft_form, other_leader):
    with pytest.raises(Forbidden):
        form_workflow.submit_form(db_session, draft_form.id, actor_for(other_leader))
    assert _reload(db_session, draft_form).status == "draft"


# --- approvals ----------------------------------------------------------

def test_pillar_approval_notifies_pastors(db_session, pending_pillar_form, pillar_user, pastor_user):
    result = form_workflow.decide(
        db_session,
        pending_pillar_form.id,
        actor_for(pillar_user),
        "approve",
        DecisionPayload(comments="Looks good", signature="M.P."),
    )
    assert result.status == "pending_pastor"
    assert result.revoked is False
    assert result.notified_user_ids == [pastor_user.id]

    form = _reload(db_session, pending_pillar_form)
    assert form.pillar_approved_by == pillar_user.id
    assert form.pillar_approved_at is not None
    decision = _decisions(db_session, form, "approve")[0]
    assert decision.comments == "Looks good"
    assert decision.signature == "M.P."
    assert _notified(db_session, pastor_user)[0].type == "form_approve"


def test_pastor_final_approval_notifies_creator(db_session, pending_pastor_form, pastor_user, leader_user):
    result = form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "approve")
    assert result.status == "approved"
    assert result.notified_user_ids == [leader_user.id]
    assert _reload(db_session, pending_pastor_form).pastor_approved_by == pastor_user.id


def test_stale_second_approval_is_invalid_transition(db_session, pending_pillar_form, pillar_user, second_pillar):
    other_session = Session(bind=db_session.get_bind(), autoflush=False, expire_on_commit=False)
    try:
        form_workflow.get_form(other_session, pending_pillar_form.id, actor_for(second_pillar))

        form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "approve")

        with pytest.raises(InvalidTransition):
            form_workflow.decide(other_session, pending_pillar_form.id, actor_for(second_pillar), "approve")
    finally:
        other_session.close()

    form = _reload(db_session, pending_pillar_form)
    assert form.status == "pending_pastor"
    assert form.pillar_approved_by == pillar_user.id
    assert len(_decisions(db_session, form, "approve")) == 1


def test_status_write_is_guarded_against_lost_updates(
    db_session, pending_pillar_form, pillar_user, second_pillar, monkeypatch
):
    other_session = Session(bind=db_session.get_bind(), autoflush=False, expire_on_commit=False)
    try:
        stale = other_session.get(MinistryForm, pending_pillar_form.id)
        assert stale.status == "pending_pillar"

        form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "approve")

        monkeypatch.setattr(form_workflow, "_lock_form", lambda db, form_id: stale)
        with pytest.raises(InvalidTransition):
            form_workflow.decide(other_session, pending_pillar_form.id, actor_for(second_pillar), "approve")
    finally:
        other_session.close()

    form = _reload(db_session, pending_pillar_form)
    assert form.pillar_approved_by == pillar_user.id
    assert len(_decisions(db_session, form, "approve")) == 1


def test_unassigned_ministry_blocks_pillars(db_session, unassigned_ministry, leader_user, pillar_user, admin_user):
    form = form_workflow.create_form(db_session, unassigned_ministry.id, actor_for(leader_user), year=2025)
    form_workflow.submit_form(db_session, form.id, actor_for(leader_user))

    with pytest.raises(Forbidden) as excinfo:
        form_workflow.decide(db_session, form.id, actor_for(pillar_user), "approve")
    assert excinfo.value.message == NOT_ASSIGNED
    assert _reload(db_session, form).status == "pending_pillar"

    result = form_workflow.decide(db_session, form.id, actor_for(admin_user), "approve")
    assert result.status == "pending_pastor"


def test_pillar_outside_ministry_is_forbidden(db_session, pending_pillar_form, outside_pillar):
    with pytest.raises(Forbidden):
        form_workflow.decide(db_session, pending_pillar_form.id, actor_for(outside_pillar), "approve")


def test_leader_cannot_approve(db_session, pending_pillar_form, leader_user):
    with pytest.raises(Forbidden):
        form_workflow.decide(db_session, pending_pillar_form.id, actor_for(leader_user), "approve")
    form = _reload(db_session, pending_pillar_form)
    assert form.status == "pending_pillar"
    assert form.pillar_approved_at is None


def test_unknown_form_and_action(db_session, pillar_user, pending_pillar_form):
    with pytest.raises(NotFound):
        form_workflow.decide(db_session, 9999, actor_for(pillar_user), "approve")
    with pytest.raises(InvalidTransition):
        form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "escalate")


# --- rejection ----------------------------------------------------------

def test_reject_requires_non_blank_reason(db_session, pending_pillar_form, pillar_user):
    with pytest.raises(MissingReason):
        form_workflow.decide(
            db_session, pending_pillar_form.id, actor_for(pillar_user), "reject", DecisionPayload(reason="   ")
        )
    form = _reload(db_session, pending_pillar_form)
    assert form.status == "pending_pillar"
    assert _decisions(db_session, form, "reject") == []


def test_pastor_rejection_notifies_creator(db_session, pending_pastor_form, pastor_user, leader_user):
    result = form_workflow.decide(
        db_session,
        pending_pastor_form.id,
        actor_for(pastor_user),
        "reject",
        DecisionPayload(reason="  Budget exceeds allocation  "),
    )
    assert result.status == "rejected"
    assert result.notified_user_ids == [leader_user.id]

    form = _reload(db_session, pending_pastor_form)
    assert form.rejection_reason == "Budget exceeds allocation"
    assert form.rejected_by == pastor_user.id
    assert form.rejected_stage == "pending_pastor"
    notice = _notified(db_session, leader_user)[-1]
    assert notice.type == "form_reject"
    assert "Budget exceeds allocation" in notice.message


def test_reject_keeps_reason_and_comments(db_session, pending_pillar_form, pillar_user):
    form_workflow.decide(
        db_session,
        pending_pillar_form.id,
        actor_for(pillar_user),
        "reject",
        DecisionPayload(reason="Budget missing", comments="Section 7 is blank", signature="M.P."),
    )

    decision = _decisions(db_session, pending_pillar_form, "reject")[0]
    assert decision.reason == "Budget missing"
    assert decision.comments == "Section 7 is blank"
    assert decision.signature == "M.P."


def test_invalid_transition_leaves_record_unchanged(db_session, pending_pastor_form, pastor_user):
    form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "approve")
    before = _reload(db_session, pending_pastor_form)
    snapshot = (before.status, before.pastor_approved_at, before.pastor_approved_by, before.updated_at)

    with pytest.raises(InvalidTransition):
        form_workflow.decide(
            db_session, pending_pastor_form.id, actor_for(pastor_user), "reject", DecisionPayload(reason="late")
        )

    after = _reload(db_session, pending_pastor_form)
    assert (after.status, after.pastor_approved_at, after.pastor_approved_by, after.updated_at) == snapshot


# --- query / revoke -----------------------------------------------------

def test_query_then_reapproval_restamps_pillar_decision(
    db_session, pending_pillar_form, pillar_user, second_pillar, pastor_user
):
    first = datetime(2025, 3, 1, 9, 0)
    second = datetime(2025, 3, 5, 14, 30)
    form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "approve", now=first)

    result = form_workflow.decide(
        db_session,
        pending_pillar_form.id,
        actor_for(pastor_user),
        "query",
        DecisionPayload(comments="Please clarify section 7"),
    )
    assert result.status == "pending_pillar"
    assert result.revoked is True
    assert sorted(result.notified_user_ids) == sorted([pillar_user.id, second_pillar.id])
    form = _reload(db_session, pending_pillar_form)
    assert form.pillar_approved_at is None
    assert form.pillar_approved_by is None

    form_workflow.decide(db_session, pending_pillar_form.id, actor_for(second_pillar), "approve", now=second)
    form = _reload(db_session, pending_pillar_form)
    assert form.status == "pending_pastor"
    assert form.pillar_approved_at.replace(tzinfo=None) == second
    assert form.pillar_approved_by == second_pillar.id


def test_query_from_approved_clears_all_decisions(db_session, pending_pastor_form, pastor_user):
    form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "approve")
    form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "query")

    form = _reload(db_session, pending_pastor_form)
    assert form.status == "pending_pillar"
    assert form.pastor_approved_at is None
    assert form.pillar_approved_at is None


def test_pillar_revokes_own_approval_only(db_session, pending_pastor_form, pillar_user, second_pillar):
    with pytest.raises(Forbidden):
        form_workflow.decide(db_session, pending_pastor_form.id, actor_for(second_pillar), "revoke")

    result = form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pillar_user), "revoke")
    assert result.status == "pending_pillar"
    assert result.revoked is True
    assert result.notified_user_ids == [second_pillar.id]
    form = _reload(db_session, pending_pastor_form)
    assert form.pillar_approved_at is None
    assert form.pillar_approved_by is None


def test_pastor_revokes_own_final_decision(db_session, pending_pastor_form, pastor_user):
    other_pastor = Actor(id=pastor_user.id + 1000, role="pastor")
    form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "approve")

    with pytest.raises(Forbidden):
        form_workflow.decide(db_session, pending_pastor_form.id, other_pastor, "revoke")

    result = form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "revoke")
    assert result.status == "pending_pastor"
    form = _reload(db_session, pending_pastor_form)
    assert form.pastor_approved_at is None
    assert form.pillar_approved_by is not None


def test_pillar_revokes_own_rejection(db_session, pending_pillar_form, pillar_user):
    form_workflow.decide(
        db_session, pending_pillar_form.id, actor_for(pillar_user), "reject", DecisionPayload(reason="Incomplete")
    )
    result = form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "revoke")
    assert result.status == "pending_pillar"
    form = _reload(db_session, pending_pillar_form)
    assert form.rejected_at is None
    assert form.rejection_reason is None
    assert form.rejected_stage is None


def test_admin_revoke_returns_form_to_pillars(db_session, pending_pastor_form, pastor_user, admin_user, pillar_user):
    form_workflow.decide(db_session, pending_pastor_form.id, actor_for(pastor_user), "approve")
    result = form_workflow.decide(db_session, pending_pastor_form.id, actor_for(admin_user), "revoke")
    assert result.status == "pending_pillar"
    assert pillar_user.id in result.notified_user_ids

    form = _reload(db_session, pending_pastor_form)
    assert form.pillar_approved_at is None
    assert form.pastor_approved_at is None


def test_failed_notification_keeps_transition(db_session, pending_pillar_form, pillar_user, pastor_user):
    def broken_notifier(db, notices):
        raise RuntimeError("mail relay down")

    result = form_workflow.decide(
        db_session, pending_pillar_form.id, actor_for(pillar_user), "approve", notifier=broken_notifier
    )
    assert result.status == "pending_pastor"
    assert _reload(db_session, pending_pillar_form).status == "pending_pastor"
    assert _notified(db_session, pastor_user) == []


def test_available_actions(db_session, pending_pastor_form, pillar_user, second_pillar, pastor_user, leader_user):
    form = form_workflow.get_form(db_session, pending_pastor_form.id, actor_for(pastor_user))
    assert form_workflow.available_actions(form, actor_for(pastor_user)) == ["approve", "reject", "query"]
    assert form_workflow.available_actions(form, actor_for(pillar_user)) == ["revoke"]
    assert form_workflow.available_actions(form, actor_for(second_pillar)) == []
    assert form_workflow.available_actions(form, actor_for(leader_user)) == []


# --- editing ------------------------------------------------------------

def test_update_sections_merges(db_session, draft_form, leader_user):
    form_workflow.update_sections(db_session, draft_form.id, actor_for(leader_user), {"section1": {"name": "Youth"}})
    form = form_workflow.update_sections(
        db_session, draft_form.id, actor_for(leader_user), {"section2": {"mission": "Serve"}}
    )
    assert set(form.sections) == {"section1", "section2"}
    assert form_workflow.completion_percent(form.sections) == 22
    assert not form_workflow.is_ready_to_submit(form.sections)


def test_leader_cannot_edit_submitted_form(db_session, pending_pillar_form, leader_user, pillar_user):
    with pytest.raises(InvalidTransition):
        form_workflow.update_sections(db_session, pending_pillar_form.id, actor_for(leader_user), {"section1": {}})

    form = form_workflow.update_sections(
        db_session, pending_pillar_form.id, actor_for(pillar_user), {"section7": {"total": 1200}}
    )
    assert form.sections["section7"] == {"total": 1200}


def test_can_edit(db_session, draft_form, leader_user, other_leader):
    assert form_workflow.can_edit(db_session, draft_form.id, actor_for(leader_user)).allowed
    result = form_workflow.can_edit(db_session, draft_form.id, actor_for(other_leader))
    assert not result.allowed
    with pytest.raises(NotFound):
        form_workflow.can_edit(db_session, 9999, actor_for(leader_user))


def test_delete_draft_keeps_audit_trail(db_session, draft_form, leader_user):
    form_id = draft_form.id
    form_workflow.delete_form(db_session, form_id, actor_for(leader_user))

    assert db_session.get(MinistryForm, form_id) is None
    actions = {entry.action for entry in db_session.query(FormAuditLog).filter(FormAuditLog.form_id.is_(None))}
    assert {"form_created", "form_deleted"} <= actions


def test_delete_submitted_form_is_refused(db_session, pending_pillar_form, leader_user, other_leader):
    with pytest.raises(Forbidden):
        form_workflow.delete_form(db_session, pending_pillar_form.id, actor_for(other_leader))
    with pytest.raises(InvalidTransition):
        form_workflow.delete_form(db_session, pending_pillar_form.id, actor_for(leader_user))


# --- reads --------------------------------------------------------------

def test_list_forms_scopes_by_role(
    db_session, ministry, unassigned_ministry, leader_user, other_leader, pillar_user, pastor_user
):
    draft = form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)
    elsewhere = form_workflow.create_form(db_session, unassigned_ministry.id, actor_for(leader_user), year=2025)
    form_workflow.submit_form(db_session, elsewhere.id, actor_for(leader_user))

    items, total = form_workflow.list_forms(db_session, actor_for(leader_user))
    assert total == 2
    items, total = form_workflow.list_forms(db_session, actor_for(other_leader))
    assert total == 0

    items, total = form_workflow.list_forms(db_session, actor_for(pillar_user))
    assert [item.id for item in items] == [draft.id]

    items, total = form_workflow.list_forms(db_session, actor_for(pastor_user), status_filter="pending_pillar")
    assert [item.id for item in items] == [elsewhere.id]


def test_get_form_visibility(db_session, draft_form, other_leader, outside_pillar, pastor_user):
    with pytest.raises(Forbidden):
        form_workflow.get_form(db_session, draft_form.id, actor_for(other_leader))
    with pytest.raises(Forbidden):
        form_workflow.get_form(db_session, draft_form.id, actor_for(outside_pillar))
    assert form_workflow.get_form(db_session, draft_form.id, actor_for(pastor_user)).id == draft_form.id


def test_unassigned_pillar_sees_form_only_after_pillar_stage(db_session, pending_pillar_form, pillar_user, outside_pillar):
    with pytest.raises(Forbidden):
        form_workflow.get_form(db_session, pending_pillar_form.id, actor_for(outside_pillar))
    items, total = form_workflow.list_forms(db_session, actor_for(outside_pillar))
    assert total == 0

    form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "approve")

    assert form_workflow.get_form(db_session, pending_pillar_form.id, actor_for(outside_pillar)).id == pending_pillar_form.id
    items, total = form_workflow.list_forms(db_session, actor_for(outside_pillar))
    assert [item.id for item in items] == [pending_pillar_form.id]
