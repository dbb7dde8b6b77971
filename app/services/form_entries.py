"""Events and goals attached to a ministry form.

Writes follow the same edit rules as the form's sections and leave an audit
row on the form.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.db import unit_of_work
from app.core.errors import InvalidEventType, NotFound
from app.models.event_type import EventType
from app.models.form_entry import FormEvent, FormGoal
from app.models.ministry_form import MinistryForm
from app.schemas.form_entry import FormEventIn, FormGoalIn
from app.services import form_workflow
from app.services.audit import record_form_event
from app.services.form_permissions import Actor
from app.services.user_accounts import now_utc

logger = logging.getLogger(__name__)


def _check_event_type(db: Session, event_type_id: Optional[int], current_id: Optional[int] = None) -> None:
    if event_type_id is None:
        return
    event_type = db.get(EventType, event_type_id)
    if not event_type:
        raise InvalidEventType()
    # Events already filed under a retired type may keep it.
    if not event_type.active and event_type_id != current_id:
        raise InvalidEventType("Event type is no longer active")


def _event_in_form(db: Session, form: MinistryForm, event_id: int) -> FormEvent:
    event = db.query(FormEvent).filter(FormEvent.id == event_id, FormEvent.form_id == form.id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def _goal_in_form(db: Session, form: MinistryForm, goal_id: int) -> FormGoal:
    goal = db.query(FormGoal).filter(FormGoal.id == goal_id, FormGoal.form_id == form.id).first()
    if not goal:
        raise NotFound("Goal not found")
    return goal


def _touch(form: MinistryForm) -> None:
    form.updated_at = now_utc()


def _excerpt(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


# --- events -------------------------------------------------------------

def list_events(db: Session, form_id: int, actor: Actor) -> list[FormEvent]:
    form = form_workflow.get_form(db, form_id, actor)
    return (
        db.query(FormEvent)
        .filter(FormEvent.form_id == form.id)
        .order_by(FormEvent.event_date.asc(), FormEvent.id.asc())
        .all()
    )


def add_event(db: Session, form_id: int, actor: Actor, payload: FormEventIn) -> FormEvent:
    with unit_of_work(db, "add_event"):
        form = form_workflow.lock_editable_form(db, form_id, actor)
        _check_event_type(db, payload.event_type_id)
        event = FormEvent(**payload.dict())
        form.events.append(event)
        _touch(form)
        record_form_event(
            db,
            action="event_created",
            actor_id=actor.id,
            form_id=form.id,
            details=f"Created event: {event.event_name or 'Untitled'}",
        )
    db.refresh(event)
    logger.info("form_event_created", extra={"form_id": form_id, "event_id": event.id, "actor_id": actor.id})
    return event


def update_event(db: Session, form_id: int, event_id: int, actor: Actor, payload: FormEventIn) -> FormEvent:
    with unit_of_work(db, "update_event"):
        form = form_workflow.lock_editable_form(db, form_id, actor)
        event = _event_in_form(db, form, event_id)
        _check_event_type(db, payload.event_type_id, current_id=event.event_type_id)
        for field, value in payload.dict().items():
            setattr(event, field, value)
        _touch(form)
        record_form_event(
            db,
            action="event_updated",
            actor_id=actor.id,
            form_id=form.id,
            details=f"Updated event: {event.event_name or 'Untitled'}",
        )
    db.refresh(event)
    logger.info("form_event_updated", extra={"form_id": form_id, "event_id": event.id, "actor_id": actor.id})
    return event


def delete_event(db: Session, form_id: int, event_id: int, actor: Actor) -> None:
    with unit_of_work(db, "delete_event"):
        form = form_workflow.lock_editable_form(db, form_id, actor)
        event = _event_in_form(db, form, event_id)
        name = event.event_name or "Untitled"
        form.events.remove(event)
        _touch(form)
        record_form_event(db, action="event_deleted", actor_id=actor.id, form_id=form.id, details=f"Deleted event: {name}")
    logger.info("form_event_deleted", extra={"form_id": form_id, "event_id": event_id, "actor_id": actor.id})


# --- goals --------------------------------------------------------------

def list_goals(db: Session, form_id: int, actor: Actor) -> list[FormGoal]:
    form = form_workflow.get_form(db, form_id, actor)
    return db.query(FormGoal).filter(FormGoal.form_id == form.id).order_by(FormGoal.id.asc()).all()


def add_goal(db: Session, form_id: int, actor: Actor, payload: FormGoalIn) -> FormGoal:
    with unit_of_work(db, "add_goal"):
        form = form_workflow.lock_editable_form(db, form_id, actor)
        goal = FormGoal(**payload.dict())
        form.goals.append(goal)
        _touch(form)
        record_form_event(
            db,
            action="goal_created",
            actor_id=actor.id,
            form_id=form.id,
            details=f"Created goal: {_excerpt(goal.goal_description)}",
        )
    db.refresh(goal)
    logger.info("form_goal_created", extra={"form_id": form_id, "goal_id": goal.id, "actor_id": actor.id})
    return goal


def update_goal(db: Session, form_id: int, goal_id: int, actor: Actor, payload: FormGoalIn) -> FormGoal:
    with unit_of_work(db, "update_goal"):
        form = form_workflow.lock_editable_form(db, form_id, actor)
        goal = _goal_in_form(db, form, goal_id)
        for field, value in payload.dict().items():
            setattr(goal, field, value)
        _touch(form)
        record_form_event(
            db,
            action="goal_updated",
            actor_id=actor.id,
            form_id=form.id,
            details=f"Updated goal: {_excerpt(goal.goal_description)}",
        )
    db.refresh(goal)
    logger.info("form_goal_updated", extra={"form_id": form_id, "goal_id": goal.id, "actor_id": actor.id})
    return goal


def delete_goal(db: Session, form_id: int, goal_id: int, actor: Actor) -> None:
    with unit_of_work(db, "delete_goal"):
        form = form_workflow.lock_editable_form(db, form_id, actor)
        goal = _goal_in_form(db, form, goal_id)
        form.goals.remove(goal)
        _touch(form)
        record_form_event(db, action="goal_deleted", actor_id=actor.id, form_id=form.id, details="Deleted goal")
    logger.info("form_goal_deleted", extra={"form_id": form_id, "goal_id": goal_id, "actor_id": actor.id})
