from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_actor
from app.core.db import get_db
from app.schemas.form_entry import FormEventIn, FormEventOut, FormGoalIn, FormGoalOut
from app.services import form_entries
from app.services.form_permissions import Actor

router = APIRouter(prefix="/forms", tags=["forms"])


@router.get("/{form_id:int}/events", response_model=list[FormEventOut], status_code=status.HTTP_200_OK)
def list_events(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[FormEventOut]:
    return [FormEventOut.from_orm(item) for item in form_entries.list_events(db, form_id, actor)]


@router.post("/{form_id:int}/events", response_model=FormEventOut, status_code=status.HTTP_201_CREATED)
def add_event(
    form_id: int,
    payload: FormEventIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormEventOut:
    return FormEventOut.from_orm(form_entries.add_event(db, form_id, actor, payload))


@router.put("/{form_id:int}/events/{event_id:int}", response_model=FormEventOut, status_code=status.HTTP_200_OK)
def update_event(
    form_id: int,
    event_id: int,
    payload: FormEventIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormEventOut:
    return FormEventOut.from_orm(form_entries.update_event(db, form_id, event_id, actor, payload))


@router.delete("/{form_id:int}/events/{event_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    form_id: int,
    event_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> Response:
    form_entries.delete_event(db, form_id, event_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{form_id:int}/goals", response_model=list[FormGoalOut], status_code=status.HTTP_200_OK)
def list_goals(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[FormGoalOut]:
    return [FormGoalOut.from_orm(item) for item in form_entries.list_goals(db, form_id, actor)]


@router.post("/{form_id:int}/goals", response_model=FormGoalOut, status_code=status.HTTP_201_CREATED)
def add_goal(
    form_id: int,
    payload: FormGoalIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormGoalOut:
    return FormGoalOut.from_orm(form_entries.add_goal(db, form_id, actor, payload))


@router.put("/{form_id:int}/goals/{goal_id:int}", response_model=FormGoalOut, status_code=status.HTTP_200_OK)
def update_goal(
    form_id: int,
    goal_id: int,
    payload: FormGoalIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormGoalOut:
    return FormGoalOut.from_orm(form_entries.update_goal(db, form_id, goal_id, actor, payload))


@router.delete("/{form_id:int}/goals/{goal_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(
    form_id: int,
    goal_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> Response:
    form_entries.delete_goal(db, form_id, goal_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
