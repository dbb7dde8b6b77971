from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_actor
from app.core.db import get_db
from app.models.ministry_form import MinistryForm
from app.schemas.form import (
    DecisionOut,
    DecisionRequest,
    FormAuditEntryOut,
    FormCreate,
    FormDecisionOut,
    FormListResponse,
    FormOut,
    FormSectionsUpdate,
    FormStatusLiteral,
    FormSummary,
    PermissionOut,
)
from app.services import form_workflow
from app.services.form_permissions import Actor

router = APIRouter(prefix="/forms", tags=["forms"])


def _serialize(form: MinistryForm, actor: Actor) -> FormOut:
    out = FormOut.from_orm(form)
    filled = form_workflow.filled_sections(form)
    out.completion_percent = form_workflow.completion_percent(filled)
    out.ready_to_submit = form_workflow.is_ready_to_submit(filled)
    out.available_actions = form_workflow.available_actions(form, actor)
    return out


@router.get("", response_model=FormListResponse, status_code=status.HTTP_200_OK)
def list_forms(
    *,
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    status_filter: FormStatusLiteral | None = Query(None, alias="status"),
    ministry_id: int | None = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormListResponse:
    items, total = form_workflow.list_forms(
        db,
        actor,
        status_filter=status_filter,
        ministry_id=ministry_id,
        page=page,
        page_size=page_size,
    )
    return FormListResponse(
        items=[FormSummary.from_orm(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=FormOut, status_code=status.HTTP_201_CREATED)
def create_form(
    payload: FormCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormOut:
    form = form_workflow.create_form(db, payload.ministry_id, actor)
    return _serialize(form_workflow.get_form(db, form.id, actor), actor)


@router.get("/{form_id:int}", response_model=FormOut, status_code=status.HTTP_200_OK)
def get_form(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormOut:
    return _serialize(form_workflow.get_form(db, form_id, actor), actor)


@router.put("/{form_id:int}", response_model=FormOut, status_code=status.HTTP_200_OK)
def update_form(
    form_id: int,
    payload: FormSectionsUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormOut:
    form = form_workflow.update_sections(db, form_id, actor, payload.sections)
    return _serialize(form, actor)


@router.delete("/{form_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> Response:
    form_workflow.delete_form(db, form_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{form_id:int}/submit", response_model=FormOut, status_code=status.HTTP_200_OK)
def submit_form(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> FormOut:
    form = form_workflow.submit_form(db, form_id, actor)
    return _serialize(form, actor)


@router.post("/{form_id:int}/decisions", response_model=DecisionOut, status_code=status.HTTP_200_OK)
def decide(
    form_id: int,
    payload: DecisionRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> DecisionOut:
    result = form_workflow.decide(
        db,
        form_id,
        actor,
        payload.action,
        form_workflow.DecisionPayload(
            reason=payload.reason,
            comments=payload.comments,
            signature=payload.signature,
        ),
    )
    return DecisionOut(
        status=result.status,
        revoked=result.revoked,
        notified_user_ids=result.notified_user_ids,
    )


@router.get("/{form_id:int}/decisions", response_model=list[FormDecisionOut], status_code=status.HTTP_200_OK)
def list_decisions(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[FormDecisionOut]:
    return [FormDecisionOut.from_orm(item) for item in form_workflow.list_decisions(db, form_id, actor)]


@router.get("/{form_id:int}/can-edit", response_model=PermissionOut, status_code=status.HTTP_200_OK)
def can_edit(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> PermissionOut:
    result = form_workflow.can_edit(db, form_id, actor)
    return PermissionOut(allowed=result.allowed, reason=result.reason)


@router.get("/{form_id:int}/audit-log", response_model=list[FormAuditEntryOut], status_code=status.HTTP_200_OK)
def list_audit_events(
    form_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[FormAuditEntryOut]:
    return [FormAuditEntryOut.from_orm(item) for item in form_workflow.list_audit_events(db, form_id, actor)]
