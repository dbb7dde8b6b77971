from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, validator

from app.models.ministry_form import FORM_SECTIONS
from app.schemas.form_entry import FormEventOut, FormGoalOut

FormStatusLiteral = Literal["draft", "pending_pillar", "pending_pastor", "approved", "rejected"]
DecisionActionLiteral = Literal["approve", "reject", "query", "revoke"]


class FormCreate(BaseModel):
    ministry_id: int


class FormSectionsUpdate(BaseModel):
    sections: dict[str, Any]

    @validator("sections")
    def known_sections(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError("At least one section is required")
        unknown = sorted(set(value) - set(FORM_SECTIONS))
        if unknown:
            raise ValueError(f"Unknown form section(s): {', '.join(unknown)}")
        return value


class DecisionRequest(BaseModel):
    action: DecisionActionLiteral
    reason: Optional[str] = Field(None, max_length=2000)
    comments: Optional[str] = Field(None, max_length=2000)
    signature: Optional[str] = None


class DecisionOut(BaseModel):
    status: FormStatusLiteral
    revoked: bool
    notified_user_ids: list[int]


class PermissionOut(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class MinistrySummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    full_name: str
    email: str

    class Config:
        from_attributes = True


class FormSummary(BaseModel):
    id: int
    form_number: str
    status: FormStatusLiteral
    ministry: MinistrySummary
    ministry_leader: UserSummary
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FormOut(FormSummary):
    sections: dict[str, Any]
    pillar_approved_at: Optional[datetime] = None
    pillar_approved_by: Optional[int] = None
    pastor_approved_at: Optional[datetime] = None
    pastor_approved_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    events: list[FormEventOut] = []
    goals: list[FormGoalOut] = []
    completion_percent: int = 0
    ready_to_submit: bool = False
    available_actions: list[str] = []


class FormListResponse(BaseModel):
    items: list[FormSummary]
    total: int
    page: int
    page_size: int


class FormDecisionOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    role: str
    action: str
    from_status: str
    to_status: str
    reason: Optional[str] = None
    comments: Optional[str] = None
    signature: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FormAuditEntryOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    details: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
