from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, validator


class FormEventIn(BaseModel):
    event_date: Optional[date] = None
    event_name: Optional[str] = Field(None, max_length=200)
    event_type_id: Optional[int] = None
    purpose: Optional[str] = None
    description: Optional[str] = None
    estimated_expenses: Decimal = Field(Decimal("0"), ge=0)
    expected_attendance: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None

    @validator("event_name", "purpose", "description", "notes")
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class EventTypeSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class FormEventOut(BaseModel):
    id: int
    form_id: int
    event_date: Optional[date] = None
    event_name: Optional[str] = None
    event_type_id: Optional[int] = None
    event_type: Optional[EventTypeSummary] = None
    purpose: Optional[str] = None
    description: Optional[str] = None
    estimated_expenses: Decimal
    expected_attendance: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FormGoalIn(BaseModel):
    goal_description: str = Field(..., max_length=2000)
    specific: Optional[str] = None
    measurable: Optional[str] = None
    achievable: Optional[str] = None
    relevant: Optional[str] = None
    time_bound: Optional[str] = None
    measure_target: Optional[str] = None
    due_date: Optional[date] = None

    @validator("goal_description")
    def clean_description(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Goal description is required")
        return cleaned


class FormGoalOut(BaseModel):
    id: int
    form_id: int
    goal_description: str
    specific: Optional[str] = None
    measurable: Optional[str] = None
    achievable: Optional[str] = None
    relevant: Optional[str] = None
    time_bound: Optional[str] = None
    measure_target: Optional[str] = None
    due_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True
