from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ReportActivityItem(BaseModel):
    id: int
    action: str
    actor: str | None
    detail: str | None
    occurred_at: datetime
    form_id: int | None = None


class StalledFormItem(BaseModel):
    form_id: int
    form_number: str
    status: str
    ministry_id: int
    ministry_name: str
    waiting_since: datetime | None
    days_waiting: int
    no_assigned_pillars: bool = False


class FormStatsOut(BaseModel):
    total_forms: int
    pending_forms: int
    by_status: dict[str, int]
    approved_budget_total: float
    total_ministries: int
    active_ministries: int
    total_users: int
    active_users: int
