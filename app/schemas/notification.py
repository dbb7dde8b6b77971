from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationOut(BaseModel):
    id: int
    form_id: Optional[int] = None
    form_number: Optional[str] = None
    form_status: Optional[str] = None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None


class UnreadCountOut(BaseModel):
    count: int


class MarkAllReadOut(BaseModel):
    count: int
