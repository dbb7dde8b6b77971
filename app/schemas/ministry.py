from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, validator


class PillarSummary(BaseModel):
    id: int
    full_name: str
    email: str

    class Config:
        from_attributes = True


class MinistryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)
    ministry_leader_id: Optional[int] = None
    assigned_pillar_ids: list[int] = []
    active: bool = True

    @validator("name")
    def clean_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Ministry name is required")
        return cleaned

    @validator("assigned_pillar_ids")
    def unique_pillars(cls, value: list[int]) -> list[int]:
        return sorted(set(value))


class MinistryCreate(MinistryBase):
    pass


class MinistryUpdate(MinistryBase):
    pass


class MinistryOut(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    ministry_leader_id: Optional[int] = None
    active: bool
    assigned_pillar_ids: list[int]
    pillars: list[PillarSummary] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
