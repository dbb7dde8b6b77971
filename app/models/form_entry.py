from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base


class FormEvent(Base):
    __tablename__ = "form_events"

    id = Column(Integer, primary_key=True)
    form_id = Column(Integer, ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type_id = Column(Integer, ForeignKey("event_types.id", ondelete="RESTRICT"), nullable=True, index=True)
    event_date = Column(Date, nullable=True)
    event_name = Column(String(200), nullable=True)
    purpose = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    estimated_expenses = Column(Numeric(12, 2), nullable=False, default=0)
    expected_attendance = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    form = relationship("MinistryForm", back_populates="events")
    event_type = relationship("EventType")


class FormGoal(Base):
    __tablename__ = "form_goals"

    id = Column(Integer, primary_key=True)
    form_id = Column(Integer, ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_description = Column(Text, nullable=False)
    specific = Column(Text, nullable=True)
    measurable = Column(Text, nullable=True)
    achievable = Column(Text, nullable=True)
    relevant = Column(Text, nullable=True)
    time_bound = Column(Text, nullable=True)
    measure_target = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    form = relationship("MinistryForm", back_populates="goals")
