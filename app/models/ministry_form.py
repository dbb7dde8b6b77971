from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base

FORM_STATUSES = ("draft", "pending_pillar", "pending_pastor", "approved", "rejected")
FORM_ACTIONS = ("submit", "approve", "reject", "query", "revoke")

FormStatus = Enum(*FORM_STATUSES, name="ministry_form_status")
FormAction = Enum(*FORM_ACTIONS, name="ministry_form_action")

# Ordered as the sections appear on the paper form.
FORM_SECTIONS = {
    "section1": "Ministry Information",
    "section2": "Mission & Vision",
    "section3": "Programs & Activities",
    "events": "Events",
    "goals": "Goals",
    "section6": "Resources Needed",
    "section7": "Budget Summary",
    "section8": "Challenges & Opportunities",
    "section9": "Additional Information",
}


class MinistryForm(Base):
    __tablename__ = "ministry_forms"

    id = Column(Integer, primary_key=True)
    form_number = Column(String(32), unique=True, nullable=False, index=True)
    ministry_id = Column(Integer, ForeignKey("ministries.id", ondelete="RESTRICT"), nullable=False, index=True)
    ministry_leader_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(FormStatus, nullable=False, default="draft", index=True)
    sections = Column(JSON, nullable=False, default=dict)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    pillar_approved_at = Column(DateTime(timezone=True), nullable=True)
    pillar_approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    pastor_approved_at = Column(DateTime(timezone=True), nullable=True)
    pastor_approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rejected_stage = Column(String(32), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    ministry = relationship("Ministry", back_populates="forms")
    ministry_leader = relationship("User", foreign_keys=[ministry_leader_id])
    decisions = relationship(
        "FormDecision",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormDecision.id",
    )
    events = relationship("FormEvent", back_populates="form", cascade="all, delete-orphan", order_by="FormEvent.id")
    goals = relationship("FormGoal", back_populates="form", cascade="all, delete-orphan", order_by="FormGoal.id")


class FormDecision(Base):
    __tablename__ = "form_decisions"

    id = Column(Integer, primary_key=True)
    form_id = Column(Integer, ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    role = Column(String(32), nullable=False)
    action = Column(FormAction, nullable=False)
    from_status = Column(String(32), nullable=False)
    to_status = Column(String(32), nullable=False)
    reason = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)
    signature = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    form = relationship("MinistryForm", back_populates="decisions")
    actor = relationship("User", foreign_keys=[user_id])


class FormAuditLog(Base):
    __tablename__ = "form_audit_logs"

    id = Column(Integer, primary_key=True)
    form_id = Column(Integer, ForeignKey("ministry_forms.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(64), nullable=False)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
