from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base

ministry_pillars = Table(
    "ministry_pillars",
    Base.metadata,
    Column("ministry_id", ForeignKey("ministries.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("ministry_id", "user_id", name="uq_ministry_pillar"),
)


class Ministry(Base):
    __tablename__ = "ministries"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), unique=True, nullable=False)
    slug = Column(String(140), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    ministry_leader_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    ministry_leader = relationship("User", foreign_keys=[ministry_leader_id])
    pillars = relationship("User", secondary=ministry_pillars, order_by="User.id")
    forms = relationship("MinistryForm", back_populates="ministry")

    @property
    def assigned_pillar_ids(self) -> list[int]:
        return [pillar.id for pillar in self.pillars]
