"""Daily study plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Text, UniqueConstraint, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from studymentor.db.base import Base
from studymentor.db.types import JSONBCompat


class DailyPlanRecord(Base):
    __tablename__ = "daily_plans"
    __table_args__ = (UniqueConstraint("user_id", "plan_date", name="uq_daily_plans_user_id_plan_date"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    plan_date = Column(Date, nullable=False)
    mentor_message = Column(Text, nullable=False)
    reasoning = Column(Text, nullable=False)
    items = Column(JSONBCompat, nullable=False, default=list)
    completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    preview_flag = Column(Boolean, nullable=False, server_default=sa_text("false"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
