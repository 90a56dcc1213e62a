"""Study profile ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from studymentor.db.base import Base


class ProfileRecord(Base):
    __tablename__ = "profiles"

    # One profile per user; the user id is the primary key.
    id = Column(UUID(as_uuid=True), primary_key=True)
    email = Column(Text, nullable=True)
    exam_date = Column(Date, nullable=True)
    daily_available_hours = Column(Float, nullable=False, server_default=sa_text("4"))
    preferred_study_time = Column(Text, nullable=False, server_default=sa_text("'morning'"))
    onboarding_completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
