"""Topic ORM model."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    func,
    text as sa_text,
)
from sqlalchemy.dialects.postgresql import UUID

from studymentor.db.base import Base


class TopicRecord(Base):
    __tablename__ = "topics"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id", "subject_id"],
            ["subjects.user_id", "subjects.id"],
            ondelete="CASCADE",
        ),
        Index("ix_topics_user_id_subject_id", "user_id", "subject_id"),
    )

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    id = Column(Text, primary_key=True)
    subject_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    difficulty = Column(String(16), nullable=False)
    estimated_hours = Column(Float, nullable=False, server_default=sa_text("1"))
    status = Column(String(16), nullable=False, server_default=sa_text("'pending'"))
    is_hard_marked = Column(Boolean, nullable=False, server_default=sa_text("false"))
    exposure_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    # NULL only for rows written before confidence tracking existed.
    confidence_score = Column(Integer, nullable=True)
    # Syllabus order; "first pending topic" means lowest position.
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
