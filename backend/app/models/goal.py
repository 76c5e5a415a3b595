from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from app.core.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime that always loads as UTC-aware; SQLite hands back naive values."""

    impl = DateTime
    cache_ok = True

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, index=True, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(16), nullable=False, default="MEDIUM")
    status = Column(String(16), nullable=False, default="ACTIVE")
    due_date = Column(Date, nullable=True, index=True)
    created_at = Column(UTCDateTime(timezone=True), default=utcnow)
    updated_at = Column(UTCDateTime(timezone=True), default=utcnow, onupdate=utcnow)

    subtasks = relationship(
        "Subtask",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="Subtask.position",
    )


class Subtask(Base):
    __tablename__ = "subtasks"

    id = Column(String, primary_key=True, default=new_id)
    goal_id = Column(String, ForeignKey("goals.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    estimated_hours = Column(Float, nullable=True)
    category = Column(String, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    dependencies = Column(JSON, nullable=False, default=list)
    created_at = Column(UTCDateTime(timezone=True), default=utcnow)
    updated_at = Column(UTCDateTime(timezone=True), default=utcnow, onupdate=utcnow)

    goal = relationship("Goal", back_populates="subtasks")
