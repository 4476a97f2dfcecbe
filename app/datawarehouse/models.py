"""Database models for the telemetry store (schools, classrooms, users and their activity)."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    BigInteger,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from app.core.database import DWBase as Base


def _uuid() -> str:
    return str(uuid.uuid4())


class School(Base):
    __tablename__ = "schools"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    district = Column(String(255), nullable=True)
    region = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    classrooms = relationship("Classroom", back_populates="school")
    users = relationship("User", back_populates="school")


class Classroom(Base):
    __tablename__ = "classrooms"

    id = Column(String(36), primary_key=True, default=_uuid)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    grade_level = Column(Integer, nullable=True)
    subject = Column(String(100), nullable=True)
    teacher_id = Column(String(36), nullable=True)
    max_students = Column(Integer, default=30)
    created_at = Column(DateTime, default=datetime.now)

    school = relationship("School", back_populates="classrooms")


class User(Base):
    """Teacher, student or admin account. `role` is one of those three values."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    last_active = Column(DateTime, nullable=True)

    school = relationship("School", back_populates="users")
    sessions = relationship("LearningSession", back_populates="user")


class UserClassroom(Base):
    """Enrollment of a user in a classroom."""

    __tablename__ = "user_classrooms"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(50), nullable=False)
    enrolled_at = Column(DateTime, default=datetime.now)
    is_active = Column(Boolean, default=True)


class LearningSession(Base):
    """A whiteboard or notebook usage session."""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True)
    application = Column(String(50), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    device_info = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("idx_sessions_user_time", "user_id", "start_time"),
        Index("idx_sessions_classroom_time", "classroom_id", "start_time"),
    )


class Event(Base):
    """Main event store: one row per tracked interaction."""

    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_uuid)
    event_type = Column(String(100), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(String(36), ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True)
    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="SET NULL"), nullable=True)
    application = Column(String(50), nullable=True)
    timestamp = Column(DateTime, nullable=False)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True)
    device_info = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    __table_args__ = (
        Index("idx_events_timestamp", "timestamp"),
        Index("idx_events_user_id", "user_id"),
        Index("idx_events_type_timestamp", "event_type", "timestamp"),
    )


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=_uuid)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    total_questions = Column(Integer, default=0)
    time_limit_minutes = Column(Integer, nullable=True)
    max_attempts = Column(Integer, default=1)
    is_active = Column(Boolean, default=False)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class QuizSession(Base):
    """One student's attempt at a quiz."""

    __tablename__ = "quiz_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    started_at = Column(DateTime, default=datetime.now)
    completed_at = Column(DateTime, nullable=True)
    total_score = Column(Integer, default=0)
    max_possible_score = Column(Integer, default=0)
    percentage_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)
    attempt_number = Column(Integer, default=1)
    is_completed = Column(Boolean, default=False)


class Content(Base):
    """Notes, drawings, documents and saved whiteboard sessions."""

    __tablename__ = "content"

    id = Column(String(36), primary_key=True, default=_uuid)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(String(36), ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=True)
    content_type = Column(String(50), nullable=False)
    content_data = Column(JSON, nullable=True)
    file_size_bytes = Column(BigInteger, default=0)
    is_shared = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
