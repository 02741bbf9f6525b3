"""
Quiz Portal
SQLAlchemy database models

Each table stands in for one document collection. Nested data (questions with
their answer options, an attempt's answer map) lives in JSON columns, and there
are no foreign keys: deleting a user never cascades into quizzes or attempts.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Integer, String, Text, JSON, Enum,
    CheckConstraint, Index
)
from sqlalchemy.orm import declarative_base, validates

# Base class for all models
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return str(uuid.uuid4())


# Enums
class UserRole(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class GradeLevel(str, enum.Enum):
    GRADE_6 = "6"
    GRADE_7 = "7"
    GRADE_8 = "8"
    GRADE_9 = "9"
    GRADE_10 = "10"
    GRADE_11 = "11"
    GRADE_12 = "12"


GRADES = tuple(grade.value for grade in GradeLevel)


class AuthProvider(str, enum.Enum):
    PASSWORD = "password"
    FEDERATED = "federated"


# Base model with common fields
class DocumentModel(Base):
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=new_document_id)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class User(DocumentModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]), nullable=False, index=True)
    grade = Column(String(2), nullable=True)
    profile_complete = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(String(36), nullable=True)

    # Auth material, never serialised into user documents
    auth_provider = Column(
        Enum(AuthProvider, values_callable=lambda e: [m.value for m in e]),
        default=AuthProvider.PASSWORD,
        nullable=False
    )
    auth_subject = Column(String(255), unique=True, nullable=True)
    hashed_password = Column(String(255), nullable=True)

    @validates("grade")
    def validate_grade(self, key, value):
        if value is not None and value not in GRADES:
            raise ValueError(f"Unknown grade: {value}")
        return value

    @validates("email")
    def validate_email(self, key, value):
        return value.strip().lower() if value else value

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Quiz(DocumentModel):
    __tablename__ = "quizzes"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    target_grade = Column(String(2), nullable=False, index=True)
    time_limit = Column(Integer, nullable=False)
    teacher_id = Column(String(36), nullable=False, index=True)
    questions = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("time_limit > 0", name="check_time_limit_positive"),
    )

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, grade={self.target_grade})>"


class Attempt(DocumentModel):
    __tablename__ = "attempts"

    student_id = Column(String(36), nullable=False, index=True)
    student_name = Column(String(255), nullable=True)
    student_grade = Column(String(2), nullable=True)
    quiz_id = Column(String(36), nullable=False, index=True)
    quiz_title = Column(String(255), nullable=True)
    score = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    answers = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "score >= 0 AND score <= total_questions",
            name="check_score_within_total"
        ),
        Index("ix_attempts_submitted_at", "submitted_at"),
    )

    def __repr__(self):
        return f"<Attempt(id={self.id}, quiz={self.quiz_id}, score={self.score}/{self.total_questions})>"


__all__ = [
    "Base",
    "UserRole",
    "GradeLevel",
    "GRADES",
    "AuthProvider",
    "User",
    "Quiz",
    "Attempt",
    "utcnow",
    "new_document_id"
]
