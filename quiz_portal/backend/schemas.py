"""
Quiz Portal
Document schemas for the users, quizzes and attempts collections.

These records are the only shapes the attempt engine and the analytics
aggregator ever see. Rows read from the database are validated into them, and
the API serialises them with the camelCase field names of the stored documents.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .database.models import GRADES, UserRole, new_document_id


class DocumentSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, v):
        # SQLite hands back naive datetimes for timezone-aware columns
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class AnswerOption(DocumentSchema):
    id: str = Field(default_factory=new_document_id)
    text: str


class Question(DocumentSchema):
    id: str = Field(default_factory=new_document_id)
    text: str
    answers: List[AnswerOption]
    correct_answer_id: str

    @model_validator(mode="after")
    def check_correct_answer(self):
        answer_ids = [answer.id for answer in self.answers]
        if len(set(answer_ids)) != len(answer_ids):
            raise ValueError(f"Question {self.id} has duplicate answer ids")
        if self.correct_answer_id not in answer_ids:
            raise ValueError(
                f"Correct answer {self.correct_answer_id!r} is not one of question {self.id}'s answers"
            )
        return self


class UserRecord(DocumentSchema):
    id: str
    email: str
    name: Optional[str] = None
    role: UserRole
    grade: Optional[str] = None
    profile_complete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by_id: Optional[str] = Field(default=None, alias="createdBy")

    @field_validator("grade")
    @classmethod
    def validate_grade(cls, v):
        if v is not None and v not in GRADES:
            raise ValueError(f"Unknown grade: {v}")
        return v

    @property
    def display_name(self) -> str:
        return self.name or self.email


class QuizRecord(DocumentSchema):
    id: str
    title: str
    description: Optional[str] = None
    target_grade: str
    time_limit: int
    teacher_id: str
    questions: List[Question]
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_unique_question_ids(self):
        question_ids = [question.id for question in self.questions]
        if len(set(question_ids)) != len(question_ids):
            raise ValueError(f"Quiz {self.id} has duplicate question ids")
        return self


class AttemptRecord(DocumentSchema):
    id: str
    student_id: str
    student_name: Optional[str] = None
    student_grade: Optional[str] = None
    quiz_id: str
    quiz_title: Optional[str] = None
    score: int = 0
    total_questions: int = 0
    answers: Dict[str, str] = Field(default_factory=dict)
    submitted_at: datetime

    @field_validator("score", "total_questions", mode="before")
    @classmethod
    def coerce_missing_count(cls, v):
        return 0 if v is None else v

    @model_validator(mode="after")
    def check_score_bounds(self):
        if not 0 <= self.score <= self.total_questions:
            raise ValueError(
                f"Score {self.score} outside 0..{self.total_questions}"
            )
        return self


# Student-facing view of a quiz: correct answers are never sent to students
class StudentQuestionView(DocumentSchema):
    id: str
    text: str
    answers: List[AnswerOption]


class StudentQuizView(DocumentSchema):
    id: str
    title: str
    description: Optional[str] = None
    target_grade: str
    time_limit: int
    time_limit_seconds: int
    questions: List[StudentQuestionView]

    @classmethod
    def from_quiz(cls, quiz: QuizRecord) -> "StudentQuizView":
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            target_grade=quiz.target_grade,
            time_limit=quiz.time_limit,
            time_limit_seconds=quiz.time_limit * 60,
            questions=[
                StudentQuestionView(id=q.id, text=q.text, answers=q.answers)
                for q in quiz.questions
            ],
        )


__all__ = [
    "DocumentSchema",
    "AnswerOption",
    "Question",
    "UserRecord",
    "QuizRecord",
    "AttemptRecord",
    "StudentQuestionView",
    "StudentQuizView"
]
