"""
Quiz Portal
Quiz definitions: creation rules and the per-role quiz listings
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..database.models import GRADES, new_document_id
from ..exceptions import (
    InvalidInputException,
    MissingFieldException,
    ValidationException,
    ValueRangeException
)
from ..repositories import Repositories
from ..schemas import AnswerOption, AttemptRecord, DocumentSchema, Question, QuizRecord, UserRecord
from .analytics import percentage, teacher_summary
from .identity import RequestContext
from ...config import get_settings

# Configure logging
logger = logging.getLogger(__name__)


# Incoming quiz definitions are checked field by field so every problem gets
# its own message, hence the loose types here.
class AnswerInput(DocumentSchema):
    id: Optional[str] = None
    text: Optional[str] = None


class QuestionInput(DocumentSchema):
    id: Optional[str] = None
    text: Optional[str] = None
    answers: List[AnswerInput] = Field(default_factory=list)
    correct_answer_id: Optional[str] = None


class QuizDefinition(DocumentSchema):
    title: Optional[str] = None
    description: Optional[str] = None
    target_grade: Optional[str] = None
    time_limit: Optional[int] = Field(default_factory=lambda: get_settings().DEFAULT_QUIZ_TIME_LIMIT)
    questions: List[QuestionInput] = Field(default_factory=list)


def build_questions(definitions: List[QuestionInput]) -> List[Question]:
    settings = get_settings()

    if not definitions:
        raise ValidationException("A quiz needs at least one question", field="questions")

    questions = []
    seen_question_ids = set()
    for i, definition in enumerate(definitions, start=1):
        if not (definition.text or "").strip():
            raise ValidationException(f"Question {i} text is required", field="questions")

        if len(definition.answers) < settings.MIN_ANSWERS_PER_QUESTION:
            raise ValidationException(
                f"Question {i} needs at least {settings.MIN_ANSWERS_PER_QUESTION} answers",
                field="questions"
            )

        answers = []
        for j, answer in enumerate(definition.answers, start=1):
            if not (answer.text or "").strip():
                raise ValidationException(
                    f"Answer {j} for question {i} is required", field="questions"
                )
            answers.append(AnswerOption(id=answer.id or new_document_id(), text=answer.text.strip()))

        answer_ids = [a.id for a in answers]
        if len(set(answer_ids)) != len(answer_ids):
            raise ValidationException(f"Question {i} has duplicate answer ids", field="questions")

        if not definition.correct_answer_id:
            raise ValidationException(
                f"Question {i} needs a correct answer selected", field="questions"
            )
        if definition.correct_answer_id not in answer_ids:
            raise ValidationException(
                f"Question {i}'s correct answer must be one of its answers",
                field="questions",
                value=definition.correct_answer_id
            )

        question_id = definition.id or new_document_id()
        if question_id in seen_question_ids:
            raise ValidationException(f"Question {i} repeats an earlier question id", field="questions")
        seen_question_ids.add(question_id)

        questions.append(Question(
            id=question_id,
            text=definition.text.strip(),
            answers=answers,
            correct_answer_id=definition.correct_answer_id
        ))

    return questions


def validate_quiz_definition(definition: QuizDefinition) -> Dict[str, Any]:
    """Check a quiz definition and return the values to store"""
    settings = get_settings()

    title = (definition.title or "").strip()
    if not title:
        raise MissingFieldException("title", "Quiz title is required")

    if not definition.target_grade:
        raise MissingFieldException("targetGrade", "Target grade is required")
    if definition.target_grade not in GRADES:
        raise InvalidInputException(
            "targetGrade", f"must be one of {', '.join(GRADES)}", definition.target_grade
        )

    if definition.time_limit is None:
        raise MissingFieldException("timeLimit", "Time limit must be at least 1 minute")
    if not 1 <= definition.time_limit <= settings.MAX_QUIZ_TIME_LIMIT:
        raise ValueRangeException("timeLimit", definition.time_limit, 1, settings.MAX_QUIZ_TIME_LIMIT)

    return {
        "title": title,
        "description": (definition.description or "").strip() or None,
        "target_grade": definition.target_grade,
        "time_limit": definition.time_limit,
        "questions": build_questions(definition.questions)
    }


def quiz_summary(quiz: QuizRecord) -> Dict[str, Any]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "targetGrade": quiz.target_grade,
        "timeLimit": quiz.time_limit,
        "questionCount": len(quiz.questions),
        "createdAt": quiz.created_at
    }


def attempt_summary(attempt: AttemptRecord) -> Dict[str, Any]:
    summary = attempt.model_dump(by_alias=True)
    summary["percentage"] = percentage(attempt.score, attempt.total_questions)
    return summary


class QuizStore:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def create_quiz(self, context: RequestContext, definition: QuizDefinition) -> QuizRecord:
        values = validate_quiz_definition(definition)
        quiz = await self.repos.quizzes.add(teacher_id=context.principal_id, **values)

        logger.info(
            f"Quiz {quiz.id} '{quiz.title}' created by {context.email} "
            f"for grade {quiz.target_grade} ({len(quiz.questions)} questions)"
        )
        return quiz

    async def student_dashboard(self, student: UserRecord) -> Dict[str, Any]:
        """Quizzes for the student's grade that they have not attempted yet"""
        if not student.profile_complete or not student.grade:
            raise ValidationException(
                "Please complete your profile first",
                field="grade",
                details={"action": "complete_profile"}
            )

        quizzes = await self.repos.quizzes.for_grade(student.grade)
        attempts = await self.repos.attempts.for_student(student.id)

        attempted_ids = {a.quiz_id for a in attempts}
        available = [quiz_summary(q) for q in quizzes if q.id not in attempted_ids]

        return {
            "student": student.model_dump(by_alias=True),
            "availableQuizzes": available,
            "attemptedQuizzes": [attempt_summary(a) for a in attempts]
        }

    async def teacher_dashboard(self, context: RequestContext) -> List[Dict[str, Any]]:
        rows = []
        for quiz in await self.repos.quizzes.for_teacher(context.principal_id):
            attempts = await self.repos.attempts.for_quiz(quiz.id)
            rows.append({**quiz_summary(quiz), **teacher_summary(quiz, attempts)})
        return rows


__all__ = [
    "AnswerInput",
    "QuestionInput",
    "QuizDefinition",
    "build_questions",
    "validate_quiz_definition",
    "quiz_summary",
    "attempt_summary",
    "QuizStore"
]
