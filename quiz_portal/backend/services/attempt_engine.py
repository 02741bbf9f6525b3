"""
Quiz Portal
Attempt engine: scores a student's selections and records the attempt
"""

import logging
from typing import Dict, Mapping, Tuple

from ..database.models import utcnow
from ..exceptions import QuizNotFoundException, ResourceOwnershipException, ValidationException
from ..repositories import Repositories
from ..schemas import AttemptRecord, QuizRecord, UserRecord

# Configure logging
logger = logging.getLogger(__name__)


def score_selections(quiz: QuizRecord, selections: Mapping[str, str]) -> int:
    """Count the questions whose selected answer is the correct one.

    Selections for unknown question ids are ignored, and a question with no
    selection simply scores nothing.
    """
    return sum(
        1 for question in quiz.questions
        if selections.get(question.id) == question.correct_answer_id
    )


class AttemptEngine:
    """Submits quiz attempts against the current quiz and student documents"""

    def __init__(self, repos: Repositories):
        self.repos = repos

    async def eligible_quiz(self, quiz_id: str, student: UserRecord) -> Tuple[QuizRecord, UserRecord]:
        """Load the quiz and the stored student, checking the student may take it.

        A student needs a completed profile, and only quizzes for their own
        grade can be attempted.
        """
        # Name and grade are copied from the stored user, not the token
        current = await self.repos.users.get(student.id) or student
        if not current.profile_complete or not current.grade:
            raise ValidationException(
                "Please complete your profile first",
                field="grade",
                details={"action": "complete_profile"}
            )

        # The quiz may have been deleted since it was opened
        quiz = await self.repos.quizzes.get(quiz_id)
        if quiz is None:
            raise QuizNotFoundException(quiz_id)

        if quiz.target_grade != current.grade:
            raise ResourceOwnershipException("quiz", quiz.id)

        return quiz, current

    async def submit(
        self,
        quiz_id: str,
        selections: Dict[str, str],
        student: UserRecord
    ) -> AttemptRecord:
        if not selections:
            raise ValidationException(
                "Please answer at least one question before submitting",
                field="answers"
            )

        quiz, current = await self.eligible_quiz(quiz_id, student)

        score = score_selections(quiz, selections)
        attempt = await self.repos.attempts.add(
            student_id=current.id,
            student_name=current.display_name,
            student_grade=current.grade,
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            score=score,
            total_questions=len(quiz.questions),
            answers=dict(selections),
            submitted_at=utcnow()
        )

        logger.info(
            f"Attempt {attempt.id} submitted by {current.id} for quiz {quiz.id}: "
            f"{score}/{attempt.total_questions}"
        )
        return attempt


__all__ = ["score_selections", "AttemptEngine"]
