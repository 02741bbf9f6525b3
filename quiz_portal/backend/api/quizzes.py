"""
Quiz Portal
Quiz-related API routes
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field

from ..dependencies import (
    PermissionChecker,
    get_repositories,
    require_any_role,
    require_student,
    require_teacher,
    require_teacher_or_admin
)
from ..exceptions import QuizNotFoundException, ResourceOwnershipException
from ..repositories import Repositories
from ..schemas import AttemptRecord, QuizRecord, StudentQuizView
from ..services.analytics import quiz_statistics
from ..services.attempt_engine import AttemptEngine
from ..services.identity import RequestContext
from ..services.quiz_store import QuizDefinition, QuizStore, attempt_summary

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


# Pydantic models
class AttemptSubmitRequest(BaseModel):
    answers: Dict[str, str] = Field(default_factory=dict)


class QuizResultsResponse(BaseModel):
    quiz: Dict[str, Any]
    statistics: Dict[str, Any]
    attempts: List[Dict[str, Any]]


async def get_quiz_or_404(quiz_id: str, repos: Repositories) -> QuizRecord:
    quiz = await repos.quizzes.get(quiz_id)
    if quiz is None:
        raise QuizNotFoundException(quiz_id)
    return quiz


@router.post("", status_code=status.HTTP_201_CREATED, response_model=QuizRecord)
async def create_quiz(
    definition: QuizDefinition,
    context: RequestContext = Depends(require_teacher),
    repos: Repositories = Depends(get_repositories)
):
    """Create a quiz owned by the calling teacher"""
    quiz = await QuizStore(repos).create_quiz(context, definition)
    await repos.session.commit()
    return quiz


@router.get("/{quiz_id}")
async def get_quiz(
    quiz_id: str = Path(..., description="Quiz ID"),
    context: RequestContext = Depends(require_any_role),
    repos: Repositories = Depends(get_repositories)
):
    """Get a quiz; students receive it without the correct answers"""
    quiz = await get_quiz_or_404(quiz_id, repos)

    if not PermissionChecker.can_view_quiz(context, quiz):
        raise ResourceOwnershipException("quiz", quiz_id)

    if context.is_student:
        return StudentQuizView.from_quiz(quiz)
    return quiz


@router.post("/{quiz_id}/attempts", status_code=status.HTTP_201_CREATED, response_model=AttemptRecord)
async def submit_attempt(
    request: AttemptSubmitRequest,
    quiz_id: str = Path(..., description="Quiz ID"),
    context: RequestContext = Depends(require_student),
    repos: Repositories = Depends(get_repositories)
):
    """Score and record the student's answers"""
    attempt = await AttemptEngine(repos).submit(quiz_id, request.answers, context.user)
    await repos.session.commit()
    return attempt


@router.get("/{quiz_id}/results", response_model=QuizResultsResponse)
async def get_quiz_results(
    quiz_id: str = Path(..., description="Quiz ID"),
    context: RequestContext = Depends(require_teacher_or_admin),
    repos: Repositories = Depends(get_repositories)
):
    """All attempts for a quiz with score statistics"""
    quiz = await get_quiz_or_404(quiz_id, repos)

    if not PermissionChecker.can_view_quiz_results(context, quiz):
        raise ResourceOwnershipException("quiz", quiz_id)

    attempts = await repos.attempts.for_quiz(quiz.id)

    return QuizResultsResponse(
        quiz={
            "id": quiz.id,
            "title": quiz.title,
            "targetGrade": quiz.target_grade,
            "questionCount": len(quiz.questions)
        },
        statistics=quiz_statistics(quiz, attempts),
        attempts=[attempt_summary(a) for a in attempts]
    )


__all__ = ["router"]
