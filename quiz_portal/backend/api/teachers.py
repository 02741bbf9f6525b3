"""
Quiz Portal
Teacher API routes
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_repositories, require_teacher
from ..repositories import Repositories
from ..services.identity import RequestContext
from ..services.quiz_store import QuizStore

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


class TeacherDashboardResponse(BaseModel):
    teacher: Dict[str, Any]
    quizzes: List[Dict[str, Any]]


@router.get("/dashboard", response_model=TeacherDashboardResponse)
async def get_teacher_dashboard(
    context: RequestContext = Depends(require_teacher),
    repos: Repositories = Depends(get_repositories)
):
    """The teacher's quizzes with attempt counts and average scores"""
    quizzes = await QuizStore(repos).teacher_dashboard(context)

    return TeacherDashboardResponse(
        teacher=context.user.model_dump(by_alias=True),
        quizzes=quizzes
    )


__all__ = ["router"]
