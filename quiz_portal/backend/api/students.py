"""
Quiz Portal
Student API routes
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_repositories, require_student
from ..repositories import Repositories
from ..schemas import UserRecord
from ..services.identity import IdentityService, RequestContext
from ..services.quiz_store import QuizStore

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


# Pydantic models
class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    grade: Optional[str] = None


class StudentDashboardResponse(BaseModel):
    student: Dict[str, Any]
    availableQuizzes: List[Dict[str, Any]]
    attemptedQuizzes: List[Dict[str, Any]]


@router.put("/profile", response_model=UserRecord)
async def complete_profile(
    request: ProfileUpdateRequest,
    context: RequestContext = Depends(require_student),
    repos: Repositories = Depends(get_repositories)
):
    """Set the student's name and grade, marking the profile complete"""
    user = await IdentityService(repos).complete_profile(context, request.name, request.grade)
    await repos.session.commit()
    return user


@router.get("/dashboard", response_model=StudentDashboardResponse)
async def get_student_dashboard(
    context: RequestContext = Depends(require_student),
    repos: Repositories = Depends(get_repositories)
):
    """Available and already attempted quizzes for the student's grade"""
    return await QuizStore(repos).student_dashboard(context.user)


__all__ = ["router"]
