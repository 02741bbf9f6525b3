"""
Quiz Portal
Administrative API routes: dashboard counts and teacher/student management
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, EmailStr

from ..database.models import GRADES, UserRole
from ..dependencies import get_repositories, require_admin
from ..exceptions import InvalidInputException, UserNotFoundException
from ..repositories import Repositories
from ..schemas import UserRecord
from ..services.analytics import (
    build_admin_overview,
    filter_students,
    student_performance,
    teacher_overview
)
from ..services.identity import IdentityService, RequestContext

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


# Pydantic models
class AdminDashboardResponse(BaseModel):
    totalTeachers: Optional[int]
    totalStudents: Optional[int]
    totalQuizzes: Optional[int]
    totalAttempts: Optional[int]
    unavailable: List[str]


class TeacherCreateRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class DeleteResponse(BaseModel):
    message: str
    id: str


async def _delete_user_with_role(repos: Repositories, user_id: str, role: UserRole) -> UserRecord:
    user = await repos.users.get(user_id)
    if user is None or user.role != role:
        raise UserNotFoundException(user_id)

    await repos.users.delete(user_id)
    await repos.session.commit()
    return user


@router.get("/dashboard", response_model=AdminDashboardResponse)
async def get_admin_dashboard(
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
):
    """Teacher, student, quiz and attempt totals"""
    overview = await build_admin_overview(repos)
    return AdminDashboardResponse(**{
        key: overview[key] for key in AdminDashboardResponse.model_fields
    })


@router.get("/teachers")
async def list_teachers(
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
) -> List[Dict[str, Any]]:
    """All teachers with the number of quizzes each has created"""
    teachers = await repos.users.teachers()
    quizzes = await repos.quizzes.list_all()
    return teacher_overview(teachers, quizzes)


@router.post("/teachers", status_code=status.HTTP_201_CREATED, response_model=UserRecord)
async def create_teacher(
    request: TeacherCreateRequest,
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
):
    """Create a teacher account"""
    name = request.name.strip()
    if not name:
        raise InvalidInputException("name", "Teacher name is required")

    teacher = await IdentityService(repos).create_account(
        request.email,
        request.password,
        UserRole.TEACHER,
        name=name,
        created_by=context
    )
    await repos.session.commit()
    return teacher


@router.delete("/teachers/{teacher_id}", response_model=DeleteResponse)
async def delete_teacher(
    teacher_id: str = Path(..., description="Teacher ID"),
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
):
    """Delete a teacher account; the teacher's quizzes and their attempts are kept"""
    teacher = await _delete_user_with_role(repos, teacher_id, UserRole.TEACHER)
    logger.info(f"Teacher {teacher.email} deleted by {context.email}")

    return DeleteResponse(message="Teacher deleted successfully", id=teacher_id)


@router.get("/students")
async def list_students(
    grade: Optional[str] = Query(None, description="Only students in this grade"),
    search: Optional[str] = Query(None, description="Case-insensitive match on name or email"),
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
) -> List[Dict[str, Any]]:
    """Students with their attempt counts and average scores"""
    if grade and grade not in GRADES:
        raise InvalidInputException("grade", f"must be one of {', '.join(GRADES)}", grade)

    students = filter_students(await repos.users.students(), grade=grade, search=search)
    attempts = await repos.attempts.list_all()
    return student_performance(students, attempts)


@router.delete("/students/{student_id}", response_model=DeleteResponse)
async def delete_student(
    student_id: str = Path(..., description="Student ID"),
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
):
    """Delete a student account; their attempts stay in the analytics"""
    student = await _delete_user_with_role(repos, student_id, UserRole.STUDENT)
    logger.info(f"Student {student.email} deleted by {context.email}")

    return DeleteResponse(message="Student deleted successfully", id=student_id)


__all__ = ["router"]
