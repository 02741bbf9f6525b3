"""
Quiz Portal
Timed attempt API routes: the countdown runs on the server and submits on expiry
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, status

from ..dependencies import get_live_attempts, get_repositories, require_student
from ..repositories import Repositories
from ..schemas import AttemptRecord, DocumentSchema
from ..services.attempt_engine import AttemptEngine
from ..services.attempt_sessions import LiveAttemptRegistry
from ..services.identity import RequestContext

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


# Pydantic models
class SessionStartRequest(DocumentSchema):
    quiz_id: str


class AnswerSelectRequest(DocumentSchema):
    question_id: str
    answer_id: str


class AttemptSessionResponse(DocumentSchema):
    id: str
    quiz_id: str
    quiz_title: str
    status: str
    answers: Dict[str, str]
    remaining_seconds: int
    remaining: str
    started_at: datetime
    attempt: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AttemptSessionResponse)
async def start_session(
    request: SessionStartRequest,
    context: RequestContext = Depends(require_student),
    repos: Repositories = Depends(get_repositories),
    live_attempts: LiveAttemptRegistry = Depends(get_live_attempts)
):
    """Start the quiz countdown; a running session for the same quiz is returned as is"""
    quiz, student = await AttemptEngine(repos).eligible_quiz(request.quiz_id, context.user)
    return live_attempts.start(quiz, student).to_dict()


@router.get("/{session_id}", response_model=AttemptSessionResponse)
async def get_session(
    session_id: str = Path(..., description="Attempt session ID"),
    context: RequestContext = Depends(require_student),
    live_attempts: LiveAttemptRegistry = Depends(get_live_attempts)
):
    """Time left and selections so far, or the outcome once finished"""
    return live_attempts.get(session_id, context.user).to_dict()


@router.put("/{session_id}/answers", response_model=AttemptSessionResponse)
async def select_answer(
    request: AnswerSelectRequest,
    session_id: str = Path(..., description="Attempt session ID"),
    context: RequestContext = Depends(require_student),
    live_attempts: LiveAttemptRegistry = Depends(get_live_attempts)
):
    live = live_attempts.get(session_id, context.user)
    live.select(request.question_id, request.answer_id)
    return live.to_dict()


@router.post("/{session_id}/submit", status_code=status.HTTP_201_CREATED, response_model=AttemptRecord)
async def submit_session(
    session_id: str = Path(..., description="Attempt session ID"),
    context: RequestContext = Depends(require_student),
    repos: Repositories = Depends(get_repositories),
    live_attempts: LiveAttemptRegistry = Depends(get_live_attempts)
):
    """Submit before time runs out"""
    live = live_attempts.get(session_id, context.user)
    attempt = await live_attempts.finish(live, AttemptEngine(repos))
    await repos.session.commit()
    return attempt


@router.delete("/{session_id}", response_model=AttemptSessionResponse)
async def abandon_session(
    session_id: str = Path(..., description="Attempt session ID"),
    context: RequestContext = Depends(require_student),
    live_attempts: LiveAttemptRegistry = Depends(get_live_attempts)
):
    """Stop the countdown without recording an attempt"""
    live = live_attempts.get(session_id, context.user)
    live_attempts.cancel(live)
    return live.to_dict()


__all__ = ["router"]
