"""
Quiz Portal
Timed attempt sessions

A session holds a student's selections on the server while the quiz countdown
runs. Submitting finishes it early; when the countdown reaches zero whatever
has been selected so far is submitted on the student's behalf.
"""

import functools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from .attempt_engine import AttemptEngine
from .countdown import QuizCountdown
from ..database.models import new_document_id, utcnow
from ..exceptions import (
    AppException,
    ConflictException,
    InvalidInputException,
    NotFoundException,
    ResourceOwnershipException,
    ValidationException
)
from ..schemas import AttemptRecord, QuizRecord, UserRecord

# Configure logging
logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    RUNNING = "running"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class LiveAttempt:
    """One student's in-progress attempt at one quiz"""

    def __init__(self, quiz: QuizRecord, student: UserRecord):
        self.id = new_document_id()
        self.quiz_id = quiz.id
        self.quiz_title = quiz.title
        self.student = student
        self.question_ids = [q.id for q in quiz.questions]
        self.answers: Dict[str, str] = {}
        self.status = SessionStatus.RUNNING
        self.started_at = utcnow()
        self.attempt: Optional[AttemptRecord] = None
        self.message: Optional[str] = None
        self.countdown: Optional[QuizCountdown] = None

    @property
    def open(self) -> bool:
        return self.status is SessionStatus.RUNNING

    def select(self, question_id: str, answer_id: str):
        if not self.open:
            raise ConflictException("This attempt is no longer in progress", conflict_type="attempt_closed")
        if question_id not in self.question_ids:
            raise InvalidInputException("questionId", "not a question in this quiz", question_id)
        self.answers[question_id] = answer_id

    def snapshot(self) -> Dict[str, str]:
        return dict(self.answers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "quizId": self.quiz_id,
            "quizTitle": self.quiz_title,
            "status": self.status.value,
            "answers": self.snapshot(),
            "remainingSeconds": max(self.countdown.remaining, 0) if self.countdown else 0,
            "remaining": self.countdown.formatted() if self.countdown else "00:00",
            "startedAt": self.started_at,
            "attempt": self.attempt.model_dump(by_alias=True, mode="json") if self.attempt else None,
            "message": self.message
        }


ExpirySubmitter = Callable[[LiveAttempt], Awaitable[AttemptRecord]]


class LiveAttemptRegistry:
    """In-memory sessions, each driven by its own QuizCountdown.

    ``submit_expired`` records the attempt when a countdown runs out. It runs
    outside any request, so it has to open its own database session.
    """

    def __init__(self, submit_expired: ExpirySubmitter, tick_seconds: float = 1.0):
        self._submit_expired = submit_expired
        self.tick_seconds = tick_seconds
        self._sessions: Dict[str, LiveAttempt] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def start(self, quiz: QuizRecord, student: UserRecord) -> LiveAttempt:
        """Start the countdown for a quiz, or return the student's running session for it"""
        self._discard_finished(student.id)

        for live in self._sessions.values():
            if live.student.id == student.id and live.quiz_id == quiz.id and live.open:
                return live

        live = LiveAttempt(quiz, student)
        live.countdown = QuizCountdown(
            quiz.time_limit,
            functools.partial(self._expire, live),
            tick_seconds=self.tick_seconds
        )
        self._sessions[live.id] = live
        live.countdown.start()

        logger.info(
            f"Attempt session {live.id} started by {student.id} for quiz {quiz.id} "
            f"({live.countdown.formatted()} on the clock)"
        )
        return live

    def get(self, session_id: str, student: UserRecord) -> LiveAttempt:
        live = self._sessions.get(session_id)
        if live is None:
            raise NotFoundException("Attempt session not found", "attempt_session", session_id)
        if live.student.id != student.id:
            raise ResourceOwnershipException("attempt session", session_id)
        return live

    async def finish(self, live: LiveAttempt, engine: AttemptEngine) -> AttemptRecord:
        """Submit the session's selections before time runs out"""
        if not live.open:
            raise ConflictException("This attempt is no longer in progress", conflict_type="attempt_closed")

        # Expiry leaves a submitting session alone
        live.status = SessionStatus.SUBMITTING
        try:
            attempt = await engine.submit(live.quiz_id, live.snapshot(), live.student)
        except AppException:
            live.status = SessionStatus.EXPIRED if live.countdown.expired else SessionStatus.RUNNING
            raise

        live.countdown.cancel()
        live.attempt = attempt
        live.status = SessionStatus.SUBMITTED
        return attempt

    def cancel(self, live: LiveAttempt):
        if not live.open:
            raise ConflictException("This attempt is no longer in progress", conflict_type="attempt_closed")
        live.countdown.cancel()
        live.status = SessionStatus.CANCELLED
        logger.info(f"Attempt session {live.id} abandoned with {live.countdown.formatted()} left")

    async def close(self):
        """Stop every countdown without submitting"""
        for live in self._sessions.values():
            if live.countdown is not None:
                live.countdown.cancel()
                await live.countdown.wait()
        self._sessions.clear()

    def _discard_finished(self, student_id: str):
        finished = [
            live.id for live in self._sessions.values()
            if live.student.id == student_id and live.status in (
                SessionStatus.SUBMITTED, SessionStatus.EXPIRED, SessionStatus.CANCELLED
            )
        ]
        for session_id in finished:
            del self._sessions[session_id]

    async def _expire(self, live: LiveAttempt):
        if not live.open:
            return

        live.status = SessionStatus.EXPIRED
        try:
            live.attempt = await self._submit_expired(live)
        except ValidationException as e:
            # Nothing selected, or the student can no longer take the quiz
            live.message = e.message
            logger.info(f"⏰ Attempt session {live.id} expired without a submission: {e.message}")
            return
        except AppException as e:
            live.message = e.message
            logger.error(f"❌ Auto-submit failed for attempt session {live.id}: {e.message}")
            return

        logger.info(f"⏰ Attempt session {live.id} auto-submitted as attempt {live.attempt.id}")


__all__ = ["SessionStatus", "LiveAttempt", "LiveAttemptRegistry"]
