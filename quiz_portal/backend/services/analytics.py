"""
Quiz Portal
Analytics aggregation over quiz, attempt and user documents

Every view is recomputed from a full scan of its inputs. The functions here do
no I/O except build_admin_overview, which fetches each collection separately
so that one failed fetch only blanks its own slice of the view.
"""

import logging
import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..database.models import GRADES, UserRole
from ..exceptions import BackendException
from ..repositories import Repositories
from ..schemas import AttemptRecord, QuizRecord, UserRecord

# Configure logging
logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up"""
    return int(math.floor(value + 0.5))


def round_places(value: float, places: int) -> Decimal:
    """Round to a fixed number of decimals with halves going up, as toFixed does"""
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def percentage(score: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * score / total)


def per_grade_distribution(
    quizzes: Optional[Sequence[QuizRecord]],
    attempts: Optional[Sequence[AttemptRecord]],
    users: Optional[Sequence[UserRecord]],
    grades: Iterable[str] = GRADES
) -> List[Dict[str, Any]]:
    """Per-grade student, quiz and attempt counts.

    Student counts come from the current user documents while quiz and attempt
    counts use the grade stored on those documents, so the two can disagree
    after a student changes grade. A collection passed as None could not be
    fetched and its count is None rather than 0.
    """
    distribution = []
    for grade in grades:
        student_count = None
        if users is not None:
            student_count = sum(
                1 for u in users if u.role == UserRole.STUDENT and u.grade == grade
            )

        quiz_count = None
        if quizzes is not None:
            quiz_count = sum(1 for q in quizzes if q.target_grade == grade)

        attempt_count = None
        if attempts is not None:
            attempt_count = sum(1 for a in attempts if a.student_grade == grade)

        distribution.append({
            "grade": grade,
            "studentCount": student_count,
            "quizCount": quiz_count,
            "attemptCount": attempt_count
        })
    return distribution


def top_performers(
    attempts: Sequence[AttemptRecord],
    min_attempts: int = 2,
    limit: int = 5
) -> List[Dict[str, Any]]:
    """Students ranked by overall percentage, ties kept in first-seen order"""
    grouped: Dict[str, Dict[str, Any]] = {}
    for attempt in attempts:
        if not attempt.student_id:
            continue

        entry = grouped.setdefault(attempt.student_id, {
            "studentId": attempt.student_id,
            "name": attempt.student_name or "Unknown Student",
            "grade": attempt.student_grade or "N/A",
            "totalScore": 0,
            "totalQuestions": 0,
            "attemptCount": 0
        })
        entry["totalScore"] += attempt.score
        entry["totalQuestions"] += attempt.total_questions
        entry["attemptCount"] += 1

    ranked = []
    for entry in grouped.values():
        if entry["attemptCount"] < min_attempts:
            continue
        entry["averagePercentage"] = percentage(entry["totalScore"], entry["totalQuestions"])
        ranked.append(entry)

    # sorted() is stable
    ranked = sorted(ranked, key=lambda e: e["averagePercentage"], reverse=True)
    return ranked[:limit]


def quiz_statistics(quiz: QuizRecord, attempts: Sequence[AttemptRecord]) -> Dict[str, Any]:
    scores = [a.score for a in attempts if a.quiz_id == quiz.id]
    if not scores:
        return {"count": 0, "average": None, "max": None, "min": None}

    return {
        "count": len(scores),
        "average": float(round_places(sum(scores) / len(scores), 2)),
        "max": max(scores),
        "min": min(scores)
    }


def teacher_summary(quiz: QuizRecord, attempts: Sequence[AttemptRecord]) -> Dict[str, Any]:
    scores = [a.score for a in attempts if a.quiz_id == quiz.id]
    if not scores:
        return {"attemptCount": 0, "averageScore": "N/A"}
    return {
        "attemptCount": len(scores),
        "averageScore": str(round_places(sum(scores) / len(scores), 1))
    }


def overall_average_percentage(attempts: Sequence[AttemptRecord]) -> int:
    total_score = sum(a.score for a in attempts)
    total_questions = sum(a.total_questions for a in attempts)
    return percentage(total_score, total_questions)


def recent_quizzes(quizzes: Sequence[QuizRecord], limit: int = 5) -> List[QuizRecord]:
    """Newest quizzes first; quizzes without a creation time sort last"""
    return sorted(
        quizzes,
        key=lambda q: q.created_at or _EPOCH,
        reverse=True
    )[:limit]


def student_performance(
    students: Sequence[UserRecord],
    attempts: Sequence[AttemptRecord]
) -> List[Dict[str, Any]]:
    totals: Dict[str, List[int]] = {}
    for attempt in attempts:
        score_total = totals.setdefault(attempt.student_id, [0, 0, 0])
        score_total[0] += attempt.score
        score_total[1] += attempt.total_questions
        score_total[2] += 1

    rows = []
    for student in students:
        score, total, count = totals.get(student.id, (0, 0, 0))
        rows.append({
            "id": student.id,
            "name": student.name,
            "email": student.email,
            "grade": student.grade,
            "profileComplete": student.profile_complete,
            "attemptCount": count,
            "averageScore": percentage(score, total) if count else None
        })

    rows.sort(key=lambda r: (r["name"] or r["email"]).lower())
    return rows


def filter_students(
    students: Sequence[UserRecord],
    grade: Optional[str] = None,
    search: Optional[str] = None
) -> List[UserRecord]:
    matches = list(students)
    if grade:
        matches = [s for s in matches if s.grade == grade]
    if search:
        needle = search.strip().lower()
        matches = [
            s for s in matches
            if needle in (s.name or "").lower() or needle in s.email.lower()
        ]
    return matches


def teacher_overview(
    teachers: Sequence[UserRecord],
    quizzes: Sequence[QuizRecord]
) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for quiz in quizzes:
        counts[quiz.teacher_id] = counts.get(quiz.teacher_id, 0) + 1

    return [
        {
            "id": teacher.id,
            "name": teacher.name,
            "email": teacher.email,
            "createdAt": teacher.created_at,
            "quizCount": counts.get(teacher.id, 0)
        }
        for teacher in teachers
    ]


async def _fetch_slice(repos: Repositories, name: str, unavailable: List[str]):
    try:
        return await getattr(repos, name).list_all()
    except BackendException as e:
        logger.warning(f"⚠️ Analytics slice '{name}' unavailable: {e.message}")
        # Postgres aborts the transaction after a failed statement
        await repos.session.rollback()
        unavailable.append(name)
        return None


async def build_admin_overview(
    repos: Repositories,
    top_performer_min_attempts: int = 2,
    top_performer_limit: int = 5,
    recent_limit: int = 5
) -> Dict[str, Any]:
    """Admin analytics with per-collection degradation"""
    unavailable: List[str] = []

    users = await _fetch_slice(repos, "users", unavailable)
    quizzes = await _fetch_slice(repos, "quizzes", unavailable)
    attempts = await _fetch_slice(repos, "attempts", unavailable)

    return {
        "totalQuizzes": len(quizzes) if quizzes is not None else None,
        "totalAttempts": len(attempts) if attempts is not None else None,
        "totalStudents": (
            sum(1 for u in users if u.role == UserRole.STUDENT) if users is not None else None
        ),
        "totalTeachers": (
            sum(1 for u in users if u.role == UserRole.TEACHER) if users is not None else None
        ),
        "averageScore": overall_average_percentage(attempts) if attempts is not None else None,
        "gradeDistribution": per_grade_distribution(quizzes, attempts, users),
        "recentQuizzes": (
            [
                {
                    "id": q.id,
                    "title": q.title,
                    "targetGrade": q.target_grade,
                    "questionCount": len(q.questions),
                    "createdAt": q.created_at
                }
                for q in recent_quizzes(quizzes, recent_limit)
            ]
            if quizzes is not None else None
        ),
        "topStudents": (
            top_performers(attempts, top_performer_min_attempts, top_performer_limit)
            if attempts is not None else None
        ),
        "unavailable": unavailable
    }


__all__ = [
    "round_half_up",
    "round_places",
    "percentage",
    "per_grade_distribution",
    "top_performers",
    "quiz_statistics",
    "teacher_summary",
    "overall_average_percentage",
    "recent_quizzes",
    "student_performance",
    "filter_students",
    "teacher_overview",
    "build_admin_overview"
]
