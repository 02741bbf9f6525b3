"""
Quiz Portal
Analytics API routes
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_repositories, require_admin
from ..repositories import Repositories
from ..services.analytics import build_admin_overview
from ..services.identity import RequestContext
from ...config import get_settings

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


class AnalyticsOverviewResponse(BaseModel):
    totalQuizzes: Optional[int]
    totalAttempts: Optional[int]
    totalStudents: Optional[int]
    totalTeachers: Optional[int]
    averageScore: Optional[int]
    gradeDistribution: List[Dict[str, Any]]
    recentQuizzes: Optional[List[Dict[str, Any]]]
    topStudents: Optional[List[Dict[str, Any]]]
    unavailable: List[str]


@router.get("/overview", response_model=AnalyticsOverviewResponse)
async def get_analytics_overview(
    context: RequestContext = Depends(require_admin),
    repos: Repositories = Depends(get_repositories)
):
    """Platform totals, grade distribution, top performers and recent quizzes.

    A collection that cannot be read is listed in ``unavailable`` and its
    figures are null; the rest of the overview is still returned.
    """
    settings = get_settings()

    overview = await build_admin_overview(
        repos,
        top_performer_min_attempts=settings.TOP_PERFORMER_MIN_ATTEMPTS,
        top_performer_limit=settings.TOP_PERFORMER_LIMIT,
        recent_limit=settings.RECENT_QUIZZES_LIMIT
    )

    if overview["unavailable"]:
        logger.warning(f"⚠️ Analytics overview served without: {', '.join(overview['unavailable'])}")

    return AnalyticsOverviewResponse(**overview)


__all__ = ["router"]
