"""
Achievement API endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from progress_engine.dependencies import get_achievement_service
from progress_engine.errors import ProgressError
from progress_engine.http_errors import to_http_exception
from progress_engine.models import ACHIEVEMENT_CATEGORIES
from progress_engine.schemas_achievements import (
    AchievementView,
    CheckAchievementsResponse,
    MarkViewedRequest,
    MarkViewedResponse,
    UserAchievementView,
)
from progress_engine.services.achievement_service import AchievementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/achievements", tags=["Achievements"])


@router.get("", response_model=List[AchievementView])
def list_achievements(
    category: Optional[str] = Query(None, description="streak, skill, completion, milestone or special"),
    service: AchievementService = Depends(get_achievement_service)
):
    """List the active achievement catalog."""
    if category is not None and category not in ACHIEVEMENT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid category. Must be one of: {sorted(ACHIEVEMENT_CATEGORIES)}")
    try:
        return service.list_achievements(category)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error listing achievements: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/users/{user_id}", response_model=List[UserAchievementView])
def get_user_achievements(user_id: str, service: AchievementService = Depends(get_achievement_service)):
    """Every achievement with the user's earned state and progress estimate."""
    try:
        return service.get_user_achievements(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting achievements for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/users/{user_id}/check", response_model=CheckAchievementsResponse)
def check_achievements(user_id: str, service: AchievementService = Depends(get_achievement_service)):
    """Evaluate and award any newly met achievements."""
    try:
        awarded = service.check_and_award(user_id)
        return CheckAchievementsResponse(
            user_id=user_id,
            new_achievements=awarded,
            total_xp_awarded=sum(a.xp_reward for a in awarded)
        )
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error checking achievements for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/users/{user_id}/unviewed", response_model=List[UserAchievementView])
def get_unviewed_achievements(user_id: str, service: AchievementService = Depends(get_achievement_service)):
    """Earned achievements the user has not seen yet."""
    try:
        return service.get_unviewed(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting unviewed achievements for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/users/{user_id}/viewed", response_model=MarkViewedResponse)
def mark_achievements_viewed(
    user_id: str,
    request: MarkViewedRequest,
    service: AchievementService = Depends(get_achievement_service)
):
    try:
        marked = service.mark_viewed(user_id, request.achievement_ids)
        return MarkViewedResponse(user_id=user_id, marked=marked)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error marking achievements viewed for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
