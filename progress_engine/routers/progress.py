"""
Progress API endpoints

Lessons, sections, streaks, practice sessions, skill counters and XP.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from progress_engine.dependencies import get_progress_service
from progress_engine.errors import ProgressError
from progress_engine.http_errors import to_http_exception
from progress_engine.models import CurriculumPointer
from progress_engine.schemas import (
    CurrentLessonRequest,
    DailyActivityResponse,
    LessonProgressRequest,
    PracticeSessionRequest,
    PracticeSessionResponse,
    ProgressView,
    PronunciationRequest,
    ProvisionRequest,
    SectionProgressRequest,
    SkillCountRequest,
    SkillCountersResponse,
    XpSummary,
)
from progress_engine.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post("/{user_id}", response_model=ProgressView, status_code=status.HTTP_201_CREATED)
def provision_progress(
    user_id: str,
    request: Optional[ProvisionRequest] = None,
    service: ProgressService = Depends(get_progress_service)
):
    """Create the progress record for a newly registered user."""
    try:
        return service.provision_progress(user_id, timezone=request.timezone if request else None)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error provisioning progress for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{user_id}", response_model=ProgressView)
def get_progress(user_id: str, service: ProgressService = Depends(get_progress_service)):
    """Get reconciled progress with the level/module/lesson unlock tree."""
    try:
        return service.get_progress(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting progress for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{user_id}/xp", response_model=XpSummary)
def get_xp_summary(user_id: str, service: ProgressService = Depends(get_progress_service)):
    """Get XP totals, level and streak."""
    try:
        return service.get_xp_summary(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting XP summary for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{user_id}/lessons/{lesson_id}", response_model=ProgressView)
def update_lesson_progress(
    user_id: str,
    lesson_id: str,
    request: LessonProgressRequest,
    service: ProgressService = Depends(get_progress_service)
):
    """Record a lesson attempt or completion."""
    try:
        return service.update_lesson_progress(
            user_id,
            lesson_id,
            completed=request.completed,
            score=request.score,
            xp_earned=request.xp_earned,
            completed_section_id=request.completed_section_id
        )
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating lesson {lesson_id} for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{user_id}/lessons/{lesson_id}/sections/{section_id}", response_model=ProgressView)
def update_section_progress(
    user_id: str,
    lesson_id: str,
    section_id: str,
    request: SectionProgressRequest,
    service: ProgressService = Depends(get_progress_service)
):
    """Track time spent in, and completion of, a lesson section."""
    try:
        return service.update_section_progress(
            user_id,
            lesson_id,
            section_id,
            completed=request.completed,
            time_spent_seconds=request.time_spent_seconds
        )
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating section {section_id} of {lesson_id} for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{user_id}/current-lesson", response_model=CurriculumPointer)
def set_current_lesson(
    user_id: str,
    request: CurrentLessonRequest,
    service: ProgressService = Depends(get_progress_service)
):
    """Point the learner at a lesson."""
    try:
        return service.set_current_lesson(user_id, request.lesson_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error setting current lesson for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{user_id}/activity", response_model=DailyActivityResponse)
def record_daily_activity(user_id: str, service: ProgressService = Depends(get_progress_service)):
    """Record app activity for today and update the streak."""
    try:
        return service.record_daily_activity(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error recording activity for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{user_id}/practice", response_model=PracticeSessionResponse)
def add_practice_session(
    user_id: str,
    request: PracticeSessionRequest,
    service: ProgressService = Depends(get_progress_service)
):
    """Log a practice session and grant practice XP."""
    try:
        return service.add_practice_session(
            user_id,
            duration_seconds=request.duration_seconds,
            activity_type=request.activity_type,
            performance_score=request.performance_score
        )
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error adding practice session for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{user_id}/vocabulary", response_model=SkillCountersResponse)
def record_vocabulary_learned(
    user_id: str,
    request: SkillCountRequest,
    service: ProgressService = Depends(get_progress_service)
):
    try:
        return service.record_vocabulary_learned(user_id, request.count)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error recording vocabulary for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{user_id}/grammar", response_model=SkillCountersResponse)
def record_grammar_mastered(
    user_id: str,
    request: SkillCountRequest,
    service: ProgressService = Depends(get_progress_service)
):
    try:
        return service.record_grammar_mastered(user_id, request.count)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error recording grammar for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{user_id}/pronunciation", response_model=SkillCountersResponse)
def record_pronunciation_exercise(
    user_id: str,
    request: PronunciationRequest,
    service: ProgressService = Depends(get_progress_service)
):
    try:
        return service.record_pronunciation_exercise(user_id, request.accuracy)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error recording pronunciation for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
