"""
Pydantic schemas for the progress API

Request and response bodies are camelCase on the wire.
"""
from typing import List, Optional

from pydantic import Field, field_validator

from progress_engine.models import (
    ACTIVITY_TYPES,
    CamelModel,
    CurriculumPointer,
    Streak,
)
from progress_engine.schemas_achievements import AwardedAchievement


# ============= PROGRESS VIEW =============

class LessonView(CamelModel):
    id: str
    name: str
    order: int
    xp_reward: int
    completed: bool = False
    score: int = 0
    attempts: int = 0
    xp_earned: int = 0
    completed_section_ids: List[str] = Field(default_factory=list)
    current_section_id: Optional[str] = None
    is_locked: bool = True


class ModuleView(CamelModel):
    id: str
    name: str
    order: int
    completed: bool = False
    progress_percent: int = 0
    lessons_completed: int = 0
    total_lessons: int = 0
    is_locked: bool = True
    lessons: List[LessonView] = Field(default_factory=list)


class LevelView(CamelModel):
    id: str
    name: str
    required_xp: int
    is_current_level: bool = False
    is_unlocked: bool = False
    modules: List[ModuleView] = Field(default_factory=list)


class XpSummary(CamelModel):
    user_id: str
    total_experience: int
    xp_points: int
    current_level_number: int
    level_progress_percent: float
    next_level_xp_threshold: int
    xp_to_next_level: int
    current_curriculum_level: Optional[str] = None
    streak: Streak


class ProgressView(CamelModel):
    user_id: str
    total_experience: int
    xp_points: int
    current_level_number: int
    level_progress_percent: float
    next_level_xp_threshold: int
    lessons_completed: int
    total_practice_seconds: int = 0
    vocabulary_learned: int = 0
    grammar_mastered: int = 0
    current_curriculum_level: Optional[str] = None
    streak: Streak
    active_curriculum_pointer: CurriculumPointer
    levels: List[LevelView] = Field(default_factory=list)
    version: int = 0


# ============= REQUESTS =============

class ProvisionRequest(CamelModel):
    timezone: Optional[str] = None


class LessonProgressRequest(CamelModel):
    completed: bool = False
    score: int = Field(default=0, ge=0, le=100)
    xp_earned: int = Field(default=0, ge=0)
    completed_section_id: Optional[str] = None


class SectionProgressRequest(CamelModel):
    completed: bool = False
    time_spent_seconds: int = Field(default=0, ge=0)


class CurrentLessonRequest(CamelModel):
    lesson_id: str = Field(..., min_length=1)


class PracticeSessionRequest(CamelModel):
    duration_seconds: int = Field(..., ge=0)
    activity_type: str
    performance_score: int = Field(default=0, ge=0, le=100)

    @field_validator('activity_type')
    @classmethod
    def validate_activity_type(cls, v):
        if v not in ACTIVITY_TYPES:
            raise ValueError(f"Invalid activityType. Must be one of: {sorted(ACTIVITY_TYPES)}")
        return v


class SkillCountRequest(CamelModel):
    count: int = Field(..., ge=1)


class PronunciationRequest(CamelModel):
    accuracy: float = Field(..., ge=0, le=100)


# ============= RESPONSES =============

class DailyActivityResponse(CamelModel):
    user_id: str
    streak: Streak
    bonus_xp: int = 0
    total_experience: int
    new_achievements: List[AwardedAchievement] = Field(default_factory=list)


class PracticeSessionResponse(CamelModel):
    user_id: str
    xp_awarded: int
    bonus_xp: int = 0
    total_practice_seconds: int
    streak: Streak
    new_achievements: List[AwardedAchievement] = Field(default_factory=list)


class SkillCountersResponse(CamelModel):
    user_id: str
    vocabulary_learned: int
    grammar_mastered: int
    pronunciation_exercises: int
    new_achievements: List[AwardedAchievement] = Field(default_factory=list)
