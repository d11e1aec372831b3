"""
Domain models for learner progression

Fields are snake_case in Python and camelCase in storage and on the wire
(``alias_generator=to_camel``). UserProgress is a single document per user;
achievements and earned achievements are separate rows.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from progress_engine.errors import ValidationError


SECTION_ORDER = ["introduction", "vocabulary", "grammar", "practice"]
ACTIVITY_TYPES = {"conversation", "vocabulary", "grammar", "pronunciation", "listening"}
ACHIEVEMENT_CATEGORIES = {"streak", "skill", "completion", "milestone", "special"}
DEFAULT_XP_REWARD = 50

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:@\-]{0,127}$")


def require_identifier(value: Optional[str], name: str = "userId") -> str:
    """
    Validate an externally supplied identifier.

    Raises:
        ValidationError: when the value is missing or not a plain identifier
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"{name} is required")
    if not _IDENTIFIER_RE.match(value):
        raise ValidationError(f"{name} '{value}' is malformed")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============= PROGRESS DOCUMENT =============

class SectionRecord(CamelModel):
    section_id: str
    completed: bool = False
    time_spent_seconds: int = 0
    completed_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None


class LessonRecord(CamelModel):
    lesson_id: str
    completed: bool = False
    score: int = 0
    attempts: int = 0
    xp_earned: int = 0
    completed_section_ids: List[str] = Field(default_factory=list)
    current_section_id: str = SECTION_ORDER[0]
    section_records: List[SectionRecord] = Field(default_factory=list)
    last_attempt_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def get_or_create_section(self, section_id: str) -> SectionRecord:
        for section in self.section_records:
            if section.section_id == section_id:
                return section
        section = SectionRecord(section_id=section_id)
        self.section_records.append(section)
        return section


class ModuleRecord(CamelModel):
    module_id: str
    completed: bool = False
    progress_percent: int = 0
    lessons_completed_in_module: int = 0
    total_lessons_in_module: int = 0


class Streak(CamelModel):
    current: int = 0
    longest: int = 0
    last_practice_date: Optional[date] = None


class CurriculumPointer(CamelModel):
    level: Optional[str] = None
    current_module_id: Optional[str] = None
    current_lesson_id: Optional[str] = None


class PracticeSession(CamelModel):
    timestamp: datetime
    duration_seconds: int
    activity_type: str
    performance_score: int = 0


class PronunciationExercise(CamelModel):
    timestamp: datetime
    accuracy: float


class UserProgress(CamelModel):
    """One learner's progression document"""

    user_id: str
    timezone: Optional[str] = None

    # XP: xp_points is authoritative, total_experience may lag until reconciled
    total_experience: int = 0
    xp_points: int = 0
    current_level_number: int = 1
    level_progress_percent: float = 0
    next_level_xp_threshold: int = 100

    lessons_completed_count: int = 0
    total_practice_seconds: int = 0
    vocabulary_learned: int = 0
    grammar_mastered: int = 0

    streak: Streak = Field(default_factory=Streak)
    lesson_records: List[LessonRecord] = Field(default_factory=list)
    module_records: List[ModuleRecord] = Field(default_factory=list)
    active_curriculum_pointer: CurriculumPointer = Field(default_factory=CurriculumPointer)
    practice_sessions: List[PracticeSession] = Field(default_factory=list)
    pronunciation_exercises: List[PronunciationExercise] = Field(default_factory=list)

    # Optimistic concurrency token, bumped on every successful save
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def find_lesson_record(self, lesson_id: str) -> Optional[LessonRecord]:
        for record in self.lesson_records:
            if record.lesson_id == lesson_id:
                return record
        return None

    def get_or_create_lesson_record(self, lesson_id: str) -> LessonRecord:
        record = self.find_lesson_record(lesson_id)
        if record is None:
            record = LessonRecord(lesson_id=lesson_id)
            self.lesson_records.append(record)
        return record

    def completed_lesson_ids(self) -> Set[str]:
        return {r.lesson_id for r in self.lesson_records if r.completed}


# ============= ACHIEVEMENTS =============

class AchievementCriteria(CamelModel):
    """
    Raw criteria as stored in the catalog.

    ``type`` is deliberately an open string: unrecognised types are kept and
    evaluate to "not met" rather than failing the catalog load.
    """
    type: str
    threshold: Optional[float] = None
    extra_params: Dict[str, Any] = Field(default_factory=dict)


class Achievement(CamelModel):
    achievement_id: str = Field(alias="id")
    title: str
    description: str
    category: str
    criteria: AchievementCriteria
    xp_reward: int = DEFAULT_XP_REWARD
    icon_url: str = "trophy-outline"
    is_secret: bool = False
    is_active: bool = True
    display_order: int = 0

    @field_validator('title', 'description')
    @classmethod
    def validate_text(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator('category')
    @classmethod
    def validate_category(cls, v):
        if v not in ACHIEVEMENT_CATEGORIES:
            raise ValueError(f"Invalid category. Must be one of: {sorted(ACHIEVEMENT_CATEGORIES)}")
        return v

    @field_validator('xp_reward')
    @classmethod
    def validate_xp_reward(cls, v):
        if v < 0:
            raise ValueError("xpReward must be >= 0")
        return v


class UserAchievement(CamelModel):
    user_id: str
    achievement_id: str
    earned_at: datetime
    is_viewed: bool = False
    progress_percent: int = 100
