"""
Achievement criteria evaluation

Stored criteria ({type, threshold, extraParams}) are parsed into a closed set
of typed rules, one class per criteria type. Each rule answers two questions
against a UserStats snapshot: is it met, and how far along (0-100) is the
learner.

Parsing never raises. An unknown type, or a threshold a rule cannot work with,
becomes an UnknownRule which is never met. Malformed optional parameters are
dropped, which only disables the refinement they control.
"""
from datetime import date, datetime, timezone as dt_timezone
from typing import Annotated, Any, Dict, FrozenSet, Literal, Optional, Tuple, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from progress_engine.catalog import CurriculumCatalog
from progress_engine.logic.path_logic import module_completion_map
from progress_engine.logic.streak_service import resolve_timezone, to_local
from progress_engine.models import AchievementCriteria, UserProgress

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6


# ============= STATS SNAPSHOT =============

class UserStats(BaseModel):
    """Point-in-time statistics the rules are evaluated against"""
    model_config = ConfigDict(frozen=True)

    streak_days: int = 0
    lessons_completed: int = 0
    completed_lesson_ids: FrozenSet[str] = frozenset()
    module_completion: Dict[str, bool] = Field(default_factory=dict)
    vocabulary_learned: int = 0
    grammar_mastered: int = 0
    pronunciation_accuracies: Tuple[float, ...] = ()
    practice_days: Tuple[date, ...] = ()
    local_now: datetime


def build_user_stats(
    progress: UserProgress,
    catalog: CurriculumCatalog,
    now: Optional[datetime] = None,
    default_timezone: str = "UTC"
) -> UserStats:
    """
    Snapshot a progress record for evaluation

    Module completion is derived from lesson records and the catalog, never
    read from stored module records. Practice days and the local clock use
    the learner's timezone.
    """
    if now is None:
        now = datetime.now(dt_timezone.utc)
    tz = resolve_timezone(progress.timezone, default_timezone)

    return UserStats(
        streak_days=progress.streak.current,
        lessons_completed=len(progress.completed_lesson_ids()),
        completed_lesson_ids=frozenset(progress.completed_lesson_ids()),
        module_completion=module_completion_map(progress, catalog),
        vocabulary_learned=progress.vocabulary_learned,
        grammar_mastered=progress.grammar_mastered,
        pronunciation_accuracies=tuple(e.accuracy for e in progress.pronunciation_exercises),
        practice_days=tuple(to_local(s.timestamp, tz).date() for s in progress.practice_sessions),
        local_now=to_local(now, tz),
    )


def proportional(value: float, threshold: float) -> int:
    if threshold <= 0:
        return 0
    return max(0, min(100, round(value / threshold * 100)))


# ============= RULES =============

class CriteriaRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    def is_met(self, stats: UserStats) -> bool:
        return False

    def estimate(self, stats: UserStats) -> int:
        return 100 if self.is_met(stats) else 0

    def describe(self) -> str:
        return "Complete the required activities to unlock this achievement"


class CounterRule(CriteriaRule):
    """Met when a counter reaches the threshold; progress is proportional"""
    threshold: float = Field(gt=0)

    def current_value(self, stats: UserStats) -> float:
        raise NotImplementedError

    def is_met(self, stats: UserStats) -> bool:
        return self.current_value(stats) >= self.threshold

    def estimate(self, stats: UserStats) -> int:
        return proportional(self.current_value(stats), self.threshold)

    @property
    def amount(self) -> str:
        return f"{self.threshold:g}"


class StreakDaysRule(CounterRule):
    type: Literal["streak_days"]

    def current_value(self, stats):
        return stats.streak_days

    def describe(self):
        return f"Practice for {self.amount} consecutive days"


class LessonsCompletedRule(CounterRule):
    type: Literal["lessons_completed"]

    def current_value(self, stats):
        return stats.lessons_completed

    def describe(self):
        if self.threshold == 1:
            return "Complete your first lesson in any module"
        return f"Complete {self.amount} lessons"


class VocabularyLearnedRule(CounterRule):
    type: Literal["vocabulary_learned"]

    def current_value(self, stats):
        return stats.vocabulary_learned

    def describe(self):
        return f"Learn {self.amount} words through lessons and practice"


class GrammarMasteredRule(CounterRule):
    type: Literal["grammar_mastered"]

    def current_value(self, stats):
        return stats.grammar_mastered

    def describe(self):
        return f"Master {self.amount} grammar patterns"


class PronunciationAccuracyRule(CounterRule):
    """Enough exercises at or above the accuracy threshold"""
    type: Literal["pronunciation_accuracy"]
    exercise_count: Optional[int] = None

    def current_value(self, stats):
        return sum(1 for accuracy in stats.pronunciation_accuracies if accuracy >= self.threshold)

    def is_met(self, stats):
        if not self.exercise_count:
            return False
        return self.current_value(stats) >= self.exercise_count

    def estimate(self, stats):
        if not self.exercise_count:
            return 0
        return proportional(self.current_value(stats), self.exercise_count)

    def describe(self):
        return f"Achieve {self.amount}% accuracy in {self.exercise_count or 1} pronunciation exercises"


class SpecificLessonRule(CriteriaRule):
    type: Literal["specific_lesson"]
    lesson_id: Optional[str] = None

    def is_met(self, stats):
        return bool(self.lesson_id) and self.lesson_id in stats.completed_lesson_ids

    def describe(self):
        return f"Complete the lesson {self.lesson_id}" if self.lesson_id else "Complete the specified lesson"


class ModuleCompletedRule(CriteriaRule):
    type: Literal["module_completed"]
    module_id: Optional[str] = None

    def is_met(self, stats):
        return bool(self.module_id) and stats.module_completion.get(self.module_id, False)

    def describe(self):
        return f"Complete all lessons in the {self.module_id or 'specified'} module"


class LevelCompletedRule(CriteriaRule):
    """Every module whose id is namespaced under the level is completed"""
    type: Literal["level_completed"]
    level: Optional[str] = None

    def is_met(self, stats):
        if not self.level:
            return False
        flags = [done for module_id, done in stats.module_completion.items() if module_id.startswith(self.level)]
        return len(flags) > 0 and all(flags)

    def describe(self):
        return f"Complete all modules in the {self.level or 'specified'} level"


class CurriculumCompletedRule(CriteriaRule):
    type: Literal["curriculum_completed"]

    def is_met(self, stats):
        flags = list(stats.module_completion.values())
        return len(flags) > 0 and all(flags)

    def describe(self):
        return "Complete all lessons in the entire curriculum"


class PracticeTimeRule(CriteriaRule):
    """
    Practice before ``before_hour`` or from ``after_hour`` on, local time.

    Evaluated against the current clock, so a learner only qualifies while
    active inside the window.
    """
    type: Literal["practice_time"]
    before_hour: Optional[int] = Field(default=None, ge=0, le=24)
    after_hour: Optional[int] = Field(default=None, ge=0, le=24)

    def is_met(self, stats):
        hour = stats.local_now.hour
        if self.before_hour is not None and hour < self.before_hour:
            return True
        if self.after_hour is not None and hour >= self.after_hour:
            return True
        return False

    def describe(self):
        if self.before_hour is not None:
            return f"Practice before {self.before_hour}:00"
        if self.after_hour is not None:
            return f"Practice after {self.after_hour}:00"
        return "Practice at a special time"


class WeekendPracticeRule(CriteriaRule):
    type: Literal["weekend_practice"]

    def is_met(self, stats):
        if stats.local_now.weekday() not in (SATURDAY, SUNDAY):
            return False
        weekdays = {d.weekday() for d in stats.practice_days}
        return SATURDAY in weekdays and SUNDAY in weekdays

    def describe(self):
        return "Practice on both Saturday and Sunday"


class CustomRule(CriteriaRule):
    """Reserved for achievements granted outside the engine; never met here"""
    type: Literal["custom"]

    def is_met(self, stats):
        return False

    def describe(self):
        return "Complete a special challenge"


class UnknownRule(CriteriaRule):
    type: str
    reason: str = "unrecognized type"

    def is_met(self, stats):
        return False


Rule = Annotated[
    Union[
        StreakDaysRule,
        LessonsCompletedRule,
        VocabularyLearnedRule,
        GrammarMasteredRule,
        PronunciationAccuracyRule,
        SpecificLessonRule,
        ModuleCompletedRule,
        LevelCompletedRule,
        CurriculumCompletedRule,
        PracticeTimeRule,
        WeekendPracticeRule,
        CustomRule,
    ],
    Field(discriminator="type"),
]

_rule_adapter = TypeAdapter(Rule)

KNOWN_TYPES = frozenset({
    'streak_days', 'lessons_completed', 'vocabulary_learned', 'grammar_mastered',
    'pronunciation_accuracy', 'specific_lesson', 'module_completed', 'level_completed',
    'curriculum_completed', 'practice_time', 'weekend_practice', 'custom',
})


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_hour(value: Any) -> Optional[int]:
    hour = _as_int(value)
    return hour if hour is not None and 0 <= hour <= 24 else None


# extraParams key -> (rule field, coercion)
_EXTRA_PARAMS = {
    'lessonId': ('lesson_id', _as_str),
    'moduleId': ('module_id', _as_str),
    'level': ('level', _as_str),
    'exerciseCount': ('exercise_count', _as_int),
    'beforeHour': ('before_hour', _as_hour),
    'afterHour': ('after_hour', _as_hour),
}


# ============= PARSING AND EVALUATION =============

def parse_criteria(criteria: Optional[AchievementCriteria]) -> Union[Rule, UnknownRule]:
    """
    Turn stored criteria into a typed rule. Never raises.
    """
    if criteria is None:
        return UnknownRule(type="", reason="missing criteria")

    if criteria.type not in KNOWN_TYPES:
        logger.warning(f"Unknown criteria type {criteria.type!r}, treating as not met")
        return UnknownRule(type=criteria.type)

    payload: Dict[str, Any] = {'type': criteria.type}
    if criteria.threshold is not None:
        payload['threshold'] = criteria.threshold

    params = criteria.extra_params if isinstance(criteria.extra_params, dict) else {}
    for key, (field, coerce) in _EXTRA_PARAMS.items():
        if key not in params:
            continue
        value = coerce(params[key])
        if value is None:
            logger.warning(f"Ignoring malformed extraParams.{key}={params[key]!r} on {criteria.type} criteria")
            continue
        payload[field] = value

    try:
        return _rule_adapter.validate_python(payload)
    except PydanticValidationError as e:
        logger.warning(f"Criteria {criteria.type!r} not evaluable: {e.errors()[0].get('msg')}")
        return UnknownRule(type=criteria.type, reason="invalid parameters")


def evaluate(criteria: Optional[AchievementCriteria], stats: UserStats) -> bool:
    """True if the criteria are met for this stats snapshot"""
    rule = parse_criteria(criteria)
    result = rule.is_met(stats)
    logger.debug(f"Criteria eval: {rule.type} -> {result}")
    return result


def estimate_progress(criteria: Optional[AchievementCriteria], stats: UserStats) -> int:
    """Progress toward the criteria, 0-100"""
    return parse_criteria(criteria).estimate(stats)


def describe_criteria(criteria: Optional[AchievementCriteria]) -> str:
    return parse_criteria(criteria).describe()

