"""
Progress Service - learner progression workflows

Every operation loads the progress document, applies pure logic from
progress_engine.logic, saves under the document's version token and, where
the event can unlock something, runs the achievement check. Progress is never
cached between calls.
"""
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import logging

from progress_engine.catalog import (
    CurriculumCatalog,
    CurriculumLesson,
    CurriculumLevel,
    CurriculumModule,
    LevelingTable,
)
from progress_engine.dynamo import ProgressRepository
from progress_engine.errors import ConcurrentModificationError, ValidationError
from progress_engine.logic.gamification import add_xp, apply_level, practice_xp, xp_to_next_level
from progress_engine.logic.path_logic import build_level_views, current_curriculum_level
from progress_engine.logic.reconciler import reconcile
from progress_engine.logic.streak_service import is_valid_timezone, update_streak
from progress_engine.models import (
    ACTIVITY_TYPES,
    SECTION_ORDER,
    CurriculumPointer,
    PracticeSession,
    PronunciationExercise,
    UserProgress,
    require_identifier,
)
from progress_engine.schemas import (
    DailyActivityResponse,
    PracticeSessionResponse,
    ProgressView,
    SkillCountersResponse,
    XpSummary,
)
from progress_engine.schemas_achievements import AwardedAchievement
from progress_engine.services.achievement_service import AchievementService, utc_clock

logger = logging.getLogger(__name__)


class ProgressService:
    """Learner progression: lessons, sections, streaks, practice and XP"""

    def __init__(
        self,
        progress_repository: ProgressRepository,
        achievement_service: AchievementService,
        catalog: CurriculumCatalog,
        leveling: Optional[LevelingTable],
        default_timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_clock,
    ):
        self.progress_repository = progress_repository
        self.achievement_service = achievement_service
        self.catalog = catalog
        self.leveling = leveling
        self.default_timezone = default_timezone
        self.clock = clock

    # ============= HELPERS =============

    def _load(self, user_id: str) -> UserProgress:
        require_identifier(user_id)
        return self.progress_repository.load(user_id)

    def _locate(self, lesson_id: str) -> Tuple[CurriculumLevel, CurriculumModule, CurriculumLesson]:
        require_identifier(lesson_id, "lessonId")
        located = self.catalog.locate_lesson(lesson_id)
        if located is None:
            raise ValidationError(f"Lesson {lesson_id} is not part of the curriculum")
        return located

    def _update_streak(self, progress: UserProgress) -> int:
        _, bonus = update_streak(progress, self.leveling, self.clock(), self.default_timezone)
        return bonus

    def _award(self, user_id: str) -> List[AwardedAchievement]:
        return self.achievement_service.check_and_award(user_id)

    def to_view(self, progress: UserProgress) -> ProgressView:
        return ProgressView(
            user_id=progress.user_id,
            total_experience=progress.total_experience,
            xp_points=progress.xp_points,
            current_level_number=progress.current_level_number,
            level_progress_percent=progress.level_progress_percent,
            next_level_xp_threshold=progress.next_level_xp_threshold,
            lessons_completed=progress.lessons_completed_count,
            total_practice_seconds=progress.total_practice_seconds,
            vocabulary_learned=progress.vocabulary_learned,
            grammar_mastered=progress.grammar_mastered,
            current_curriculum_level=current_curriculum_level(progress, self.catalog),
            streak=progress.streak,
            active_curriculum_pointer=progress.active_curriculum_pointer,
            levels=build_level_views(progress, self.catalog),
            version=progress.version,
        )

    # ============= PROVISIONING =============

    def provision_progress(self, user_id: str, timezone: Optional[str] = None) -> ProgressView:
        """
        Create the zeroed progress document for a new learner

        Raises:
            ValidationError: malformed id, unknown timezone, or record already exists
        """
        require_identifier(user_id)
        if timezone and not is_valid_timezone(timezone):
            raise ValidationError(f"Unknown timezone {timezone}")

        progress = UserProgress(user_id=user_id, timezone=timezone)
        apply_level(progress, self.leveling)
        first_level = next(iter(self.catalog.ordered_levels()), None)
        if first_level is not None:
            progress.active_curriculum_pointer = CurriculumPointer(level=first_level.level_id)
        progress = self.progress_repository.create(progress)
        return self.to_view(progress)

    # ============= READS =============

    def get_progress(self, user_id: str) -> ProgressView:
        """
        Reconciled progress with the full unlock tree

        Corrections found by the reconciler are written back; a concurrent
        writer winning that save does not fail the read.
        """
        progress = self._load(user_id)
        progress, changed = reconcile(progress, self.catalog)
        if changed:
            try:
                progress = self.progress_repository.save(progress)
            except ConcurrentModificationError:
                logger.warning(f"Reconciled progress for {user_id} not saved, document changed concurrently")
        return self.to_view(progress)

    def get_xp_summary(self, user_id: str) -> XpSummary:
        progress = self._load(user_id)
        progress, _ = reconcile(progress)
        return XpSummary(
            user_id=progress.user_id,
            total_experience=progress.total_experience,
            xp_points=progress.xp_points,
            current_level_number=progress.current_level_number,
            level_progress_percent=progress.level_progress_percent,
            next_level_xp_threshold=progress.next_level_xp_threshold,
            xp_to_next_level=xp_to_next_level(progress),
            current_curriculum_level=current_curriculum_level(progress, self.catalog),
            streak=progress.streak,
        )

    # ============= LESSONS AND SECTIONS =============

    def update_lesson_progress(
        self,
        user_id: str,
        lesson_id: str,
        completed: bool = False,
        score: int = 0,
        xp_earned: int = 0,
        completed_section_id: Optional[str] = None,
    ) -> ProgressView:
        """
        Record a lesson attempt

        Attempts always increment and the best score is kept. The first
        completion counts the lesson, grants its XP (xp_earned, or the
        lesson's catalog reward when zero) and advances the streak. Later
        completions of the same lesson change neither.
        """
        _, _, lesson = self._locate(lesson_id)
        if not 0 <= score <= 100:
            raise ValidationError("score must be between 0 and 100")
        if xp_earned < 0:
            raise ValidationError("xpEarned must be >= 0")
        if completed_section_id is not None and completed_section_id not in SECTION_ORDER:
            raise ValidationError(f"Invalid sectionId. Must be one of: {SECTION_ORDER}")

        progress = self._load(user_id)
        now = self.clock()

        record = progress.get_or_create_lesson_record(lesson_id)
        record.attempts += 1
        record.score = max(record.score, score)
        record.last_attempt_at = now

        if completed_section_id:
            self._complete_section(record, completed_section_id, now)

        if completed and not record.completed:
            xp = xp_earned or lesson.xp_reward
            record.completed = True
            record.completed_at = now
            record.xp_earned = xp
            progress.lessons_completed_count += 1
            add_xp(progress, xp, self.leveling)
            self._update_streak(progress)
            logger.info(f"User {user_id} completed lesson {lesson_id} (+{xp} XP)")

        progress, _ = reconcile(progress, self.catalog)
        progress = self.progress_repository.save(progress)

        self._award(user_id)
        return self.get_progress(user_id)

    def _complete_section(self, record, section_id: str, now: datetime) -> None:
        section = record.get_or_create_section(section_id)
        section.last_accessed_at = now
        if not section.completed:
            section.completed = True
            section.completed_at = now
        if section_id not in record.completed_section_ids:
            record.completed_section_ids.append(section_id)

        next_index = min(SECTION_ORDER.index(section_id) + 1, len(SECTION_ORDER) - 1)
        if record.current_section_id in SECTION_ORDER:
            next_index = max(next_index, SECTION_ORDER.index(record.current_section_id))
        record.current_section_id = SECTION_ORDER[next_index]

    def update_section_progress(
        self,
        user_id: str,
        lesson_id: str,
        section_id: str,
        completed: bool = False,
        time_spent_seconds: int = 0,
    ) -> ProgressView:
        """
        Track time and completion for one section of a lesson

        Completing a section moves currentSectionId to the next section in
        introduction -> vocabulary -> grammar -> practice order; it never
        moves backwards.
        """
        self._locate(lesson_id)
        if section_id not in SECTION_ORDER:
            raise ValidationError(f"Invalid sectionId. Must be one of: {SECTION_ORDER}")
        if time_spent_seconds < 0:
            raise ValidationError("timeSpentSeconds must be >= 0")

        progress = self._load(user_id)
        now = self.clock()

        record = progress.get_or_create_lesson_record(lesson_id)
        section = record.get_or_create_section(section_id)
        section.time_spent_seconds += time_spent_seconds
        section.last_accessed_at = now
        if completed:
            self._complete_section(record, section_id, now)

        progress, _ = reconcile(progress, self.catalog)
        self.progress_repository.save(progress)
        return self.get_progress(user_id)

    def set_current_lesson(self, user_id: str, lesson_id: str) -> CurriculumPointer:
        level, module, _ = self._locate(lesson_id)
        progress = self._load(user_id)
        progress.active_curriculum_pointer = CurriculumPointer(
            level=level.level_id,
            current_module_id=module.module_id,
            current_lesson_id=lesson_id,
        )
        progress = self.progress_repository.save(progress)
        self._award(user_id)
        return progress.active_curriculum_pointer

    # ============= ACTIVITY =============

    def record_daily_activity(self, user_id: str) -> DailyActivityResponse:
        """
        Advance the streak for today. Repeat calls on the same local day
        change nothing and write nothing.
        """
        progress = self._load(user_id)
        before = progress.streak.model_copy()
        bonus = self._update_streak(progress)

        new_achievements = []
        if progress.streak != before:
            progress = self.progress_repository.save(progress)
            new_achievements = self._award(user_id)
            progress = self.progress_repository.load(user_id)

        return DailyActivityResponse(
            user_id=user_id,
            streak=progress.streak,
            bonus_xp=bonus,
            total_experience=progress.total_experience,
            new_achievements=new_achievements,
        )

    def add_practice_session(
        self,
        user_id: str,
        duration_seconds: int,
        activity_type: str,
        performance_score: int = 0,
    ) -> PracticeSessionResponse:
        """Log a practice session, grant practice XP and advance the streak"""
        if activity_type not in ACTIVITY_TYPES:
            raise ValidationError(f"Invalid activityType. Must be one of: {sorted(ACTIVITY_TYPES)}")
        if duration_seconds < 0:
            raise ValidationError("durationSeconds must be >= 0")
        if not 0 <= performance_score <= 100:
            raise ValidationError("performanceScore must be between 0 and 100")

        progress = self._load(user_id)
        now = self.clock()

        progress.practice_sessions.append(PracticeSession(
            timestamp=now,
            duration_seconds=duration_seconds,
            activity_type=activity_type,
            performance_score=performance_score,
        ))
        progress.total_practice_seconds += duration_seconds

        xp = practice_xp(activity_type, duration_seconds)
        add_xp(progress, xp, self.leveling)
        bonus = self._update_streak(progress)
        progress = self.progress_repository.save(progress)
        logger.info(f"User {user_id} practiced {activity_type} for {duration_seconds}s (+{xp} XP)")

        new_achievements = self._award(user_id)
        progress = self.progress_repository.load(user_id)
        return PracticeSessionResponse(
            user_id=user_id,
            xp_awarded=xp,
            bonus_xp=bonus,
            total_practice_seconds=progress.total_practice_seconds,
            streak=progress.streak,
            new_achievements=new_achievements,
        )

    # ============= SKILL COUNTERS =============

    def _skill_response(self, user_id: str, new_achievements: List[AwardedAchievement]) -> SkillCountersResponse:
        progress = self.progress_repository.load(user_id)
        return SkillCountersResponse(
            user_id=user_id,
            vocabulary_learned=progress.vocabulary_learned,
            grammar_mastered=progress.grammar_mastered,
            pronunciation_exercises=len(progress.pronunciation_exercises),
            new_achievements=new_achievements,
        )

    def record_vocabulary_learned(self, user_id: str, count: int) -> SkillCountersResponse:
        if count <= 0:
            raise ValidationError("count must be positive")
        progress = self._load(user_id)
        progress.vocabulary_learned += count
        self.progress_repository.save(progress)
        return self._skill_response(user_id, self._award(user_id))

    def record_grammar_mastered(self, user_id: str, count: int) -> SkillCountersResponse:
        if count <= 0:
            raise ValidationError("count must be positive")
        progress = self._load(user_id)
        progress.grammar_mastered += count
        self.progress_repository.save(progress)
        return self._skill_response(user_id, self._award(user_id))

    def record_pronunciation_exercise(self, user_id: str, accuracy: float) -> SkillCountersResponse:
        if accuracy is None or not 0 <= accuracy <= 100:
            raise ValidationError("accuracy must be between 0 and 100")
        progress = self._load(user_id)
        progress.pronunciation_exercises.append(
            PronunciationExercise(timestamp=self.clock(), accuracy=accuracy)
        )
        self.progress_repository.save(progress)
        return self._skill_response(user_id, self._award(user_id))
