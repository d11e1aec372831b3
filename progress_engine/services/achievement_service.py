"""Achievement Service - catalog, evaluation and awarding"""
from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging
import time

from progress_engine.catalog import CurriculumCatalog, LevelingTable
from progress_engine.dynamo import ProgressRepository
from progress_engine.dynamo_achievements import AchievementRepository
from progress_engine.errors import ConcurrentModificationError
from progress_engine.logic.achievement_criteria import (
    build_user_stats,
    describe_criteria,
    estimate_progress,
    parse_criteria,
)
from progress_engine.logic.gamification import add_xp
from progress_engine.models import Achievement, UserAchievement, require_identifier
from progress_engine.schemas_achievements import (
    AchievementView,
    AwardedAchievement,
    UserAchievementView,
)

logger = logging.getLogger(__name__)

REWARD_SAVE_ATTEMPTS = 5


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


def to_view(achievement: Achievement) -> AchievementView:
    return AchievementView(
        id=achievement.achievement_id,
        title=achievement.title,
        description=achievement.description,
        category=achievement.category,
        icon_url=achievement.icon_url,
        xp_reward=achievement.xp_reward,
        is_secret=achievement.is_secret,
        criteria=achievement.criteria,
        criteria_description=describe_criteria(achievement.criteria),
    )


class AchievementService:
    """
    Evaluates the achievement catalog against a learner's progress and awards
    newly met achievements exactly once.
    """

    def __init__(
        self,
        progress_repository: ProgressRepository,
        achievement_repository: AchievementRepository,
        catalog: CurriculumCatalog,
        leveling: Optional[LevelingTable],
        cache_ttl_seconds: int = 300,
        default_timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_clock,
    ):
        self.progress_repository = progress_repository
        self.achievement_repository = achievement_repository
        self.catalog = catalog
        self.leveling = leveling
        self.cache_ttl_seconds = cache_ttl_seconds
        self.default_timezone = default_timezone
        self.clock = clock
        self._cached_achievements: Optional[List[Achievement]] = None
        self._cached_at = 0.0

    # ============= CATALOG =============

    def active_achievements(self) -> List[Achievement]:
        """Active catalog entries, cached for cache_ttl_seconds (0 disables caching)"""
        now = time.monotonic()
        expired = self.cache_ttl_seconds <= 0 or now - self._cached_at > self.cache_ttl_seconds
        if self._cached_achievements is None or expired:
            self._cached_achievements = self.achievement_repository.list_achievements(active_only=True)
            self._cached_at = now
        return self._cached_achievements

    def list_achievements(self, category: Optional[str] = None) -> List[AchievementView]:
        achievements = self.active_achievements()
        if category:
            achievements = [a for a in achievements if a.category == category]
        return [to_view(a) for a in achievements]

    # ============= AWARDING =============

    def check_and_award(self, user_id: str) -> List[AwardedAchievement]:
        """
        Award every active achievement the learner now meets

        Flow:
        1. Load progress (NotFoundError if missing)
        2. Load active achievements and already earned ids
        3. Evaluate the rest against one stats snapshot
        4. For each met one: create the earned row, then add the XP reward
           and save progress, reloading on version conflicts

        Earned rows are created with a conditional put, so a concurrent or
        repeated check never awards twice; a lost race is skipped.

        Returns:
            Newly awarded achievements, in catalog order
        """
        require_identifier(user_id)
        progress = self.progress_repository.load(user_id)
        achievements = self.active_achievements()
        earned_ids = self.achievement_repository.get_earned_ids(user_id)

        now = self.clock()
        stats = build_user_stats(progress, self.catalog, now, self.default_timezone)

        awarded = []
        for achievement in achievements:
            if achievement.achievement_id in earned_ids:
                continue

            rule = parse_criteria(achievement.criteria)
            if not rule.is_met(stats):
                continue

            created = self.achievement_repository.create_user_achievement(UserAchievement(
                user_id=user_id,
                achievement_id=achievement.achievement_id,
                earned_at=now,
                is_viewed=False,
                progress_percent=100,
            ))
            if not created:
                continue

            level_up = False
            if achievement.xp_reward > 0:
                progress, level_up = self._grant_reward(progress, achievement.xp_reward)

            logger.info(
                f"User {user_id} earned achievement {achievement.achievement_id} (+{achievement.xp_reward} XP)"
            )
            awarded.append(AwardedAchievement(
                achievement_id=achievement.achievement_id,
                title=achievement.title,
                xp_reward=achievement.xp_reward,
                earned_at=now,
                level_up=level_up,
            ))

        return awarded

    def _grant_reward(self, progress, amount):
        """
        Add an achievement's XP reward, reloading on version conflicts

        Only called after the earned row was created; that row guards against
        a second grant.
        """
        for attempt in range(REWARD_SAVE_ATTEMPTS):
            if attempt:
                progress = self.progress_repository.load(progress.user_id)
            progress, level_up = add_xp(progress, amount, self.leveling)
            try:
                return self.progress_repository.save(progress), level_up
            except ConcurrentModificationError:
                logger.warning(f"Reward save for {progress.user_id} conflicted, reloading (attempt {attempt + 1})")
        raise ConcurrentModificationError(f"Could not save reward XP for {progress.user_id}")

    # ============= USER VIEWS =============

    def get_user_achievements(self, user_id: str) -> List[UserAchievementView]:
        """Every active achievement with the learner's earned state and progress"""
        require_identifier(user_id)
        progress = self.progress_repository.load(user_id)
        earned = {ua.achievement_id: ua for ua in self.achievement_repository.get_user_achievements(user_id)}
        stats = build_user_stats(progress, self.catalog, self.clock(), self.default_timezone)

        views = []
        for achievement in self.active_achievements():
            user_achievement = earned.get(achievement.achievement_id)
            if user_achievement:
                views.append(UserAchievementView(
                    achievement=to_view(achievement),
                    earned=True,
                    earned_at=user_achievement.earned_at,
                    is_viewed=user_achievement.is_viewed,
                    progress_percent=100,
                ))
            else:
                views.append(UserAchievementView(
                    achievement=to_view(achievement),
                    progress_percent=estimate_progress(achievement.criteria, stats),
                    hidden=achievement.is_secret,
                ))

        logger.info(f"User {user_id} achievements: {len(earned)}/{len(views)} earned")
        return views

    def get_unviewed(self, user_id: str) -> List[UserAchievementView]:
        """Earned achievements the learner has not seen yet"""
        require_identifier(user_id)
        catalog = {a.achievement_id: a for a in self.active_achievements()}
        views = []
        for user_achievement in self.achievement_repository.get_unviewed(user_id):
            achievement = catalog.get(user_achievement.achievement_id)
            if achievement is None:
                continue
            views.append(UserAchievementView(
                achievement=to_view(achievement),
                earned=True,
                earned_at=user_achievement.earned_at,
                is_viewed=False,
                progress_percent=100,
            ))
        return views

    def mark_viewed(self, user_id: str, achievement_ids: List[str]) -> int:
        require_identifier(user_id)
        for achievement_id in achievement_ids:
            require_identifier(achievement_id, "achievementId")
        marked = self.achievement_repository.mark_viewed(user_id, achievement_ids)
        logger.info(f"Marked {marked} achievements viewed for {user_id}")
        return marked
