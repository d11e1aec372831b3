"""
Pydantic schemas for achievements
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from progress_engine.models import AchievementCriteria, CamelModel

SECRET_TITLE = "Secret Achievement"
SECRET_DESCRIPTION = "Keep learning to discover this achievement"


class AchievementView(CamelModel):
    """Catalog entry as presented to clients"""
    id: str
    title: str
    description: str
    category: str
    icon_url: str
    xp_reward: int
    is_secret: bool = False
    criteria: Optional[AchievementCriteria] = None
    criteria_description: Optional[str] = None


class UserAchievementView(CamelModel):
    """Catalog entry merged with a learner's earned state"""
    achievement: AchievementView
    earned: bool = False
    earned_at: Optional[datetime] = None
    is_viewed: bool = False
    progress_percent: int = 0
    hidden: bool = False

    @model_validator(mode='after')
    def mask_hidden(self):
        """Unearned secret achievements do not reveal what unlocks them"""
        if self.hidden:
            self.achievement = self.achievement.model_copy(update={
                'title': SECRET_TITLE,
                'description': SECRET_DESCRIPTION,
                'criteria': None,
                'criteria_description': None,
            })
        return self


class AwardedAchievement(CamelModel):
    """An achievement granted by the latest check"""
    achievement_id: str
    title: str
    xp_reward: int
    earned_at: datetime
    level_up: bool = False


class CheckAchievementsResponse(CamelModel):
    user_id: str
    new_achievements: List[AwardedAchievement] = Field(default_factory=list)
    total_xp_awarded: int = 0


class MarkViewedRequest(CamelModel):
    achievement_ids: List[str] = Field(..., min_length=1)


class MarkViewedResponse(CamelModel):
    user_id: str
    marked: int
