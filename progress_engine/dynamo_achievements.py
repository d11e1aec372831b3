"""
Achievements - DynamoDB Operations

Catalog table:
  PK: ACHIEVEMENT#{achievementId}
  SK: DEFINITION

Earned achievements live next to the progress document, one item each:
  PK: USER#{userId}
  SK: ACHIEVEMENT#{achievementId}

  Attributes: userId, achievementId, earnedAt (ISO-8601), isViewed, progressPercent

One item per (user, achievement) makes uniqueness a conditional put rather
than a read-then-write check.
"""
from typing import List, Set
import logging

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from progress_engine.dynamo import (
    build_user_pk,
    dynamodb_dict,
    is_conditional_failure,
    python_dict,
)
from progress_engine.errors import PersistenceError
from progress_engine.models import Achievement, UserAchievement

logger = logging.getLogger(__name__)

ACHIEVEMENT_PREFIX = "ACHIEVEMENT#"
DEFINITION_SK = "DEFINITION"


def build_achievement_pk(achievement_id: str) -> str:
    return f"{ACHIEVEMENT_PREFIX}{achievement_id}"


def build_user_achievement_sk(achievement_id: str) -> str:
    return f"{ACHIEVEMENT_PREFIX}{achievement_id}"


class AchievementRepository:
    """Achievement catalog and per-user earned rows"""

    def __init__(self, progress_table, catalog_table):
        self.progress_table = progress_table
        self.catalog_table = catalog_table

    # ============= CATALOG =============

    def list_achievements(self, active_only: bool = True) -> List[Achievement]:
        """
        Scan the catalog

        Rows that fail validation are skipped with a warning so one bad
        definition cannot take the whole catalog down.
        """
        items = []
        kwargs = {}
        try:
            while True:
                response = self.catalog_table.scan(**kwargs)
                items.extend(response.get('Items', []))
                if 'LastEvaluatedKey' not in response:
                    break
                kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error scanning achievement catalog: {str(e)}")
            raise PersistenceError("Could not load achievement catalog") from e

        achievements = []
        for item in items:
            data = python_dict(item)
            data.pop('PK', None)
            data.pop('SK', None)
            try:
                achievement = Achievement.model_validate(data)
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid achievement {data.get('id')}: {e.error_count()} error(s)")
                continue
            if active_only and not achievement.is_active:
                continue
            achievements.append(achievement)

        achievements.sort(key=lambda a: (a.display_order, a.achievement_id))
        logger.info(f"Loaded {len(achievements)} achievements from catalog")
        return achievements

    def put_achievement(self, achievement: Achievement) -> None:
        """Create or replace a catalog entry (seeding)"""
        item = achievement.model_dump(mode='json', by_alias=True)
        item['PK'] = build_achievement_pk(achievement.achievement_id)
        item['SK'] = DEFINITION_SK
        try:
            self.catalog_table.put_item(Item=dynamodb_dict(item))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing achievement {achievement.achievement_id}: {str(e)}")
            raise PersistenceError(f"Could not write achievement {achievement.achievement_id}") from e

    # ============= EARNED ACHIEVEMENTS =============

    def get_user_achievements(self, user_id: str) -> List[UserAchievement]:
        """All achievements earned by a user"""
        items = []
        kwargs = {
            'KeyConditionExpression': Key('PK').eq(build_user_pk(user_id)) & Key('SK').begins_with(ACHIEVEMENT_PREFIX)
        }
        try:
            while True:
                response = self.progress_table.query(**kwargs)
                items.extend(response.get('Items', []))
                if 'LastEvaluatedKey' not in response:
                    break
                kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error getting achievements for {user_id}: {str(e)}")
            raise PersistenceError(f"Could not load achievements for {user_id}") from e

        earned = []
        for item in items:
            data = python_dict(item)
            data.pop('PK', None)
            data.pop('SK', None)
            earned.append(UserAchievement.model_validate(data))
        return earned

    def get_earned_ids(self, user_id: str) -> Set[str]:
        return {ua.achievement_id for ua in self.get_user_achievements(user_id)}

    def create_user_achievement(self, user_achievement: UserAchievement) -> bool:
        """
        Record an earned achievement

        Returns:
            True if created, False if the user already had it
        """
        item = user_achievement.model_dump(mode='json', by_alias=True)
        item['PK'] = build_user_pk(user_achievement.user_id)
        item['SK'] = build_user_achievement_sk(user_achievement.achievement_id)
        try:
            self.progress_table.put_item(
                Item=dynamodb_dict(item),
                ConditionExpression='attribute_not_exists(SK)'
            )
        except ClientError as e:
            if is_conditional_failure(e):
                logger.info(
                    f"Achievement {user_achievement.achievement_id} already earned by {user_achievement.user_id}"
                )
                return False
            logger.error(f"Error assigning achievement {user_achievement.achievement_id}: {str(e)}")
            raise PersistenceError(f"Could not assign achievement {user_achievement.achievement_id}") from e
        except BotoCoreError as e:
            logger.error(f"Error assigning achievement {user_achievement.achievement_id}: {str(e)}")
            raise PersistenceError(f"Could not assign achievement {user_achievement.achievement_id}") from e

        logger.info(f"Achievement {user_achievement.achievement_id} assigned to user {user_achievement.user_id}")
        return True

    def mark_viewed(self, user_id: str, achievement_ids: List[str]) -> int:
        """
        Flip isViewed on earned achievements

        Ids the user has not earned, or already viewed, are ignored.

        Returns:
            Number of rows flipped
        """
        marked = 0
        for achievement_id in dict.fromkeys(achievement_ids):
            try:
                self.progress_table.update_item(
                    Key={'PK': build_user_pk(user_id), 'SK': build_user_achievement_sk(achievement_id)},
                    UpdateExpression='SET isViewed = :viewed',
                    ConditionExpression='attribute_exists(SK) AND isViewed = :not_viewed',
                    ExpressionAttributeValues={':viewed': True, ':not_viewed': False}
                )
                marked += 1
            except ClientError as e:
                if is_conditional_failure(e):
                    continue
                logger.error(f"Error marking achievement {achievement_id} viewed: {str(e)}")
                raise PersistenceError(f"Could not mark achievement {achievement_id} viewed") from e
            except BotoCoreError as e:
                logger.error(f"Error marking achievement {achievement_id} viewed: {str(e)}")
                raise PersistenceError(f"Could not mark achievement {achievement_id} viewed") from e
        return marked

    def get_unviewed(self, user_id: str) -> List[UserAchievement]:
        return [ua for ua in self.get_user_achievements(user_id) if not ua.is_viewed]
