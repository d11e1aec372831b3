"""
DynamoDB access for the progression engine

Single-table layout for learner data:
- PK=USER#{userId}, SK=PROGRESS                  -> UserProgress document
- PK=USER#{userId}, SK=ACHIEVEMENT#{achievementId} -> earned achievement row

Writes to the progress document are conditional on its version token.
"""
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from decimal import Decimal
import logging

from progress_engine.config import get_settings
from progress_engine.errors import (
    ConcurrentModificationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from progress_engine.models import UserProgress

logger = logging.getLogger(__name__)

PROGRESS_SK = "PROGRESS"


class DynamoDBClient:
    """DynamoDB client with lazy initialization"""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self._dynamodb = None
        self._progress_table = None
        self._achievements_table = None

    @property
    def dynamodb(self):
        """Lazy initialization of DynamoDB resource"""
        if self._dynamodb is None:
            kwargs = {
                'region_name': self.settings.AWS_REGION,
            }

            # Only use endpoint_url for LocalStack
            if self.settings.DYNAMODB_ENDPOINT:
                kwargs['endpoint_url'] = self.settings.DYNAMODB_ENDPOINT

            # Explicit credentials only in LocalStack mode; otherwise the default chain
            if self.settings.DYNAMODB_ENDPOINT and self.settings.AWS_ACCESS_KEY_ID:
                kwargs['aws_access_key_id'] = self.settings.AWS_ACCESS_KEY_ID
                kwargs['aws_secret_access_key'] = self.settings.AWS_SECRET_ACCESS_KEY
                logger.info("Using explicit AWS credentials (LocalStack mode)")
            else:
                logger.info("Using default AWS credential chain")

            self._dynamodb = boto3.resource('dynamodb', **kwargs)
        return self._dynamodb

    @property
    def progress_table(self):
        if self._progress_table is None:
            self._progress_table = self.dynamodb.Table(self.settings.DYNAMODB_PROGRESS_TABLE)
        return self._progress_table

    @property
    def achievements_table(self):
        if self._achievements_table is None:
            self._achievements_table = self.dynamodb.Table(self.settings.DYNAMODB_ACHIEVEMENTS_TABLE)
        return self._achievements_table


# Global instance
db_client = DynamoDBClient()


# ============= KEYS AND CONVERSION =============

def build_user_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_conditional_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def dynamodb_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert Python dict to DynamoDB compatible dict (floats -> Decimal)"""
    return {k: dynamodb_value(v) for k, v in data.items()}


def dynamodb_value(value: Any) -> Any:
    """Convert Python value to DynamoDB compatible value"""
    if isinstance(value, float):
        return Decimal(str(value))
    elif isinstance(value, dict):
        return {k: dynamodb_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [dynamodb_value(item) for item in value]
    return value


def python_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert DynamoDB dict to Python dict (handles Decimal)"""
    return {k: python_value(v) for k, v in data.items()}


def python_value(value: Any) -> Any:
    """Convert DynamoDB value to Python value"""
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else float(value)
    elif isinstance(value, dict):
        return {k: python_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [python_value(item) for item in value]
    return value


def progress_to_item(progress: UserProgress) -> Dict[str, Any]:
    item = progress.model_dump(mode='json', by_alias=True)
    item['PK'] = build_user_pk(progress.user_id)
    item['SK'] = PROGRESS_SK
    return dynamodb_dict(item)


def item_to_progress(item: Dict[str, Any]) -> UserProgress:
    data = python_dict(item)
    data.pop('PK', None)
    data.pop('SK', None)
    return UserProgress.model_validate(data)


# ============= PROGRESS DOCUMENT =============

class ProgressRepository:
    """Load and save UserProgress documents with optimistic locking"""

    def __init__(self, table):
        self.table = table

    def get(self, user_id: str) -> Optional[UserProgress]:
        """
        Get a progress document

        Returns:
            UserProgress or None if the user has no record
        """
        try:
            response = self.table.get_item(Key={'PK': build_user_pk(user_id), 'SK': PROGRESS_SK})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error loading progress for {user_id}: {str(e)}")
            raise PersistenceError(f"Could not load progress for {user_id}") from e

        if 'Item' not in response:
            return None
        return item_to_progress(response['Item'])

    def load(self, user_id: str) -> UserProgress:
        """Like get(), but a missing record is an error"""
        progress = self.get(user_id)
        if progress is None:
            raise NotFoundError(f"Progress for user {user_id} not found")
        return progress

    def create(self, progress: UserProgress) -> UserProgress:
        """
        Persist a new progress document

        Raises:
            ValidationError: a document already exists for the user
        """
        now = utcnow()
        progress.created_at = progress.created_at or now
        progress.updated_at = now
        progress.version = 1
        try:
            self.table.put_item(
                Item=progress_to_item(progress),
                ConditionExpression='attribute_not_exists(PK)'
            )
        except ClientError as e:
            if is_conditional_failure(e):
                raise ValidationError(f"Progress for user {progress.user_id} already exists") from e
            logger.error(f"Error creating progress for {progress.user_id}: {str(e)}")
            raise PersistenceError(f"Could not create progress for {progress.user_id}") from e
        except BotoCoreError as e:
            logger.error(f"Error creating progress for {progress.user_id}: {str(e)}")
            raise PersistenceError(f"Could not create progress for {progress.user_id}") from e

        logger.info(f"Created progress for user {progress.user_id}")
        return progress

    def save(self, progress: UserProgress) -> UserProgress:
        """
        Replace the document if nobody else saved it since it was loaded

        The in-memory version is bumped only after the write succeeds.

        Raises:
            ConcurrentModificationError: stored version differs from progress.version
            PersistenceError: any other storage failure
        """
        expected_version = progress.version
        candidate = progress.model_copy(update={'version': expected_version + 1, 'updated_at': utcnow()})
        try:
            self.table.put_item(
                Item=progress_to_item(candidate),
                ConditionExpression='attribute_exists(PK) AND version = :expected_version',
                ExpressionAttributeValues={':expected_version': expected_version}
            )
        except ClientError as e:
            if is_conditional_failure(e):
                logger.error(
                    f"Version mismatch for {progress.user_id}: expected {expected_version}, item was modified"
                )
                raise ConcurrentModificationError("Concurrent modification detected. Please retry.") from e
            logger.error(f"Error saving progress for {progress.user_id}: {str(e)}")
            raise PersistenceError(f"Could not save progress for {progress.user_id}") from e
        except BotoCoreError as e:
            logger.error(f"Error saving progress for {progress.user_id}: {str(e)}")
            raise PersistenceError(f"Could not save progress for {progress.user_id}") from e

        progress.version = candidate.version
        progress.updated_at = candidate.updated_at
        return progress
