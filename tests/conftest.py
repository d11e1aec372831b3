"""
Shared fixtures: moto DynamoDB tables, a small curriculum, a fixed clock
"""
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from progress_engine.catalog import CurriculumCatalog, LevelingTable
from progress_engine.dynamo import ProgressRepository
from progress_engine.dynamo_achievements import AchievementRepository
from progress_engine.models import Achievement, UserProgress
from progress_engine.services.achievement_service import AchievementService
from progress_engine.services.progress_service import ProgressService

PROGRESS_TABLE = "test-user-progress"
ACHIEVEMENTS_TABLE = "test-achievements"


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_catalog() -> CurriculumCatalog:
    return CurriculumCatalog.model_validate({
        "levels": [
            {
                "id": "beginner",
                "name": "Beginner",
                "requiredXp": 0,
                "modules": [
                    {
                        "id": "beginner-basics",
                        "name": "Basics",
                        "order": 1,
                        "lessons": [
                            {"id": "beginner-alphabet", "name": "Alphabet", "order": 1, "xpReward": 100},
                            {"id": "beginner-greetings", "name": "Greetings", "order": 2, "xpReward": 100},
                        ],
                    },
                    {
                        "id": "beginner-daily",
                        "name": "Daily Life",
                        "order": 2,
                        "lessons": [
                            {"id": "beginner-numbers", "name": "Numbers", "order": 1, "xpReward": 100},
                            {"id": "beginner-family", "name": "Family", "order": 2, "xpReward": 100},
                        ],
                    },
                ],
            },
            {
                "id": "intermediate",
                "name": "Intermediate",
                "requiredXp": 500,
                "modules": [
                    {
                        "id": "intermediate-travel",
                        "name": "Travel",
                        "order": 1,
                        "lessons": [
                            {"id": "intermediate-airport", "name": "At the Airport", "order": 1, "xpReward": 150},
                        ],
                    },
                ],
            },
        ]
    })


def make_achievement(achievement_id, criteria_type, threshold=1, extra_params=None, **overrides) -> Achievement:
    data = {
        "id": achievement_id,
        "title": achievement_id.replace("-", " ").title(),
        "description": f"Achievement {achievement_id}",
        "category": overrides.pop("category", "milestone"),
        "criteria": {"type": criteria_type, "threshold": threshold, "extraParams": extra_params or {}},
        "xpReward": overrides.pop("xp_reward", 50),
    }
    data.update(overrides)
    return Achievement.model_validate(data)


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def leveling():
    return LevelingTable.from_pairs([(1, 0), (2, 100), (3, 300), (4, 600)])


@pytest.fixture
def progress():
    return UserProgress(user_id="user-1", timezone="UTC")


@pytest.fixture
def clock():
    # Wednesday
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mock DynamoDB tables, returns (progress_table, achievements_table)"""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        tables = []
        for name in (PROGRESS_TABLE, ACHIEVEMENTS_TABLE):
            tables.append(dynamodb.create_table(
                TableName=name,
                KeySchema=[
                    {"AttributeName": "PK", "KeyType": "HASH"},
                    {"AttributeName": "SK", "KeyType": "RANGE"}
                ],
                AttributeDefinitions=[
                    {"AttributeName": "PK", "AttributeType": "S"},
                    {"AttributeName": "SK", "AttributeType": "S"}
                ],
                BillingMode="PAY_PER_REQUEST"
            ))
        yield tables[0], tables[1]


@pytest.fixture
def progress_repository(dynamodb_tables):
    return ProgressRepository(dynamodb_tables[0])


@pytest.fixture
def achievement_repository(dynamodb_tables):
    return AchievementRepository(dynamodb_tables[0], dynamodb_tables[1])


@pytest.fixture
def achievement_service(progress_repository, achievement_repository, catalog, leveling, clock):
    return AchievementService(
        progress_repository,
        achievement_repository,
        catalog,
        leveling,
        cache_ttl_seconds=0,
        clock=clock,
    )


@pytest.fixture
def progress_service(progress_repository, achievement_service, catalog, leveling, clock):
    return ProgressService(progress_repository, achievement_service, catalog, leveling, clock=clock)


@pytest.fixture
def seed(achievement_repository):
    """Write achievements to the mocked catalog table"""
    def _seed(*achievements):
        for achievement in achievements:
            achievement_repository.put_achievement(achievement)
    return _seed
