"""
Configuration settings for the progression engine
"""
from functools import lru_cache
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # App
    APP_NAME: str = "Progress Engine"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # AWS
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None  # Only for LocalStack
    AWS_SECRET_ACCESS_KEY: Optional[str] = None  # Only for LocalStack

    # DynamoDB
    DYNAMODB_ENDPOINT: Optional[str] = None  # None uses AWS, set for LocalStack
    DYNAMODB_PROGRESS_TABLE: str = "progress-engine-dev-user-progress"  # progress docs + earned achievements
    DYNAMODB_ACHIEVEMENTS_TABLE: str = "progress-engine-dev-achievements"

    # Catalogs (bundled JSON files are used when unset)
    CURRICULUM_PATH: Optional[str] = None
    LEVELS_PATH: Optional[str] = None

    # Content Service, overrides CURRICULUM_PATH when set
    CONTENT_SERVICE_URL: Optional[str] = None
    CONTENT_SERVICE_TIMEOUT_SECONDS: float = 5.0

    # Gamification
    DEFAULT_TIMEZONE: str = "UTC"
    ACHIEVEMENT_CACHE_TTL_SECONDS: int = 300

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns cached settings instance (singleton)"""
    return Settings()
