"""
Service wiring for the API

Catalogs and services are built once per process. Tests replace them through
``app.dependency_overrides``.
"""
from functools import lru_cache
import logging

from progress_engine import content_client
from progress_engine.catalog import CurriculumCatalog, LevelingTable, load_curriculum, load_leveling_table
from progress_engine.config import get_settings
from progress_engine.dynamo import ProgressRepository, db_client
from progress_engine.dynamo_achievements import AchievementRepository
from progress_engine.services.achievement_service import AchievementService
from progress_engine.services.progress_service import ProgressService

logger = logging.getLogger(__name__)


@lru_cache()
def get_curriculum_catalog() -> CurriculumCatalog:
    settings = get_settings()
    if settings.CONTENT_SERVICE_URL:
        logger.info(f"Loading curriculum from Content Service at {settings.CONTENT_SERVICE_URL}")
        return content_client.fetch_curriculum(
            settings.CONTENT_SERVICE_URL,
            timeout=settings.CONTENT_SERVICE_TIMEOUT_SECONDS
        )
    return load_curriculum(settings.CURRICULUM_PATH)


@lru_cache()
def get_leveling_table() -> LevelingTable:
    return load_leveling_table(get_settings().LEVELS_PATH)


@lru_cache()
def get_achievement_service() -> AchievementService:
    settings = get_settings()
    return AchievementService(
        progress_repository=ProgressRepository(db_client.progress_table),
        achievement_repository=AchievementRepository(db_client.progress_table, db_client.achievements_table),
        catalog=get_curriculum_catalog(),
        leveling=get_leveling_table(),
        cache_ttl_seconds=settings.ACHIEVEMENT_CACHE_TTL_SECONDS,
        default_timezone=settings.DEFAULT_TIMEZONE,
    )


@lru_cache()
def get_progress_service() -> ProgressService:
    settings = get_settings()
    return ProgressService(
        progress_repository=ProgressRepository(db_client.progress_table),
        achievement_service=get_achievement_service(),
        catalog=get_curriculum_catalog(),
        leveling=get_leveling_table(),
        default_timezone=settings.DEFAULT_TIMEZONE,
    )
