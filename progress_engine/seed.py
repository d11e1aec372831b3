"""
Achievement catalog seeding

Validates raw achievement definitions and writes them to the catalog table.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from progress_engine.catalog import DATA_DIR
from progress_engine.dynamo_achievements import AchievementRepository
from progress_engine.errors import ValidationError
from progress_engine.logic.achievement_criteria import KNOWN_TYPES
from progress_engine.models import DEFAULT_XP_REWARD, Achievement

logger = logging.getLogger(__name__)

DEFAULT_ACHIEVEMENTS_PATH = DATA_DIR / "achievements.json"
REQUIRED_FIELDS = ("id", "title", "description", "category", "criteria")


def validate_achievement_data(data: Dict[str, Any]) -> Achievement:
    """
    Validate one raw definition

    Requires id, title, description, category and a criteria block with a
    positive threshold. xpReward defaults to 50. Unknown criteria types are
    accepted with a warning; they never award.

    Raises:
        ValidationError: listing every problem found
    """
    errors = [f"{field} is required" for field in REQUIRED_FIELDS if not data.get(field)]

    criteria = data.get("criteria") or {}
    threshold = criteria.get("threshold")
    if not isinstance(threshold, (int, float)) or isinstance(threshold, bool) or threshold <= 0:
        errors.append("criteria.threshold must be a positive number")
    if criteria.get("type") and criteria["type"] not in KNOWN_TYPES:
        logger.warning(f"Achievement {data.get('id')} uses unrecognized criteria type {criteria['type']}")

    if errors:
        raise ValidationError(f"Invalid achievement {data.get('id')}: {'; '.join(errors)}")

    payload = dict(data)
    payload.setdefault("xpReward", DEFAULT_XP_REWARD)
    try:
        return Achievement.model_validate(payload)
    except PydanticValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ValidationError(f"Invalid achievement {data.get('id')}: {problems}") from e


def load_achievement_definitions(path: Optional[str] = None) -> List[Achievement]:
    """Read and validate every definition in a JSON file"""
    source = Path(path) if path else DEFAULT_ACHIEVEMENTS_PATH
    with open(source, "r", encoding="utf-8") as f:
        raw = json.load(f)
    achievements = [validate_achievement_data(item) for item in raw]

    ids = [a.achievement_id for a in achievements]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate achievement ids: {duplicates}")
    return achievements


def seed_achievements(repository: AchievementRepository, achievements: List[Achievement]) -> int:
    """Write definitions to the catalog, replacing existing ones with the same id"""
    for achievement in achievements:
        repository.put_achievement(achievement)
    logger.info(f"Seeded {len(achievements)} achievements")
    return len(achievements)
