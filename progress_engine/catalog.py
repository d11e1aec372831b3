"""
Read-only catalogs: the curriculum (levels -> modules -> lessons) and the
leveling table (level number -> XP threshold).

Both are loaded once per process and never mutated.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import Field

from progress_engine.models import CamelModel

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_CURRICULUM_PATH = DATA_DIR / "curriculum.json"
DEFAULT_LEVELS_PATH = DATA_DIR / "levels.json"


class CurriculumLesson(CamelModel):
    lesson_id: str = Field(alias="id")
    name: str = ""
    order: int = 0
    xp_reward: int = 0
    estimated_duration: int = 0


class CurriculumModule(CamelModel):
    module_id: str = Field(alias="id")
    name: str = ""
    order: int = 0
    lessons: List[CurriculumLesson] = Field(default_factory=list)

    def ordered_lessons(self) -> List[CurriculumLesson]:
        return sorted(self.lessons, key=lambda l: l.order)

    def lesson_ids(self) -> List[str]:
        return [l.lesson_id for l in self.lessons]


class CurriculumLevel(CamelModel):
    level_id: str = Field(alias="id")
    name: str = ""
    required_xp: int = 0
    modules: List[CurriculumModule] = Field(default_factory=list)

    def ordered_modules(self) -> List[CurriculumModule]:
        return sorted(self.modules, key=lambda m: m.order)


class CurriculumCatalog(CamelModel):
    levels: List[CurriculumLevel] = Field(default_factory=list)

    def ordered_levels(self) -> List[CurriculumLevel]:
        return sorted(self.levels, key=lambda lv: lv.required_xp)

    def all_modules(self) -> Iterable[CurriculumModule]:
        for level in self.levels:
            yield from level.modules

    def locate_lesson(
        self, lesson_id: str
    ) -> Optional[Tuple[CurriculumLevel, CurriculumModule, CurriculumLesson]]:
        """Find the (level, module, lesson) triple for a lesson id"""
        for level in self.levels:
            for module in level.modules:
                for lesson in module.lessons:
                    if lesson.lesson_id == lesson_id:
                        return level, module, lesson
        return None

    def level_for_xp(self, total_experience: int) -> Optional[CurriculumLevel]:
        """Highest curriculum level whose requiredXp is reached"""
        current = None
        for level in self.ordered_levels():
            if total_experience >= level.required_xp:
                current = level
        return current


class LevelThreshold(CamelModel):
    level: int
    xp_required: int
    name: str = ""


class LevelingTable:
    """Ordered (level number, XP threshold) pairs"""

    def __init__(self, thresholds: Iterable[LevelThreshold] = ()):
        self.thresholds = sorted(thresholds, key=lambda t: t.xp_required)

    def __len__(self):
        return len(self.thresholds)

    def current_level(self, xp: int) -> Optional[LevelThreshold]:
        """Greatest threshold <= xp, or None if xp is below every threshold"""
        current = None
        for threshold in self.thresholds:
            if threshold.xp_required <= xp:
                current = threshold
            else:
                break
        return current

    def next_level(self, xp: int) -> Optional[LevelThreshold]:
        """Least threshold > xp, or None at max level"""
        for threshold in self.thresholds:
            if threshold.xp_required > xp:
                return threshold
        return None

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, int]]) -> "LevelingTable":
        return cls(LevelThreshold(level=level, xp_required=xp) for level, xp in pairs)


# ============= LOADERS =============

def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def parse_curriculum(data: Dict[str, Any]) -> CurriculumCatalog:
    return CurriculumCatalog.model_validate(data)


def load_curriculum(path: Optional[str] = None) -> CurriculumCatalog:
    """Load the curriculum catalog from a JSON file (bundled default if no path)"""
    source = Path(path) if path else DEFAULT_CURRICULUM_PATH
    catalog = parse_curriculum(_read_json(source))
    logger.info(
        f"Loaded curriculum from {source}: {len(catalog.levels)} levels, "
        f"{sum(1 for _ in catalog.all_modules())} modules"
    )
    return catalog


def load_leveling_table(path: Optional[str] = None) -> LevelingTable:
    """Load the leveling table; a missing or unreadable file yields an empty table"""
    source = Path(path) if path else DEFAULT_LEVELS_PATH
    try:
        data = _read_json(source)
    except (OSError, ValueError) as e:
        logger.warning(f"Leveling table unavailable at {source}: {str(e)}")
        return LevelingTable()
    table = LevelingTable(LevelThreshold.model_validate(item) for item in data.get("levels", []))
    logger.info(f"Loaded leveling table from {source}: {len(table)} levels")
    return table
