"""
Curriculum path logic: unlock resolution and derived module state

Nothing here is persisted as a flag. Lock state, module completion and the
progress tree are recomputed from lesson records and XP on every call.
"""
import logging
from typing import Dict, List, Optional

from progress_engine.catalog import (
    CurriculumCatalog,
    CurriculumLesson,
    CurriculumLevel,
    CurriculumModule,
)
from progress_engine.models import ModuleRecord, UserProgress
from progress_engine.schemas import LessonView, LevelView, ModuleView

logger = logging.getLogger(__name__)


# ============= MODULE COMPLETION =============

def count_completed_lessons(module: CurriculumModule, progress: UserProgress) -> int:
    completed = progress.completed_lesson_ids()
    return sum(1 for lesson_id in module.lesson_ids() if lesson_id in completed)


def is_module_completed(module: CurriculumModule, progress: UserProgress) -> bool:
    return count_completed_lessons(module, progress) >= len(module.lessons)


def module_completion_map(progress: UserProgress, catalog: CurriculumCatalog) -> Dict[str, bool]:
    """Derived completion for every module in the catalog"""
    return {m.module_id: is_module_completed(m, progress) for m in catalog.all_modules()}


def build_module_record(module: CurriculumModule, progress: UserProgress) -> ModuleRecord:
    total = len(module.lessons)
    done = count_completed_lessons(module, progress)
    percent = round(done / total * 100) if total else 0
    return ModuleRecord(
        module_id=module.module_id,
        completed=done >= total,
        progress_percent=percent,
        lessons_completed_in_module=done,
        total_lessons_in_module=total,
    )


def derive_module_records(progress: UserProgress, catalog: CurriculumCatalog) -> List[ModuleRecord]:
    """
    Module records for every module the learner has touched

    A module is touched when any of its lessons has a record. Records are in
    catalog order.
    """
    touched = {r.lesson_id for r in progress.lesson_records}
    records = []
    for level in catalog.ordered_levels():
        for module in level.ordered_modules():
            if touched.intersection(module.lesson_ids()):
                records.append(build_module_record(module, progress))
    return records


# ============= UNLOCK RESOLUTION =============

def is_module_unlocked(module: CurriculumModule, progress: UserProgress, level: CurriculumLevel) -> bool:
    """
    A level's first module unlocks on XP; any other module unlocks once the
    module ordered immediately before it is fully completed.
    """
    modules = level.ordered_modules()
    index = next((i for i, m in enumerate(modules) if m.module_id == module.module_id), None)
    if index is None:
        logger.warning(f"Module {module.module_id} is not part of level {level.level_id}")
        return False
    if index == 0:
        return progress.total_experience >= level.required_xp
    return is_module_completed(modules[index - 1], progress)


def is_lesson_unlocked(
    lesson: CurriculumLesson,
    module_unlocked: bool,
    progress: UserProgress,
    module: CurriculumModule
) -> bool:
    """
    Lessons in a locked module are locked. The first lesson of an unlocked
    module is open; later ones need the preceding lesson completed.
    """
    if not module_unlocked:
        return False
    lessons = module.ordered_lessons()
    index = next((i for i, l in enumerate(lessons) if l.lesson_id == lesson.lesson_id), None)
    if index is None:
        return False
    if index == 0:
        return True
    previous = progress.find_lesson_record(lessons[index - 1].lesson_id)
    return bool(previous and previous.completed)


# ============= PROGRESS TREE =============

def build_lesson_view(
    lesson: CurriculumLesson,
    module: CurriculumModule,
    module_unlocked: bool,
    progress: UserProgress
) -> LessonView:
    record = progress.find_lesson_record(lesson.lesson_id)
    view = LessonView(
        id=lesson.lesson_id,
        name=lesson.name,
        order=lesson.order,
        xp_reward=lesson.xp_reward,
        is_locked=not is_lesson_unlocked(lesson, module_unlocked, progress, module),
    )
    if record is not None:
        view.completed = record.completed
        view.score = record.score
        view.attempts = record.attempts
        view.xp_earned = record.xp_earned
        view.completed_section_ids = list(record.completed_section_ids)
        view.current_section_id = record.current_section_id
    return view


def build_module_view(module: CurriculumModule, level: CurriculumLevel, progress: UserProgress) -> ModuleView:
    unlocked = is_module_unlocked(module, progress, level)
    record = build_module_record(module, progress)
    return ModuleView(
        id=module.module_id,
        name=module.name,
        order=module.order,
        completed=record.completed,
        progress_percent=record.progress_percent,
        lessons_completed=record.lessons_completed_in_module,
        total_lessons=record.total_lessons_in_module,
        is_locked=not unlocked,
        lessons=[build_lesson_view(l, module, unlocked, progress) for l in module.ordered_lessons()],
    )


def build_level_views(progress: UserProgress, catalog: CurriculumCatalog) -> List[LevelView]:
    """Full level -> module -> lesson tree with completion and lock state"""
    current = current_curriculum_level(progress, catalog)
    return [
        LevelView(
            id=level.level_id,
            name=level.name,
            required_xp=level.required_xp,
            is_current_level=current is not None and level.level_id == current,
            is_unlocked=progress.total_experience >= level.required_xp,
            modules=[build_module_view(m, level, progress) for m in level.ordered_modules()],
        )
        for level in catalog.ordered_levels()
    ]


def current_curriculum_level(progress: UserProgress, catalog: CurriculumCatalog) -> Optional[str]:
    level = catalog.level_for_xp(progress.total_experience)
    return level.level_id if level else None
