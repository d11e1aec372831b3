"""
Consistency reconciler

Recomputes derived counters from primary records. Runs on every progress read
before derived state is presented, and is a no-op on a consistent record.
"""
from typing import List, Optional, Tuple
import logging

from progress_engine.catalog import CurriculumCatalog
from progress_engine.logic.path_logic import derive_module_records
from progress_engine.models import LessonRecord, UserProgress

logger = logging.getLogger(__name__)


def merge_duplicate_lessons(records: List[LessonRecord]) -> List[LessonRecord]:
    """
    Collapse repeated lessonIds into the first record

    Completion is sticky and the best score wins, so no completed lesson is
    lost by merging.
    """
    merged = {}
    for record in records:
        kept = merged.get(record.lesson_id)
        if kept is None:
            merged[record.lesson_id] = record
            continue
        kept.completed = kept.completed or record.completed
        kept.score = max(kept.score, record.score)
        kept.attempts += record.attempts
        kept.xp_earned = max(kept.xp_earned, record.xp_earned)
        for section_id in record.completed_section_ids:
            if section_id not in kept.completed_section_ids:
                kept.completed_section_ids.append(section_id)
    return list(merged.values())


def reconcile(
    progress: UserProgress,
    catalog: Optional[CurriculumCatalog] = None
) -> Tuple[UserProgress, bool]:
    """
    Bring derived fields back in line with the primary records

    Corrections:
        - duplicate lesson records are merged
        - lessonsCompletedCount is recounted from lesson records
        - totalExperience is raised to xpPoints (never lowered)
        - module records are rebuilt from lesson records and the catalog

    Returns:
        Tuple of (progress, changed)
    """
    changed = False

    if len({r.lesson_id for r in progress.lesson_records}) != len(progress.lesson_records):
        logger.warning(f"User {progress.user_id} has duplicate lesson records, merging")
        progress.lesson_records = merge_duplicate_lessons(progress.lesson_records)
        changed = True

    actual = sum(1 for r in progress.lesson_records if r.completed)
    if progress.lessons_completed_count != actual:
        logger.info(
            f"Reconciled lessonsCompletedCount for {progress.user_id}: "
            f"{progress.lessons_completed_count} -> {actual}"
        )
        progress.lessons_completed_count = actual
        changed = True

    if progress.xp_points > progress.total_experience:
        logger.info(
            f"Reconciled totalExperience for {progress.user_id}: "
            f"{progress.total_experience} -> {progress.xp_points}"
        )
        progress.total_experience = progress.xp_points
        changed = True

    if catalog is not None:
        records = derive_module_records(progress, catalog)
        if records != progress.module_records:
            progress.module_records = records
            changed = True

    return progress, changed
