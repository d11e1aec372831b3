"""
XP and leveling logic

Implements:
- XP accrual keeping xpPoints and totalExperience in step
- Level, progress-to-next-level and next threshold from the leveling table
- Practice session XP
"""
from typing import Any, Dict, Optional, Tuple
import logging

from progress_engine.catalog import LevelingTable
from progress_engine.models import UserProgress

logger = logging.getLogger(__name__)

# Used when the leveling table is empty or unavailable
FALLBACK_LEVEL = 1
FALLBACK_NEXT_LEVEL_XP = 100

# Practice XP per activity type, plus one XP per full minute beyond the first
PRACTICE_BASE_XP = {
    'conversation': 15,
    'vocabulary': 10,
    'pronunciation': 20,
    'grammar': 15,
}
DEFAULT_PRACTICE_XP = 10


# ============= XP AND LEVELING =============

def add_xp(
    progress: UserProgress,
    amount: int,
    leveling: Optional[LevelingTable]
) -> Tuple[UserProgress, bool]:
    """
    Add XP to a progress record and recompute its level fields

    Args:
        progress: Progress document (mutated in place)
        amount: XP to add; zero or negative is a no-op
        leveling: Leveling table, may be None or empty

    Returns:
        Tuple of (updated_progress, level_up_occurred)
    """
    if amount is None or amount <= 0:
        return progress, False

    previous_level = progress.current_level_number

    progress.xp_points += amount
    progress.total_experience += amount
    apply_level(progress, leveling)

    level_up = progress.current_level_number > previous_level

    logger.info(
        f"User {progress.user_id} gained {amount} XP. Total: {progress.xp_points}, "
        f"Level: {progress.current_level_number}"
    )
    if level_up:
        logger.info(f"User {progress.user_id} leveled up to {progress.current_level_number}")

    return progress, level_up


def apply_level(progress: UserProgress, leveling: Optional[LevelingTable]) -> UserProgress:
    """Recompute the derived level fields from xpPoints"""
    details = level_details(progress.xp_points, leveling)
    progress.current_level_number = details['currentLevel']
    progress.level_progress_percent = details['levelProgressPercent']
    progress.next_level_xp_threshold = details['nextLevelXp']
    return progress


def level_details(xp: int, leveling: Optional[LevelingTable]) -> Dict[str, Any]:
    """
    Resolve level information for an XP total

    Never raises: an empty table, or XP below the first threshold, yields the
    fallback level with zero progress.

    Returns:
        Dict with currentLevel, levelProgressPercent, nextLevelXp, currentLevelXp
    """
    current = leveling.current_level(xp) if leveling else None
    if current is None:
        first = leveling.next_level(xp) if leveling else None
        return {
            'currentLevel': FALLBACK_LEVEL,
            'levelProgressPercent': 0,
            'nextLevelXp': first.xp_required if first else FALLBACK_NEXT_LEVEL_XP,
            'currentLevelXp': 0,
        }

    nxt = leveling.next_level(xp)
    if nxt is None:
        # Max level
        return {
            'currentLevel': current.level,
            'levelProgressPercent': 100,
            'nextLevelXp': current.xp_required,
            'currentLevelXp': current.xp_required,
        }

    return {
        'currentLevel': current.level,
        'levelProgressPercent': calculate_level_progress(xp, current.xp_required, nxt.xp_required),
        'nextLevelXp': nxt.xp_required,
        'currentLevelXp': current.xp_required,
    }


def calculate_level_progress(xp: int, current_threshold: int, next_threshold: int) -> float:
    """
    Percentage of the way from the current threshold to the next, clamped to [0, 100]
    """
    span = next_threshold - current_threshold
    if span <= 0:
        return 100
    percent = (xp - current_threshold) / span * 100
    return round(max(0.0, min(100.0, percent)), 2)


def xp_to_next_level(progress: UserProgress) -> int:
    return max(0, progress.next_level_xp_threshold - progress.xp_points)


# ============= PRACTICE XP =============

def practice_xp(activity_type: str, duration_seconds: int) -> int:
    """
    XP granted for a practice session

    Examples:
        >>> practice_xp("pronunciation", 300)  # 5 minutes
        24
        >>> practice_xp("listening", 30)
        10
    """
    base = PRACTICE_BASE_XP.get(activity_type, DEFAULT_PRACTICE_XP)
    minutes = max(0, duration_seconds or 0) // 60
    return base + max(0, minutes - 1)
