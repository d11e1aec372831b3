"""
Streak Service - daily streak tracking on local calendar days

Handles:
- Normalizing "now" to the learner's calendar day (IANA timezone aware)
- Streak continuation, reset and same-day idempotence
- Daily streak bonus XP, granted through the XP calculator
"""
from datetime import date, datetime, timezone as dt_timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from progress_engine.catalog import LevelingTable
from progress_engine.logic.gamification import add_xp
from progress_engine.models import UserProgress

logger = logging.getLogger(__name__)

# Reward configuration, highest tier first
BASE_STREAK_BONUS = 10
STREAK_BONUS_TIERS = [
    (30, 25),
    (7, 20),
    (3, 15),
]


def resolve_timezone(name: Optional[str], default: str = "UTC") -> ZoneInfo:
    """ZoneInfo for ``name``; falls back to ``default`` and then UTC"""
    for candidate in (name, default):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Invalid timezone {candidate}, falling back")
    return ZoneInfo("UTC")


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def to_local(now: datetime, tz: ZoneInfo) -> datetime:
    """Convert an instant to local wall time. Naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)
    return now.astimezone(tz)


def get_user_day(tz_name: Optional[str], now_utc: Optional[datetime] = None, default: str = "UTC") -> date:
    """
    Convert an instant to the learner's local calendar day

    Example:
        >>> get_user_day("America/Sao_Paulo", datetime(2025, 11, 19, 2, 0))  # 2 AM UTC
        datetime.date(2025, 11, 18)
    """
    if now_utc is None:
        now_utc = datetime.now(dt_timezone.utc)
    return to_local(now_utc, resolve_timezone(tz_name, default)).date()


def streak_bonus(streak_days: int) -> int:
    """Daily bonus XP for a streak of ``streak_days``"""
    for minimum, bonus in STREAK_BONUS_TIERS:
        if streak_days >= minimum:
            return bonus
    return BASE_STREAK_BONUS


def update_streak(
    progress: UserProgress,
    leveling: Optional[LevelingTable],
    now: Optional[datetime] = None,
    default_timezone: str = "UTC"
) -> Tuple[UserProgress, int]:
    """
    Advance the streak for activity at ``now``

    Logic:
        - No prior practice date: streak starts at 0, no bonus
        - Same local day: no-op
        - Next local day: current + 1, longest raised, bonus XP granted
        - Gap of more than one day: current resets to 1, no bonus

    Args:
        progress: Progress document (mutated in place)
        leveling: Leveling table used when the bonus XP is applied
        now: Activity instant (defaults to current UTC time)
        default_timezone: Zone used when the record carries none

    Returns:
        Tuple of (updated_progress, bonus_xp_granted)
    """
    today = get_user_day(progress.timezone, now, default_timezone)
    streak = progress.streak
    last_day = streak.last_practice_date

    if last_day is None:
        streak.current = 0
        streak.last_practice_date = today
        logger.info(f"User {progress.user_id} first practice day recorded: {today}")
        return progress, 0

    diff_days = (today - last_day).days

    if diff_days == 0:
        return progress, 0

    if diff_days < 0:
        # Clock skew or a timezone change moved "today" behind the stored day
        logger.warning(
            f"User {progress.user_id} activity day {today} is before last practice day {last_day}, ignoring"
        )
        return progress, 0

    if diff_days == 1:
        streak.current += 1
        streak.longest = max(streak.longest, streak.current)
        streak.last_practice_date = today
        bonus = streak_bonus(streak.current)
        add_xp(progress, bonus, leveling)
        logger.info(f"User {progress.user_id} streak continued: {streak.current} days (+{bonus} XP)")
        return progress, bonus

    logger.warning(
        f"User {progress.user_id} streak broken after {diff_days} days (was {streak.current})"
    )
    streak.current = 1
    streak.longest = max(streak.longest, streak.current)
    streak.last_practice_date = today
    return progress, 0
