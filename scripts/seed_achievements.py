#!/usr/bin/env python3
"""
Seed script for the achievement catalog

Validates every definition before writing anything, then upserts them into
DYNAMODB_ACHIEVEMENTS_TABLE. Safe to re-run.

Usage:
    python scripts/seed_achievements.py [path/to/achievements.json]
"""
import sys
from collections import Counter

from progress_engine.dynamo import db_client
from progress_engine.dynamo_achievements import AchievementRepository
from progress_engine.seed import load_achievement_definitions, seed_achievements


def main(path=None, repository=None) -> int:
    achievements = load_achievement_definitions(path)
    print(f"Validated {len(achievements)} achievement definitions")

    if repository is None:
        repository = AchievementRepository(db_client.progress_table, db_client.achievements_table)
    count = seed_achievements(repository, achievements)
    print(f"\n✓ Seeded {count} achievements")

    print("\nBreakdown by category:")
    for category, total in sorted(Counter(a.category for a in achievements).items()):
        print(f"  - {category}: {total}")
    return count


if __name__ == "__main__":
    try:
        main(sys.argv[1] if len(sys.argv) > 1 else None)
        sys.exit(0)
    except Exception as e:
        print(f"\n✗ ERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
