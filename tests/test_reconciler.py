"""
Tests for the consistency reconciler
"""
from progress_engine.logic.reconciler import merge_duplicate_lessons, reconcile
from progress_engine.models import LessonRecord, ModuleRecord, UserProgress


class TestReconcile:
    """Derived counters are rebuilt from primary records"""

    def test_consistent_record_is_unchanged(self, catalog):
        progress = UserProgress(
            user_id="u1",
            xp_points=100,
            total_experience=100,
            lessons_completed_count=1,
            lesson_records=[LessonRecord(lesson_id="beginner-alphabet", completed=True)],
            module_records=[ModuleRecord(
                module_id="beginner-basics",
                progress_percent=50,
                lessons_completed_in_module=1,
                total_lessons_in_module=2,
            )],
        )
        before = progress.model_dump()

        progress, changed = reconcile(progress, catalog)

        assert changed is False
        assert progress.model_dump() == before

    def test_lessons_completed_count_recounted(self):
        progress = UserProgress(
            user_id="u1",
            lessons_completed_count=5,
            lesson_records=[
                LessonRecord(lesson_id="a", completed=True),
                LessonRecord(lesson_id="b", completed=False),
            ],
        )

        progress, changed = reconcile(progress)

        assert changed is True
        assert progress.lessons_completed_count == 1

    def test_total_experience_raised_to_xp_points(self):
        progress = UserProgress(user_id="u1", xp_points=400, total_experience=250)

        progress, changed = reconcile(progress)

        assert changed is True
        assert progress.total_experience == 400
        assert progress.xp_points == 400

    def test_total_experience_never_lowered(self):
        progress = UserProgress(user_id="u1", xp_points=100, total_experience=300)

        progress, changed = reconcile(progress)

        assert changed is False
        assert progress.total_experience == 300

    def test_module_records_rebuilt(self, catalog):
        progress = UserProgress(
            user_id="u1",
            lessons_completed_count=2,
            lesson_records=[
                LessonRecord(lesson_id="beginner-alphabet", completed=True),
                LessonRecord(lesson_id="beginner-greetings", completed=True),
            ],
            module_records=[ModuleRecord(module_id="beginner-basics", completed=False)],
        )

        progress, changed = reconcile(progress, catalog)

        assert changed is True
        assert len(progress.module_records) == 1
        assert progress.module_records[0].completed is True
        assert progress.module_records[0].progress_percent == 100

    def test_idempotent(self, catalog):
        progress = UserProgress(
            user_id="u1",
            xp_points=70,
            lessons_completed_count=3,
            lesson_records=[LessonRecord(lesson_id="beginner-numbers", completed=True)],
        )

        progress, first = reconcile(progress, catalog)
        progress, second = reconcile(progress, catalog)

        assert first is True
        assert second is False


class TestMergeDuplicateLessons:
    """Duplicate lesson records"""

    def test_completion_is_sticky(self):
        records = [
            LessonRecord(lesson_id="a", completed=False, score=40, attempts=1),
            LessonRecord(lesson_id="b", completed=True),
            LessonRecord(lesson_id="a", completed=True, score=90, attempts=2, completed_section_ids=["introduction"]),
        ]

        merged = merge_duplicate_lessons(records)

        assert [r.lesson_id for r in merged] == ["a", "b"]
        assert merged[0].completed is True
        assert merged[0].score == 90
        assert merged[0].attempts == 3
        assert merged[0].completed_section_ids == ["introduction"]

    def test_reconcile_merges_and_recounts(self):
        progress = UserProgress(
            user_id="u1",
            lessons_completed_count=2,
            lesson_records=[
                LessonRecord(lesson_id="a", completed=True),
                LessonRecord(lesson_id="a", completed=True),
            ],
        )

        progress, changed = reconcile(progress)

        assert changed is True
        assert len(progress.lesson_records) == 1
        assert progress.lessons_completed_count == 1
