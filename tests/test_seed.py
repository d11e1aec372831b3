"""
Tests for catalog loading, achievement seeding and the content service client
"""
import json

import httpx
import pytest

from progress_engine import content_client
from progress_engine.catalog import load_curriculum, load_leveling_table
from progress_engine.errors import ValidationError
from progress_engine.logic.achievement_criteria import KNOWN_TYPES, UnknownRule, parse_criteria
from progress_engine.seed import (
    load_achievement_definitions,
    seed_achievements,
    validate_achievement_data,
)


def definition(**overrides):
    data = {
        "id": "first-steps",
        "title": "First Steps",
        "description": "Complete your first lesson",
        "category": "milestone",
        "criteria": {"type": "lessons_completed", "threshold": 1},
    }
    data.update(overrides)
    return data


class TestValidateAchievementData:
    """Definition validation"""

    def test_defaults(self):
        achievement = validate_achievement_data(definition())

        assert achievement.achievement_id == "first-steps"
        assert achievement.xp_reward == 50
        assert achievement.is_active is True
        assert achievement.is_secret is False

    @pytest.mark.parametrize("field", ["id", "title", "description", "category", "criteria"])
    def test_required_fields(self, field):
        data = definition()
        del data[field]

        with pytest.raises(ValidationError):
            validate_achievement_data(data)

    @pytest.mark.parametrize("threshold", [0, -1, None, "five", True])
    def test_threshold_must_be_positive_number(self, threshold):
        with pytest.raises(ValidationError):
            validate_achievement_data(definition(criteria={"type": "lessons_completed", "threshold": threshold}))

    def test_invalid_category(self):
        with pytest.raises(ValidationError) as exc:
            validate_achievement_data(definition(category="legendary"))
        assert "category" in exc.value.message

    def test_negative_reward(self):
        with pytest.raises(ValidationError):
            validate_achievement_data(definition(xpReward=-5))

    def test_unknown_type_accepted(self):
        achievement = validate_achievement_data(
            definition(criteria={"type": "conversations_completed", "threshold": 1})
        )
        assert achievement.criteria.type == "conversations_completed"


class TestBundledData:
    """Files shipped with the package"""

    def test_bundled_achievements_are_valid(self):
        achievements = load_achievement_definitions()

        assert len(achievements) == 26
        active_types = {a.criteria.type for a in achievements if a.is_active}
        assert active_types <= KNOWN_TYPES

    def test_bundled_achievements_reference_real_curriculum(self):
        catalog = load_curriculum()
        module_ids = {m.module_id for m in catalog.all_modules()}

        for achievement in load_achievement_definitions():
            params = achievement.criteria.extra_params
            if "lessonId" in params:
                assert catalog.locate_lesson(params["lessonId"]) is not None
            if "moduleId" in params:
                assert params["moduleId"] in module_ids

    def test_bundled_active_criteria_all_parse(self):
        for achievement in load_achievement_definitions():
            if achievement.is_active:
                assert not isinstance(parse_criteria(achievement.criteria), UnknownRule)

    def test_bundled_curriculum(self):
        catalog = load_curriculum()

        assert [level.level_id for level in catalog.ordered_levels()] == ["beginner", "intermediate", "advanced"]
        for module in catalog.all_modules():
            orders = [lesson.order for lesson in module.ordered_lessons()]
            assert orders == list(range(1, len(orders) + 1))

    def test_bundled_leveling_table(self):
        table = load_leveling_table()

        assert len(table) == 10
        assert table.current_level(0).level == 1
        assert table.current_level(5000).level == 10
        assert table.next_level(5000) is None

    def test_missing_leveling_file_yields_empty_table(self, tmp_path):
        assert len(load_leveling_table(str(tmp_path / "missing.json"))) == 0

    def test_duplicate_ids_rejected(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps([definition(), definition()]))

        with pytest.raises(ValidationError):
            load_achievement_definitions(str(path))


class TestSeedAchievements:
    """Writing the catalog"""

    def test_seed_is_repeatable(self, achievement_repository):
        achievements = load_achievement_definitions()

        seed_achievements(achievement_repository, achievements)
        seed_achievements(achievement_repository, achievements)

        assert len(achievement_repository.list_achievements(active_only=False)) == 26
        assert len(achievement_repository.list_achievements()) == 25


class TestContentClient:
    """Curriculum from the content service"""

    def test_fetch_curriculum(self):
        payload = {"levels": [{"id": "beginner", "requiredXp": 0, "modules": []}]}

        def handler(request):
            assert request.url.path == "/api/v1/curriculum"
            return httpx.Response(200, json=payload)

        catalog = content_client.fetch_curriculum("http://content:8000/", transport=httpx.MockTransport(handler))

        assert catalog.levels[0].level_id == "beginner"

    def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            content_client.fetch_curriculum("http://content:8000", transport=transport)
