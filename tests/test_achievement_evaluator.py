"""Unit tests for AchievementEvaluator."""

import pytest
from datetime import timedelta, timezone

from common.utils.exceptions import InvariantViolation
from app.progression.achievement_evaluator import AchievementEvaluator
from app.progression.badge_catalog import BadgeCatalog
from app.progression.types import (
    Badge,
    BadgeCategory,
    BadgeDefinition,
    BadgeRarity,
    EvaluationContext,
    ExerciseCategory,
    ExerciseCompletion,
    Mood,
    MoodEntry,
    TotalXpRequirement,
    UserProgress,
)


UTC = timezone.utc


def _context(progress, today, completions=None, moods=None):
    return EvaluationContext(
        progress=progress,
        completions=completions or [],
        mood_entries=moods or [],
        today=today
    )


def _completions(category, count, now):
    return [
        ExerciseCompletion(date=now - timedelta(days=i), category=category)
        for i in range(count)
    ]


# ─────────────────────────────────────────────────────────────────
# Streak badges
# ─────────────────────────────────────────────────────────────────


class TestStreakBadges:
    def test_earns_streak_3_at_three_days(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_streak=2)
        context = _context(progress, today)

        result = evaluator.evaluate(context, now)
        assert "streak_3" not in result.newly_earned_ids
        assert progress.badges["streak_3"].progress == 2

        progress.current_streak = 3
        result = evaluator.evaluate(context, now)

        assert result.newly_earned_ids == ["streak_3"]
        assert progress.badges["streak_3"].earned_date == now
        assert progress.badges["streak_3"].progress == 3

    def test_reevaluation_is_idempotent(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_streak=3)
        context = _context(progress, today)

        first = evaluator.evaluate(context, now)
        second = evaluator.evaluate(context, now + timedelta(hours=1))

        assert first.newly_earned_ids == ["streak_3"]
        assert second.newly_earned_ids == []
        assert second.changed is False
        assert progress.badges["streak_3"].earned_date == now

    def test_earned_badge_survives_streak_reset(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_streak=3)
        context = _context(progress, today)
        evaluator.evaluate(context, now)

        progress.current_streak = 0
        result = evaluator.evaluate(context, now)

        assert result.newly_earned_ids == []
        assert progress.badges["streak_3"].is_earned
        assert progress.badges["streak_3"].progress == 3


# ─────────────────────────────────────────────────────────────────
# Category and XP badges
# ─────────────────────────────────────────────────────────────────


class TestCategoryBadges:
    def test_balance_10_earned_and_balance_25_progresses(self, evaluator, now, today):
        progress = UserProgress(user_id="u1")
        context = _context(progress, today, _completions(ExerciseCategory.BALANCE, 10, now))

        result = evaluator.evaluate(context, now)

        assert "balance_10" in result.newly_earned_ids
        assert "balance_25" not in result.newly_earned_ids
        assert progress.badges["balance_25"].progress == 10
        assert not progress.badges["balance_25"].is_earned
        assert progress.badges["awareness_10"].progress == 0

    def test_progress_is_capped_at_target(self, evaluator, now, today):
        progress = UserProgress(user_id="u1")
        context = _context(progress, today, _completions(ExerciseCategory.REFLECT, 30, now))

        evaluator.evaluate(context, now)

        assert progress.badges["reflect_10"].progress == 10
        assert progress.badges["reflect_25"].progress == 25

    def test_xp_badges(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_xp=260)

        result = evaluator.evaluate_xp_badges(_context(progress, today), now)

        assert result.newly_earned_ids == ["xp_100", "xp_250"]
        assert progress.badges["xp_500"].progress == 260


class TestProgressMonotonic:
    def test_progress_never_decreases(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_streak=6)
        context = _context(progress, today)
        evaluator.evaluate(context, now)
        assert progress.badges["streak_15"].progress == 6

        progress.current_streak = 1
        result = evaluator.evaluate(context, now)

        assert progress.badges["streak_15"].progress == 6
        assert result.changed is False


# ─────────────────────────────────────────────────────────────────
# Mood and achievement badges
# ─────────────────────────────────────────────────────────────────


class TestMoodBadges:
    def test_mood_streak_7(self, evaluator, now, today):
        moods = [
            MoodEntry(date=now - timedelta(days=i), mood=Mood.NEUTRAL)
            for i in range(7)
        ]
        progress = UserProgress(user_id="u1")

        result = evaluator.evaluate_mood_badges(_context(progress, today, moods=moods), now)

        assert "mood_streak_7" in result.newly_earned_ids
        assert progress.badges["mood_streak_30"].progress == 7

    def test_mood_variety_needs_all_five(self, evaluator, now, today):
        moods = [
            MoodEntry(date=now - timedelta(days=i), mood=mood)
            for i, mood in enumerate([Mood.HAPPY, Mood.SAD, Mood.NEUTRAL, Mood.STRESSED])
        ]
        progress = UserProgress(user_id="u1")
        context = _context(progress, today, moods=moods)

        assert "mood_variety" not in evaluator.evaluate(context, now).newly_earned_ids
        assert progress.badges["mood_variety"].progress == 4

        moods.append(MoodEntry(date=now - timedelta(days=5), mood=Mood.VERY_HAPPY))
        assert evaluator.evaluate(context, now).newly_earned_ids == ["mood_variety"]


class TestPerfectDay:
    def test_all_three_categories_today(self, evaluator, now, today):
        completions = [
            ExerciseCompletion(date=now, category=category)
            for category in ExerciseCategory
        ]
        progress = UserProgress(user_id="u1")

        result = evaluator.evaluate_achievement_badges(
            _context(progress, today, completions), now
        )

        assert result.newly_earned_ids == ["perfect_day"]

    def test_categories_across_days_do_not_count(self, evaluator, now, today):
        completions = [
            ExerciseCompletion(date=now - timedelta(days=i), category=category)
            for i, category in enumerate(ExerciseCategory)
        ]
        progress = UserProgress(user_id="u1")

        result = evaluator.evaluate(_context(progress, today, completions), now)

        assert "perfect_day" not in result.newly_earned_ids
        assert progress.badges["perfect_day"].progress == 0


# ─────────────────────────────────────────────────────────────────
# Bookkeeping and invariants
# ─────────────────────────────────────────────────────────────────


class TestBookkeeping:
    def test_initialize_badges_creates_each_once(self, evaluator, catalog):
        progress = UserProgress(user_id="u1")

        assert evaluator.initialize_badges(progress) == len(catalog)
        assert evaluator.initialize_badges(progress) == 0
        assert set(progress.badges) == {d.id for d in catalog.definitions()}

    def test_first_evaluation_reports_change_for_created_badges(self, evaluator, now, today):
        progress = UserProgress(user_id="u1")
        assert evaluator.evaluate(_context(progress, today), now).changed is True

    def test_evaluate_category_touches_only_that_category(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_streak=3, current_xp=500)

        evaluator.evaluate_category(BadgeCategory.STREAK, _context(progress, today), now)

        assert set(progress.badges) == {"streak_3", "streak_7", "streak_15", "streak_30"}

    def test_unknown_requirement_kind_raises(self, streak_tracker, now, today):
        class FutureRequirement:
            target = 1

        definition = BadgeDefinition(
            id="future",
            name="Future",
            description="",
            category=BadgeCategory.ACHIEVEMENT,
            requirement=FutureRequirement(),
            rarity=BadgeRarity.COMMON,
        )
        evaluator = AchievementEvaluator(BadgeCatalog([definition]), streak_tracker)

        with pytest.raises(InvariantViolation):
            evaluator.evaluate(_context(UserProgress(user_id="u1"), today), now)

    def test_verify_earned_detects_broken_xp_badge(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_xp=50)
        progress.badges["xp_100"] = Badge(id="xp_100", progress=100, earned_date=now)

        with pytest.raises(InvariantViolation):
            evaluator.verify_earned(_context(progress, today))

    def test_verify_earned_allows_lapsed_streak(self, evaluator, now, today):
        progress = UserProgress(user_id="u1", current_streak=0)
        progress.badges["streak_3"] = Badge(id="streak_3", progress=3, earned_date=now)

        evaluator.verify_earned(_context(progress, today))

    def test_verify_earned_rejects_unknown_badge_id(self, evaluator, today):
        progress = UserProgress(user_id="u1")
        progress.badges["ghost"] = Badge(id="ghost")

        with pytest.raises(InvariantViolation):
            evaluator.verify_earned(_context(progress, today))

    def test_mark_earned_twice_raises(self, now):
        badge = Badge(id="streak_3")
        badge.mark_earned(now)
        with pytest.raises(InvariantViolation):
            badge.mark_earned(now)

    def test_meets_requirement(self, evaluator, today):
        progress = UserProgress(user_id="u1", current_xp=100)
        assert evaluator.meets_requirement(TotalXpRequirement(100), _context(progress, today))
        assert not evaluator.meets_requirement(TotalXpRequirement(101), _context(progress, today))
