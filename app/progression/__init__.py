"""
Progression rules.

Pure logic for streaks, badge evaluation and calendar-day comparison.
Nothing in this package touches storage or the notification scheduler.
"""

from app.progression.badge_catalog import BadgeCatalog, DEFAULT_BADGES
from app.progression.streak_tracker import StreakTracker
from app.progression.achievement_evaluator import AchievementEvaluator, EvaluationResult

__all__ = [
    "BadgeCatalog",
    "DEFAULT_BADGES",
    "StreakTracker",
    "AchievementEvaluator",
    "EvaluationResult",
]
