"""
Streak continuity tracking.

Decides whether an exercise completion advances the daily streak, applies
the missed-day reset policy, and derives mood statistics from history.
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Set

from app.progression.calendar import days_between, local_day
from app.progression.types import (
    ALL_CATEGORIES,
    ExerciseCategory,
    ExerciseCompletion,
    MoodEntry,
    UserProgress,
)

logger = logging.getLogger(__name__)


class StreakTracker:
    """
    Calendar-day streak rules.

    All methods are pure with respect to storage; only reconcile_streak
    mutates the UserProgress it is handed.
    """

    # A streak survives one day without exercise (yesterday still counts);
    # a gap of this many calendar days resets it.
    RESET_AFTER_DAYS = 2

    def __init__(self, tz: tzinfo):
        """
        Initialize StreakTracker.

        Args:
            tz: Zone in which calendar days are compared
        """
        self._tz = tz

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def today(self, now: datetime) -> date:
        """Calendar day of now in the tracker's zone."""
        return local_day(now, self._tz)

    def day_of(self, completion_or_entry) -> date:
        return local_day(completion_or_entry.date, self._tz)

    def should_increment_on_completion(
        self,
        today: date,
        completions_on_today: Iterable[ExerciseCompletion]
    ) -> bool:
        """
        Check whether a new completion today advances the streak.

        Args:
            today: Current calendar day
            completions_on_today: Completions recorded before this event

        Returns:
            True iff none of the prior completions falls on today
        """
        return not any(self.day_of(c) == today for c in completions_on_today)

    def reconcile_streak(self, progress: UserProgress, today: date) -> bool:
        """
        Reset the exercise streak when the last exercise is too old.

        Args:
            progress: User progression, mutated in place
            today: Current calendar day

        Returns:
            True if the streak was reset
        """
        if progress.last_exercise_date is None or progress.current_streak == 0:
            return False

        last_day = local_day(progress.last_exercise_date, self._tz)
        if days_between(last_day, today) < self.RESET_AFTER_DAYS:
            return False

        logger.info(
            f"Resetting streak for user {progress.user_id}: "
            f"last exercise on {last_day}, streak was {progress.current_streak}"
        )
        progress.current_streak = 0
        return True

    def mood_streak_length(self, mood_entries: Iterable[MoodEntry], today: date) -> int:
        """
        Count consecutive mood-logged days ending today.

        Algorithm:
            1. Sort entries by date descending
            2. Expect today first, then each previous day
            3. Stop at the first entry older than the expected day

        Entries newer than the expected day (a second row for a day
        already counted) are skipped.
        """
        entries = sorted(mood_entries, key=lambda e: e.date, reverse=True)

        streak = 0
        expected = today

        for entry in entries:
            entry_day = self.day_of(entry)
            if entry_day == expected:
                streak += 1
                expected -= timedelta(days=1)
            elif entry_day < expected:
                break

        return streak

    def exercise_streak_length(
        self,
        completions: Iterable[ExerciseCompletion],
        today: date
    ) -> int:
        """
        Derive the exercise streak from history.

        The run may end today or yesterday, matching the reset policy.
        """
        days = {self.day_of(c) for c in completions}

        if today in days:
            current = today
        elif today - timedelta(days=1) in days:
            current = today - timedelta(days=1)
        else:
            return 0

        streak = 0
        while current in days:
            streak += 1
            current -= timedelta(days=1)

        return streak

    @staticmethod
    def unique_mood_count(mood_entries: Iterable[MoodEntry]) -> int:
        return len({entry.mood for entry in mood_entries})

    def completed_categories(
        self,
        completions: Iterable[ExerciseCompletion],
        day: date
    ) -> Set[ExerciseCategory]:
        """Categories with at least one completion on day."""
        return {c.category for c in completions if self.day_of(c) == day}

    def has_perfect_day(self, completions: Iterable[ExerciseCompletion], day: date) -> bool:
        return self.completed_categories(completions, day) == ALL_CATEGORIES

    def completions_on(
        self,
        completions: Iterable[ExerciseCompletion],
        day: date
    ) -> List[ExerciseCompletion]:
        return [c for c in completions if self.day_of(c) == day]
