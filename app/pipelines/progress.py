"""
Progression pipeline functions.

Stateless orchestration for exercise completions, mood check-ins and
progression reads. Each event runs: reconcile streak, record the event,
mutate progression, evaluate badges, save once, coordinate reminders.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

from app.config import settings
from app.progression.achievement_evaluator import AchievementEvaluator, EvaluationResult
from app.progression.badge_catalog import BadgeCatalog
from app.progression.calendar import day_bounds, local_day
from app.progression.streak_tracker import StreakTracker
from app.progression.types import (
    Badge,
    BadgeCategory,
    BadgeDefinition,
    EvaluationContext,
    ExerciseCompleted,
    ExerciseCompletion,
    MoodEntry,
    MoodLogged,
    UserProgress,
)
from app.services.reminders.reminder_coordinator import ReminderCoordinator
from app.services.store.progress_store import ProgressStore
from common.utils.exceptions import NotFoundException, StorageError, ValidationException

logger = logging.getLogger(__name__)


async def exercise_completed_pipeline(
    store: ProgressStore,
    streak_tracker: StreakTracker,
    evaluator: AchievementEvaluator,
    catalog: BadgeCatalog,
    coordinator: ReminderCoordinator,
    user_id: str,
    event: ExerciseCompleted,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Orchestrates an exercise completion.

    Args:
        store: For progression and completion persistence
        streak_tracker: For streak rules
        evaluator: For badge evaluation
        catalog: For formatting newly earned badges
        coordinator: For reminder rescheduling
        user_id: Current user's ID
        event: The completion event
        now: Evaluation timestamp, defaults to the current time

    Returns:
        dict with streak, xp, streakIncremented, xpAwarded, newBadges, saved

    Raises:
        StorageError: Progression could not be read or the completion
            could not be recorded
        ValidationException: The event is dated after today
    """
    now = now or datetime.now(timezone.utc)
    today = streak_tracker.today(now)
    _reject_future_event(event.date, today, streak_tracker)

    progress = await store.get_progress(user_id)
    stored_streak, stored_xp = progress.current_streak, progress.current_xp
    streak_tracker.reconcile_streak(progress, today)

    start, end = day_bounds(today, streak_tracker.tz)
    prior_today = await store.fetch_completions(user_id, start, end)

    # A backdated completion is recorded and earns XP but never moves the streak
    is_today = local_day(event.date, streak_tracker.tz) == today
    increment = is_today and streak_tracker.should_increment_on_completion(today, prior_today)

    completion = await store.insert_completion(
        user_id,
        ExerciseCompletion(date=event.date, category=event.category, source=event.source)
    )

    if increment:
        progress.current_streak += 1
        logger.info(f"Streak for user {user_id} advanced to {progress.current_streak}")
    if is_today:
        progress.last_exercise_date = event.date
    progress.award_xp(settings.EXERCISE_XP)

    result, saved = await _evaluate_and_save(store, streak_tracker, evaluator, progress, today, now)

    if not saved:
        # The next event must see this day as not yet counted
        await _discard_completion(store, user_id, completion)
        return {
            "streak": stored_streak,
            "xp": stored_xp,
            "streakIncremented": False,
            "xpAwarded": 0,
            "newBadges": [],
            "saved": False
        }

    await coordinator.on_exercise_completed(
        user_id, event, bool(prior_today), progress.reminders, today
    )

    return {
        "streak": progress.current_streak,
        "xp": progress.current_xp,
        "streakIncremented": increment,
        "xpAwarded": settings.EXERCISE_XP,
        "newBadges": _format_new_badges(catalog, result),
        "saved": True
    }


async def mood_logged_pipeline(
    store: ProgressStore,
    streak_tracker: StreakTracker,
    evaluator: AchievementEvaluator,
    catalog: BadgeCatalog,
    coordinator: ReminderCoordinator,
    user_id: str,
    event: MoodLogged,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Orchestrates a mood check-in.

    A second check-in on the same calendar day overwrites the first.
    XP is awarded only for the first check-in of a day.

    Returns:
        dict with created flag, moodStreak, uniqueMoods, xp, xpAwarded,
        newBadges, saved
    """
    now = now or datetime.now(timezone.utc)
    today = streak_tracker.today(now)
    _reject_future_event(event.date, today, streak_tracker)

    progress = await store.get_progress(user_id)
    streak_tracker.reconcile_streak(progress, today)

    stored_xp = progress.current_xp
    event_day = local_day(event.date, streak_tracker.tz)
    entry, created = await store.upsert_mood_entry(
        user_id,
        MoodEntry(date=event.date, mood=event.mood, note=event.note),
        event_day
    )

    xp_awarded = settings.MOOD_CHECKIN_XP if created else 0
    progress.award_xp(xp_awarded)
    if event_day == today:
        progress.last_mood_check_in = event.date

    result, saved = await _evaluate_and_save(store, streak_tracker, evaluator, progress, today, now)

    await coordinator.on_mood_logged(user_id, event, not created, progress.reminders, today)

    mood_entries = await _safe_mood_entries(store, user_id)

    return {
        "entry": _format_mood_entry(entry, streak_tracker),
        "created": created,
        "moodStreak": streak_tracker.mood_streak_length(mood_entries, today),
        "uniqueMoods": streak_tracker.unique_mood_count(mood_entries),
        "xp": progress.current_xp if saved else stored_xp,
        "xpAwarded": xp_awarded if saved else 0,
        "newBadges": _format_new_badges(catalog, result) if saved else [],
        "saved": saved
    }


async def get_progress_pipeline(
    store: ProgressStore,
    streak_tracker: StreakTracker,
    user_id: str,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Get a user's progression summary.

    Applies the missed-day streak reset and persists it if it fired.

    Returns:
        dict with streak, xp, moodStreak, uniqueMoods, completedToday,
        perfectDay, totalCompletions and dates
    """
    now = now or datetime.now(timezone.utc)
    today = streak_tracker.today(now)

    progress = await store.get_progress(user_id)
    if streak_tracker.reconcile_streak(progress, today):
        try:
            await store.save_progress(progress)
        except StorageError as e:
            # Reset is re-derived on the next read
            logger.warning(f"Failed to persist streak reset for user {user_id}: {e}")

    start, end = day_bounds(today, streak_tracker.tz)
    todays = await store.fetch_completions(user_id, start, end)
    mood_entries = await store.fetch_mood_entries(user_id)
    total = await store.count_completions(user_id)

    categories = streak_tracker.completed_categories(todays, today)

    return {
        "streak": progress.current_streak,
        "xp": progress.current_xp,
        "lastExerciseDate": _iso(progress.last_exercise_date),
        "lastMoodCheckIn": _iso(progress.last_mood_check_in),
        "moodStreak": streak_tracker.mood_streak_length(mood_entries, today),
        "uniqueMoods": streak_tracker.unique_mood_count(mood_entries),
        "completedToday": sorted(c.value for c in categories),
        "perfectDay": streak_tracker.has_perfect_day(todays, today),
        "totalCompletions": total
    }


async def get_badges_pipeline(
    store: ProgressStore,
    catalog: BadgeCatalog,
    user_id: str,
    category: Optional[BadgeCategory] = None
) -> Dict[str, Any]:
    """
    Get the badge catalog joined with the user's badge state.

    Args:
        store: For progression retrieval
        catalog: Badge definitions
        user_id: Current user's ID
        category: Optional category filter

    Returns:
        dict with badges list, earnedCount and total
    """
    progress = await store.get_progress(user_id)

    definitions = catalog.by_category(category) if category else catalog.definitions()
    badges = [_format_badge(d, _badge_state(progress, d.id)) for d in definitions]

    return {
        "badges": badges,
        "earnedCount": sum(1 for b in badges if b["isEarned"]),
        "total": len(badges)
    }


async def get_badge_pipeline(
    store: ProgressStore,
    catalog: BadgeCatalog,
    user_id: str,
    badge_id: str
) -> Dict[str, Any]:
    """Get one badge definition with the user's state for it."""
    definition = catalog.by_id(badge_id)
    if not definition:
        raise NotFoundException("Badge not found", code="BADGE_NOT_FOUND")

    progress = await store.get_progress(user_id)
    return _format_badge(definition, _badge_state(progress, badge_id))


# =============================================================================
# Helper Functions
# =============================================================================

async def _evaluate_and_save(
    store: ProgressStore,
    streak_tracker: StreakTracker,
    evaluator: AchievementEvaluator,
    progress: UserProgress,
    today: date,
    now: datetime
) -> Tuple[EvaluationResult, bool]:
    """
    Evaluate badges against fresh history and commit progression once.

    Returns:
        (EvaluationResult, saved) where saved is False if history could
        not be read or the write failed
    """
    try:
        completions = await store.fetch_completions(progress.user_id)
        mood_entries = await store.fetch_mood_entries(progress.user_id)
    except StorageError as e:
        logger.warning(f"Failed to load history for user {progress.user_id}, skipping save: {e}")
        return EvaluationResult(), False

    context = EvaluationContext(
        progress=progress,
        completions=completions,
        mood_entries=mood_entries,
        today=today
    )
    result = evaluator.evaluate(context, now)

    if settings.DEBUG:
        evaluator.verify_earned(context)

    try:
        await store.save_progress(progress)
    except StorageError as e:
        logger.warning(
            f"Failed to save progression for user {progress.user_id}, "
            f"discarding {len(result.newly_earned)} new badge(s): {e}"
        )
        return result, False

    return result, True


def _reject_future_event(event_date: datetime, today: date, streak_tracker: StreakTracker) -> None:
    # A future-dated event would later count as that day's prior activity
    if local_day(event_date, streak_tracker.tz) > today:
        raise ValidationException("Event date cannot be in the future", code="FUTURE_EVENT")


async def _discard_completion(
    store: ProgressStore,
    user_id: str,
    completion: ExerciseCompletion
) -> None:
    try:
        await store.delete_completion(user_id, completion.id)
    except StorageError as e:
        logger.error(f"Failed to discard unsaved completion {completion.id} for user {user_id}: {e}")
        return

    logger.info(f"Discarded completion {completion.id} for user {user_id} after failed save")


async def _safe_mood_entries(store: ProgressStore, user_id: str) -> List[MoodEntry]:
    try:
        return await store.fetch_mood_entries(user_id)
    except StorageError as e:
        logger.warning(f"Failed to reload mood entries for user {user_id}: {e}")
        return []


def _badge_state(progress: UserProgress, badge_id: str) -> Badge:
    return progress.badges.get(badge_id) or Badge(id=badge_id)


def _format_new_badges(catalog: BadgeCatalog, result: EvaluationResult) -> List[Dict[str, Any]]:
    return [
        _format_badge(catalog.by_id(badge.id), badge)
        for badge in result.newly_earned
    ]


def _format_badge(definition: BadgeDefinition, badge: Badge) -> Dict[str, Any]:
    """Format a badge for API response."""
    return {
        "id": definition.id,
        "name": definition.name,
        "description": definition.description,
        "category": definition.category.value,
        "rarity": definition.rarity.value,
        "iconName": definition.icon_name,
        "target": definition.requirement.target,
        "progress": badge.progress,
        "isEarned": badge.is_earned,
        "earnedDate": _iso(badge.earned_date)
    }


def _format_mood_entry(entry: MoodEntry, streak_tracker: StreakTracker) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "day": streak_tracker.day_of(entry).isoformat(),
        "date": _iso(entry.date),
        "mood": entry.mood.value,
        "note": entry.note
    }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
