"""
FastAPI router for progression endpoints.

Records exercise completions and mood check-ins, and exposes streak,
XP and badge state.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import (
    require_auth,
    get_progress_store,
    get_streak_tracker,
    get_achievement_evaluator,
    get_badge_catalog,
    get_reminder_coordinator,
)
from app.progression.achievement_evaluator import AchievementEvaluator
from app.progression.badge_catalog import BadgeCatalog
from app.progression.streak_tracker import StreakTracker
from app.progression.types import BadgeCategory, ExerciseCompleted, MoodLogged
from app.services.reminders.reminder_coordinator import ReminderCoordinator
from app.services.store.progress_store import ProgressStore
from app.schemas.progress import ExerciseCompletedRequest, MoodLoggedRequest
from app.pipelines import progress as pipelines
from common.utils import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"])


@router.post("/exercises")
async def record_exercise(
    body: ExerciseCompletedRequest,
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    streak_tracker: Annotated[StreakTracker, Depends(get_streak_tracker)],
    evaluator: Annotated[AchievementEvaluator, Depends(get_achievement_evaluator)],
    catalog: Annotated[BadgeCatalog, Depends(get_badge_catalog)],
    coordinator: Annotated[ReminderCoordinator, Depends(get_reminder_coordinator)],
):
    """
    Record a finished exercise.

    Advances the streak on the first completion of the day, awards XP
    and returns any badges earned.
    """
    result = await pipelines.exercise_completed_pipeline(
        store=store,
        streak_tracker=streak_tracker,
        evaluator=evaluator,
        catalog=catalog,
        coordinator=coordinator,
        user_id=user_id,
        event=ExerciseCompleted(category=body.category, date=body.date, source=body.source)
    )

    return success_response(result)


@router.post("/moods")
async def record_mood(
    body: MoodLoggedRequest,
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    streak_tracker: Annotated[StreakTracker, Depends(get_streak_tracker)],
    evaluator: Annotated[AchievementEvaluator, Depends(get_achievement_evaluator)],
    catalog: Annotated[BadgeCatalog, Depends(get_badge_catalog)],
    coordinator: Annotated[ReminderCoordinator, Depends(get_reminder_coordinator)],
):
    """
    Record a mood check-in.

    A second check-in on the same day replaces the first.
    """
    result = await pipelines.mood_logged_pipeline(
        store=store,
        streak_tracker=streak_tracker,
        evaluator=evaluator,
        catalog=catalog,
        coordinator=coordinator,
        user_id=user_id,
        event=MoodLogged(mood=body.mood, date=body.date, note=body.note)
    )

    return success_response(result)


@router.get("")
async def get_progress(
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    streak_tracker: Annotated[StreakTracker, Depends(get_streak_tracker)],
):
    """Get streak, XP, mood streak and today's categories."""
    result = await pipelines.get_progress_pipeline(
        store=store,
        streak_tracker=streak_tracker,
        user_id=user_id
    )

    return success_response(result)


@router.get("/badges")
async def get_badges(
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    catalog: Annotated[BadgeCatalog, Depends(get_badge_catalog)],
    category: Optional[BadgeCategory] = Query(None),
):
    """Get every badge with the user's progress toward it."""
    result = await pipelines.get_badges_pipeline(
        store=store,
        catalog=catalog,
        user_id=user_id,
        category=category
    )

    return success_response(result)


@router.get("/badges/{badge_id}")
async def get_badge(
    badge_id: str,
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    catalog: Annotated[BadgeCatalog, Depends(get_badge_catalog)],
):
    result = await pipelines.get_badge_pipeline(
        store=store,
        catalog=catalog,
        user_id=user_id,
        badge_id=badge_id
    )

    return success_response(result)
