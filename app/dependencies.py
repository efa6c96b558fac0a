"""
FastAPI dependencies for Klarblick application.

Provides dependency injection for all services.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from common.auth import AuthProvider, JWTAuth, create_auth_dependency

from app.config import Settings, settings as app_settings
from app.progression.achievement_evaluator import AchievementEvaluator
from app.progression.badge_catalog import BadgeCatalog
from app.progression.streak_tracker import StreakTracker
from app.progression.types import ReminderSettings
from app.services.notifications.mongo_scheduler import MongoNotificationScheduler
from app.services.notifications.scheduler import NotificationScheduler
from app.services.reminders.reminder_coordinator import ReminderCoordinator
from app.services.store.mongo_progress_store import MongoProgressStore
from app.services.store.progress_store import ProgressStore

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────
# Global service instances
# ─────────────────────────────────────────────────────────────────

# Auth
_auth_provider: Optional[AuthProvider] = None

# Progression
_badge_catalog: Optional[BadgeCatalog] = None
_streak_tracker: Optional[StreakTracker] = None
_achievement_evaluator: Optional[AchievementEvaluator] = None
_progress_store: Optional[ProgressStore] = None

# Reminders
_notification_scheduler: Optional[NotificationScheduler] = None
_reminder_coordinator: Optional[ReminderCoordinator] = None


# ─────────────────────────────────────────────────────────────────
# Initialization
# ─────────────────────────────────────────────────────────────────

def init_auth_services(settings: Settings) -> None:
    """Initialize the bearer token provider."""
    global _auth_provider

    _auth_provider = JWTAuth(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        access_token_expire_minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    )


def init_progression_services(
    store: ProgressStore,
    settings: Settings,
    catalog: Optional[BadgeCatalog] = None
) -> None:
    """Initialize catalog, streak tracker, evaluator and store."""
    global _badge_catalog, _streak_tracker, _achievement_evaluator, _progress_store

    _badge_catalog = catalog or BadgeCatalog()
    _streak_tracker = StreakTracker(tz=settings.get_timezone())
    _achievement_evaluator = AchievementEvaluator(
        catalog=_badge_catalog,
        streak_tracker=_streak_tracker
    )
    _progress_store = store


def init_reminder_services(scheduler: NotificationScheduler, settings: Settings) -> None:
    """Initialize the scheduler and reminder coordinator."""
    global _notification_scheduler, _reminder_coordinator

    _notification_scheduler = scheduler
    _reminder_coordinator = ReminderCoordinator(
        scheduler=scheduler,
        tz=settings.get_timezone(),
        mood_offset_minutes=settings.MOOD_REMINDER_OFFSET_MINUTES,
        streak_warning_hour=settings.STREAK_WARNING_HOUR,
        streak_warning_minute=settings.STREAK_WARNING_MINUTE
    )


def init_all_services(db: AsyncIOMotorDatabase, settings: Settings = app_settings) -> None:
    """
    Initialize all services at application startup.

    Args:
        db: Main MongoDB database connection
        settings: Application settings
    """
    init_auth_services(settings)
    default_reminders = ReminderSettings(
        hour=settings.DEFAULT_REMINDER_HOUR,
        minute=settings.DEFAULT_REMINDER_MINUTE
    )
    init_progression_services(MongoProgressStore(db=db, default_reminders=default_reminders), settings)
    init_reminder_services(MongoNotificationScheduler(db=db), settings)
    logger.info(f"Services initialized (timezone {settings.TIMEZONE})")


# ─────────────────────────────────────────────────────────────────
# Auth getters
# ─────────────────────────────────────────────────────────────────

def get_auth_provider() -> AuthProvider:
    """Get auth provider instance."""
    if _auth_provider is None:
        raise RuntimeError("Auth services not initialized.")
    return _auth_provider


require_auth = create_auth_dependency(get_auth_provider)


# ─────────────────────────────────────────────────────────────────
# Progression getters
# ─────────────────────────────────────────────────────────────────

def get_badge_catalog() -> BadgeCatalog:
    """Get badge catalog instance."""
    if _badge_catalog is None:
        raise RuntimeError("Progression services not initialized.")
    return _badge_catalog


def get_streak_tracker() -> StreakTracker:
    """Get streak tracker instance."""
    if _streak_tracker is None:
        raise RuntimeError("Progression services not initialized.")
    return _streak_tracker


def get_achievement_evaluator() -> AchievementEvaluator:
    """Get achievement evaluator instance."""
    if _achievement_evaluator is None:
        raise RuntimeError("Progression services not initialized.")
    return _achievement_evaluator


def get_progress_store() -> ProgressStore:
    """Get progress store instance."""
    if _progress_store is None:
        raise RuntimeError("Progression services not initialized.")
    return _progress_store


# ─────────────────────────────────────────────────────────────────
# Reminder getters
# ─────────────────────────────────────────────────────────────────

def get_notification_scheduler() -> NotificationScheduler:
    """Get notification scheduler instance."""
    if _notification_scheduler is None:
        raise RuntimeError("Reminder services not initialized.")
    return _notification_scheduler


def get_reminder_coordinator() -> ReminderCoordinator:
    """Get reminder coordinator instance."""
    if _reminder_coordinator is None:
        raise RuntimeError("Reminder services not initialized.")
    return _reminder_coordinator
