"""
Reminder pipeline functions.

Stateless orchestration for reminder time configuration, device
notification permission and pending-reminder diagnostics.
"""

import logging
from typing import Dict, Any

from app.progression.types import ReminderSettings
from app.services.notifications.scheduler import NotificationScheduler, PendingReminder
from app.services.reminders.reminder_coordinator import ReminderCoordinator
from app.services.store.progress_store import ProgressStore
from common.utils.exceptions import SchedulingError

logger = logging.getLogger(__name__)


async def configure_reminders_pipeline(
    store: ProgressStore,
    coordinator: ReminderCoordinator,
    user_id: str,
    hour: int,
    minute: int
) -> Dict[str, Any]:
    """
    Persist a new reminder time and re-arm the daily reminders.

    Args:
        store: For reminder settings persistence
        coordinator: For rescheduling
        user_id: Current user's ID
        hour: Reminder hour, 0-23
        minute: Reminder minute, 0-59

    Returns:
        Formatted reminder settings
    """
    progress = await store.get_progress(user_id)
    progress.reminders.hour = hour
    progress.reminders.minute = minute
    await store.save_progress(progress)

    await coordinator.configure_reminders(user_id, hour, minute)

    return _format_reminders(coordinator, progress.reminders)


async def update_permission_pipeline(
    store: ProgressStore,
    scheduler: NotificationScheduler,
    coordinator: ReminderCoordinator,
    user_id: str,
    granted: bool
) -> Dict[str, Any]:
    """
    Record the device's notification permission.

    When permission becomes granted, the daily reminders are armed at
    the stored reminder time.

    Returns:
        dict with enabled, justGranted and reminder settings
    """
    progress = await store.get_progress(user_id)

    try:
        was_enabled = await scheduler.request_authorization(user_id)
        await scheduler.set_permission(user_id, granted)
    except SchedulingError as e:
        logger.warning(f"Failed to record notification permission for user {user_id}: {e}")
        return {
            "enabled": False,
            "justGranted": False,
            "reminders": _format_reminders(coordinator, progress.reminders)
        }

    enabled, just_granted = await coordinator.request_authorization_if_needed(
        user_id, progress.reminders
    )

    if enabled and (just_granted or not was_enabled):
        logger.info(f"Notifications enabled for user {user_id}, arming daily reminders")
        await coordinator.configure_reminders(
            user_id, progress.reminders.hour, progress.reminders.minute
        )

    await store.save_progress(progress)

    return {
        "enabled": enabled,
        "justGranted": just_granted,
        "reminders": _format_reminders(coordinator, progress.reminders)
    }


async def get_reminder_settings_pipeline(
    store: ProgressStore,
    coordinator: ReminderCoordinator,
    user_id: str
) -> Dict[str, Any]:
    progress = await store.get_progress(user_id)
    return _format_reminders(coordinator, progress.reminders)


async def get_pending_reminders_pipeline(
    scheduler: NotificationScheduler,
    user_id: str
) -> Dict[str, Any]:
    """
    List armed reminders for diagnostics.

    Returns:
        dict with reminders list
    """
    pending = await scheduler.list_pending(user_id)
    return {"reminders": [_format_pending(p) for p in pending]}


# =============================================================================
# Helper Functions
# =============================================================================

def _format_reminders(coordinator: ReminderCoordinator, reminders: ReminderSettings) -> Dict[str, Any]:
    mood_hour, mood_minute = coordinator.mood_time(reminders)
    return {
        "hour": reminders.hour,
        "minute": reminders.minute,
        "moodHour": mood_hour,
        "moodMinute": mood_minute,
        "permissionRequested": reminders.permission_requested
    }


def _format_pending(reminder: PendingReminder) -> Dict[str, Any]:
    return {
        "identifier": reminder.identifier,
        "hour": reminder.hour,
        "minute": reminder.minute,
        "repeats": reminder.repeats,
        "targetDate": reminder.target_date.isoformat() if reminder.target_date else None,
        "title": reminder.title,
        "body": reminder.body
    }
