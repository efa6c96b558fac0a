"""
Reminder services.

Keeps armed reminders consistent with user activity.
"""

from app.services.reminders.reminder_coordinator import (
    ReminderChannel,
    ReminderContent,
    REMINDER_CONTENT,
    ReminderCoordinator,
)

__all__ = ["ReminderChannel", "ReminderContent", "REMINDER_CONTENT", "ReminderCoordinator"]
