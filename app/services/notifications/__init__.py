"""
Notification services.

Scheduler contract and the MongoDB-backed implementation.
"""

from app.services.notifications.scheduler import NotificationScheduler, PendingReminder
from app.services.notifications.mongo_scheduler import MongoNotificationScheduler

__all__ = ["NotificationScheduler", "PendingReminder", "MongoNotificationScheduler"]
