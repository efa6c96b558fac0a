"""
MongoDB-backed notification scheduler.

Records armed reminder triggers per user so a delivery worker can fire
them. One document per (user, identifier): arming replaces, cancelling
deletes.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, Iterable

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from common.utils.exceptions import SchedulingError
from app.services.notifications.scheduler import NotificationScheduler, PendingReminder

logger = logging.getLogger(__name__)


class MongoNotificationScheduler(NotificationScheduler):
    """
    Stores reminder triggers and device notification permission.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize MongoNotificationScheduler.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._reminders_collection = db["scheduledReminders"]
        self._permissions_collection = db["notificationPermissions"]

    async def ensure_indexes(self) -> None:
        try:
            await self._reminders_collection.create_index(
                [("userId", ASCENDING), ("identifier", ASCENDING)], unique=True
            )
            await self._permissions_collection.create_index("userId", unique=True)
        except PyMongoError as e:
            logger.error(f"Failed to create reminder indexes: {e}")
            raise SchedulingError("Failed to create reminder indexes") from e

    # =========================================================================
    # Permission
    # =========================================================================

    async def request_authorization(self, user_id: str) -> bool:
        try:
            doc = await self._permissions_collection.find_one({"userId": ObjectId(user_id)})
        except PyMongoError as e:
            logger.error(f"Failed to read notification permission for user {user_id}: {e}")
            raise SchedulingError("Failed to read notification permission") from e

        return bool(doc and doc.get("granted"))

    async def set_permission(self, user_id: str, granted: bool) -> None:
        """Record the permission reported by the user's device."""
        now = datetime.now(timezone.utc)

        try:
            await self._permissions_collection.update_one(
                {"userId": ObjectId(user_id)},
                {
                    "$set": {"granted": granted, "updatedAt": now},
                    "$setOnInsert": {"createdAt": now}
                },
                upsert=True
            )
        except PyMongoError as e:
            logger.error(f"Failed to store notification permission for user {user_id}: {e}")
            raise SchedulingError("Failed to store notification permission") from e

        logger.info(f"Notification permission for user {user_id}: {'granted' if granted else 'denied'}")

    # =========================================================================
    # Triggers
    # =========================================================================

    async def schedule_recurring_daily(
        self,
        user_id: str,
        identifier: str,
        hour: int,
        minute: int,
        starting: Optional[date] = None,
        title: Optional[str] = None,
        body: Optional[str] = None
    ) -> None:
        await self._arm(user_id, {
            "identifier": identifier,
            "hour": hour,
            "minute": minute,
            "repeats": True,
            "targetDate": starting.isoformat() if starting else None,
            "title": title,
            "body": body
        })
        logger.info(f"Recurring reminder {identifier} armed for user {user_id} at {hour:02d}:{minute:02d}")

    async def schedule_one_shot(
        self,
        user_id: str,
        identifier: str,
        day: date,
        hour: int,
        minute: int,
        title: Optional[str] = None,
        body: Optional[str] = None
    ) -> None:
        await self._arm(user_id, {
            "identifier": identifier,
            "hour": hour,
            "minute": minute,
            "repeats": False,
            "targetDate": day.isoformat(),
            "title": title,
            "body": body
        })
        logger.info(f"One-shot reminder {identifier} armed for user {user_id} on {day} {hour:02d}:{minute:02d}")

    async def cancel(self, user_id: str, identifiers: Iterable[str]) -> None:
        identifiers = list(identifiers)

        try:
            await self._reminders_collection.delete_many({
                "userId": ObjectId(user_id),
                "identifier": {"$in": identifiers}
            })
        except PyMongoError as e:
            logger.error(f"Failed to cancel reminders {identifiers} for user {user_id}: {e}")
            raise SchedulingError("Failed to cancel reminders") from e

        logger.info(f"Reminders cancelled for user {user_id}: {identifiers}")

    async def list_pending(self, user_id: str) -> List[PendingReminder]:
        try:
            cursor = self._reminders_collection.find({"userId": ObjectId(user_id)})
            cursor = cursor.sort("identifier", ASCENDING)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to list reminders for user {user_id}: {e}")
            raise SchedulingError("Failed to list reminders") from e

        return [_pending_from_doc(doc) for doc in docs]

    async def reinstate(self, user_id: str, reminder: PendingReminder) -> None:
        await self._write(user_id, _pending_to_doc(reminder))
        logger.info(f"Reminder {reminder.identifier} reinstated for user {user_id}")

    async def _arm(self, user_id: str, trigger: Dict[str, Any]) -> None:
        if not await self._is_allowed(user_id):
            raise SchedulingError("Notification permission denied", code="PERMISSION_DENIED")

        await self._write(user_id, trigger)

    async def _write(self, user_id: str, trigger: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)

        try:
            await self._reminders_collection.update_one(
                {"userId": ObjectId(user_id), "identifier": trigger["identifier"]},
                {
                    "$set": {**trigger, "updatedAt": now},
                    "$setOnInsert": {"createdAt": now}
                },
                upsert=True
            )
        except PyMongoError as e:
            logger.error(f"Failed to arm reminder {trigger['identifier']} for user {user_id}: {e}")
            raise SchedulingError("Failed to arm reminder") from e

    async def _is_allowed(self, user_id: str) -> bool:
        # No record yet means the device never answered; only an explicit
        # denial blocks scheduling.
        try:
            doc = await self._permissions_collection.find_one({"userId": ObjectId(user_id)})
        except PyMongoError as e:
            logger.error(f"Failed to read notification permission for user {user_id}: {e}")
            raise SchedulingError("Failed to read notification permission") from e

        return doc is None or bool(doc.get("granted"))


def _pending_to_doc(reminder: PendingReminder) -> Dict[str, Any]:
    return {
        "identifier": reminder.identifier,
        "hour": reminder.hour,
        "minute": reminder.minute,
        "repeats": reminder.repeats,
        "targetDate": reminder.target_date.isoformat() if reminder.target_date else None,
        "title": reminder.title,
        "body": reminder.body
    }


def _pending_from_doc(doc: Dict[str, Any]) -> PendingReminder:
    target = doc.get("targetDate")
    return PendingReminder(
        identifier=doc["identifier"],
        hour=doc["hour"],
        minute=doc["minute"],
        repeats=doc.get("repeats", False),
        target_date=date.fromisoformat(target) if target else None,
        title=doc.get("title"),
        body=doc.get("body")
    )
