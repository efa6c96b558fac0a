"""
MongoDB-backed progression store.

One userProgress document per user holds streak, XP, reminder settings
and every badge, so committing an evaluation is a single atomic write.
Completions and mood entries live in their own collections.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from common.utils.exceptions import StorageError
from app.progression.types import (
    Badge,
    CompletionSource,
    ExerciseCategory,
    ExerciseCompletion,
    Mood,
    MoodEntry,
    ReminderSettings,
    UserProgress,
)
from app.services.store.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class MongoProgressStore(ProgressStore):
    """
    Handles progression storage and retrieval.
    Pure CRUD - no streak or badge rules.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        default_reminders: Optional[ReminderSettings] = None
    ):
        """
        Initialize MongoProgressStore.

        Args:
            db: MongoDB database connection
            default_reminders: Reminder time for users who never chose one
        """
        self._db = db
        self._default_reminders = default_reminders or ReminderSettings()
        self._progress_collection = db["userProgress"]
        self._completions_collection = db["exerciseCompletions"]
        self._moods_collection = db["moodEntries"]

    async def ensure_indexes(self) -> None:
        """Create the indexes the store relies on. Safe to call repeatedly."""
        try:
            await self._progress_collection.create_index("userId", unique=True)
            await self._completions_collection.create_index(
                [("userId", ASCENDING), ("date", ASCENDING)]
            )
            await self._moods_collection.create_index(
                [("userId", ASCENDING), ("day", ASCENDING)], unique=True
            )
        except PyMongoError as e:
            logger.error(f"Failed to create progression indexes: {e}")
            raise StorageError("Failed to create progression indexes") from e

    # =========================================================================
    # User progression
    # =========================================================================

    async def get_progress(self, user_id: str) -> UserProgress:
        try:
            doc = await self._progress_collection.find_one({"userId": ObjectId(user_id)})
        except PyMongoError as e:
            logger.error(f"Failed to load progress for user {user_id}: {e}")
            raise StorageError("Failed to load progress") from e

        if not doc:
            return UserProgress(user_id=user_id, reminders=replace(self._default_reminders))

        return _progress_from_doc(user_id, doc, self._default_reminders)

    async def save_progress(self, progress: UserProgress) -> None:
        now = datetime.now(timezone.utc)

        try:
            await self._progress_collection.update_one(
                {"userId": ObjectId(progress.user_id)},
                {
                    "$set": {**_progress_to_doc(progress), "updatedAt": now},
                    "$setOnInsert": {"createdAt": now}
                },
                upsert=True
            )
        except PyMongoError as e:
            logger.error(f"Failed to save progress for user {progress.user_id}: {e}")
            raise StorageError("Failed to save progress") from e

        logger.debug(
            f"Saved progress for user {progress.user_id}: "
            f"streak={progress.current_streak} xp={progress.current_xp}"
        )

    # =========================================================================
    # Exercise completions
    # =========================================================================

    async def fetch_completions(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[ExerciseCompletion]:
        query: Dict[str, Any] = {"userId": ObjectId(user_id)}

        if start or end:
            query["date"] = {}
            if start:
                query["date"]["$gte"] = start
            if end:
                query["date"]["$lt"] = end

        try:
            cursor = self._completions_collection.find(query)
            cursor = cursor.sort("date", ASCENDING)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to fetch completions for user {user_id}: {e}")
            raise StorageError("Failed to fetch completions") from e

        return [_completion_from_doc(doc) for doc in docs]

    async def count_completions(
        self,
        user_id: str,
        category: Optional[ExerciseCategory] = None
    ) -> int:
        query: Dict[str, Any] = {"userId": ObjectId(user_id)}
        if category:
            query["category"] = category.value

        try:
            return await self._completions_collection.count_documents(query)
        except PyMongoError as e:
            logger.error(f"Failed to count completions for user {user_id}: {e}")
            raise StorageError("Failed to count completions") from e

    async def insert_completion(
        self,
        user_id: str,
        completion: ExerciseCompletion
    ) -> ExerciseCompletion:
        doc = {
            "userId": ObjectId(user_id),
            "date": completion.date,
            "category": completion.category.value,
            "source": completion.source.value,
            "createdAt": datetime.now(timezone.utc)
        }

        try:
            result = await self._completions_collection.insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Failed to insert completion for user {user_id}: {e}")
            raise StorageError("Failed to record completion") from e

        completion.id = str(result.inserted_id)
        logger.info(f"Exercise completion recorded for user {user_id}: {completion.category.value}")
        return completion

    async def delete_completion(self, user_id: str, completion_id: str) -> None:
        try:
            await self._completions_collection.delete_one({
                "_id": ObjectId(completion_id),
                "userId": ObjectId(user_id)
            })
        except PyMongoError as e:
            logger.error(f"Failed to delete completion {completion_id} for user {user_id}: {e}")
            raise StorageError("Failed to delete completion") from e

    # =========================================================================
    # Mood entries
    # =========================================================================

    async def fetch_mood_entries(self, user_id: str) -> List[MoodEntry]:
        try:
            cursor = self._moods_collection.find({"userId": ObjectId(user_id)})
            cursor = cursor.sort("date", DESCENDING)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to fetch mood entries for user {user_id}: {e}")
            raise StorageError("Failed to fetch mood entries") from e

        return [_mood_from_doc(doc) for doc in docs]

    async def find_mood_entry(self, user_id: str, day: date) -> Optional[MoodEntry]:
        try:
            doc = await self._moods_collection.find_one({
                "userId": ObjectId(user_id),
                "day": day.isoformat()
            })
        except PyMongoError as e:
            logger.error(f"Failed to load mood entry for user {user_id} on {day}: {e}")
            raise StorageError("Failed to load mood entry") from e

        return _mood_from_doc(doc) if doc else None

    async def upsert_mood_entry(
        self,
        user_id: str,
        entry: MoodEntry,
        day: date
    ) -> Tuple[MoodEntry, bool]:
        now = datetime.now(timezone.utc)

        try:
            previous = await self._moods_collection.find_one_and_update(
                {"userId": ObjectId(user_id), "day": day.isoformat()},
                {
                    "$set": {
                        "date": entry.date,
                        "mood": entry.mood.value,
                        "note": entry.note.strip() if entry.note else None,
                        "updatedAt": now
                    },
                    "$setOnInsert": {"createdAt": now}
                },
                upsert=True,
                return_document=ReturnDocument.BEFORE
            )
            stored = await self._moods_collection.find_one({
                "userId": ObjectId(user_id),
                "day": day.isoformat()
            })
        except PyMongoError as e:
            logger.error(f"Failed to upsert mood entry for user {user_id} on {day}: {e}")
            raise StorageError("Failed to record mood") from e

        created = previous is None
        logger.info(
            f"Mood {'logged' if created else 'updated'} for user {user_id} on {day}: {entry.mood.value}"
        )
        return (_mood_from_doc(stored) if stored else entry), created


# ─────────────────────────────────────────────────────────────────
# Document mapping
# ─────────────────────────────────────────────────────────────────

def _progress_to_doc(progress: UserProgress) -> Dict[str, Any]:
    return {
        "currentStreak": progress.current_streak,
        "currentXp": progress.current_xp,
        "lastExerciseDate": progress.last_exercise_date,
        "lastMoodCheckIn": progress.last_mood_check_in,
        "reminders": {
            "hour": progress.reminders.hour,
            "minute": progress.reminders.minute,
            "permissionRequested": progress.reminders.permission_requested
        },
        "badges": {
            badge_id: {"progress": badge.progress, "earnedDate": badge.earned_date}
            for badge_id, badge in progress.badges.items()
        }
    }


def _progress_from_doc(
    user_id: str,
    doc: Dict[str, Any],
    defaults: ReminderSettings
) -> UserProgress:
    reminders = doc.get("reminders") or {}

    return UserProgress(
        user_id=user_id,
        current_streak=doc.get("currentStreak", 0),
        current_xp=doc.get("currentXp", 0),
        last_exercise_date=doc.get("lastExerciseDate"),
        last_mood_check_in=doc.get("lastMoodCheckIn"),
        reminders=ReminderSettings(
            hour=reminders.get("hour", defaults.hour),
            minute=reminders.get("minute", defaults.minute),
            permission_requested=reminders.get("permissionRequested", False)
        ),
        badges={
            badge_id: Badge(
                id=badge_id,
                progress=data.get("progress", 0),
                earned_date=data.get("earnedDate")
            )
            for badge_id, data in (doc.get("badges") or {}).items()
        }
    )


def _completion_from_doc(doc: Dict[str, Any]) -> ExerciseCompletion:
    return ExerciseCompletion(
        id=str(doc["_id"]),
        date=doc["date"],
        category=ExerciseCategory(doc["category"]),
        source=CompletionSource(doc.get("source", CompletionSource.CARD_VIEW.value))
    )


def _mood_from_doc(doc: Dict[str, Any]) -> MoodEntry:
    return MoodEntry(
        id=str(doc["_id"]),
        date=doc["date"],
        mood=Mood(doc["mood"]),
        note=doc.get("note")
    )
