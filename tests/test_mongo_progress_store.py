"""Unit tests for MongoProgressStore document mapping and error wrapping."""

import pytest
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from common.utils.exceptions import StorageError
from app.progression.types import (
    Badge,
    ExerciseCategory,
    ExerciseCompletion,
    Mood,
    MoodEntry,
    ReminderSettings,
    UserProgress,
)
from app.services.store.mongo_progress_store import MongoProgressStore


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_store_db():
    db = MagicMock()
    progress_col = AsyncMock()
    completions_col = AsyncMock()
    moods_col = AsyncMock()
    completions_col.find = MagicMock()
    moods_col.find = MagicMock()
    db.__getitem__ = MagicMock(side_effect=lambda key: {
        "userProgress": progress_col,
        "exerciseCompletions": completions_col,
        "moodEntries": moods_col,
    }[key])
    return db, progress_col, completions_col, moods_col


@pytest.fixture
def progress_store(mock_store_db):
    db, _, _, _ = mock_store_db
    return MongoProgressStore(db)


def _cursor(docs):
    cursor = MagicMock()
    cursor.sort = MagicMock(return_value=cursor)
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


# ─────────────────────────────────────────────────────────────────
# User progression
# ─────────────────────────────────────────────────────────────────


class TestProgress:
    @pytest.mark.asyncio
    async def test_missing_document_returns_defaults(self, progress_store, mock_store_db, sample_user_id):
        _, progress_col, _, _ = mock_store_db
        progress_col.find_one.return_value = None

        progress = await progress_store.get_progress(sample_user_id)

        assert progress.user_id == sample_user_id
        assert progress.current_streak == 0
        assert progress.reminders.hour == 19
        assert progress.badges == {}

    @pytest.mark.asyncio
    async def test_missing_document_uses_configured_reminder_time(self, mock_store_db, sample_user_id):
        db, progress_col, _, _ = mock_store_db
        progress_col.find_one.return_value = None
        store = MongoProgressStore(db, default_reminders=ReminderSettings(hour=7, minute=30))

        first = await store.get_progress(sample_user_id)
        first.reminders.hour = 21
        second = await store.get_progress(sample_user_id)

        assert (second.reminders.hour, second.reminders.minute) == (7, 30)

    @pytest.mark.asyncio
    async def test_document_without_reminders_uses_configured_time(self, mock_store_db, sample_user_id):
        db, progress_col, _, _ = mock_store_db
        progress_col.find_one.return_value = {"_id": ObjectId(), "currentStreak": 1}
        store = MongoProgressStore(db, default_reminders=ReminderSettings(hour=6, minute=0))

        progress = await store.get_progress(sample_user_id)

        assert (progress.reminders.hour, progress.reminders.minute) == (6, 0)
        assert progress.reminders.permission_requested is False

    @pytest.mark.asyncio
    async def test_maps_stored_document(self, progress_store, mock_store_db, sample_user_id, now):
        _, progress_col, _, _ = mock_store_db
        progress_col.find_one.return_value = {
            "_id": ObjectId(),
            "userId": ObjectId(sample_user_id),
            "currentStreak": 4,
            "currentXp": 120,
            "lastExerciseDate": now,
            "reminders": {"hour": 8, "minute": 45, "permissionRequested": True},
            "badges": {
                "streak_3": {"progress": 3, "earnedDate": now},
                "streak_7": {"progress": 4, "earnedDate": None},
            },
        }

        progress = await progress_store.get_progress(sample_user_id)

        assert progress.current_streak == 4
        assert progress.current_xp == 120
        assert progress.reminders.minute == 45
        assert progress.reminders.permission_requested is True
        assert progress.badges["streak_3"].is_earned
        assert progress.badges["streak_7"].progress == 4
        progress_col.find_one.assert_called_once_with({"userId": ObjectId(sample_user_id)})

    @pytest.mark.asyncio
    async def test_save_is_single_upsert(self, progress_store, mock_store_db, sample_user_id, now):
        _, progress_col, _, _ = mock_store_db
        progress = UserProgress(user_id=sample_user_id, current_streak=2, current_xp=30)
        progress.badges["streak_3"] = Badge(id="streak_3", progress=2)

        await progress_store.save_progress(progress)

        progress_col.update_one.assert_called_once()
        call_args = progress_col.update_one.call_args
        assert call_args[0][0] == {"userId": ObjectId(sample_user_id)}
        update = call_args[0][1]
        assert update["$set"]["currentStreak"] == 2
        assert update["$set"]["badges"]["streak_3"] == {"progress": 2, "earnedDate": None}
        assert "$setOnInsert" in update
        assert call_args[1]["upsert"] is True

    @pytest.mark.asyncio
    async def test_save_failure_raises_storage_error(self, progress_store, mock_store_db, sample_user_id):
        _, progress_col, _, _ = mock_store_db
        progress_col.update_one.side_effect = PyMongoError("down")

        with pytest.raises(StorageError):
            await progress_store.save_progress(UserProgress(user_id=sample_user_id))


# ─────────────────────────────────────────────────────────────────
# Completions
# ─────────────────────────────────────────────────────────────────


class TestCompletions:
    @pytest.mark.asyncio
    async def test_fetch_with_range(self, progress_store, mock_store_db, sample_user_id, now):
        _, _, completions_col, _ = mock_store_db
        completions_col.find.return_value = _cursor([
            {"_id": ObjectId(), "date": now, "category": "Balance", "source": "library"},
        ])
        start = datetime(2024, 3, 15, tzinfo=timezone.utc)
        end = datetime(2024, 3, 16, tzinfo=timezone.utc)

        rows = await progress_store.fetch_completions(sample_user_id, start, end)

        query = completions_col.find.call_args[0][0]
        assert query["date"] == {"$gte": start, "$lt": end}
        assert rows[0].category == ExerciseCategory.BALANCE

    @pytest.mark.asyncio
    async def test_insert_sets_id(self, progress_store, mock_store_db, sample_user_id, now):
        _, _, completions_col, _ = mock_store_db
        inserted_id = ObjectId()
        completions_col.insert_one.return_value = MagicMock(inserted_id=inserted_id)

        completion = await progress_store.insert_completion(
            sample_user_id, ExerciseCompletion(date=now, category=ExerciseCategory.REFLECT)
        )

        assert completion.id == str(inserted_id)
        doc = completions_col.insert_one.call_args[0][0]
        assert doc["category"] == "Reflect"
        assert doc["source"] == "cardView"

    @pytest.mark.asyncio
    async def test_count_by_category(self, progress_store, mock_store_db, sample_user_id):
        _, _, completions_col, _ = mock_store_db
        completions_col.count_documents.return_value = 7

        count = await progress_store.count_completions(sample_user_id, ExerciseCategory.AWARENESS)

        assert count == 7
        assert completions_col.count_documents.call_args[0][0]["category"] == "Awareness"

    @pytest.mark.asyncio
    async def test_delete_scoped_to_user(self, progress_store, mock_store_db, sample_user_id):
        _, _, completions_col, _ = mock_store_db
        completion_id = str(ObjectId())

        await progress_store.delete_completion(sample_user_id, completion_id)

        completions_col.delete_one.assert_called_once_with({
            "_id": ObjectId(completion_id),
            "userId": ObjectId(sample_user_id)
        })

    @pytest.mark.asyncio
    async def test_delete_failure_raises_storage_error(self, progress_store, mock_store_db, sample_user_id):
        _, _, completions_col, _ = mock_store_db
        completions_col.delete_one.side_effect = PyMongoError("down")

        with pytest.raises(StorageError):
            await progress_store.delete_completion(sample_user_id, str(ObjectId()))

    @pytest.mark.asyncio
    async def test_insert_failure_raises_storage_error(self, progress_store, mock_store_db, sample_user_id, now):
        _, _, completions_col, _ = mock_store_db
        completions_col.insert_one.side_effect = PyMongoError("down")

        with pytest.raises(StorageError):
            await progress_store.insert_completion(
                sample_user_id, ExerciseCompletion(date=now, category=ExerciseCategory.REFLECT)
            )


# ─────────────────────────────────────────────────────────────────
# Mood entries
# ─────────────────────────────────────────────────────────────────


class TestMoodEntries:
    @pytest.mark.asyncio
    async def test_upsert_keyed_by_day(self, progress_store, mock_store_db, sample_user_id, now):
        _, _, _, moods_col = mock_store_db
        stored_id = ObjectId()
        moods_col.find_one_and_update.return_value = None
        moods_col.find_one.return_value = {"_id": stored_id, "date": now, "mood": "Sad", "note": "tired"}

        entry, created = await progress_store.upsert_mood_entry(
            sample_user_id, MoodEntry(date=now, mood=Mood.SAD, note=" tired "), date(2024, 3, 15)
        )

        assert created is True
        assert entry.id == str(stored_id)
        call_args = moods_col.find_one_and_update.call_args
        assert call_args[0][0] == {"userId": ObjectId(sample_user_id), "day": "2024-03-15"}
        assert call_args[0][1]["$set"]["note"] == "tired"
        assert call_args[1]["upsert"] is True
        assert call_args[1]["return_document"] == ReturnDocument.BEFORE

    @pytest.mark.asyncio
    async def test_upsert_existing_day_is_not_created(self, progress_store, mock_store_db, sample_user_id, now):
        _, _, _, moods_col = mock_store_db
        existing = {"_id": ObjectId(), "date": now, "mood": "Happy"}
        moods_col.find_one_and_update.return_value = existing
        moods_col.find_one.return_value = {**existing, "mood": "Neutral"}

        entry, created = await progress_store.upsert_mood_entry(
            sample_user_id, MoodEntry(date=now, mood=Mood.NEUTRAL), date(2024, 3, 15)
        )

        assert created is False
        assert entry.mood == Mood.NEUTRAL

    @pytest.mark.asyncio
    async def test_fetch_newest_first(self, progress_store, mock_store_db, sample_user_id, now):
        _, _, _, moods_col = mock_store_db
        cursor = _cursor([{"_id": ObjectId(), "date": now, "mood": "Very Happy"}])
        moods_col.find.return_value = cursor

        entries = await progress_store.fetch_mood_entries(sample_user_id)

        assert entries[0].mood == Mood.VERY_HAPPY
        assert cursor.sort.call_args[0] == ("date", -1)

    @pytest.mark.asyncio
    async def test_find_failure_raises_storage_error(self, progress_store, mock_store_db, sample_user_id):
        _, _, _, moods_col = mock_store_db
        moods_col.find_one.side_effect = PyMongoError("down")

        with pytest.raises(StorageError):
            await progress_store.find_mood_entry(sample_user_id, date(2024, 3, 15))
