"""Shared test fixtures for Klarblick backend tests."""

import copy
import pytest
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo
from bson import ObjectId

from common.utils.exceptions import SchedulingError, StorageError
from app.progression.achievement_evaluator import AchievementEvaluator
from app.progression.badge_catalog import BadgeCatalog
from app.progression.calendar import local_day
from app.progression.streak_tracker import StreakTracker
from app.progression.types import ExerciseCompletion, MoodEntry, UserProgress
from app.services.notifications.scheduler import NotificationScheduler, PendingReminder
from app.services.reminders.reminder_coordinator import ReminderCoordinator
from app.services.store.progress_store import ProgressStore


UTC = timezone.utc


# ─────────────────────────────────────────────────────────────────
# In-memory doubles
# ─────────────────────────────────────────────────────────────────


class InMemoryProgressStore(ProgressStore):
    """
    Dict-backed store. Returns copies so unsaved mutations never leak.

    Put a method name in fail_on to make it raise StorageError.
    """

    def __init__(self, tz=UTC):
        self.tz = tz
        self.progress: Dict[str, UserProgress] = {}
        self.completions: Dict[str, List[ExerciseCompletion]] = {}
        self.moods: Dict[str, Dict[date, MoodEntry]] = {}
        self.fail_on: set = set()
        self.save_count = 0

    def _check(self, name: str) -> None:
        if name in self.fail_on:
            raise StorageError(f"{name} failed")

    async def get_progress(self, user_id: str) -> UserProgress:
        self._check("get_progress")
        stored = self.progress.get(user_id)
        return copy.deepcopy(stored) if stored else UserProgress(user_id=user_id)

    async def save_progress(self, progress: UserProgress) -> None:
        self._check("save_progress")
        self.progress[progress.user_id] = copy.deepcopy(progress)
        self.save_count += 1

    async def fetch_completions(self, user_id, start=None, end=None) -> List[ExerciseCompletion]:
        self._check("fetch_completions")
        rows = sorted(self.completions.get(user_id, []), key=lambda c: c.date)
        if start:
            rows = [c for c in rows if c.date >= start]
        if end:
            rows = [c for c in rows if c.date < end]
        return copy.deepcopy(rows)

    async def count_completions(self, user_id, category=None) -> int:
        self._check("count_completions")
        rows = self.completions.get(user_id, [])
        return sum(1 for c in rows if category is None or c.category == category)

    async def insert_completion(self, user_id, completion) -> ExerciseCompletion:
        self._check("insert_completion")
        completion.id = str(ObjectId())
        self.completions.setdefault(user_id, []).append(copy.deepcopy(completion))
        return completion

    async def delete_completion(self, user_id, completion_id) -> None:
        self._check("delete_completion")
        self.completions[user_id] = [
            c for c in self.completions.get(user_id, []) if c.id != completion_id
        ]

    async def fetch_mood_entries(self, user_id) -> List[MoodEntry]:
        self._check("fetch_mood_entries")
        rows = sorted(self.moods.get(user_id, {}).values(), key=lambda e: e.date, reverse=True)
        return copy.deepcopy(rows)

    async def find_mood_entry(self, user_id, day) -> Optional[MoodEntry]:
        self._check("find_mood_entry")
        entry = self.moods.get(user_id, {}).get(day)
        return copy.deepcopy(entry) if entry else None

    async def upsert_mood_entry(self, user_id, entry, day) -> Tuple[MoodEntry, bool]:
        self._check("upsert_mood_entry")
        days = self.moods.setdefault(user_id, {})
        created = day not in days
        stored = copy.deepcopy(entry)
        stored.id = days[day].id if not created else str(ObjectId())
        days[day] = stored
        return copy.deepcopy(stored), created

    # Seeding helpers

    def add_completion(self, user_id: str, completion: ExerciseCompletion) -> None:
        self.completions.setdefault(user_id, []).append(completion)

    def add_mood(self, user_id: str, entry: MoodEntry) -> None:
        self.moods.setdefault(user_id, {})[local_day(entry.date, self.tz)] = entry


class RecordingScheduler(NotificationScheduler):
    """
    Records every call in order and keeps the armed triggers.

    Set fail to make every scheduling call raise SchedulingError, or put
    a call kind in fail_on to make only that call raise.
    """

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.fail = False
        self.fail_on: set = set()
        self.calls: List[tuple] = []
        self.pending: Dict[Tuple[str, str], PendingReminder] = {}

    def _check(self, kind: str) -> None:
        if self.fail or kind in self.fail_on:
            raise SchedulingError("scheduler offline")

    async def request_authorization(self, user_id: str) -> bool:
        self.calls.append(("request_authorization", user_id))
        self._check("request_authorization")
        return self.granted

    async def set_permission(self, user_id: str, granted: bool) -> None:
        self.calls.append(("set_permission", user_id, granted))
        self._check("set_permission")
        self.granted = granted

    async def schedule_recurring_daily(
        self, user_id, identifier, hour, minute, starting=None, title=None, body=None
    ) -> None:
        self.calls.append(("recurring", user_id, identifier, hour, minute, starting))
        self._check("recurring")
        self.pending[(user_id, identifier)] = PendingReminder(
            identifier=identifier, hour=hour, minute=minute, repeats=True,
            target_date=starting, title=title, body=body
        )

    async def schedule_one_shot(
        self, user_id, identifier, day, hour, minute, title=None, body=None
    ) -> None:
        self.calls.append(("one_shot", user_id, identifier, day, hour, minute))
        self._check("one_shot")
        self.pending[(user_id, identifier)] = PendingReminder(
            identifier=identifier, hour=hour, minute=minute, repeats=False,
            target_date=day, title=title, body=body
        )

    async def cancel(self, user_id, identifiers) -> None:
        identifiers = list(identifiers)
        self.calls.append(("cancel", user_id, identifiers))
        self._check("cancel")
        for identifier in identifiers:
            self.pending.pop((user_id, identifier), None)

    async def list_pending(self, user_id) -> List[PendingReminder]:
        self._check("list_pending")
        return sorted(
            (p for (uid, _), p in self.pending.items() if uid == user_id),
            key=lambda p: p.identifier
        )

    async def reinstate(self, user_id, reminder) -> None:
        self.calls.append(("reinstate", user_id, reminder.identifier))
        self._check("reinstate")
        self.pending[(user_id, reminder.identifier)] = reminder

    def calls_for(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_user_id():
    return str(ObjectId())


@pytest.fixture
def now():
    """Mid-afternoon on a fixed day, so yesterday/tomorrow are unambiguous."""
    return datetime(2024, 3, 15, 14, 30, tzinfo=UTC)


@pytest.fixture
def today(now):
    return now.date()


@pytest.fixture
def catalog():
    return BadgeCatalog()


@pytest.fixture
def streak_tracker():
    return StreakTracker(tz=UTC)


@pytest.fixture
def evaluator(catalog, streak_tracker):
    return AchievementEvaluator(catalog=catalog, streak_tracker=streak_tracker)


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def coordinator(scheduler):
    return ReminderCoordinator(scheduler=scheduler, tz=UTC)


@pytest.fixture
def stockholm():
    return ZoneInfo("Europe/Stockholm")


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, insert_one,
    # count_documents etc. stay as AsyncMock.
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db
