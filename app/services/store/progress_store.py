"""
Data store contract for progression state.

The engine reads and writes user progression, exercise completions and
mood entries only through this interface.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional, Tuple

from app.progression.types import (
    ExerciseCategory,
    ExerciseCompletion,
    MoodEntry,
    UserProgress,
)


class ProgressStore(ABC):
    """
    Abstract progression store.

    Every method raises StorageError on an underlying I/O failure.
    """

    @abstractmethod
    async def get_progress(self, user_id: str) -> UserProgress:
        """
        Load a user's progression.

        Returns a fresh UserProgress with defaults if none is stored yet.
        """
        pass

    @abstractmethod
    async def save_progress(self, progress: UserProgress) -> None:
        """
        Persist streak, XP, dates, reminder settings and badges atomically.
        """
        pass

    @abstractmethod
    async def fetch_completions(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[ExerciseCompletion]:
        """
        List completions, oldest first.

        Args:
            user_id: Owner
            start: Inclusive lower bound on completion date
            end: Exclusive upper bound on completion date
        """
        pass

    @abstractmethod
    async def count_completions(
        self,
        user_id: str,
        category: Optional[ExerciseCategory] = None
    ) -> int:
        pass

    @abstractmethod
    async def insert_completion(
        self,
        user_id: str,
        completion: ExerciseCompletion
    ) -> ExerciseCompletion:
        """Append a completion and return it with its id set."""
        pass

    @abstractmethod
    async def delete_completion(self, user_id: str, completion_id: str) -> None:
        """Remove a completion whose progression change was never saved."""
        pass

    @abstractmethod
    async def fetch_mood_entries(self, user_id: str) -> List[MoodEntry]:
        """List mood entries, newest first."""
        pass

    @abstractmethod
    async def find_mood_entry(self, user_id: str, day: date) -> Optional[MoodEntry]:
        pass

    @abstractmethod
    async def upsert_mood_entry(
        self,
        user_id: str,
        entry: MoodEntry,
        day: date
    ) -> Tuple[MoodEntry, bool]:
        """
        Create or overwrite the mood entry for a calendar day.

        Returns:
            (stored entry, True if a new entry was created)
        """
        pass
