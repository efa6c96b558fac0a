"""
Type definitions for the progression engine.

Contains the enums, entities, requirement variants and events shared by
the badge catalog, streak tracker, achievement evaluator and the services
that persist them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Tuple, Union

from common.utils.exceptions import InvariantViolation


# ─────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────

class ExerciseCategory(str, Enum):
    AWARENESS = "Awareness"
    BALANCE = "Balance"
    REFLECT = "Reflect"


class CompletionSource(str, Enum):
    CARD_VIEW = "cardView"
    LIBRARY = "library"


class Mood(str, Enum):
    """The five moods a user can log, from best to worst."""
    VERY_HAPPY = "Very Happy"
    HAPPY = "Happy"
    NEUTRAL = "Neutral"
    SAD = "Sad"
    STRESSED = "Stressed"


class BadgeCategory(str, Enum):
    STREAK = "streak"
    XP = "xp"
    CATEGORY = "category"
    MOOD = "mood"
    ACHIEVEMENT = "achievement"


class BadgeRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


ALL_CATEGORIES = frozenset(ExerciseCategory)


# ─────────────────────────────────────────────────────────────────
# Badge requirements (one variant per kind)
# ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StreakRequirement:
    """Exercise streak of at least `days`."""
    days: int

    @property
    def target(self) -> int:
        return self.days


@dataclass(frozen=True)
class TotalXpRequirement:
    """Accumulated XP of at least `amount`."""
    amount: int

    @property
    def target(self) -> int:
        return self.amount


@dataclass(frozen=True)
class CategoryCountRequirement:
    """At least `count` completions of one exercise category, all time."""
    category: ExerciseCategory
    count: int

    @property
    def target(self) -> int:
        return self.count


@dataclass(frozen=True)
class MoodStreakRequirement:
    """Mood logged on `days` consecutive calendar days ending today."""
    days: int

    @property
    def target(self) -> int:
        return self.days


@dataclass(frozen=True)
class MoodVarietyRequirement:
    """At least `distinct_moods` different moods logged."""
    distinct_moods: int

    @property
    def target(self) -> int:
        return self.distinct_moods


@dataclass(frozen=True)
class PerfectDayRequirement:
    """Every exercise category completed on one calendar day (today)."""

    @property
    def target(self) -> int:
        return 1


Requirement = Union[
    StreakRequirement,
    TotalXpRequirement,
    CategoryCountRequirement,
    MoodStreakRequirement,
    MoodVarietyRequirement,
    PerfectDayRequirement,
]


@dataclass(frozen=True)
class BadgeDefinition:
    """Immutable catalog entry."""
    id: str
    name: str
    description: str
    category: BadgeCategory
    requirement: Requirement
    rarity: BadgeRarity
    icon_name: str = ""


# ─────────────────────────────────────────────────────────────────
# Per-user state
# ─────────────────────────────────────────────────────────────────

@dataclass
class Badge:
    """A user's record for one catalog definition."""
    id: str
    progress: int = 0
    earned_date: Optional[datetime] = None

    @property
    def is_earned(self) -> bool:
        return self.earned_date is not None

    def mark_earned(self, now: datetime) -> None:
        if self.is_earned:
            raise InvariantViolation(f"Badge {self.id} is already earned")
        self.earned_date = now

    def update_progress(self, value: int) -> bool:
        """
        Raise progress to value. Returns True if it changed.

        Progress is frozen once earned and never lowered.
        """
        if self.is_earned or value <= self.progress:
            return False
        self.progress = value
        return True


@dataclass
class ReminderSettings:
    """Persisted reminder configuration for one user."""
    hour: int = 19
    minute: int = 0
    permission_requested: bool = False


@dataclass
class UserProgress:
    """Mutable progression facts for one user."""
    user_id: str
    current_streak: int = 0
    current_xp: int = 0
    last_exercise_date: Optional[datetime] = None
    last_mood_check_in: Optional[datetime] = None
    reminders: ReminderSettings = field(default_factory=ReminderSettings)
    badges: Dict[str, Badge] = field(default_factory=dict)

    def award_xp(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("XP awards must be non-negative")
        self.current_xp += amount

    def get_or_create_badge(self, badge_id: str) -> Tuple[Badge, bool]:
        """Return the user's badge for badge_id, creating it if missing."""
        badge = self.badges.get(badge_id)
        if badge is not None:
            return badge, False
        badge = Badge(id=badge_id)
        self.badges[badge_id] = badge
        return badge, True


# ─────────────────────────────────────────────────────────────────
# Event log rows
# ─────────────────────────────────────────────────────────────────

@dataclass
class ExerciseCompletion:
    """One finished exercise session. Append-only."""
    date: datetime
    category: ExerciseCategory
    source: CompletionSource = CompletionSource.CARD_VIEW
    id: Optional[str] = None


@dataclass
class MoodEntry:
    """A day's mood. Upserted by calendar day."""
    date: datetime
    mood: Mood
    note: Optional[str] = None
    id: Optional[str] = None


# ─────────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────────

@dataclass
class ExerciseCompleted:
    category: ExerciseCategory
    date: datetime
    source: CompletionSource = CompletionSource.CARD_VIEW


@dataclass
class MoodLogged:
    mood: Mood
    date: datetime
    note: Optional[str] = None


@dataclass
class EvaluationContext:
    """Everything the achievement evaluator reads for one pass."""
    progress: UserProgress
    completions: List[ExerciseCompletion]
    mood_entries: List[MoodEntry]
    today: date
