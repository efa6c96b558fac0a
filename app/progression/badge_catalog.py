"""
Badge catalog.

Static registry of badge definitions. The evaluator reads thresholds only
from here.
"""

from typing import Iterable, List, Optional, Tuple

from common.utils.exceptions import InvariantViolation
from app.progression.types import (
    BadgeCategory,
    BadgeDefinition,
    BadgeRarity,
    CategoryCountRequirement,
    ExerciseCategory,
    MoodStreakRequirement,
    MoodVarietyRequirement,
    PerfectDayRequirement,
    StreakRequirement,
    TotalXpRequirement,
)


DEFAULT_BADGES: Tuple[BadgeDefinition, ...] = (
    # Streak badges
    BadgeDefinition(
        id="streak_3",
        name="First Steps",
        description="Complete exercises 3 days in a row",
        category=BadgeCategory.STREAK,
        requirement=StreakRequirement(3),
        rarity=BadgeRarity.COMMON,
        icon_name="flame",
    ),
    BadgeDefinition(
        id="streak_7",
        name="Getting Warmer",
        description="Complete exercises 7 days in a row",
        category=BadgeCategory.STREAK,
        requirement=StreakRequirement(7),
        rarity=BadgeRarity.COMMON,
        icon_name="flame.fill",
    ),
    BadgeDefinition(
        id="streak_15",
        name="On Fire",
        description="Complete exercises 15 days in a row",
        category=BadgeCategory.STREAK,
        requirement=StreakRequirement(15),
        rarity=BadgeRarity.RARE,
        icon_name="flame.circle.fill",
    ),
    BadgeDefinition(
        id="streak_30",
        name="Unstoppable",
        description="Complete exercises 30 days in a row",
        category=BadgeCategory.STREAK,
        requirement=StreakRequirement(30),
        rarity=BadgeRarity.EPIC,
        icon_name="flame.circle.fill",
    ),
    # XP badges
    BadgeDefinition(
        id="xp_100",
        name="Rising Star",
        description="Earn 100 XP",
        category=BadgeCategory.XP,
        requirement=TotalXpRequirement(100),
        rarity=BadgeRarity.COMMON,
        icon_name="star",
    ),
    BadgeDefinition(
        id="xp_250",
        name="Shining Bright",
        description="Earn 250 XP",
        category=BadgeCategory.XP,
        requirement=TotalXpRequirement(250),
        rarity=BadgeRarity.COMMON,
        icon_name="star.fill",
    ),
    BadgeDefinition(
        id="xp_500",
        name="Experienced",
        description="Earn 500 XP",
        category=BadgeCategory.XP,
        requirement=TotalXpRequirement(500),
        rarity=BadgeRarity.RARE,
        icon_name="star.circle",
    ),
    BadgeDefinition(
        id="xp_1000",
        name="Expert",
        description="Earn 1000 XP",
        category=BadgeCategory.XP,
        requirement=TotalXpRequirement(1000),
        rarity=BadgeRarity.EPIC,
        icon_name="star.circle.fill",
    ),
    # Category badges
    BadgeDefinition(
        id="awareness_10",
        name="Awareness Apprentice",
        description="Complete 10 awareness exercises",
        category=BadgeCategory.CATEGORY,
        requirement=CategoryCountRequirement(ExerciseCategory.AWARENESS, 10),
        rarity=BadgeRarity.COMMON,
        icon_name="eye",
    ),
    BadgeDefinition(
        id="awareness_25",
        name="Awareness Master",
        description="Complete 25 awareness exercises",
        category=BadgeCategory.CATEGORY,
        requirement=CategoryCountRequirement(ExerciseCategory.AWARENESS, 25),
        rarity=BadgeRarity.RARE,
        icon_name="eye.fill",
    ),
    BadgeDefinition(
        id="balance_10",
        name="Balance Beginner",
        description="Complete 10 balance exercises",
        category=BadgeCategory.CATEGORY,
        requirement=CategoryCountRequirement(ExerciseCategory.BALANCE, 10),
        rarity=BadgeRarity.COMMON,
        icon_name="scale.3d",
    ),
    BadgeDefinition(
        id="balance_25",
        name="Balance Expert",
        description="Complete 25 balance exercises",
        category=BadgeCategory.CATEGORY,
        requirement=CategoryCountRequirement(ExerciseCategory.BALANCE, 25),
        rarity=BadgeRarity.RARE,
        icon_name="scalemass",
    ),
    BadgeDefinition(
        id="reflect_10",
        name="Reflection Rookie",
        description="Complete 10 reflect exercises",
        category=BadgeCategory.CATEGORY,
        requirement=CategoryCountRequirement(ExerciseCategory.REFLECT, 10),
        rarity=BadgeRarity.COMMON,
        icon_name="brain.head.profile",
    ),
    BadgeDefinition(
        id="reflect_25",
        name="Reflection Sage",
        description="Complete 25 reflect exercises",
        category=BadgeCategory.CATEGORY,
        requirement=CategoryCountRequirement(ExerciseCategory.REFLECT, 25),
        rarity=BadgeRarity.RARE,
        icon_name="brain.head.profile.fill",
    ),
    # Mood badges
    BadgeDefinition(
        id="mood_streak_7",
        name="Mood Tracker",
        description="Log your mood 7 days in a row",
        category=BadgeCategory.MOOD,
        requirement=MoodStreakRequirement(7),
        rarity=BadgeRarity.COMMON,
        icon_name="heart",
    ),
    BadgeDefinition(
        id="mood_streak_30",
        name="Emotional Awareness",
        description="Log your mood 30 days in a row",
        category=BadgeCategory.MOOD,
        requirement=MoodStreakRequirement(30),
        rarity=BadgeRarity.RARE,
        icon_name="heart.fill",
    ),
    BadgeDefinition(
        id="mood_variety",
        name="Feeling Spectrum",
        description="Log all 5 different moods",
        category=BadgeCategory.MOOD,
        requirement=MoodVarietyRequirement(5),
        rarity=BadgeRarity.COMMON,
        icon_name="face.smiling",
    ),
    # Achievement badges
    BadgeDefinition(
        id="perfect_day",
        name="Perfectionist",
        description="Complete all 3 exercise types in one day",
        category=BadgeCategory.ACHIEVEMENT,
        requirement=PerfectDayRequirement(),
        rarity=BadgeRarity.RARE,
        icon_name="trophy",
    ),
)


class BadgeCatalog:
    """
    Read-only registry of badge definitions.

    Rejects duplicate ids at construction.
    """

    def __init__(self, definitions: Iterable[BadgeDefinition] = DEFAULT_BADGES):
        """
        Initialize BadgeCatalog.

        Args:
            definitions: Badge definitions, defaults to the built-in set

        Raises:
            InvariantViolation: Two definitions share an id
        """
        self._definitions: Tuple[BadgeDefinition, ...] = tuple(definitions)
        self._by_id = {}

        for definition in self._definitions:
            if definition.id in self._by_id:
                raise InvariantViolation(f"Duplicate badge id in catalog: {definition.id}")
            self._by_id[definition.id] = definition

    def definitions(self) -> Tuple[BadgeDefinition, ...]:
        return self._definitions

    def by_id(self, badge_id: str) -> Optional[BadgeDefinition]:
        return self._by_id.get(badge_id)

    def by_category(self, category: BadgeCategory) -> List[BadgeDefinition]:
        return [d for d in self._definitions if d.category == category]

    def by_rarity(self, rarity: BadgeRarity) -> List[BadgeDefinition]:
        return [d for d in self._definitions if d.rarity == rarity]

    def __len__(self) -> int:
        return len(self._definitions)
