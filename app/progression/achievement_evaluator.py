"""
Achievement evaluation.

Evaluates every badge definition in the catalog against a user's
progression and returns the badges that just became earned.

Evaluation is a pure function of (catalog, context, now): no storage
access, no clock reads. The caller persists the mutated UserProgress.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from common.utils.exceptions import InvariantViolation
from app.progression.badge_catalog import BadgeCatalog
from app.progression.streak_tracker import StreakTracker
from app.progression.types import (
    Badge,
    BadgeCategory,
    BadgeDefinition,
    CategoryCountRequirement,
    EvaluationContext,
    MoodStreakRequirement,
    MoodVarietyRequirement,
    PerfectDayRequirement,
    Requirement,
    StreakRequirement,
    TotalXpRequirement,
    UserProgress,
)

logger = logging.getLogger(__name__)


# Metric function signature: (requirement, context) -> current value
MetricHandler = Callable[[Requirement, EvaluationContext], int]


@dataclass
class EvaluationResult:
    """Outcome of one evaluation pass."""
    newly_earned: List[Badge] = field(default_factory=list)
    changed: bool = False

    @property
    def newly_earned_ids(self) -> List[str]:
        return [badge.id for badge in self.newly_earned]


class AchievementEvaluator:
    """
    Badge requirement evaluator.

    Each requirement kind maps to a metric handler; a requirement is met
    when its metric reaches the requirement's target. Unknown kinds raise
    InvariantViolation so a new variant cannot be silently ignored.
    """

    def __init__(self, catalog: BadgeCatalog, streak_tracker: StreakTracker):
        """
        Initialize AchievementEvaluator.

        Args:
            catalog: Source of badge definitions and thresholds
            streak_tracker: For mood streak, variety and perfect-day metrics
        """
        self._catalog = catalog
        self._tracker = streak_tracker
        self._handlers: Dict[type, MetricHandler] = {
            StreakRequirement: self._streak_metric,
            TotalXpRequirement: self._xp_metric,
            CategoryCountRequirement: self._category_count_metric,
            MoodStreakRequirement: self._mood_streak_metric,
            MoodVarietyRequirement: self._mood_variety_metric,
            PerfectDayRequirement: self._perfect_day_metric,
        }

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(
        self,
        context: EvaluationContext,
        now: datetime,
        definitions: Optional[Iterable[BadgeDefinition]] = None
    ) -> EvaluationResult:
        """
        Evaluate badge definitions against the context.

        Args:
            context: Progression state and history for one user
            now: Timestamp recorded as earned_date
            definitions: Subset to evaluate, defaults to the whole catalog

        Returns:
            EvaluationResult with newly earned badges and a changed flag
        """
        if definitions is None:
            definitions = self._catalog.definitions()

        progress = context.progress
        result = EvaluationResult()

        for definition in definitions:
            badge, created = progress.get_or_create_badge(definition.id)
            if created:
                result.changed = True

            if badge.is_earned:
                continue

            value = self.metric(definition.requirement, context)

            if value >= definition.requirement.target:
                badge.progress = definition.requirement.target
                badge.mark_earned(now)
                result.newly_earned.append(badge)
                result.changed = True
                logger.info(f"User {progress.user_id} earned badge {definition.id}")
            elif badge.update_progress(min(value, definition.requirement.target)):
                result.changed = True
                logger.debug(
                    f"Badge {definition.id} progress for user {progress.user_id}: "
                    f"{badge.progress}/{definition.requirement.target}"
                )

        return result

    def evaluate_category(
        self,
        category: BadgeCategory,
        context: EvaluationContext,
        now: datetime
    ) -> EvaluationResult:
        """Run evaluate() restricted to one badge category."""
        return self.evaluate(context, now, self._catalog.by_category(category))

    def evaluate_streak_badges(self, context: EvaluationContext, now: datetime) -> EvaluationResult:
        return self.evaluate_category(BadgeCategory.STREAK, context, now)

    def evaluate_xp_badges(self, context: EvaluationContext, now: datetime) -> EvaluationResult:
        return self.evaluate_category(BadgeCategory.XP, context, now)

    def evaluate_category_badges(self, context: EvaluationContext, now: datetime) -> EvaluationResult:
        return self.evaluate_category(BadgeCategory.CATEGORY, context, now)

    def evaluate_mood_badges(self, context: EvaluationContext, now: datetime) -> EvaluationResult:
        return self.evaluate_category(BadgeCategory.MOOD, context, now)

    def evaluate_achievement_badges(self, context: EvaluationContext, now: datetime) -> EvaluationResult:
        return self.evaluate_category(BadgeCategory.ACHIEVEMENT, context, now)

    def initialize_badges(self, progress: UserProgress) -> int:
        """
        Create a Badge for every catalog definition the user lacks.

        Returns:
            Number of badges created
        """
        created_count = 0
        for definition in self._catalog.definitions():
            _, created = progress.get_or_create_badge(definition.id)
            if created:
                created_count += 1
        return created_count

    def meets_requirement(self, requirement: Requirement, context: EvaluationContext) -> bool:
        return self.metric(requirement, context) >= requirement.target

    def metric(self, requirement: Requirement, context: EvaluationContext) -> int:
        """Current value of the quantity a requirement measures."""
        handler = self._handlers.get(type(requirement))
        if handler is None:
            raise InvariantViolation(
                f"No evaluator for requirement kind {type(requirement).__name__}"
            )
        return handler(requirement, context)

    def verify_earned(self, context: EvaluationContext) -> None:
        """
        Check that earned badges still satisfy their requirement.

        Only kinds whose metric can never fall are checked; streaks and
        perfect days legitimately lapse after being earned.

        Raises:
            InvariantViolation: An earned badge's requirement no longer holds,
                or the user holds a badge id the catalog does not define
        """
        for badge_id, badge in context.progress.badges.items():
            definition = self._catalog.by_id(badge_id)
            if definition is None:
                raise InvariantViolation(f"User holds unknown badge id {badge_id}")

            if not badge.is_earned:
                continue

            if isinstance(definition.requirement, (TotalXpRequirement, CategoryCountRequirement)):
                if not self.meets_requirement(definition.requirement, context):
                    raise InvariantViolation(
                        f"Earned badge {badge_id} no longer meets its requirement"
                    )

    # =========================================================================
    # Metric handlers
    # =========================================================================

    def _streak_metric(self, requirement: StreakRequirement, context: EvaluationContext) -> int:
        return context.progress.current_streak

    def _xp_metric(self, requirement: TotalXpRequirement, context: EvaluationContext) -> int:
        return context.progress.current_xp

    def _category_count_metric(
        self,
        requirement: CategoryCountRequirement,
        context: EvaluationContext
    ) -> int:
        return sum(1 for c in context.completions if c.category == requirement.category)

    def _mood_streak_metric(self, requirement: MoodStreakRequirement, context: EvaluationContext) -> int:
        return self._tracker.mood_streak_length(context.mood_entries, context.today)

    def _mood_variety_metric(self, requirement: MoodVarietyRequirement, context: EvaluationContext) -> int:
        return self._tracker.unique_mood_count(context.mood_entries)

    def _perfect_day_metric(self, requirement: PerfectDayRequirement, context: EvaluationContext) -> int:
        return 1 if self._tracker.has_perfect_day(context.completions, context.today) else 0
