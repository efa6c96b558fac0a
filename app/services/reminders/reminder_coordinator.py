"""
Reminder coordination.

Keeps a user's armed reminders consistent with their activity: a daily
mindfulness reminder, a daily mood reminder a few minutes later, and a
streak warning for the evening after an exercise.

Every change is cancel-then-arm on a fixed identifier, serialized per
(user, channel). A failed arm puts back the trigger it replaced.
Scheduler failures are logged and never undo the progression change
that triggered them.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple

from common.utils.exceptions import SchedulingError
from app.progression.calendar import add_minutes, local_day
from app.progression.types import ExerciseCompleted, MoodLogged, ReminderSettings
from app.services.notifications.scheduler import NotificationScheduler, PendingReminder

logger = logging.getLogger(__name__)


class ReminderChannel(str, Enum):
    MINDFULNESS = "daily_mindfulness_reminder"
    MOOD = "daily_mood_reminder"
    STREAK_WARNING = "daily_streak_warning"


@dataclass(frozen=True)
class ReminderContent:
    title: str
    body: str


REMINDER_CONTENT: Dict[ReminderChannel, ReminderContent] = {
    ReminderChannel.MINDFULNESS: ReminderContent(
        title="Time for mindfulness",
        body="Take a moment to practice mindfulness and continue your wellness journey"
    ),
    ReminderChannel.MOOD: ReminderContent(
        title="How are you feeling?",
        body="Track your mood and reflect on your day"
    ),
    ReminderChannel.STREAK_WARNING: ReminderContent(
        title="Your streak is about to be broken!",
        body="Complete at least one exercise to continue your wellness streak"
    ),
}


class ReminderCoordinator:
    """
    Translates progression events into scheduler requests.
    """

    def __init__(
        self,
        scheduler: NotificationScheduler,
        tz: tzinfo,
        mood_offset_minutes: int = 15,
        streak_warning_hour: int = 22,
        streak_warning_minute: int = 0
    ):
        """
        Initialize ReminderCoordinator.

        Args:
            scheduler: Notification scheduler
            tz: Zone in which "today" and "tomorrow" are decided
            mood_offset_minutes: Delay of the mood reminder after the mindfulness one
            streak_warning_hour: Hour of the streak warning on the following day
            streak_warning_minute: Minute of the streak warning
        """
        self._scheduler = scheduler
        self._tz = tz
        self._mood_offset_minutes = mood_offset_minutes
        self._warning_hour = streak_warning_hour
        self._warning_minute = streak_warning_minute
        self._locks: Dict[Tuple[str, ReminderChannel], asyncio.Lock] = {}
        self._lock_users: Dict[Tuple[str, ReminderChannel], int] = {}

    def mood_time(self, settings: ReminderSettings) -> Tuple[int, int]:
        """Hour and minute of the mood reminder for the given settings."""
        return add_minutes(settings.hour, settings.minute, self._mood_offset_minutes)

    # =========================================================================
    # Operations
    # =========================================================================

    async def configure_reminders(self, user_id: str, hour: int, minute: int) -> None:
        """
        Re-arm both daily reminders at a new time.

        The mood reminder follows at hour:minute plus the mood offset,
        wrapping past midnight.
        """
        mood_hour, mood_minute = add_minutes(hour, minute, self._mood_offset_minutes)

        await asyncio.gather(
            self._rearm_recurring(user_id, ReminderChannel.MINDFULNESS, hour, minute, None),
            self._rearm_recurring(user_id, ReminderChannel.MOOD, mood_hour, mood_minute, None),
        )
        logger.info(f"Reminders configured for user {user_id} at {hour:02d}:{minute:02d}")

    async def on_exercise_completed(
        self,
        user_id: str,
        event: ExerciseCompleted,
        had_prior_today: bool,
        settings: ReminderSettings,
        today: date
    ) -> bool:
        """
        Skip today's mindfulness reminder and warn tomorrow evening.

        Only the first completion of today acts; anything else is a no-op.

        Returns:
            True if reminders were rescheduled
        """
        if had_prior_today or local_day(event.date, self._tz) != today:
            return False

        tomorrow = today + timedelta(days=1)

        await asyncio.gather(
            self._rearm_recurring(
                user_id, ReminderChannel.MINDFULNESS, settings.hour, settings.minute, tomorrow
            ),
            self._rearm_one_shot(
                user_id, ReminderChannel.STREAK_WARNING,
                tomorrow, self._warning_hour, self._warning_minute
            ),
        )
        return True

    async def on_mood_logged(
        self,
        user_id: str,
        event: MoodLogged,
        had_prior_today: bool,
        settings: ReminderSettings,
        today: date
    ) -> bool:
        """
        Skip today's mood reminder.

        Returns:
            True if the mood reminder was rescheduled
        """
        if had_prior_today or local_day(event.date, self._tz) != today:
            return False

        mood_hour, mood_minute = self.mood_time(settings)
        await self._rearm_recurring(
            user_id, ReminderChannel.MOOD, mood_hour, mood_minute, today + timedelta(days=1)
        )
        return True

    async def request_authorization_if_needed(
        self,
        user_id: str,
        settings: ReminderSettings
    ) -> Tuple[bool, bool]:
        """
        Check notification permission, asking at most once per user.

        Marks settings.permission_requested; the caller persists it.

        Returns:
            (enabled, just_granted) where just_granted is True only on the
            first check that finds permission granted
        """
        first_request = not settings.permission_requested

        try:
            enabled = await self._scheduler.request_authorization(user_id)
        except SchedulingError as e:
            logger.warning(f"Permission check failed for user {user_id}: {e}")
            return False, False

        settings.permission_requested = True
        return enabled, enabled and first_request

    # =========================================================================
    # Channel operations
    # =========================================================================

    async def _rearm_recurring(
        self,
        user_id: str,
        channel: ReminderChannel,
        hour: int,
        minute: int,
        starting: Optional[date]
    ) -> None:
        content = REMINDER_CONTENT[channel]

        async def arm():
            await self._scheduler.schedule_recurring_daily(
                user_id, channel.value, hour, minute,
                starting=starting, title=content.title, body=content.body
            )

        await self._rearm(user_id, channel, arm)

    async def _rearm_one_shot(
        self,
        user_id: str,
        channel: ReminderChannel,
        day: date,
        hour: int,
        minute: int
    ) -> None:
        content = REMINDER_CONTENT[channel]

        async def arm():
            await self._scheduler.schedule_one_shot(
                user_id, channel.value, day, hour, minute,
                title=content.title, body=content.body
            )

        await self._rearm(user_id, channel, arm)

    async def _rearm(
        self,
        user_id: str,
        channel: ReminderChannel,
        arm: Callable[[], Awaitable[None]]
    ) -> None:
        """
        Cancel the channel's trigger and arm its replacement.

        If arming fails, the trigger that was cancelled is put back so the
        user keeps the reminder they had before.
        """
        async with self._channel_lock(user_id, channel):
            try:
                previous = await self._find_pending(user_id, channel)
                await self._scheduler.cancel(user_id, [channel.value])
            except SchedulingError as e:
                logger.warning(f"Failed to cancel {channel.value} for user {user_id}: {e}")
                return

            try:
                await arm()
            except SchedulingError as e:
                logger.warning(f"Failed to schedule {channel.value} for user {user_id}: {e}")
                if previous is not None:
                    await self._restore(user_id, previous)

    async def _find_pending(
        self,
        user_id: str,
        channel: ReminderChannel
    ) -> Optional[PendingReminder]:
        for reminder in await self._scheduler.list_pending(user_id):
            if reminder.identifier == channel.value:
                return reminder
        return None

    async def _restore(self, user_id: str, reminder: PendingReminder) -> None:
        try:
            await self._scheduler.reinstate(user_id, reminder)
        except SchedulingError as e:
            logger.error(f"Failed to restore {reminder.identifier} for user {user_id}: {e}")
            return

        logger.info(f"Restored previous {reminder.identifier} for user {user_id}")

    @asynccontextmanager
    async def _channel_lock(self, user_id: str, channel: ReminderChannel):
        """
        Hold the (user, channel) lock.

        Entries are dropped once no task holds or waits on them.
        """
        key = (user_id, channel)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]
