"""
Notification scheduler contract.

The reminder coordinator decides which identifiers to cancel or arm; an
implementation of this interface carries the request to the delivery
mechanism.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional


@dataclass
class PendingReminder:
    """An armed trigger as reported by the scheduler."""
    identifier: str
    hour: int
    minute: int
    repeats: bool
    # First day a repeating trigger fires, or the day of a one-shot
    target_date: Optional[date] = None
    title: Optional[str] = None
    body: Optional[str] = None


class NotificationScheduler(ABC):
    """
    Abstract notification scheduler.

    Scheduling methods raise SchedulingError when permission is denied
    or the underlying service fails.
    """

    @abstractmethod
    async def request_authorization(self, user_id: str) -> bool:
        """Return whether the user allows reminders."""
        pass

    @abstractmethod
    async def set_permission(self, user_id: str, granted: bool) -> None:
        """Record the permission the user's device reported."""
        pass

    @abstractmethod
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
        """
        Arm a trigger firing every day at hour:minute.

        Args:
            starting: First day the trigger may fire; None means today
        """
        pass

    @abstractmethod
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
        """Arm a trigger firing once on day at hour:minute."""
        pass

    @abstractmethod
    async def cancel(self, user_id: str, identifiers: Iterable[str]) -> None:
        pass

    @abstractmethod
    async def reinstate(self, user_id: str, reminder: PendingReminder) -> None:
        """
        Put back a trigger previously returned by list_pending.

        Used to undo a cancel whose replacement could not be armed, so it
        does not re-check permission.
        """
        pass

    @abstractmethod
    async def list_pending(self, user_id: str) -> List[PendingReminder]:
        """Armed triggers, for diagnostics only."""
        pass
