"""
Klarblick application settings.

Extends the base settings with progression and reminder configuration.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Klarblick-specific settings."""

    # ==========================================================================
    # Calendar
    # ==========================================================================
    # Calendar days (streaks, "completed today") are compared in this zone
    TIMEZONE: str = "UTC"

    # ==========================================================================
    # Progression
    # ==========================================================================
    EXERCISE_XP: int = 10
    # Awarded once per calendar day on the first mood check-in
    MOOD_CHECKIN_XP: int = 0

    # ==========================================================================
    # Reminders
    # ==========================================================================
    DEFAULT_REMINDER_HOUR: int = 19
    DEFAULT_REMINDER_MINUTE: int = 0
    MOOD_REMINDER_OFFSET_MINUTES: int = 15
    STREAK_WARNING_HOUR: int = 22
    STREAK_WARNING_MINUTE: int = 0

    def get_timezone(self) -> ZoneInfo:
        """Resolve TIMEZONE into a tzinfo."""
        return ZoneInfo(self.TIMEZONE)

    def collect_errors(self) -> list:
        errors = super().collect_errors()

        try:
            ZoneInfo(self.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"TIMEZONE '{self.TIMEZONE}' is not a known IANA zone")

        if self.EXERCISE_XP < 0 or self.MOOD_CHECKIN_XP < 0:
            errors.append("XP awards must be non-negative")

        if not (0 <= self.DEFAULT_REMINDER_HOUR <= 23 and 0 <= self.DEFAULT_REMINDER_MINUTE <= 59):
            errors.append("DEFAULT_REMINDER_HOUR/MINUTE must be a valid time of day")

        return errors


settings = Settings()
