"""
Pydantic models for reminder request validation.
"""

from pydantic import BaseModel, Field


class ReminderTimeRequest(BaseModel):
    """PUT /api/reminders/time"""
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)


class PermissionRequest(BaseModel):
    """PUT /api/reminders/permission"""
    granted: bool
