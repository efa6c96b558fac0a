"""
FastAPI router for reminder endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.dependencies import (
    require_auth,
    get_progress_store,
    get_notification_scheduler,
    get_reminder_coordinator,
)
from app.services.notifications.scheduler import NotificationScheduler
from app.services.reminders.reminder_coordinator import ReminderCoordinator
from app.services.store.progress_store import ProgressStore
from app.schemas.reminders import ReminderTimeRequest, PermissionRequest
from app.pipelines import reminders as pipelines
from common.utils import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("")
async def get_reminder_settings(
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    coordinator: Annotated[ReminderCoordinator, Depends(get_reminder_coordinator)],
):
    """Get the configured reminder times."""
    result = await pipelines.get_reminder_settings_pipeline(
        store=store,
        coordinator=coordinator,
        user_id=user_id
    )

    return success_response(result)


@router.put("/time")
async def set_reminder_time(
    body: ReminderTimeRequest,
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    coordinator: Annotated[ReminderCoordinator, Depends(get_reminder_coordinator)],
):
    """
    Set the daily reminder time.

    The mood reminder follows a few minutes later.
    """
    result = await pipelines.configure_reminders_pipeline(
        store=store,
        coordinator=coordinator,
        user_id=user_id,
        hour=body.hour,
        minute=body.minute
    )

    return success_response(result)


@router.put("/permission")
async def set_permission(
    body: PermissionRequest,
    user_id: Annotated[str, Depends(require_auth)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    scheduler: Annotated[NotificationScheduler, Depends(get_notification_scheduler)],
    coordinator: Annotated[ReminderCoordinator, Depends(get_reminder_coordinator)],
):
    """Report the device's notification permission."""
    result = await pipelines.update_permission_pipeline(
        store=store,
        scheduler=scheduler,
        coordinator=coordinator,
        user_id=user_id,
        granted=body.granted
    )

    return success_response(result)


@router.get("/pending")
async def get_pending_reminders(
    user_id: Annotated[str, Depends(require_auth)],
    scheduler: Annotated[NotificationScheduler, Depends(get_notification_scheduler)],
):
    """List armed reminders."""
    result = await pipelines.get_pending_reminders_pipeline(
        scheduler=scheduler,
        user_id=user_id
    )

    return success_response(result)
