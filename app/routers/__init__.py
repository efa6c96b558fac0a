"""
Klarblick API Routers.
"""

from app.routers.progress import router as progress_router
from app.routers.reminders import router as reminders_router

__all__ = [
    "progress_router",
    "reminders_router",
]
