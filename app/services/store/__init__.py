"""
Progression data store.
"""

from app.services.store.progress_store import ProgressStore
from app.services.store.mongo_progress_store import MongoProgressStore

__all__ = ["ProgressStore", "MongoProgressStore"]
