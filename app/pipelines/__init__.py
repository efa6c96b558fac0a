"""
Klarblick Pipelines.

Business logic orchestration functions.
"""

from app.pipelines.progress import *
from app.pipelines.reminders import *
