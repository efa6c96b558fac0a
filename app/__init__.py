"""
Klarblick application-specific code.

This package contains the progression and reminder backend:
- progression: Pure rules (badge catalog, streak tracker, achievement evaluator)
- services: Data store, notification scheduler, reminder coordination
- pipelines: Event orchestration (exercise completed, mood logged)
- routers/schemas: HTTP surface
- config: Application settings

Uses generic infrastructure from the common/ package.
"""

from app.config import settings

__all__ = ["settings"]
