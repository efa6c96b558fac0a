"""
Klarblick Services.

Persistence and scheduling services, organized by feature.
"""
