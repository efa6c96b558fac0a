"""
Database module - Generic async MongoDB connection using Motor.

Usage:
    from common.database import MongoDB

    mongo = MongoDB()
    await mongo.connect(uri, database_name)
    progress = mongo.db["userProgress"]
"""

from common.database.mongodb import MongoDB

__all__ = ["MongoDB"]
