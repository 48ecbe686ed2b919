# packforge/db/__init__.py
from .database import ContentDatabase
from .db_sync import DatabaseCache, SyncResult, syncDatabase

__all__ = ["ContentDatabase", "DatabaseCache", "SyncResult", "syncDatabase"]
