"""
Database models and storage management.
"""

from .database import DatabaseManager, Channel, Video, Transcript, Summary
from .gateway import PersistenceGateway, PersistenceError, Resource, SqlGateway, Where
from .memory import InMemoryGateway

__all__ = [
    "DatabaseManager",
    "Channel",
    "Video",
    "Transcript",
    "Summary",
    "PersistenceGateway",
    "PersistenceError",
    "Resource",
    "SqlGateway",
    "Where",
    "InMemoryGateway"
]
