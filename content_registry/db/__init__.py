"""
Database package for the Content Registry.
"""

from .base import Base, get_db, get_engine, init_database
from .models import ContentModel, PublicationModel
from .services import ContentService, PublicationService

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "init_database",
    "ContentModel",
    "PublicationModel",
    "ContentService",
    "PublicationService",
]
