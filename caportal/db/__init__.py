"""Database package"""

from caportal.db.session import AsyncSessionLocal, engine, get_db
from caportal.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
