import logging

from .. import config
from .base import Storage
from .memory import MemStorage
from .sql import SqlStorage

logger = logging.getLogger(__name__)


def create_storage() -> Storage:
    """Pick the backend once at startup: relational when DATABASE_URL is set"""
    if config.DATABASE_URL:
        from .. import database

        database.Base.metadata.create_all(bind=database.engine)
        logger.info("✅ Using relational storage")
        return SqlStorage(database.SessionLocal)

    logger.warning("⚠️ DATABASE_URL not set, using in-memory storage (data is lost on restart)")
    return MemStorage()


__all__ = ["Storage", "MemStorage", "SqlStorage", "create_storage"]
