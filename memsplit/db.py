# memsplit/db.py
import logging
import os

from dotenv import load_dotenv

from memsplit.memory.store import MemoryStore

load_dotenv()

logger = logging.getLogger(__name__)


def get_memory_store(db_path: str = None) -> MemoryStore:
    if db_path is None:
        db_path = os.getenv("MEMSPLIT_DB_PATH", "data/memories.db")

    logger.info("Memory store: %s", db_path)
    return MemoryStore(db_path=db_path)
