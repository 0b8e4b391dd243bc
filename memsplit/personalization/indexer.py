"""
Personalization Indexing
========================

The user writes one long "about me" document, usually structured with
headers:

    === CORE IDENTITY ===
    My name is ...

    === PROJECTS ===
    I'm working on ...

Indexing chunks it with the same rules as splitting a memory and stores
each section as its own memory tagged "personalization". Smaller records
mean the assistant can pull just the relevant part ("PROJECTS") into a
prompt instead of the whole document.

Re-indexing replaces the previous set. New sections are saved first and
the old personalization memories are removed only once every save has
succeeded; a failed save rolls back the new ones and leaves the old index
as it was. Text that yields no sections leaves the index untouched.
"""

import logging
from typing import Callable, Optional

from memsplit.chunking.chunker import chunk_with_config
from memsplit.config import ChunkingConfig
from memsplit.memory.store import MemoryStore

logger = logging.getLogger(__name__)

PERSONALIZATION_TAG = "personalization"
TITLE_PREFIX = "Personalization: "


def _indexed_memories(store: MemoryStore, user_id: str) -> list[dict]:
    return store.search_memories(user_id, tags=[PERSONALIZATION_TAG])


def index_personalization_text(
    store: MemoryStore,
    text: str,
    user_id: str,
    config: Optional[ChunkingConfig] = None,
    progress: Optional[Callable[[str], None]] = None,
) -> dict:
    """
    Chunk a personalization document and store the sections as memories.

    progress, if given, is called with a human-readable message per step.
    Returns {"chunks_created": n, "replaced": m}.
    """
    if not text or not text.strip():
        raise ValueError("Personalization text is empty")

    def report(message: str):
        logger.info(message)
        if progress is not None:
            progress(message)

    report("Chunking personalization text...")
    sections = chunk_with_config(text, config)

    if not sections:
        report("No sections found; keeping the existing index")
        return {"chunks_created": 0, "replaced": 0}

    previous = _indexed_memories(store, user_id)

    created_ids = []
    try:
        for i, section in enumerate(sections, 1):
            report(f"Saving chunk {i}/{len(sections)}: {section['title']}")
            saved = store.save_memory(
                user_id=user_id,
                title=f"{TITLE_PREFIX}{section['title']}",
                content=section["content"],
                tags=[PERSONALIZATION_TAG],
            )
            created_ids.append(saved["id"])
    except Exception:
        logger.error("Indexing failed after %d chunks; rolling back", len(created_ids))
        for memory_id in created_ids:
            store.delete_memory(memory_id)
        raise

    if previous:
        report(f"Removing {len(previous)} previously indexed chunks...")
        for memory in previous:
            store.delete_memory(memory["id"])

    report(f"Indexed {len(sections)} chunks")
    return {"chunks_created": len(sections), "replaced": len(previous)}


def get_indexing_status(store: MemoryStore, user_id: str) -> dict:
    memories = _indexed_memories(store, user_id)
    return {
        "is_indexed": bool(memories),
        "chunk_count": len(memories),
        "total_chars": sum(len(m["content"] or "") for m in memories),
    }
