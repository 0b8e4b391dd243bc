"""
Split Memory Workflow
=====================

Takes one oversized stored memory and turns it into several smaller ones:

1. Load the memory (must belong to the user)
2. Chunk its content (headers first, then size)
3. Save every section as a NEW memory:
   - title:  "<original title> - Part <i>: <section title>"
   - tags:   original tags + "split-from-large-file"
   - folder: same folder as the original
4. Report what happened, part by part

The original memory is NOT deleted. The user removes it once they're happy
with the parts; a half-failed split never loses data.

One failed save doesn't abort the rest. It's logged and counted, and the
caller gets the full picture in the returned stats.
"""

import logging
import math
from typing import Optional

from memsplit.chunking.chunker import chunk_with_config
from memsplit.config import ChunkingConfig, DEFAULT_MAX_SECTION_SIZE
from memsplit.errors import MemoryNotFoundError
from memsplit.memory.store import MemoryStore

logger = logging.getLogger(__name__)

SPLIT_TAG = "split-from-large-file"


def build_part_title(original_title: str, index: int, section_title: str) -> str:
    return f"{original_title} - Part {index}: {section_title}"


def estimate_sections(content: str, max_section_size: int = DEFAULT_MAX_SECTION_SIZE) -> int:
    """Rough section count shown before splitting: ceil(len / max_section_size)."""
    return math.ceil(len(content) / max_section_size)


def split_memory(
    store: MemoryStore,
    memory_id: str,
    user_id: str,
    config: Optional[ChunkingConfig] = None,
) -> dict:
    """
    Split a stored memory into new memories, one per section.

    Returns stats: original_id, sections, created, failed, and a parts list
    with index, title, chars and either memory_id or error per part.
    """
    memory = store.get_memory(memory_id)
    if memory is None or memory["user_id"] != user_id:
        raise MemoryNotFoundError(memory_id)

    sections = chunk_with_config(memory["content"] or "", config)
    logger.info("Memory %s: found %d sections", memory_id, len(sections))

    tags = list(memory["tags"])
    if SPLIT_TAG not in tags:
        tags.append(SPLIT_TAG)

    stats = {
        "original_id": memory_id,
        "sections": len(sections),
        "created": 0,
        "failed": 0,
        "parts": [],
    }

    for i, section in enumerate(sections, 1):
        part = {
            "index": i,
            "title": build_part_title(memory["title"], i, section["title"]),
            "chars": len(section["content"]),
        }

        try:
            saved = store.save_memory(
                user_id=user_id,
                title=part["title"],
                content=section["content"],
                tags=tags,
                folder_id=memory["folder_id"],
            )
            part["memory_id"] = saved["id"]
            stats["created"] += 1
        except Exception as e:
            logger.error("Failed to save part %d of memory %s: %s", i, memory_id, e)
            part["error"] = str(e)
            stats["failed"] += 1

        stats["parts"].append(part)

    return stats
