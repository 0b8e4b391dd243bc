"""
CLI entry point for splitting one large memory into smaller ones.

Usage:
    python run_split.py <user_id>                # list memories, largest first
    python run_split.py <user_id> <memory_id>    # split that memory
"""
import logging
import sys

from memsplit.config import load_chunking_config
from memsplit.db import get_memory_store
from memsplit.errors import MemoryNotFoundError
from memsplit.memory.splitter import estimate_sections, split_memory


def list_memories(store, user_id, config):
    memories = store.get_all_memories(user_id, order_by="size")
    if not memories:
        print(f"No memories for user {user_id}")
        return

    for m in memories:
        size = len(m["content"] or "")
        est = estimate_sections(m["content"] or "", config.max_section_size)
        print(f"  {m['id']}  {size / 1000:>8.1f}KB  ~{est} sections  {m['title']}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if len(sys.argv) < 2:
        print("Usage: python run_split.py <user_id> [memory_id]")
        sys.exit(1)

    user_id = sys.argv[1]
    store = get_memory_store()
    config = load_chunking_config()

    if len(sys.argv) < 3:
        list_memories(store, user_id, config)
        return

    memory_id = sys.argv[2]

    try:
        stats = split_memory(store, memory_id, user_id, config)
    except MemoryNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"\n{'='*50}")
    print(f"Split memory {memory_id}: {stats['sections']} sections")
    print(f"{'='*50}")
    for part in stats["parts"]:
        if "error" in part:
            print(f"  FAILED  Part {part['index']}: {part['error']}")
        else:
            print(f"  OK      Part {part['index']} ({part['chars']} chars) {part['title']}")

    print(f"\nCreated {stats['created']}/{stats['sections']} new memories")
    print("The original memory is still there. Delete it manually if you want.")
    print(f"{'='*50}\n")

    if stats["failed"]:
        sys.exit(2)


if __name__ == "__main__":
    main()
