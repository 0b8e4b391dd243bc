"""
CLI entry point for indexing a personalization document.

The file is usually split with === HEADER === sections, e.g.

    === CORE IDENTITY ===
    My name is ...

Usage:
    python run_index_personalization.py <user_id> <path/to/about_me.txt>
"""
import logging
import sys

from memsplit.db import get_memory_store
from memsplit.personalization.indexer import get_indexing_status, index_personalization_text


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if len(sys.argv) < 3:
        print("Usage: python run_index_personalization.py <user_id> <file>")
        sys.exit(1)

    user_id, path = sys.argv[1], sys.argv[2]

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    store = get_memory_store()

    try:
        result = index_personalization_text(store, text, user_id, progress=lambda msg: print(f"  {msg}"))
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    status = get_indexing_status(store, user_id)

    print(f"\nIndexing Results:")
    print(f"  Chunks created:  {result['chunks_created']}")
    print(f"  Chunks replaced: {result['replaced']}")
    print(f"  Total chars:     {status['total_chars']}")


if __name__ == "__main__":
    main()
