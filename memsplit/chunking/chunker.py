"""
Memory Chunking Module
======================

CONCEPT: Why Split a Memory?
----------------------------
A "memory" is a free-form text blob the user saves for the assistant to
recall later. Some of them are huge: a pasted autobiography, a dump of
project notes, an exported chat. One 60,000-char record is painful to
search, to show in the panel, and to stuff into a prompt.

So we split it into smaller, titled sections. Each section becomes its
own memory record.

CONCEPT: Headers First, Size Second
-----------------------------------
Users who write long memories usually structure them like this:

    === CORE IDENTITY ===
    My name is ...

    === PROJECTS ===
    I'm working on ...

Those header markers are the best possible cut points: they are where the
user themselves said "new topic". So:

1. If the text has `=== LABEL ===` headers, each header starts a section
   titled LABEL.
2. Sections with almost nothing in them (<= 100 chars) are noise, drop them.
3. A header section that is still enormous (> 15,000 chars) is split again
   by size, titled "LABEL (1)", "LABEL (2)", ...
4. No headers at all? Split by size, titled "Section 1", "Section 2", ...

CONCEPT: Splitting by Size Without Cutting Mid-Thought
------------------------------------------------------
The size splitter packs whole paragraphs (blank-line separated) into a
chunk until the next one would overflow. Only a paragraph that is itself
too big gets broken up, at sentence boundaries (". ").

Note the sentence step flushes BEFORE appending, so a chunk can overshoot
max_size by up to one sentence. That is the behaviour stored memories were
split with, keep it.
"""

from typing import Optional

from memsplit.config import (
    DEFAULT_MAX_HEADER_SECTION_SIZE,
    DEFAULT_MAX_SECTION_SIZE,
    DEFAULT_MIN_SECTION_LENGTH,
    ChunkingConfig,
    load_chunking_config,
)

HEADER_FENCE = "==="


def find_header_markers(text: str) -> list[dict]:
    """
    Find every `=== label ===` marker, left to right.

    A single linear scan: at each "===" look for the next "=". If the
    characters in between are a non-empty run of non-"=" characters and the
    "=" starts another "===", that is a marker. The label is the run, trimmed.

    Returns dicts with label, start (index of the opening fence) and end
    (index just past the closing fence).
    """
    markers = []
    fence = len(HEADER_FENCE)
    i = 0

    while True:
        i = text.find(HEADER_FENCE, i)
        if i == -1:
            break

        label_start = i + fence
        close = text.find("=", label_start)
        if close == -1:
            break

        if close > label_start and text.startswith(HEADER_FENCE, close):
            markers.append({
                "label": text[label_start:close].strip(),
                "start": i,
                "end": close + fence,
            })
            i = close + fence
        else:
            i += 1

    return markers


def split_by_paragraphs(text: str, max_size: int) -> list[str]:
    """
    Pack blank-line separated paragraphs into chunks of about max_size chars.

    Paragraphs are never reordered or merged out of order. A paragraph longer
    than max_size is broken on ". " and its sentences packed the same way.
    """
    chunks = []
    current = ""

    def flush():
        piece = current.strip()
        if piece:
            chunks.append(piece)

    for para in text.split("\n\n"):
        if len(current) + len(para) <= max_size:
            current += para + "\n\n"
            continue

        if current:
            flush()
            current = ""

        if len(para) > max_size:
            # Sentence fallback. Flush happens before the append, so one
            # sentence may push a chunk past max_size.
            for sentence in para.split(". "):
                if current and len(current) + len(sentence) > max_size:
                    flush()
                    current = ""
                current += sentence + ". "
        else:
            current = para + "\n\n"

    if current:
        flush()

    return chunks


def chunk_document(
    document: str,
    max_section_size: int = DEFAULT_MAX_SECTION_SIZE,
    min_section_length: int = DEFAULT_MIN_SECTION_LENGTH,
    max_header_section_size: int = DEFAULT_MAX_HEADER_SECTION_SIZE,
) -> list[dict]:
    """
    Split a document into ordered {"title", "content"} sections.

    Headers win when present; otherwise the whole text goes through the
    paragraph splitter. See the module docstring for the full rules.
    """
    markers = find_header_markers(document)

    if not markers:
        return [
            {"title": f"Section {i}", "content": chunk}
            for i, chunk in enumerate(split_by_paragraphs(document, max_section_size), 1)
        ]

    sections = []

    for i, marker in enumerate(markers):
        end = markers[i + 1]["start"] if i + 1 < len(markers) else len(document)
        content = document[marker["end"]:end].strip()

        if len(content) <= min_section_length:
            continue

        if len(content) > max_header_section_size:
            for k, sub in enumerate(split_by_paragraphs(content, max_section_size), 1):
                sections.append({"title": f"{marker['label']} ({k})", "content": sub})
        else:
            sections.append({"title": marker["label"], "content": content})

    return sections


def chunk_with_config(document: str, config: Optional[ChunkingConfig] = None) -> list[dict]:
    """Run chunk_document with thresholds taken from a ChunkingConfig."""
    if config is None:
        config = load_chunking_config()
    return chunk_document(
        document,
        max_section_size=config.max_section_size,
        min_section_length=config.min_section_length,
        max_header_section_size=config.max_header_section_size,
    )
