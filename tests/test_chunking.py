"""Tests for the chunking module."""
from memsplit.chunking.chunker import (
    chunk_document,
    chunk_with_config,
    find_header_markers,
    split_by_paragraphs,
)
from memsplit.config import ChunkingConfig


def body(word: str, repeat: int = 30) -> str:
    return (f"{word} " * repeat).strip()


def test_plain_short_text_is_one_section():
    result = chunk_document("plain text under 100 chars", 10000)
    assert result == [{"title": "Section 1", "content": "plain text under 100 chars"}]

def test_plain_text_is_trimmed():
    result = chunk_document("   padded text \n\n", 10000)
    assert result == [{"title": "Section 1", "content": "padded text"}]

def test_empty_document_has_no_sections():
    assert chunk_document("", 10000) == []

def test_short_header_sections_are_dropped():
    assert chunk_document("=== A === hello === B === world", 10000) == []

def test_header_sections_in_order():
    a, b, c = body("Alpha"), body("Bravo"), body("Charlie")
    doc = f"=== A ===\n{a}\n\n=== B ===\n{b}\n=== C ===\n  {c}  \n"
    result = chunk_document(doc, 10000)
    assert [s["title"] for s in result] == ["A", "B", "C"]
    assert [s["content"] for s in result] == [a, b, c]

def test_header_labels_are_trimmed():
    doc = f"===   Core Identity   ===\n{body('me', 60)}"
    result = chunk_document(doc, 10000)
    assert result[0]["title"] == "Core Identity"

def test_only_short_header_section_is_dropped():
    doc = f"=== Keep ===\n{body('keep')}\n=== Drop ===\ntiny\n=== Also ===\n{body('also')}"
    result = chunk_document(doc, 10000)
    assert [s["title"] for s in result] == ["Keep", "Also"]

def test_exactly_min_length_is_dropped():
    doc = "=== Edge ===\n" + "x" * 100
    assert chunk_document(doc, 10000) == []
    doc = "=== Edge ===\n" + "x" * 101
    assert len(chunk_document(doc, 10000)) == 1

def test_text_before_first_header_is_not_a_section():
    doc = f"{body('preamble')}\n=== Only ===\n{body('only')}"
    result = chunk_document(doc, 10000)
    assert len(result) == 1
    assert result[0]["title"] == "Only"
    assert "preamble" not in result[0]["content"]

def test_oversized_header_section_is_numbered():
    para = "word " * 199 + "end."
    big = "\n\n".join([para] * 20)
    assert len(big) > 15000

    result = chunk_document(f"=== Big ===\n{big}", 10000)
    assert [s["title"] for s in result] == ["Big (1)", "Big (2)", "Big (3)"]
    assert all(len(s["content"]) <= 10000 for s in result)

def test_header_section_at_inner_limit_is_kept_whole():
    content = "y" * 15000
    result = chunk_document(f"=== Whole ===\n{content}", 10000)
    assert result == [{"title": "Whole", "content": content}]

def test_no_headers_sections_are_numbered():
    paras = [body(f"p{i}", 40) for i in range(6)]
    result = chunk_document("\n\n".join(paras), 300)
    assert len(result) > 1
    assert [s["title"] for s in result] == [f"Section {i}" for i in range(1, len(result) + 1)]

def test_rechunking_small_text_is_stable():
    text = "One short note.\n\nAnd a second paragraph."
    first = chunk_document(text, 10000)
    assert len(first) == 1
    assert first[0]["content"] == text
    again = chunk_document(first[0]["content"], 10000)
    assert again == first

def test_chunk_with_config_uses_thresholds():
    config = ChunkingConfig(min_section_length=3)
    result = chunk_with_config("=== A === hello === B === world", config)
    assert result == [
        {"title": "A", "content": "hello"},
        {"title": "B", "content": "world"},
    ]


# ── Header scan ──

def test_find_header_markers_offsets():
    text = "intro === One === body === Two === more"
    markers = find_header_markers(text)
    assert [m["label"] for m in markers] == ["One", "Two"]
    assert markers[0]["start"] == 6
    assert text[markers[0]["end"]:markers[1]["start"]] == " body "
    assert markers[1]["end"] == len(text) - len(" more")

def test_find_header_markers_none():
    assert find_header_markers("a == b, c = d") == []
    assert find_header_markers("=== unclosed") == []

def test_find_header_markers_skips_extra_fences():
    markers = find_header_markers("==== Title ====")
    assert [m["label"] for m in markers] == ["Title"]


# ── Paragraph splitter ──

def test_split_respects_paragraphs():
    text = "First paragraph about topic A.\n\nSecond paragraph about topic B."
    result = split_by_paragraphs(text, 40)
    assert result == ["First paragraph about topic A.", "Second paragraph about topic B."]

def test_split_keeps_paragraphs_together_when_they_fit():
    text = "One.\n\nTwo.\n\nThree."
    assert split_by_paragraphs(text, 100) == [text]

def test_split_chunks_stay_under_limit_and_cover_text():
    paras = [("Paragraph %d. " % i * (i % 7 + 1)).strip() for i in range(40)]
    text = "\n\n".join(paras)
    result = split_by_paragraphs(text, 200)

    assert all(len(c) <= 200 for c in result)
    # Only the "\n\n" between chunks is lost.
    assert sum(len(c) for c in result) + 2 * (len(result) - 1) == len(text)
    assert "\n\n".join(result) == text

def test_split_long_paragraph_by_sentences():
    sentences = [f"Sentence {i} has some words in it" for i in range(10)]
    text = ". ".join(sentences) + "."
    result = split_by_paragraphs(text, 100)

    assert len(result) == 4
    assert result[0] == ". ".join(sentences[:3]) + "."
    assert all(len(c) <= 100 for c in result)

def test_split_oversized_sentence_overshoots():
    text = "Short one. " + "y" * 150
    result = split_by_paragraphs(text, 100)
    assert result == ["Short one.", "y" * 150 + "."]
