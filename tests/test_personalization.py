"""Tests for personalization prompt building and indexing."""
import pytest

from memsplit.config import ChunkingConfig
from memsplit.memory.store import MemoryStore
from memsplit.personalization.indexer import (
    PERSONALIZATION_TAG,
    get_indexing_status,
    index_personalization_text,
)
from memsplit.personalization.prompt import (
    DEFAULT_PROMPT,
    format_user_context,
    generate_system_prompt,
    should_include_personalization,
)


PREFERENCES = {
    "nickname": "Sam",
    "pronouns": "they/them",
    "occupation": "Engineer",
    "interests": ["hiking", "chess", "baking", "jazz"],
    "conversation_style": {
        "tone": "casual",
        "formality": "adaptive",
        "verbosity": "concise",
        "humor": True,
        "empathy_level": "medium",
        "technical_depth": "advanced",
    },
    "communication_prefs": {
        "preferred_greeting": "Hey there",
        "explanation_style": "step_by_step",
        "feedback_preference": "direct",
        "learning_style": "text_only",
    },
    "content_preferences": {
        "expertise_areas": ["python"],
        "topics_of_interest": [],
        "preferred_examples": "real_world",
        "content_filters": ["politics"],
    },
    "context_preferences": {"personalization_level": "high", "adapt_to_patterns": True},
}

ABOUT_ME = (
    "=== CORE IDENTITY ===\n" + "I live by the sea and love early mornings. " * 5 + "\n"
    "=== PROJECTS ===\n" + "Writing a field guide to coastal birds. " * 5
)


@pytest.fixture
def store(tmp_path):
    return MemoryStore(db_path=str(tmp_path / "memories.db"))


def test_prompt_without_preferences():
    assert generate_system_prompt(None) == DEFAULT_PROMPT

def test_prompt_with_empty_preferences_still_has_guidelines():
    prompt = generate_system_prompt({})
    assert prompt != DEFAULT_PROMPT
    assert prompt.startswith("You are Zarvânex, a helpful AI assistant.")
    assert "Communication Guidelines:" in prompt
    assert "called" not in prompt

def test_prompt_includes_identity_and_style():
    prompt = generate_system_prompt(PREFERENCES)
    assert 'The user prefers to be called "Sam".' in prompt
    assert "The user's pronouns are they/them." in prompt
    assert "User's Occupation: Engineer" in prompt
    assert "- Use a casual, relaxed tone" in prompt
    assert "- Feel free to use appropriate humor and wit" in prompt
    assert '- Greet the user with: "Hey there"' in prompt
    assert "- Avoid topics: politics" in prompt
    assert "User's Expertise Areas: python" in prompt
    assert "Topics User is Interested In" not in prompt
    assert "- Reference the user's background and preferences frequently" in prompt

def test_prompt_falls_back_to_display_name():
    prompt = generate_system_prompt({"display_name": "Alex"})
    assert 'called "Alex"' in prompt

def test_prompt_default_greeting_skipped():
    prompt = generate_system_prompt({"communication_prefs": {"preferred_greeting": "Hello"}})
    assert "Greet the user" not in prompt

def test_format_user_context():
    context = format_user_context(PREFERENCES)
    assert context == (
        "[User Context: Name: Sam | Role: Engineer | "
        "Interests: hiking, chess, baking... | Style: casual, concise, advanced technical]"
    )

def test_format_user_context_empty():
    assert format_user_context(None) == ""
    assert format_user_context({"pronouns": "she/her"}) == ""

def test_should_include_personalization():
    assert should_include_personalization(PREFERENCES)
    assert not should_include_personalization(None)
    assert not should_include_personalization({"interests": [], "conversation_style": {"tone": "casual"}})


# ── Indexing ──

def test_index_personalization_text(store):
    messages = []
    result = index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig(), progress=messages.append)

    assert result == {"chunks_created": 2, "replaced": 0}
    titles = sorted(m["title"] for m in store.get_all_memories("u1"))
    assert titles == ["Personalization: CORE IDENTITY", "Personalization: PROJECTS"]
    assert all(m["tags"] == [PERSONALIZATION_TAG] for m in store.get_all_memories("u1"))
    assert messages[-1] == "Indexed 2 chunks"

def test_reindex_replaces_previous_chunks(store):
    store.save_memory("u1", "Unrelated", "keep me")
    index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig())
    result = index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig())

    assert result["replaced"] == 2
    assert len(store.get_all_memories("u1")) == 3

def test_failed_reindex_keeps_previous_chunks(store, monkeypatch):
    index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig())
    before = sorted(m["id"] for m in store.get_all_memories("u1"))

    real_save = store.save_memory
    calls = []

    def flaky_save(**kwargs):
        calls.append(kwargs)
        if len(calls) == 2:
            raise RuntimeError("database is locked")
        return real_save(**kwargs)

    monkeypatch.setattr(store, "save_memory", flaky_save)
    with pytest.raises(RuntimeError):
        index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig())

    assert sorted(m["id"] for m in store.get_all_memories("u1")) == before
    assert get_indexing_status(store, "u1")["chunk_count"] == 2

def test_reindex_with_no_sections_keeps_previous_chunks(store):
    index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig())

    result = index_personalization_text(store, "=== ONLY ===\nshort", "u1", ChunkingConfig())

    assert result == {"chunks_created": 0, "replaced": 0}
    assert get_indexing_status(store, "u1")["chunk_count"] == 2

def test_index_rejects_blank_text(store):
    with pytest.raises(ValueError):
        index_personalization_text(store, "   \n", "u1", ChunkingConfig())

def test_indexing_status(store):
    assert get_indexing_status(store, "u1") == {"is_indexed": False, "chunk_count": 0, "total_chars": 0}

    index_personalization_text(store, ABOUT_ME, "u1", ChunkingConfig())
    status = get_indexing_status(store, "u1")
    assert status["is_indexed"] is True
    assert status["chunk_count"] == 2
    assert status["total_chars"] > 200
