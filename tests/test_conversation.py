"""Tests for running and storing chat turns."""
import base64
import io

import pytest
from PIL import Image

from memsplit.errors import ConversationNotFoundError
from memsplit.generation import conversation
from memsplit.memory.store import MemoryStore


@pytest.fixture
def store(tmp_path):
    return MemoryStore(db_path=str(tmp_path / "memories.db"))


@pytest.fixture
def replies(monkeypatch):
    calls = []

    def fake_generate_reply(history, user_message, provider="openai", preferences=None):
        calls.append({"history": history, "user_message": user_message,
                      "provider": provider, "preferences": preferences})
        return {"answer": f"echo: {user_message}", "provider": provider, "model": "fake-model"}

    monkeypatch.setattr(conversation, "generate_reply", fake_generate_reply)
    return calls


def png_data_url(width, height):
    buffer = io.BytesIO()
    Image.effect_noise((width, height), 64).convert("RGB").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def test_send_message_stores_both_turns(store, replies):
    convo = store.create_conversation("u1", "Chat", "gpt-4o-mini")

    conversation.send_message(store, convo["id"], "u1", "hello")
    result = conversation.send_message(store, convo["id"], "u1", "again", provider="cohere")

    messages = result["conversation"]["messages"]
    assert [(m["role"], m["content"]) for m in messages] == [
        ("user", "hello"),
        ("assistant", "echo: hello"),
        ("user", "again"),
        ("assistant", "echo: again"),
    ]
    assert messages[3]["provider"] == "cohere"
    assert "images" not in messages[0]
    assert [m["content"] for m in replies[1]["history"]] == ["hello", "echo: hello"]

def test_send_message_passes_saved_preferences(store, replies):
    store.save_preferences("u1", {"nickname": "Sam"})
    convo = store.create_conversation("u1", "Chat", "gpt-4o-mini")

    conversation.send_message(store, convo["id"], "u1", "hi")

    assert replies[0]["preferences"] == {"nickname": "Sam"}

def test_send_message_to_other_users_conversation(store, replies):
    convo = store.create_conversation("u2", "Theirs", "gpt-4o-mini")

    with pytest.raises(ConversationNotFoundError):
        conversation.send_message(store, convo["id"], "u1", "hi")
    assert replies == []

def test_small_images_stored_unchanged(store, replies):
    convo = store.create_conversation("u1", "Chat", "gpt-4o-mini")
    image = png_data_url(8, 8)

    result = conversation.send_message(store, convo["id"], "u1", "look", images=[image])

    assert result["conversation"]["messages"][0]["images"] == [image]

def test_oversized_images_compressed_before_storing(store, replies):
    convo = store.create_conversation("u1", "Chat", "gpt-4o-mini")
    image = png_data_url(2400, 1200)
    assert conversation.needs_compression([image], "look")

    result = conversation.send_message(store, convo["id"], "u1", "look", images=[image])

    stored = result["conversation"]["messages"][0]["images"]
    assert len(stored) == 1
    assert stored[0].startswith("data:image/jpeg;base64,")
    assert conversation.get_image_size(stored[0]) < conversation.get_image_size(image)
