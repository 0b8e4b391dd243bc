"""
Conversation Turns
==================

One call per user turn:

1. Load the conversation and the user's saved preferences
2. If the turn (text + images) is too big to store, re-encode the images
3. Ask the LLM for a reply, with the prior turns as history
4. Append both messages to the conversation and save

Stored messages look like:

    {"role": "user", "content": "...", "images": [...], "timestamp": "..."}
    {"role": "assistant", "content": "...", "provider": "openai", "model": "...", "timestamp": "..."}
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from memsplit.generation.chat import generate_reply
from memsplit.memory.store import MemoryStore
from memsplit.utils.image_compression import compress_images
from memsplit.utils.image_size import get_image_size, needs_compression

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def prepare_images(images: list[str], text: str) -> list[str]:
    """Return images as they should be stored, compressed only if needed."""
    if not images or not needs_compression(images, text):
        return list(images or [])

    results = compress_images(images)
    before = sum(get_image_size(image) for image in images)
    after = sum(r["compressed_size"] for r in results)
    logger.info("Compressed %d images: %d -> %d bytes", len(images), before, after)
    return [r["compressed"] for r in results]


def send_message(
    store: MemoryStore,
    conversation_id: str,
    user_id: str,
    text: str,
    images: Optional[list[str]] = None,
    provider: str = "openai",
) -> dict:
    """
    Run one chat turn and persist it.

    Returns {"conversation", "reply"}; reply is generate_reply's dict.
    Raises ConversationNotFoundError for another user's conversation.
    """
    conversation = store.get_conversation(conversation_id, user_id)
    preferences = store.get_preferences(user_id)

    user_message = {"role": "user", "content": text, "timestamp": _now()}
    stored_images = prepare_images(images or [], text)
    if stored_images:
        user_message["images"] = stored_images

    reply = generate_reply(
        conversation["messages"],
        text,
        provider=provider,
        preferences=preferences,
    )
    assistant_message = {
        "role": "assistant",
        "content": reply["answer"],
        "provider": reply["provider"],
        "model": reply["model"],
        "timestamp": _now(),
    }

    conversation = store.append_messages(conversation_id, user_id, [user_message, assistant_message])
    return {"conversation": conversation, "reply": reply}
