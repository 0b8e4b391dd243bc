"""
Streamlit UI for Memory Tools
=============================

Pages:
1. Chat: talk to the assistant, with saved conversations and image attachments
2. Memories: overview of a user's memories (size, tags, folder)
3. Split Memory: pick a large memory and split it into smaller ones
4. Personalization: index an "about me" document
5. Preferences: name, background and conversation style for the system prompt
"""

import base64

import streamlit as st
import pandas as pd
from memsplit.config import load_chunking_config
from memsplit.db import get_memory_store
from memsplit.generation.chat import PROVIDERS
from memsplit.generation.conversation import send_message
from memsplit.memory.splitter import estimate_sections, split_memory
from memsplit.personalization.indexer import get_indexing_status, index_personalization_text
from memsplit.personalization.prompt import (
    TECHNICAL_DEPTH,
    TONE,
    VERBOSITY,
    format_user_context,
    generate_system_prompt,
    should_include_personalization,
)
from memsplit.utils.image_size import format_size, get_image_size


# ──────────────────────────────────────────────
# Open the store and config ONCE, cached across reruns
# ──────────────────────────────────────────────

@st.cache_resource
def load_store():
    return get_memory_store()

@st.cache_resource
def load_config():
    return load_chunking_config()


EXAMPLE_PERSONALIZATION = """=== CORE IDENTITY ===
My name is [Your Name]. I'm a [occupation] living in [location].

=== PROJECTS ===
I'm working on [Project Name], which is [description]...

=== INTERESTS ===
I'm passionate about [interests]..."""


def memories_page(user_id: str):
    st.title("Memories")
    store = load_store()

    memories = store.get_all_memories(user_id)
    if not memories:
        st.info("No memories yet.")
        return

    df = pd.DataFrame([
        {
            "title": m["title"],
            "chars": len(m["content"] or ""),
            "tags": ", ".join(m["tags"]),
            "created_at": m["created_at"],
        }
        for m in memories
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

    tags = store.get_all_tags(user_id)
    if tags:
        st.caption("Tags: " + ", ".join(tags))


def split_page(user_id: str):
    st.title("Split Large Memory")
    st.caption("Break an oversized memory into smaller titled parts")

    store = load_store()
    config = load_config()

    memories = store.get_all_memories(user_id, order_by="size")
    if not memories:
        st.info("No memories to split.")
        return

    labels = {
        f"{m['title']} ({len(m['content'] or '') / 1000:.1f}KB)": m for m in memories
    }
    choice = st.selectbox("Memory", list(labels))
    selected = labels[choice]

    size = len(selected["content"] or "")
    col1, col2 = st.columns(2)
    col1.metric("Size", f"{size:,} chars")
    col2.metric("Estimated sections", estimate_sections(selected["content"] or "", config.max_section_size))

    with st.expander("Preview"):
        st.text((selected["content"] or "")[:1000])

    if st.button("Split Memory", type="primary"):
        with st.spinner("Splitting..."):
            stats = split_memory(store, selected["id"], user_id, config)

        for part in stats["parts"]:
            if "error" in part:
                st.write(f"❌ Failed: Part {part['index']}")
            else:
                st.write(f"✅ Created: Part {part['index']} ({part['chars']} chars)")

        st.success(f"Created {stats['created']}/{stats['sections']} new memories")
        st.warning(f"Original memory \"{selected['title']}\" is still there. Delete it manually if you want.")


def personalization_page(user_id: str):
    st.title("Setup Personalization")
    store = load_store()

    status = get_indexing_status(store, user_id)
    col1, col2 = st.columns(2)
    col1.metric("Indexed", "Yes" if status["is_indexed"] else "No")
    col2.metric("Chunks", status["chunk_count"])

    text = st.text_area("Personalization text", height=300, placeholder=EXAMPLE_PERSONALIZATION)

    if st.button("Index", type="primary"):
        if not text.strip():
            st.error("Please enter your personalization text")
            return

        progress = st.empty()
        result = index_personalization_text(
            store, text, user_id, config=load_config(), progress=progress.write,
        )
        if result["chunks_created"]:
            st.success(f"Indexing complete: {result['chunks_created']} chunks")
        else:
            st.warning("No sections long enough to index; the existing index was kept.")


def _to_data_url(uploaded) -> str:
    encoded = base64.b64encode(uploaded.getvalue()).decode("ascii")
    return f"data:{uploaded.type};base64,{encoded}"


def chat_page(user_id: str):
    st.title("Chat")
    store = load_store()

    conversations = store.get_conversations(user_id)
    if st.sidebar.button("New conversation"):
        created = store.create_conversation(user_id, "New conversation", PROVIDERS["openai"]["model"])
        conversations.insert(0, created)

    if not conversations:
        st.info("No conversations yet. Start one from the sidebar.")
        return

    labels = {f"{c['title']} ({c['updated_at'][:16]})": c["id"] for c in conversations}
    conversation_id = labels[st.sidebar.selectbox("Conversation", list(labels))]
    provider = st.sidebar.selectbox("Provider", list(PROVIDERS))

    convo = store.get_conversation(conversation_id, user_id)
    for message in convo["messages"]:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])
            for image in message.get("images", []):
                st.image(image)
            if message["role"] == "assistant":
                st.caption(f"{message.get('provider')} · {message.get('model')}")

    uploads = st.file_uploader("Attach images", type=["png", "jpg", "jpeg", "webp"], accept_multiple_files=True)
    images = [_to_data_url(u) for u in uploads or []]
    if images:
        st.caption("Attached: " + ", ".join(format_size(get_image_size(i)) for i in images))

    text = st.chat_input("Message")
    if text:
        with st.spinner("Thinking..."):
            result = send_message(store, conversation_id, user_id, text, images=images, provider=provider)
        if result["reply"]["provider"] == "none":
            st.error(result["reply"]["answer"])
        st.rerun()


def preferences_page(user_id: str):
    st.title("Preferences")
    store = load_store()
    prefs = store.get_preferences(user_id) or {}
    style = prefs.get("conversation_style") or {}

    with st.form("preferences"):
        nickname = st.text_input("What should the assistant call you?", value=prefs.get("nickname", ""))
        pronouns = st.text_input("Pronouns", value=prefs.get("pronouns", ""))
        occupation = st.text_input("Occupation", value=prefs.get("occupation", ""))
        bio = st.text_area("About you", value=prefs.get("bio", ""))
        interests = st.text_input("Interests (comma separated)", value=", ".join(prefs.get("interests", [])))

        tone = st.selectbox("Tone", list(TONE), index=_index(TONE, style.get("tone")))
        verbosity = st.selectbox("Verbosity", list(VERBOSITY), index=_index(VERBOSITY, style.get("verbosity")))
        depth = st.selectbox(
            "Technical depth", list(TECHNICAL_DEPTH), index=_index(TECHNICAL_DEPTH, style.get("technical_depth")),
        )
        humor = st.checkbox("Humor", value=style.get("humor", False))

        if st.form_submit_button("Save", type="primary"):
            prefs.update({
                "nickname": nickname.strip(),
                "pronouns": pronouns.strip(),
                "occupation": occupation.strip(),
                "bio": bio.strip(),
                "interests": [i.strip() for i in interests.split(",") if i.strip()],
                "conversation_style": {
                    **style,
                    "tone": tone,
                    "verbosity": verbosity,
                    "technical_depth": depth,
                    "humor": humor,
                },
            })
            store.save_preferences(user_id, prefs)
            st.success("Preferences saved")

    if should_include_personalization(prefs):
        st.caption(format_user_context(prefs))
        with st.expander("System prompt"):
            st.text(generate_system_prompt(prefs))
    else:
        st.caption("Fill in a name, occupation, bio or interests to personalize replies.")


def _index(table: dict, key) -> int:
    keys = list(table)
    return keys.index(key) if key in keys else 0


# ──────────────────────────────────────────────
# Page Navigation
# ──────────────────────────────────────────────

user_id = st.sidebar.text_input("User", value="local")
page = st.sidebar.radio("Navigate", ["Chat", "Memories", "Split Memory", "Personalization", "Preferences"])

if page == "Chat":
    chat_page(user_id)
elif page == "Memories":
    memories_page(user_id)
elif page == "Split Memory":
    split_page(user_id)
elif page == "Personalization":
    personalization_page(user_id)
else:
    preferences_page(user_id)
