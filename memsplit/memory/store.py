"""
Memory Store: SQLite
====================

CONCEPT: What is a Memory?
--------------------------
A memory is a titled text record the user keeps for the assistant:
facts about themselves, project notes, references. Each one belongs to
exactly one user, carries free-form tags, and can live in a folder.

Folders nest (parent_id), like a file tree:

    Projects/
      Side projects/
    People/
    Facts/
    References/

CONCEPT: Why SQLite?
--------------------
- Zero setup, it's a file on disk
- Built into Python
- Single-user app, no concurrent writers worth worrying about

Every method opens its own short-lived connection. That keeps the store
safe to share across Streamlit reruns without holding a connection open.

Tags are stored as a JSON array in a TEXT column. Tag filtering happens in
Python after the SQL query; a user's memory count is small.
"""

import json
import logging
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Optional

from memsplit.errors import ConversationNotFoundError, FolderNotFoundError, MemoryNotFoundError

logger = logging.getLogger(__name__)

MEMORY_FIELDS = ("title", "content", "tags", "folder_id", "conversation_source")
DEFAULT_FOLDERS = ("Projects", "People", "Facts", "References")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_memory(row: sqlite3.Row) -> dict:
    memory = dict(row)
    memory["tags"] = json.loads(memory["tags"]) if memory["tags"] else []
    return memory


class MemoryStore:

    def __init__(self, db_path: str = "data/memories.db"):
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Create tables if they don't exist."""
        conn = self._connect()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS memory_folders (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                parent_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT,
                tags TEXT NOT NULL DEFAULT '[]',
                folder_id TEXT,
                conversation_source TEXT,
                created_at TEXT NOT NULL,
                last_accessed TEXT NOT NULL,
                last_modified TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                model_id TEXT NOT NULL,
                messages TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_preferences (
                user_id TEXT PRIMARY KEY,
                preferences TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_conversations_user_id ON conversations(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_memories_user_id ON memories(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_memories_folder_id ON memories(folder_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_memory_folders_user_id ON memory_folders(user_id)")

        conn.commit()
        conn.close()

    # ──────────────────────────────────────────────
    # Memories
    # ──────────────────────────────────────────────

    def save_memory(
        self,
        user_id: str,
        title: str,
        content: str,
        tags: Optional[list[str]] = None,
        folder_id: Optional[str] = None,
        conversation_source: Optional[str] = None,
    ) -> dict:
        """Insert a new memory and return it."""
        memory_id = uuid.uuid4().hex
        now = _now()

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO memories (
                id, user_id, title, content, tags, folder_id,
                conversation_source, created_at, last_accessed, last_modified
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            memory_id,
            user_id,
            title,
            content,
            json.dumps(tags or []),
            folder_id,
            conversation_source,
            now,
            now,
            now,
        ))
        conn.commit()
        conn.close()

        logger.debug("Saved memory %s (%d chars) for user %s", memory_id, len(content or ""), user_id)
        return self._fetch_memory(memory_id)

    def _fetch_memory(self, memory_id: str) -> Optional[dict]:
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM memories WHERE id = ?", (memory_id,))
        row = cursor.fetchone()
        conn.close()
        return _row_to_memory(row) if row else None

    def get_memory(self, memory_id: str) -> Optional[dict]:
        """Fetch one memory by id, bumping last_accessed. None if missing."""
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE memories SET last_accessed = ? WHERE id = ?",
            (_now(), memory_id),
        )
        conn.commit()
        conn.close()
        return self._fetch_memory(memory_id)

    def update_memory(self, memory_id: str, **updates) -> dict:
        """
        Update selected fields of a memory.

        Only title, content, tags, folder_id and conversation_source can be
        changed. last_modified and last_accessed are always bumped.
        """
        unknown = set(updates) - set(MEMORY_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update memory fields: {sorted(unknown)}")

        if "tags" in updates:
            updates["tags"] = json.dumps(updates["tags"] or [])

        now = _now()
        updates["last_modified"] = now
        updates["last_accessed"] = now

        assignments = ", ".join(f"{field} = ?" for field in updates)

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            f"UPDATE memories SET {assignments} WHERE id = ?",
            (*updates.values(), memory_id),
        )
        changed = cursor.rowcount
        conn.commit()
        conn.close()

        if not changed:
            raise MemoryNotFoundError(memory_id)
        return self._fetch_memory(memory_id)

    def delete_memory(self, memory_id: str):
        conn = self._connect()
        conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
        conn.commit()
        conn.close()

    def get_all_memories(self, user_id: str, order_by: str = "created_at") -> list[dict]:
        """
        All memories of a user, newest first.

        order_by="size" sorts by content length instead, largest first;
        that's the order the split page lists candidates in.
        """
        if order_by == "size":
            order = "LENGTH(COALESCE(content, '')) DESC, rowid DESC"
        elif order_by == "created_at":
            order = "created_at DESC, rowid DESC"
        else:
            raise ValueError(f"Unknown order_by: {order_by}")

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            f"SELECT * FROM memories WHERE user_id = ? ORDER BY {order}",
            (user_id,),
        )
        rows = [_row_to_memory(row) for row in cursor.fetchall()]
        conn.close()
        return rows

    def get_memories_in_folder(self, folder_id: Optional[str], user_id: str) -> list[dict]:
        """Memories directly inside a folder. folder_id=None means the root."""
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM memories
            WHERE user_id = ? AND folder_id IS ?
            ORDER BY created_at DESC, rowid DESC
        """, (user_id, folder_id))
        rows = [_row_to_memory(row) for row in cursor.fetchall()]
        conn.close()
        return rows

    def search_memories(
        self,
        user_id: str,
        query: str = "",
        tags: Optional[list[str]] = None,
    ) -> list[dict]:
        """
        Every word of the query must appear in the title or content
        (case-insensitive). With tags, a memory must share at least one.
        """
        sql = "SELECT * FROM memories WHERE user_id = ?"
        params: list = [user_id]

        for word in query.split():
            sql += " AND (title || ' ' || COALESCE(content, '')) LIKE ?"
            params.append(f"%{word}%")

        sql += " ORDER BY created_at DESC, rowid DESC"

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(sql, params)
        rows = [_row_to_memory(row) for row in cursor.fetchall()]
        conn.close()

        if tags:
            wanted = set(tags)
            rows = [m for m in rows if wanted.intersection(m["tags"])]
        return rows

    def get_all_tags(self, user_id: str) -> list[str]:
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("SELECT tags FROM memories WHERE user_id = ?", (user_id,))
        tag_set = set()
        for row in cursor.fetchall():
            tag_set.update(json.loads(row["tags"] or "[]"))
        conn.close()
        return sorted(tag_set)

    # ──────────────────────────────────────────────
    # Folders
    # ──────────────────────────────────────────────

    def save_folder(self, user_id: str, name: str, parent_id: Optional[str] = None) -> dict:
        folder_id = uuid.uuid4().hex
        now = _now()

        conn = self._connect()
        conn.execute("""
            INSERT INTO memory_folders (id, user_id, name, parent_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (folder_id, user_id, name, parent_id, now, now))
        conn.commit()
        conn.close()

        return self.get_folder(folder_id)

    def get_folder(self, folder_id: str) -> Optional[dict]:
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM memory_folders WHERE id = ?", (folder_id,))
        row = cursor.fetchone()
        conn.close()
        return dict(row) if row else None

    def update_folder(self, folder_id: str, **updates) -> dict:
        unknown = set(updates) - {"name", "parent_id"}
        if unknown:
            raise ValueError(f"Cannot update folder fields: {sorted(unknown)}")

        updates["updated_at"] = _now()
        assignments = ", ".join(f"{field} = ?" for field in updates)

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            f"UPDATE memory_folders SET {assignments} WHERE id = ?",
            (*updates.values(), folder_id),
        )
        changed = cursor.rowcount
        conn.commit()
        conn.close()

        if not changed:
            raise FolderNotFoundError(folder_id)
        return self.get_folder(folder_id)

    def get_all_folders(self, user_id: str) -> list[dict]:
        """All folders of a user, oldest first."""
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM memory_folders WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
            (user_id,),
        )
        rows = [dict(row) for row in cursor.fetchall()]
        conn.close()
        return rows

    def get_child_folders(self, parent_id: Optional[str], user_id: str) -> list[dict]:
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM memory_folders
            WHERE user_id = ? AND parent_id IS ?
            ORDER BY created_at ASC, rowid ASC
        """, (user_id, parent_id))
        rows = [dict(row) for row in cursor.fetchall()]
        conn.close()
        return rows

    def delete_folder(self, folder_id: str, user_id: str):
        """
        Delete a folder without losing anything inside it.

        Its memories move to the root; its child folders move up to the
        deleted folder's parent. Another user's folder counts as missing.
        """
        folder = self.get_folder(folder_id)
        if folder is None or folder["user_id"] != user_id:
            raise FolderNotFoundError(folder_id)

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE memories SET folder_id = NULL WHERE folder_id = ? AND user_id = ?",
            (folder_id, user_id),
        )
        cursor.execute(
            "UPDATE memory_folders SET parent_id = ? WHERE parent_id = ? AND user_id = ?",
            (folder["parent_id"], folder_id, user_id),
        )
        cursor.execute(
            "DELETE FROM memory_folders WHERE id = ? AND user_id = ?",
            (folder_id, user_id),
        )
        conn.commit()
        conn.close()

    def create_default_folders(self, user_id: str) -> list[dict]:
        """Projects, People, Facts, References at the root."""
        created = []
        for name in DEFAULT_FOLDERS:
            try:
                created.append(self.save_folder(user_id, name))
            except sqlite3.Error as e:
                logger.error("Error creating default folder %s: %s", name, e)
        return created

    # ──────────────────────────────────────────────
    # Conversations
    # ──────────────────────────────────────────────

    def create_conversation(self, user_id: str, title: str, model_id: str) -> dict:
        conversation_id = uuid.uuid4().hex
        now = _now()

        conn = self._connect()
        conn.execute("""
            INSERT INTO conversations (id, user_id, title, model_id, messages, created_at, updated_at)
            VALUES (?, ?, ?, ?, '[]', ?, ?)
        """, (conversation_id, user_id, title, model_id, now, now))
        conn.commit()
        conn.close()

        return self.get_conversation(conversation_id, user_id)

    def get_conversation(self, conversation_id: str, user_id: str) -> dict:
        """A user's conversation with its messages decoded. Raises if missing."""
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM conversations WHERE id = ? AND user_id = ?",
            (conversation_id, user_id),
        )
        row = cursor.fetchone()
        conn.close()

        if row is None:
            raise ConversationNotFoundError(conversation_id)
        conversation = dict(row)
        conversation["messages"] = json.loads(conversation["messages"])
        return conversation

    def get_conversations(self, user_id: str) -> list[dict]:
        """Conversation summaries (no messages), most recently updated first."""
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id, user_id, title, model_id, created_at, updated_at
            FROM conversations
            WHERE user_id = ?
            ORDER BY updated_at DESC, rowid DESC
        """, (user_id,))
        rows = [dict(row) for row in cursor.fetchall()]
        conn.close()
        return rows

    def append_messages(self, conversation_id: str, user_id: str, messages: list[dict]) -> dict:
        conversation = self.get_conversation(conversation_id, user_id)
        conversation["messages"].extend(messages)

        conn = self._connect()
        conn.execute(
            "UPDATE conversations SET messages = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (json.dumps(conversation["messages"], ensure_ascii=False), _now(), conversation_id, user_id),
        )
        conn.commit()
        conn.close()

        return self.get_conversation(conversation_id, user_id)

    def rename_conversation(self, conversation_id: str, user_id: str, title: str) -> dict:
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE conversations SET title = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (title, _now(), conversation_id, user_id),
        )
        changed = cursor.rowcount
        conn.commit()
        conn.close()

        if not changed:
            raise ConversationNotFoundError(conversation_id)
        return self.get_conversation(conversation_id, user_id)

    def delete_conversation(self, conversation_id: str, user_id: str):
        conn = self._connect()
        conn.execute(
            "DELETE FROM conversations WHERE id = ? AND user_id = ?",
            (conversation_id, user_id),
        )
        conn.commit()
        conn.close()

    # ──────────────────────────────────────────────
    # Preferences
    # ──────────────────────────────────────────────

    def get_preferences(self, user_id: str) -> Optional[dict]:
        """The user's saved preferences dict, or None if never saved."""
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("SELECT preferences FROM user_preferences WHERE user_id = ?", (user_id,))
        row = cursor.fetchone()
        conn.close()
        return json.loads(row["preferences"]) if row else None

    def save_preferences(self, user_id: str, preferences: dict) -> dict:
        """Insert or replace the whole preferences dict."""
        conn = self._connect()
        conn.execute("""
            INSERT INTO user_preferences (user_id, preferences, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                preferences = excluded.preferences,
                updated_at = excluded.updated_at
        """, (user_id, json.dumps(preferences, ensure_ascii=False), _now()))
        conn.commit()
        conn.close()
        return self.get_preferences(user_id)
