"""SQLite conversation store."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import ThreadNotFound
from ..models import Durable, FileAttachment, Message, Role, StoredFile, Thread


class IStorage(Protocol):
    """Durable persistence for threads, messages and uploaded files."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Threads
    async def create_thread(self, name: str) -> Thread:
        """Create a new thread."""
        ...

    async def get_thread(self, thread_id: str) -> Thread | None:
        """Get a thread by ID."""
        ...

    async def list_threads(self) -> list[Thread]:
        """List threads, newest first."""
        ...

    async def rename_thread(self, thread_id: str, name: str) -> Thread:
        """Rename a thread."""
        ...

    async def delete_thread(self, thread_id: str) -> None:
        """Delete a thread with its messages and file rows."""
        ...

    # Messages
    async def append_message(
        self,
        thread_id: str,
        role: Role,
        content: str,
        attachment: FileAttachment | None = None,
    ) -> Message:
        """Append a message to a thread and return the stored copy."""
        ...

    async def list_messages(self, thread_id: str) -> list[Message]:
        """Get the ordered messages of a thread."""
        ...

    # Files
    async def save_file(self, stored_file: StoredFile) -> None:
        """Record an uploaded file."""
        ...

    async def get_file(self, file_id: str) -> StoredFile | None:
        """Get a file row by ID."""
        ...

    async def list_thread_files(self, thread_id: str) -> list[StoredFile]:
        """Get files uploaded in a thread."""
        ...

    async def delete_file(self, file_id: str) -> None:
        """Delete a file row."""
        ...


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA foreign_keys = ON")

        # Read and execute schema
        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Threads
    async def create_thread(self, name: str) -> Thread:
        """Create a new thread."""
        conn = self._require_conn()
        thread = Thread(id=str(uuid.uuid4()), name=name)

        await conn.execute(
            """
            INSERT INTO threads (id, name, created_at)
            VALUES (?, ?, ?)
            """,
            (thread.id, thread.name, thread.created_at.isoformat()),
        )
        await conn.commit()
        return thread

    async def get_thread(self, thread_id: str) -> Thread | None:
        """Get a thread by ID."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, name, created_at
            FROM threads
            WHERE id = ?
            """,
            (thread_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return Thread(id=row[0], name=row[1], created_at=_parse_ts(row[2]))

    async def list_threads(self) -> list[Thread]:
        """List threads, newest first."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, name, created_at
            FROM threads
            ORDER BY created_at DESC, rowid DESC
            """
        )
        rows = await cursor.fetchall()

        return [
            Thread(id=row[0], name=row[1], created_at=_parse_ts(row[2]))
            for row in rows
        ]

    async def rename_thread(self, thread_id: str, name: str) -> Thread:
        """Rename a thread."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "UPDATE threads SET name = ? WHERE id = ?",
            (name, thread_id),
        )
        await conn.commit()
        if cursor.rowcount == 0:
            raise ThreadNotFound(thread_id)

        thread = await self.get_thread(thread_id)
        if thread is None:
            raise ThreadNotFound(thread_id)
        return thread

    async def delete_thread(self, thread_id: str) -> None:
        """Delete a thread with its messages and file rows."""
        conn = self._require_conn()

        await conn.execute("DELETE FROM messages WHERE thread_id = ?", (thread_id,))
        await conn.execute("DELETE FROM files WHERE thread_id = ?", (thread_id,))
        cursor = await conn.execute("DELETE FROM threads WHERE id = ?", (thread_id,))
        await conn.commit()
        if cursor.rowcount == 0:
            raise ThreadNotFound(thread_id)

    # Messages
    async def append_message(
        self,
        thread_id: str,
        role: Role,
        content: str,
        attachment: FileAttachment | None = None,
    ) -> Message:
        """Append a message to a thread and return the stored copy."""
        conn = self._require_conn()

        if await self.get_thread(thread_id) is None:
            raise ThreadNotFound(thread_id)

        msg_id = str(uuid.uuid4())
        created_at = datetime.now(timezone.utc)

        await conn.execute(
            """
            INSERT INTO messages (id, thread_id, role, content, file, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                msg_id,
                thread_id,
                role,
                content,
                json.dumps(attachment.to_dict()) if attachment else None,
                created_at.isoformat(),
            ),
        )
        await conn.commit()

        return Message.from_record(
            {
                "id": msg_id,
                "thread_id": thread_id,
                "role": role,
                "content": content,
                "file": attachment.to_dict() if attachment else None,
                "created_at": created_at,
            }
        )

    async def list_messages(self, thread_id: str) -> list[Message]:
        """Get the ordered messages of a thread."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, thread_id, role, content, file, created_at
            FROM messages
            WHERE thread_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (thread_id,),
        )
        rows = await cursor.fetchall()

        return [
            Message.from_record(
                {
                    "id": row[0],
                    "thread_id": row[1],
                    "role": row[2],
                    "content": row[3],
                    "file": json.loads(row[4]) if row[4] else None,
                    "created_at": row[5],
                }
            )
            for row in rows
        ]

    # Files
    async def save_file(self, stored_file: StoredFile) -> None:
        """Record an uploaded file."""
        conn = self._require_conn()

        if await self.get_thread(stored_file.thread_id) is None:
            raise ThreadNotFound(stored_file.thread_id)

        await conn.execute(
            """
            INSERT INTO files (id, thread_id, name, url, media_type, uploaded_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                stored_file.id,
                stored_file.thread_id,
                stored_file.name,
                stored_file.url,
                stored_file.media_type,
                stored_file.uploaded_at.isoformat(),
            ),
        )
        await conn.commit()

    async def get_file(self, file_id: str) -> StoredFile | None:
        """Get a file row by ID."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, thread_id, name, url, media_type, uploaded_at
            FROM files
            WHERE id = ?
            """,
            (file_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return StoredFile(
            id=row[0],
            thread_id=row[1],
            name=row[2],
            url=row[3],
            media_type=row[4],
            uploaded_at=_parse_ts(row[5]),
        )

    async def list_thread_files(self, thread_id: str) -> list[StoredFile]:
        """Get files uploaded in a thread."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, thread_id, name, url, media_type, uploaded_at
            FROM files
            WHERE thread_id = ?
            ORDER BY uploaded_at ASC, rowid ASC
            """,
            (thread_id,),
        )
        rows = await cursor.fetchall()

        return [
            StoredFile(
                id=row[0],
                thread_id=row[1],
                name=row[2],
                url=row[3],
                media_type=row[4],
                uploaded_at=_parse_ts(row[5]),
            )
            for row in rows
        ]

    async def delete_file(self, file_id: str) -> None:
        """Delete a file row."""
        conn = self._require_conn()

        await conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
        await conn.commit()
