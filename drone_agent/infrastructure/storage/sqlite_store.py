"""SQLite checkpoint store.

One checkpoint of a thread spans three tables:

- ``checkpoints``: latest snapshot pointer (write sequence) per thread.
- ``checkpoint_blobs``: serialized message payloads.
- ``checkpoint_writes``: write log, one row per append transaction.

Appends and deletes run inside ``BEGIN IMMEDIATE`` transactions and are
rolled back as a whole on failure. Blocking sqlite calls run in a worker
thread so the event loop keeps serving other conversations.
"""

import asyncio
import json
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from uuid import uuid4

from drone_agent.config.settings import settings
from drone_agent.domain.conversation import ConversationStore, MessageRecord, Thread
from drone_agent.domain.exceptions import PersistenceError
from drone_agent.infrastructure.logging.logger import logger


class SqliteConversationStore(ConversationStore):
    SCHEMA = """
    CREATE TABLE IF NOT EXISTS checkpoints (
        thread_id TEXT PRIMARY KEY,
        checkpoint_id TEXT NOT NULL,
        write_seq INTEGER NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS checkpoint_blobs (
        thread_id TEXT NOT NULL,
        sequence INTEGER NOT NULL,
        message_id TEXT NOT NULL,
        payload TEXT NOT NULL,
        PRIMARY KEY (thread_id, sequence)
    );

    CREATE TABLE IF NOT EXISTS checkpoint_writes (
        thread_id TEXT NOT NULL,
        checkpoint_id TEXT NOT NULL,
        first_seq INTEGER NOT NULL,
        last_seq INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (thread_id, checkpoint_id)
    );

    CREATE INDEX IF NOT EXISTS idx_checkpoint_writes_thread ON checkpoint_writes(thread_id);
    """

    # Every table holding rows for a thread; delete_thread clears all of them.
    DELETE_STATEMENTS: Tuple[str, ...] = (
        "DELETE FROM checkpoint_writes WHERE thread_id = ?",
        "DELETE FROM checkpoint_blobs WHERE thread_id = ?",
        "DELETE FROM checkpoints WHERE thread_id = ?",
    )

    def __init__(self, db_path: Optional[str | Path] = None, busy_timeout: float = 5.0):
        self.db_path = Path(db_path or settings.sqlite_path).expanduser().resolve()
        self._busy_timeout = busy_timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(self.SCHEMA)
        logger.info("sqlite_store.initialized", extra={"extra": {"db_path": str(self.db_path)}})

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=self._busy_timeout, isolation_level=None)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection, mode: str = "IMMEDIATE") -> Iterator[sqlite3.Connection]:
        conn.execute(f"BEGIN {mode}")
        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    # ---- public API ----

    async def append(self, thread_id: str, messages: List[MessageRecord]) -> List[MessageRecord]:
        return await asyncio.to_thread(self._append_sync, thread_id, list(messages))

    async def load(self, thread_id: str) -> List[MessageRecord]:
        return (await self.load_thread(thread_id)).messages

    async def load_thread(self, thread_id: str) -> Thread:
        return await asyncio.to_thread(self._load_sync, thread_id)

    async def delete_thread(self, thread_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, thread_id)

    async def list_threads(self) -> List[str]:
        return await asyncio.to_thread(self._list_sync)

    # ---- blocking implementations ----

    def _append_sync(self, thread_id: str, messages: List[MessageRecord]) -> List[MessageRecord]:
        now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        checkpoint_id = f"ckpt-{uuid4().hex}"
        try:
            with self._connect() as conn, self._transaction(conn):
                row = conn.execute(
                    "SELECT write_seq FROM checkpoints WHERE thread_id = ?", (thread_id,)
                ).fetchone()
                first_seq = (row[0] if row else 0) + 1
                seq = first_seq - 1
                stored: List[MessageRecord] = []
                for message in messages:
                    seq += 1
                    record = replace(message, thread_id=thread_id, sequence=seq)
                    conn.execute(
                        "INSERT INTO checkpoint_blobs (thread_id, sequence, message_id, payload) VALUES (?, ?, ?, ?)",
                        (thread_id, seq, record.id, json.dumps(record.to_dict(), ensure_ascii=False)),
                    )
                    stored.append(record)
                conn.execute(
                    "INSERT INTO checkpoint_writes (thread_id, checkpoint_id, first_seq, last_seq, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (thread_id, checkpoint_id, first_seq, seq, now),
                )
                conn.execute(
                    "INSERT INTO checkpoints (thread_id, checkpoint_id, write_seq, updated_at) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(thread_id) DO UPDATE SET checkpoint_id = excluded.checkpoint_id, "
                    "write_seq = excluded.write_seq, updated_at = excluded.updated_at",
                    (thread_id, checkpoint_id, seq, now),
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(
                "sqlite_store.append_failed",
                extra={"extra": {"thread_id": thread_id, "error": str(e)}},
            )
            raise PersistenceError(code="STORE_WRITE_ERROR", message=str(e), thread_id=thread_id)
        return stored

    def _load_sync(self, thread_id: str) -> Thread:
        try:
            with self._connect() as conn, self._transaction(conn, mode="DEFERRED"):
                row = conn.execute(
                    "SELECT write_seq FROM checkpoints WHERE thread_id = ?", (thread_id,)
                ).fetchone()
                if row is None:
                    return Thread(id=thread_id)
                write_seq = int(row[0])
                rows = conn.execute(
                    "SELECT payload FROM checkpoint_blobs WHERE thread_id = ? AND sequence <= ? ORDER BY sequence",
                    (thread_id, write_seq),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(code="STORE_READ_ERROR", message=str(e), thread_id=thread_id)
        messages = [MessageRecord.from_dict(json.loads(payload)) for (payload,) in rows]
        return Thread(id=thread_id, messages=messages, last_write_seq=write_seq)

    def _delete_sync(self, thread_id: str) -> None:
        try:
            with self._connect() as conn, self._transaction(conn):
                for statement in self.DELETE_STATEMENTS:
                    conn.execute(statement, (thread_id,))
        except sqlite3.Error as e:
            logger.error(
                "sqlite_store.delete_failed",
                extra={"extra": {"thread_id": thread_id, "error": str(e)}},
            )
            raise PersistenceError(code="STORE_DELETE_ERROR", message=str(e), thread_id=thread_id)

    def _list_sync(self) -> List[str]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT thread_id FROM checkpoints ORDER BY thread_id").fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(code="STORE_READ_ERROR", message=str(e))
        return [r[0] for r in rows]
