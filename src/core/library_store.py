"""Per-user document store backed by SQLite.

Every user owns a set of collections (games, challenges, notifications,
profile) holding JSON documents. Multi-document writes go through a
WriteBatch that commits as a single SQLite transaction. Subscribers get
the full current collection after every commit that touches it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from src.core.challenge import Challenge
from src.core.exceptions import TransactionalWriteError
from src.core.game import CanonicalGame
from src.core.preferences import UserPreferences

logger = logging.getLogger("backlogtracker.store")

__all__ = [
    "CHALLENGES",
    "DELETE_FIELD",
    "GAMES",
    "LibrarySnapshot",
    "LibraryStore",
    "NOTIFICATIONS",
    "PROFILE",
    "PROFILE_DOC",
    "WriteBatch",
]

GAMES = "games"
CHALLENGES = "challenges"
NOTIFICATIONS = "notifications"
PROFILE = "profile"

# Document id of the single profile / preferences document per user
PROFILE_DOC = "settings"

SnapshotCallback = Callable[[dict[str, dict[str, Any]]], None]


class _DeleteField:
    """Sentinel type for removing a field in WriteBatch.update()."""

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    user_id     TEXT NOT NULL,
    collection  TEXT NOT NULL,
    doc_id      TEXT NOT NULL,
    data        TEXT NOT NULL,
    updated_at  INTEGER NOT NULL,
    PRIMARY KEY (user_id, collection, doc_id)
);
"""


@dataclass(frozen=True)
class LibrarySnapshot:
    """Point-in-time view of one user's games, challenges and preferences."""

    games: list[CanonicalGame] = field(default_factory=list)
    challenges: list[Challenge] = field(default_factory=list)
    preferences: UserPreferences = field(default_factory=UserPreferences)

    @property
    def active_challenges(self) -> list[Challenge]:
        """Active challenges, newest first."""
        return _newest_first([c for c in self.challenges if c.is_active])

    @property
    def completed_challenges(self) -> list[Challenge]:
        """Completed challenges, newest first."""
        return _newest_first([c for c in self.challenges if not c.is_active])


def _newest_first(challenges: list[Challenge]) -> list[Challenge]:
    return sorted(
        challenges,
        key=lambda c: c.created_at.timestamp() if c.created_at else float("-inf"),
        reverse=True,
    )


class WriteBatch:
    """Collects writes for one user and applies them atomically.

    Operations are recorded in order and only touch the database in
    commit(). Either every operation applies or none does.
    """

    def __init__(self, store: LibraryStore, user_id: str) -> None:
        self._store = store
        self._user_id = user_id
        self._ops: list[tuple[str, str, str, dict[str, Any] | None]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        """Creates or replaces a whole document."""
        self._ops.append(("set", collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> WriteBatch:
        """Merges fields into an existing document.

        A value of DELETE_FIELD removes that key. Updating a document that
        does not exist fails the whole batch at commit time.
        """
        self._ops.append(("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        """Deletes a document; deleting a missing document is a no-op."""
        self._ops.append(("delete", collection, doc_id, None))
        return self

    def commit(self) -> None:
        """Applies all recorded operations in one transaction.

        Raises:
            TransactionalWriteError: If any operation fails. The transaction
                is rolled back and no operation applies.
            RuntimeError: If the batch was already committed.
        """
        if self._committed:
            raise RuntimeError("WriteBatch already committed")
        self._committed = True
        if not self._ops:
            return

        conn = self._store.conn
        now = int(time.time())
        touched: set[str] = set()
        try:
            conn.execute("BEGIN")
            for op, collection, doc_id, payload in self._ops:
                touched.add(collection)
                if op == "delete":
                    conn.execute(
                        "DELETE FROM documents WHERE user_id = ? AND collection = ? AND doc_id = ?",
                        (self._user_id, collection, doc_id),
                    )
                    continue
                if op == "update":
                    current = self._store._read(self._user_id, collection, doc_id)
                    if current is None:
                        raise KeyError(f"{collection}/{doc_id} does not exist")
                    for key, value in payload.items():
                        if value is DELETE_FIELD:
                            current.pop(key, None)
                        else:
                            current[key] = value
                    payload = current
                conn.execute(
                    """
                    INSERT OR REPLACE INTO documents (user_id, collection, doc_id, data, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (self._user_id, collection, doc_id, json.dumps(payload), now),
                )
            conn.execute("COMMIT")
        except (sqlite3.Error, KeyError, TypeError, ValueError) as e:
            conn.execute("ROLLBACK")
            logger.error("Write batch of %d operations for %s rolled back: %s", len(self._ops), self._user_id, e)
            raise TransactionalWriteError(f"Write batch failed, no changes applied: {e}") from e

        logger.debug("Committed %d operations for %s", len(self._ops), self._user_id)
        for collection in sorted(touched):
            self._store._notify(self._user_id, collection)


class LibraryStore:
    """SQLite document store scoped by user and collection.

    Uses autocommit mode so WriteBatch can control transactions explicitly.
    """

    def __init__(self, db_path: Path) -> None:
        """Opens (and creates if needed) the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(str(db_path), isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode = WAL")
        self.conn.executescript(_SCHEMA)

        self._subscribers: dict[tuple[str, str], list[SnapshotCallback]] = defaultdict(list)

    @staticmethod
    def new_id() -> str:
        """Generates an opaque, stable document id."""
        return uuid.uuid4().hex

    def batch(self, user_id: str) -> WriteBatch:
        """Starts a new atomic write batch for one user."""
        return WriteBatch(self, user_id)

    def _read(self, user_id: str, collection: str, doc_id: str) -> dict[str, Any] | None:
        row = self.conn.execute(
            "SELECT data FROM documents WHERE user_id = ? AND collection = ? AND doc_id = ?",
            (user_id, collection, doc_id),
        ).fetchone()
        return json.loads(row["data"]) if row else None

    def get(self, user_id: str, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Reads one document.

        Returns:
            The document body, or None if it does not exist.
        """
        return self._read(user_id, collection, doc_id)

    def documents(self, user_id: str, collection: str) -> dict[str, dict[str, Any]]:
        """Reads a whole collection as a mapping of doc id to body."""
        rows = self.conn.execute(
            "SELECT doc_id, data FROM documents WHERE user_id = ? AND collection = ? ORDER BY doc_id",
            (user_id, collection),
        ).fetchall()
        return {row["doc_id"]: json.loads(row["data"]) for row in rows}

    # ------------------------------------------------------------------
    # Typed readers
    # ------------------------------------------------------------------

    def games(self, user_id: str) -> list[CanonicalGame]:
        return [CanonicalGame.from_document(doc_id, doc) for doc_id, doc in self.documents(user_id, GAMES).items()]

    def challenges(self, user_id: str) -> list[Challenge]:
        return [Challenge.from_document(doc_id, doc) for doc_id, doc in self.documents(user_id, CHALLENGES).items()]

    def profile(self, user_id: str) -> dict[str, Any]:
        """Reads the user's profile document (empty if never written)."""
        return self.get(user_id, PROFILE, PROFILE_DOC) or {}

    def preferences(self, user_id: str) -> UserPreferences:
        return UserPreferences.from_document(self.profile(user_id))

    def snapshot(self, user_id: str) -> LibrarySnapshot:
        """Reads games, challenges and preferences in one go."""
        return LibrarySnapshot(
            games=self.games(user_id),
            challenges=self.challenges(user_id),
            preferences=self.preferences(user_id),
        )

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, user_id: str, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Registers a callback for full-collection snapshots.

        The callback is invoked immediately with the current state and
        again after every committed batch that touches the collection.

        Returns:
            A function that removes the subscription.
        """
        key = (user_id, collection)
        self._subscribers[key].append(callback)
        callback(self.documents(user_id, collection))

        def unsubscribe() -> None:
            if callback in self._subscribers[key]:
                self._subscribers[key].remove(callback)

        return unsubscribe

    def _notify(self, user_id: str, collection: str) -> None:
        callbacks = list(self._subscribers.get((user_id, collection), ()))
        if not callbacks:
            return
        current = self.documents(user_id, collection)
        for callback in callbacks:
            try:
                callback(dict(current))
            except Exception:
                logger.exception("Snapshot subscriber for %s/%s failed", user_id, collection)

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    def __enter__(self) -> LibraryStore:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
