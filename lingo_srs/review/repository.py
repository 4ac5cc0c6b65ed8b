"""
Review Item Repository.

Owns the authoritative collection of review items and the review log.
Storage is delegated to an injectable backend:
- InMemoryBackend: dict-backed, for tests and embedding
- SQLiteBackend: portable file persistence (default ~/.lingo_srs/reviews.db)

Every write is atomic per item and resolves conflicts last-writer-wins on
`last_reviewed_at`: a stored item is only replaced by one reviewed at the
same time or later.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from .errors import DuplicateItem, NotFound
from .models import (
    CardStatus,
    ContentSource,
    Grade,
    ReviewItem,
    ReviewLogEntry,
    validate_item,
)
from .queries import find_by_phrase
from .scheduler import SM2Config, SM2Scheduler, coerce_grade

if TYPE_CHECKING:
    from config import Settings


def supersedes(incoming: ReviewItem, stored: ReviewItem | None) -> bool:
    """True if `incoming` should replace `stored` under last-writer-wins."""
    if stored is None or stored.last_reviewed_at is None:
        return True
    if incoming.last_reviewed_at is None:
        return False
    return incoming.last_reviewed_at >= stored.last_reviewed_at


# =============================================================================
# Backends
# =============================================================================


class StorageBackend(Protocol):
    """Persistence contract used by ReviewItemRepository."""

    def load_all(self) -> list[ReviewItem]: ...

    def get(self, item_id: str) -> ReviewItem | None: ...

    def insert(self, item: ReviewItem) -> bool: ...

    def put_if_newer(self, item: ReviewItem, review: ReviewLogEntry | None = None) -> bool: ...

    def delete(self, item_id: str) -> bool: ...

    def load_reviews(self, item_id: str | None = None) -> list[ReviewLogEntry]: ...

    def clear(self) -> int: ...

    def close(self) -> None: ...


class InMemoryBackend:
    """Dict-backed storage. Insertion order is preserved across updates."""

    def __init__(self, items: Iterable[ReviewItem] = ()):
        self._items: dict[str, ReviewItem] = {i.id: i for i in items}
        self._reviews: list[ReviewLogEntry] = []
        self._lock = threading.Lock()

    def load_all(self) -> list[ReviewItem]:
        with self._lock:
            return list(self._items.values())

    def get(self, item_id: str) -> ReviewItem | None:
        return self._items.get(item_id)

    def insert(self, item: ReviewItem) -> bool:
        with self._lock:
            if item.id in self._items:
                return False
            self._items[item.id] = item
            return True

    def put_if_newer(self, item: ReviewItem, review: ReviewLogEntry | None = None) -> bool:
        with self._lock:
            if not supersedes(item, self._items.get(item.id)):
                return False
            self._items[item.id] = item
            if review is not None:
                self._reviews.append(review)
            return True

    def delete(self, item_id: str) -> bool:
        with self._lock:
            if self._items.pop(item_id, None) is None:
                return False
            self._reviews = [r for r in self._reviews if r.item_id != item_id]
            return True

    def load_reviews(self, item_id: str | None = None) -> list[ReviewLogEntry]:
        with self._lock:
            return [r for r in self._reviews if item_id is None or r.item_id == item_id]

    def clear(self) -> int:
        with self._lock:
            count = len(self._items)
            self._items.clear()
            self._reviews.clear()
            return count

    def close(self) -> None:
        pass


def _dt_to_text(value: datetime | None) -> str | None:
    # Fixed-width UTC text so stored timestamps compare lexicographically
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def _text_to_dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


_ITEM_COLUMNS = (
    "id",
    "phrase",
    "translation",
    "source_type",
    "source_id",
    "source_title",
    "source_url",
    "source_timestamp",
    "source_context",
    "status",
    "ease_factor",
    "interval_days",
    "repetition_count",
    "lapse_count",
    "due_at",
    "last_reviewed_at",
    "tags",
    "created_at",
)


class SQLiteBackend:
    """
    SQLite-backed storage.

    Handles:
    - One row per review item with every scheduling field
    - Review log with grade and answer time
    """

    def __init__(self, db_path: Path | str):
        """
        Initialize the SQLite backend.

        Args:
            db_path: Database file path (":memory:" for a private in-memory db)
        """
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else None
        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"SQLiteBackend initialized at {self.db_path or ':memory:'}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path) if self.db_path else ":memory:",
                timeout=10.0,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self.conn:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS review_items (
                    id TEXT PRIMARY KEY,
                    phrase TEXT NOT NULL,
                    translation TEXT NOT NULL,
                    source_type TEXT NOT NULL,
                    source_id TEXT NOT NULL,
                    source_title TEXT NOT NULL,
                    source_url TEXT,
                    source_timestamp REAL,
                    source_context TEXT,
                    status TEXT NOT NULL DEFAULT 'new',
                    ease_factor REAL NOT NULL DEFAULT 2.5,
                    interval_days INTEGER NOT NULL DEFAULT 0,
                    repetition_count INTEGER NOT NULL DEFAULT 0,
                    lapse_count INTEGER NOT NULL DEFAULT 0,
                    due_at TEXT,
                    last_reviewed_at TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT
                )
            """)
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS review_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    item_id TEXT NOT NULL,
                    reviewed_at TEXT NOT NULL,
                    grade TEXT NOT NULL,
                    time_spent_ms INTEGER NOT NULL DEFAULT 0
                )
            """)
            # Index for fast due-date queries
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_review_items_due_at ON review_items(due_at)"
            )
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_review_items_source "
                "ON review_items(source_type, source_id)"
            )
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_review_log_item ON review_log(item_id)"
            )

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _to_row(item: ReviewItem) -> tuple:
        return (
            item.id,
            item.phrase,
            item.translation,
            item.source.type.value,
            item.source.id,
            item.source.title,
            item.source.url,
            item.source.timestamp,
            item.source.context,
            item.status.value,
            item.ease_factor,
            item.interval_days,
            item.repetition_count,
            item.lapse_count,
            _dt_to_text(item.due_at),
            _dt_to_text(item.last_reviewed_at),
            json.dumps(sorted(item.tags)),
            _dt_to_text(item.created_at),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> ReviewItem:
        return ReviewItem(
            id=row["id"],
            phrase=row["phrase"],
            translation=row["translation"],
            source=ContentSource(
                type=row["source_type"],
                id=row["source_id"],
                title=row["source_title"],
                url=row["source_url"],
                timestamp=row["source_timestamp"],
                context=row["source_context"],
            ),
            status=CardStatus(row["status"]),
            ease_factor=float(row["ease_factor"]),
            interval_days=int(row["interval_days"]),
            repetition_count=int(row["repetition_count"]),
            lapse_count=int(row["lapse_count"]),
            due_at=_text_to_dt(row["due_at"]),
            last_reviewed_at=_text_to_dt(row["last_reviewed_at"]),
            tags=frozenset(json.loads(row["tags"])),
            created_at=_text_to_dt(row["created_at"]),
        )

    # =========================================================================
    # Item Operations
    # =========================================================================

    def load_all(self) -> list[ReviewItem]:
        cursor = self.conn.execute("SELECT * FROM review_items ORDER BY rowid ASC")
        return [self._from_row(row) for row in cursor.fetchall()]

    def get(self, item_id: str) -> ReviewItem | None:
        cursor = self.conn.execute("SELECT * FROM review_items WHERE id = ?", (item_id,))
        row = cursor.fetchone()
        return self._from_row(row) if row is not None else None

    def insert(self, item: ReviewItem) -> bool:
        placeholders = ", ".join("?" for _ in _ITEM_COLUMNS)
        with self.conn:
            cursor = self.conn.execute(
                f"INSERT OR IGNORE INTO review_items ({', '.join(_ITEM_COLUMNS)}) "
                f"VALUES ({placeholders})",
                self._to_row(item),
            )
        return cursor.rowcount > 0

    def put_if_newer(self, item: ReviewItem, review: ReviewLogEntry | None = None) -> bool:
        """
        Upsert an item unless the stored row was reviewed more recently.

        The item write and its review log entry share one transaction.
        """
        placeholders = ", ".join("?" for _ in _ITEM_COLUMNS)
        updates = ", ".join(f"{col} = excluded.{col}" for col in _ITEM_COLUMNS[1:])
        with self.conn:
            cursor = self.conn.execute(
                f"""
                INSERT INTO review_items ({', '.join(_ITEM_COLUMNS)})
                VALUES ({placeholders})
                ON CONFLICT(id) DO UPDATE SET {updates}
                WHERE review_items.last_reviewed_at IS NULL
                   OR (excluded.last_reviewed_at IS NOT NULL
                       AND excluded.last_reviewed_at >= review_items.last_reviewed_at)
                """,
                self._to_row(item),
            )
            applied = cursor.rowcount > 0
            if applied and review is not None:
                self.conn.execute(
                    """
                    INSERT INTO review_log (item_id, reviewed_at, grade, time_spent_ms)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        review.item_id,
                        _dt_to_text(review.reviewed_at),
                        review.grade.value,
                        review.time_spent_ms,
                    ),
                )
        return applied

    def delete(self, item_id: str) -> bool:
        """Delete an item together with its review log."""
        with self.conn:
            cursor = self.conn.execute("DELETE FROM review_items WHERE id = ?", (item_id,))
            self.conn.execute("DELETE FROM review_log WHERE item_id = ?", (item_id,))
        return cursor.rowcount > 0

    # =========================================================================
    # Review Log Operations
    # =========================================================================

    def load_reviews(self, item_id: str | None = None) -> list[ReviewLogEntry]:
        if item_id is None:
            cursor = self.conn.execute("SELECT * FROM review_log ORDER BY id ASC")
        else:
            cursor = self.conn.execute(
                "SELECT * FROM review_log WHERE item_id = ? ORDER BY id ASC", (item_id,)
            )
        return [
            ReviewLogEntry(
                item_id=row["item_id"],
                reviewed_at=_text_to_dt(row["reviewed_at"]),
                grade=Grade(row["grade"]),
                time_spent_ms=row["time_spent_ms"],
            )
            for row in cursor.fetchall()
        ]

    def clear(self) -> int:
        with self.conn:
            cursor = self.conn.execute("DELETE FROM review_items")
            count = cursor.rowcount
            self.conn.execute("DELETE FROM review_log")
        return count

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None


# =============================================================================
# Repository
# =============================================================================


class ReviewItemRepository:
    """
    Single writer for review items.

    Combines a storage backend with the scheduler so a review is read,
    scheduled and written back as one step. A failed scheduling call leaves
    the stored item untouched.
    """

    def __init__(
        self,
        backend: StorageBackend | None = None,
        scheduler: SM2Scheduler | None = None,
    ):
        self.backend = backend or InMemoryBackend()
        self.scheduler = scheduler or SM2Scheduler()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> ReviewItemRepository:
        """Repository on the configured SQLite database and SM-2 constants."""
        return cls(
            backend=SQLiteBackend(settings.srs_db_path),
            scheduler=SM2Scheduler(SM2Config.from_settings(settings)),
        )

    def _validate(self, item: ReviewItem) -> None:
        validate_item(
            item,
            minimum_ease=self.scheduler.config.minimum_easiness,
            graduation_interval=self.scheduler.config.graduation_interval,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def load(self) -> list[ReviewItem]:
        """Return the full current collection in insertion order."""
        return self.backend.load_all()

    def snapshot(self) -> list[ReviewItem]:
        """Full snapshot for synchronization."""
        return self.load()

    def get(self, item_id: str) -> ReviewItem | None:
        return self.backend.get(item_id)

    def require(self, item_id: str) -> ReviewItem:
        """
        Get an item that must exist.

        Raises:
            NotFound: If the id is unknown
        """
        item = self.backend.get(item_id)
        if item is None:
            raise NotFound(item_id)
        return item

    def reviews(self, item_id: str | None = None) -> list[ReviewLogEntry]:
        """Review log, oldest first, optionally for one item."""
        return self.backend.load_reviews(item_id)

    def is_phrase_saved(self, phrase: str) -> bool:
        return find_by_phrase(self.load(), phrase) is not None

    # =========================================================================
    # Writes
    # =========================================================================

    def add(self, item: ReviewItem) -> ReviewItem:
        """
        Store a newly created item.

        Raises:
            DuplicateItem: If the id is already stored
            InvalidItemState: If the item violates an invariant
        """
        self._validate(item)
        with self._lock:
            if not self.backend.insert(item):
                raise DuplicateItem(item.id)
        logger.debug(f"Added review item {item.id}: {item.phrase!r}")
        return item

    def add_many(self, items: Iterable[ReviewItem]) -> list[ReviewItem]:
        return [self.add(item) for item in items]

    def save(self, item: ReviewItem) -> bool:
        """
        Persist an updated item.

        Returns:
            True if written, False if the stored copy was reviewed more recently
        """
        self._validate(item)
        with self._lock:
            applied = self.backend.put_if_newer(item)
        if not applied:
            logger.warning(f"Discarded stale write for {item.id} (stored copy is newer)")
        return applied

    def review(
        self,
        item_id: str,
        outcome: Grade | str,
        now: datetime,
        time_spent_ms: int = 0,
    ) -> ReviewItem | None:
        """
        Grade an item, persist its next state and log the review.

        Args:
            item_id: Item being reviewed
            outcome: Learner's grade
            now: Review time
            time_spent_ms: Time the learner took to answer

        Returns:
            The updated item, or None if the id is unknown or a newer
            review was already stored

        Raises:
            InvalidGrade, InvalidItemState: Nothing is written in that case
        """
        with self._lock:
            current = self.backend.get(item_id)
            if current is None:
                logger.warning(f"Review for unknown item {item_id}")
                return None

            updated = self.scheduler.schedule(current, outcome, now)
            entry = ReviewLogEntry(
                item_id=item_id,
                reviewed_at=updated.last_reviewed_at,
                grade=coerce_grade(outcome),
                time_spent_ms=time_spent_ms,
            )
            if not self.backend.put_if_newer(updated, entry):
                logger.warning(f"Review of {item_id} at {now} is older than the stored state")
                return None
        return updated

    def remove(self, item_id: str) -> bool:
        """Delete an item and its review history. False if the id is unknown."""
        with self._lock:
            return self.backend.delete(item_id)

    def merge(self, items: Iterable[ReviewItem]) -> int:
        """
        Merge a reconciled snapshot item by item (last-writer-wins).

        Every item is validated before the first write, so an invalid
        snapshot leaves the store unchanged.

        Returns:
            Number of items written

        Raises:
            InvalidItemState: If any item violates an invariant
        """
        items = list(items)
        for item in items:
            self._validate(item)

        applied = 0
        for item in items:
            with self._lock:
                if self.backend.put_if_newer(item):
                    applied += 1
        logger.info(f"Merged snapshot: {applied} items applied")
        return applied

    def reset(self) -> int:
        """Delete every item and the review log. Returns the number of items removed."""
        with self._lock:
            return self.backend.clear()

    def close(self) -> None:
        self.backend.close()
