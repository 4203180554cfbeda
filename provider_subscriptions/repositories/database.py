"""In-process transactional storage.

All stores share one Database. A transaction holds the database's re-entrant
lock for its whole extent, so transactions are serializable, and journals an
undo action for every mutation so that an exception rolls back everything
done inside it. Nested transactions join the outermost one. Callbacks
registered with after_commit() run after the outermost commit, outside the
lock.

Tables hand out deep copies of their records: mutating a record obtained from
a store has no effect until it is written back with update().
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from pydantic import BaseModel

from provider_subscriptions.logging_config import get_logger

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class Database:
    """Coordinates locking and rollback for every table."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._state = threading.local()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def in_transaction(self) -> bool:
        return getattr(self._state, "depth", 0) > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block atomically.

        Raises whatever the block raises, after undoing its mutations.
        """
        with self._lock:
            depth = getattr(self._state, "depth", 0)
            if depth == 0:
                self._state.journal = []
                self._state.on_commit = []
            self._state.depth = depth + 1
            committed = False
            try:
                yield
                committed = depth == 0
            except BaseException:
                if depth == 0:
                    self._rollback()
                raise
            finally:
                self._state.depth = depth
                if depth == 0:
                    callbacks = self._state.on_commit
                    self._state.journal = []
                    self._state.on_commit = []

        if committed:
            for callback in callbacks:
                callback()

    def record_undo(self, undo: Callable[[], None]) -> None:
        """Register an undo action for the current transaction (if any)."""
        if self.in_transaction():
            self._state.journal.append(undo)

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once the outermost transaction commits.

        Outside a transaction it runs immediately; on rollback it is dropped.
        """
        if self.in_transaction():
            self._state.on_commit.append(callback)
        else:
            callback()

    def _rollback(self) -> None:
        journal: List[Callable[[], None]] = self._state.journal
        logger.warning("transaction_rolled_back", operations=len(journal))
        for undo in reversed(journal):
            undo()


class Table(Generic[RecordT]):
    """Keyed collection of pydantic records with undo journaling."""

    def __init__(self, database: Database, key_field: str):
        self._db = database
        self._key_field = key_field
        self._rows: Dict[str, RecordT] = {}

    def key_of(self, record: RecordT) -> str:
        return getattr(record, self._key_field)

    def insert(self, record: RecordT) -> None:
        """Insert a new row.

        Raises:
            ValueError: If the key already exists
        """
        key = self.key_of(record)
        with self._db.lock:
            if key in self._rows:
                raise ValueError(f"Row with {self._key_field}='{key}' already exists")
            self._rows[key] = record.model_copy(deep=True)
            self._db.record_undo(lambda: self._rows.pop(key, None))

    def replace(self, record: RecordT) -> bool:
        """Replace an existing row. Returns False if the key is unknown."""
        key = self.key_of(record)
        with self._db.lock:
            previous = self._rows.get(key)
            if previous is None:
                return False
            self._rows[key] = record.model_copy(deep=True)
            self._db.record_undo(lambda: self._rows.__setitem__(key, previous))
            return True

    def get(self, key: str) -> Optional[RecordT]:
        with self._db.lock:
            row = self._rows.get(key)
            return row.model_copy(deep=True) if row is not None else None

    def select(self, predicate: Optional[Callable[[RecordT], bool]] = None) -> List[RecordT]:
        """Return copies of all rows matching the predicate."""
        with self._db.lock:
            return [
                row.model_copy(deep=True)
                for row in self._rows.values()
                if predicate is None or predicate(row)
            ]

    def count(self, predicate: Optional[Callable[[RecordT], bool]] = None) -> int:
        with self._db.lock:
            if predicate is None:
                return len(self._rows)
            return sum(1 for row in self._rows.values() if predicate(row))

    def exists(self, key: str) -> bool:
        with self._db.lock:
            return key in self._rows

    def clear(self) -> int:
        """Remove every row. Not journaled. Returns the number removed."""
        with self._db.lock:
            removed = len(self._rows)
            self._rows.clear()
            return removed


# Global database instance
_database_instance: Optional[Database] = None
_database_lock = threading.Lock()


def get_database() -> Database:
    """Get global database instance (singleton)."""
    global _database_instance
    if _database_instance is None:
        with _database_lock:
            if _database_instance is None:
                _database_instance = Database()
    return _database_instance
