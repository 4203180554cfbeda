"""Audit log - append-only storage for administrator decisions.

Entries can be appended and read, never updated or deleted. The only way to
drop entries is clear(), used by the control API to reset local state.
"""

import threading
from typing import Callable, List, Optional

from provider_subscriptions.models.audit import AuditAction, AuditEntry
from provider_subscriptions.repositories.database import Database, get_database


class AuditLog:
    """Append-only audit entry storage, kept in insertion order."""

    def __init__(self, database: Optional[Database] = None):
        self._db = database if database is not None else get_database()
        self._entries: List[AuditEntry] = []

    def append(self, entry: AuditEntry) -> None:
        """Append an entry.

        Inside a transaction the entry is withdrawn again on rollback.
        """
        with self._db.lock:
            self._entries.append(entry)
            self._db.record_undo(lambda: self._entries.remove(entry))

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Defer callback until the surrounding transaction commits."""
        self._db.after_commit(callback)

    def get_recent(self, limit: int = 50) -> List[AuditEntry]:
        """Most recent entries first."""
        with self._db.lock:
            return list(reversed(self._entries))[:limit]

    def get_by_target(self, target_id: str) -> List[AuditEntry]:
        """Entries about one entity, oldest first."""
        with self._db.lock:
            return [e for e in self._entries if e.target_id == target_id]

    def get_by_action(self, action: AuditAction) -> List[AuditEntry]:
        with self._db.lock:
            return [e for e in self._entries if e.action == action]

    def count(self) -> int:
        with self._db.lock:
            return len(self._entries)

    def clear(self) -> int:
        """Drop every entry. Only used when resetting all local state."""
        with self._db.lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"AuditLog(entries={self.count()})"


# Global log instance
_log_instance: Optional[AuditLog] = None
_log_lock = threading.Lock()


def get_audit_log() -> AuditLog:
    """Get global audit log instance (singleton)."""
    global _log_instance
    if _log_instance is None:
        with _log_lock:
            if _log_instance is None:
                _log_instance = AuditLog()
    return _log_instance
