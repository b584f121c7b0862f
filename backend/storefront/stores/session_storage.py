from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, Optional

from sqlalchemy.orm import sessionmaker

from storefront.db import SessionLocal
from storefront.models.guest_session import GuestSessionEntry
from storefront.utils.clock import utcnow
from storefront.utils.log import get_logger

log = get_logger("storefront.session", "SESSION")


class SessionStorage(ABC):
    """String key/value storage scoped to one browsing session."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class InMemorySessionStorage(SessionStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class DatabaseSessionStorage(SessionStorage):
    """
    Session storage persisted in the ``guest_session_entries`` table.

    Every call runs in its own short-lived session so writes are committed and
    visible immediately. Entries untouched for longer than ``ttl_seconds`` are
    treated as gone, the same way a browser drops sessionStorage once the
    session ends.
    """

    def __init__(
        self,
        session_id: str,
        session_factory: sessionmaker = SessionLocal,
        ttl_seconds: Optional[int] = None,
    ):
        if not session_id:
            raise ValueError("session_id is required")
        self.session_id = session_id
        self._session_factory = session_factory
        self.ttl_seconds = ttl_seconds

    def _expired(self, entry: GuestSessionEntry) -> bool:
        if not self.ttl_seconds:
            return False
        return entry.updated_at < utcnow() - timedelta(seconds=self.ttl_seconds)

    def _query(self, s, key: str):
        return s.query(GuestSessionEntry).filter(
            GuestSessionEntry.session_id == self.session_id,
            GuestSessionEntry.key == key,
        )

    def get_item(self, key: str) -> Optional[str]:
        with self._session_factory() as s:
            entry = self._query(s, key).first()
            if entry is None or self._expired(entry):
                return None
            return entry.value

    def set_item(self, key: str, value: str) -> None:
        with self._session_factory() as s:
            entry = self._query(s, key).first()
            if entry is None:
                s.add(GuestSessionEntry(session_id=self.session_id, key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = utcnow()
            s.commit()

    def remove_item(self, key: str) -> None:
        with self._session_factory() as s:
            self._query(s, key).delete(synchronize_session=False)
            s.commit()


def purge_expired_sessions(
    ttl_seconds: int, session_factory: sessionmaker = SessionLocal
) -> int:
    """Delete session entries idle for longer than ``ttl_seconds``; returns the row count."""
    cutoff = utcnow() - timedelta(seconds=ttl_seconds)
    with session_factory() as s:
        deleted = (
            s.query(GuestSessionEntry)
            .filter(GuestSessionEntry.updated_at < cutoff)
            .delete(synchronize_session=False)
        )
        s.commit()
    if deleted:
        log.info("purged %s expired guest session entries", deleted)
    return deleted
