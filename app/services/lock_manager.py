"""
Entity lock manager
Per-entity mutual exclusion held for the lifetime of one unit of work

Keys look like 'staff:12', 'shift:40', 'swap_request:7'. Within a process
a keyed table of re-entrant locks serializes writers; on PostgreSQL the
same key is also taken as a transaction-scoped advisory lock so writers in
other worker processes serialize too. Waits are bounded by
LOCK_TIMEOUT_SECONDS.
"""
import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, Optional

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.error_handlers.exceptions import LockTimeoutException

logger = logging.getLogger(__name__)


def staff_lock_key(staff_id) -> str:
    return f"staff:{staff_id}"


def shift_lock_key(shift_id) -> str:
    return f"shift:{shift_id}"


def swap_request_lock_key(request_id) -> str:
    return f"swap_request:{request_id}"


class _LockEntry:
    __slots__ = ('lock', 'holders')

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0


class EntityLockManager:
    """
    Keyed mutex table

    Entries are created on first use and dropped once nobody holds or waits
    on them, so the table only grows with concurrent activity.
    """

    def __init__(self):
        self._entries: Dict[str, _LockEntry] = {}
        self._guard = threading.Lock()

    def _checkout(self, key: str) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _LockEntry()
            entry.holders += 1
            return entry

    def _checkin(self, key: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    @contextmanager
    def hold(self, key: str, timeout: float) -> Iterator[None]:
        """
        Hold the lock for key until the block exits

        Raises:
            LockTimeoutException: If another holder keeps it past timeout
        """
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=timeout):
                logger.warning(f"Timed out after {timeout}s waiting for lock {key}")
                raise LockTimeoutException(
                    'This record is being changed by another user. Please try again.',
                    details={'lock': key}
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def active_keys(self):
        """Keys currently held or waited on"""
        with self._guard:
            return sorted(self._entries)


lock_manager = EntityLockManager()


def _is_postgres(session: Session) -> bool:
    return session.get_bind().dialect.name == 'postgresql'


def _take_advisory_locks(session: Session, keys, timeout: float) -> None:
    # lock_timeout also bounds pg_advisory_xact_lock waits
    session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'"))
    for key in keys:
        try:
            session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {'key': key})
        except OperationalError as e:
            raise LockTimeoutException(
                'This record is being changed by another user. Please try again.',
                details={'lock': key}
            ) from e


@contextmanager
def locked_transaction(session: Session, *keys: str, timeout: Optional[float] = None) -> Iterator[Session]:
    """
    Unit of work holding every key for its whole duration

    Keys are acquired in the order given. Session state is expired after
    the locks are held so every read inside sees committed data. Commits
    on success; rolls back and re-raises on any exception. Locks are
    released after commit/rollback.

    Usage:
        with locked_transaction(db.session, staff_lock_key(staff_id)):
            ...
    """
    if timeout is None:
        timeout = current_app.config.get('LOCK_TIMEOUT_SECONDS', 10)

    with ExitStack() as stack:
        for key in keys:
            stack.enter_context(lock_manager.hold(key, timeout))
        try:
            if _is_postgres(session):
                _take_advisory_locks(session, keys, timeout)
            session.expire_all()
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Unlocked unit of work: commit on success, roll back and re-raise on error"""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
