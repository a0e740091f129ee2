import threading
from contextlib import contextmanager

from models import db, User


class OwnerLockRegistry:
    """Hands out one lock per owner id, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def lock_for(self, owner_id):
        with self._guard:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[owner_id] = lock
            return lock


_registry = OwnerLockRegistry()


@contextmanager
def owner_write_lock(owner_id):
    """
    Serialize check-then-write sequences for one owner.

    The in-process lock covers threads of this worker; the owner row lock covers
    other workers on databases that honour SELECT ... FOR UPDATE (SQLite ignores
    it). The request's open transaction is ended before the row lock is taken,
    so reads inside the block see rows committed by the previous lock holder even
    under snapshot isolation (MySQL REPEATABLE READ). Pending changes are
    committed at that point. The caller must commit or roll back inside the block.
    """
    with _registry.lock_for(owner_id):
        db.session.commit()
        db.session.query(User.id).filter(User.id == owner_id).with_for_update().first()
        yield
