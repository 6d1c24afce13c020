import threading


class LocalLockBackend:
    """
    In-process lock backend.

    Keeps one `threading.Lock` per key. It only coordinates threads of a
    single process, which is enough for SQLite and single-worker
    deployments. Use PostgresAdvisoryLockBackend when several processes
    write to the same database.
    """

    def __init__(self, using: str = "default") -> None:
        self.using = using
        self._registry_guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_guard:
            lk = self._locks.get(key)
            if lk is None:
                lk = self._locks[key] = threading.Lock()
            return lk

    def acquire(self, key: str, timeout: float | None) -> bool:
        lk = self._lock_for(key)
        if timeout is None:
            return lk.acquire()
        return lk.acquire(timeout=max(timeout, 0))

    def release(self, key: str) -> None:
        with self._registry_guard:
            lk = self._locks.get(key)
        if lk is not None and lk.locked():
            lk.release()
