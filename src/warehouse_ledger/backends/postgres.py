import time

from django.db import connections

from ..keys import key_to_int64


class PostgresAdvisoryLockBackend:
    """
    PostgreSQL advisory lock backend.

    Serializes writes per warehouse using PostgreSQL's session-level advisory
    locks, identified by a 64-bit integer derived from the lock key.

    Key properties
    --------------
    - Connection-scoped: the lock belongs to the current thread's database
      connection. If the connection dies, PostgreSQL releases the lock.
    - Non-transactional: the lock is taken before the ledger opens its
      transaction and released after it commits, so the next holder always
      reads committed occupancy.
    - Global visibility: all workers connected to the same database compete
      for the same lock ids.

    Timeout behavior
    ----------------
    - timeout=None:
        Blocks until the lock is acquired (pg_advisory_lock).

    - timeout=float:
        Polls pg_try_advisory_lock until the deadline, so the connection is
        never stuck waiting inside PostgreSQL.
    """

    poll_interval = 0.05

    def __init__(self, using: str = "default") -> None:
        self.using = using

    def acquire(self, key: str, timeout: float | None) -> bool:
        lock_id = key_to_int64(key)
        connection = connections[self.using]

        if timeout is None:
            with connection.cursor() as cursor:
                cursor.execute("SELECT pg_advisory_lock(%s);", [lock_id])
            return True

        deadline = time.monotonic() + timeout

        while True:
            with connection.cursor() as cursor:
                cursor.execute("SELECT pg_try_advisory_lock(%s);", [lock_id])
                acquired = cursor.fetchone()[0]

            if acquired:
                return True
            if time.monotonic() >= deadline:
                return False

            time.sleep(self.poll_interval)

    def release(self, key: str) -> None:
        """
        Release the advisory lock for the given key.

        PostgreSQL ignores unlock requests for locks this connection does not
        hold, so this is safe to call from finally blocks.
        """
        lock_id = key_to_int64(key)

        with connections[self.using].cursor() as cursor:
            cursor.execute("SELECT pg_advisory_unlock(%s);", [lock_id])
