"""
Database connection management
Lease-based access to an asyncpg connection pool
"""

import asyncio
import asyncpg
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from contextlib import asynccontextmanager

from config import DatabaseConfig
from registry.errors import PoolExhausted, PoolStartupError, ShutdownInProgress

logger = logging.getLogger(__name__)

PoolFactory = Callable[[], Awaitable[Any]]


def asyncpg_pool_factory(config: DatabaseConfig) -> PoolFactory:
    """
    Build the factory that creates the asyncpg pool.

    This is the only place database connections are configured; the pool
    opens min_size connections up front and more on demand up to max_size.
    """
    async def _create_pool():
        return await asyncpg.create_pool(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
            command_timeout=config.command_timeout,
            ssl=config.ssl_setting,
        )

    return _create_pool


class ConnectionLease:
    """
    A borrowed pooled connection, owned by exactly one invocation.

    Call discard() when the connection errored on use; it is terminated on
    release and the pool opens a fresh one for the next acquire.
    """

    __slots__ = ("_connection", "_released", "_discard", "lease_id")

    def __init__(self, connection, lease_id: int):
        self._connection = connection
        self._released = False
        self._discard = False
        self.lease_id = lease_id

    @property
    def connection(self):
        if self._released:
            raise RuntimeError(f"Lease {self.lease_id} was already released")
        return self._connection

    @property
    def released(self) -> bool:
        return self._released

    @property
    def discarded(self) -> bool:
        return self._discard

    def discard(self):
        self._discard = True


class ConnectionPool:
    """
    Hands out leases on an asyncpg.Pool.

    - acquire() waits at most acquire_timeout (PoolExhausted otherwise)
    - discarded connections are terminated before going back to asyncpg,
      which replaces closed connections on the next acquire
    - drain() stops new leases, waits for outstanding ones, closes the pool
    """

    def __init__(self, create_pool: PoolFactory, acquire_timeout: float = 10.0):
        self._create_pool = create_pool
        self.acquire_timeout = acquire_timeout
        self._pool = None
        self._outstanding = 0
        self._lease_counter = 0
        self._draining = False
        self._closed = False
        self._all_returned = asyncio.Event()
        self._all_returned.set()

    @classmethod
    def from_config(cls, config: DatabaseConfig, create_pool: Optional[PoolFactory] = None) -> "ConnectionPool":
        return cls(create_pool or asyncpg_pool_factory(config), acquire_timeout=config.acquire_timeout)

    @property
    def outstanding(self) -> int:
        """Leases currently held by invocations."""
        return self._outstanding

    @property
    def size(self) -> int:
        """Open connections, idle or leased."""
        return self._pool.get_size() if self._pool is not None else 0

    @property
    def is_draining(self) -> bool:
        return self._draining

    async def open(self):
        """Create the underlying pool. Failing to connect is fatal."""
        if self._pool is not None:
            logger.warning("Connection pool already opened")
            return

        try:
            self._pool = await self._create_pool()
        except Exception as e:
            logger.error(f"❌ Failed to connect to database: {e}")
            raise PoolStartupError(f"Could not open initial database connection: {type(e).__name__}") from e

        logger.info(f"✅ Connection pool opened ({self._pool.get_size()} connections, max {self._pool.get_max_size()})")

    async def acquire(self, timeout: Optional[float] = None) -> ConnectionLease:
        """
        Borrow one connection.

        Raises PoolExhausted if none frees up in time, ShutdownInProgress
        while draining.
        """
        if self._draining or self._closed or self._pool is None:
            raise ShutdownInProgress()

        wait = self.acquire_timeout if timeout is None else timeout
        try:
            connection = await self._pool.acquire(timeout=wait)
        except asyncio.TimeoutError:
            logger.warning(f"Pool exhausted: no connection within {wait}s ({self._outstanding} leases out)")
            raise PoolExhausted(wait)

        self._lease_counter += 1
        self._outstanding += 1
        self._all_returned.clear()
        lease = ConnectionLease(connection, self._lease_counter)
        logger.debug(f"Lease {lease.lease_id} acquired (outstanding: {self._outstanding})")
        return lease

    async def release(self, lease: ConnectionLease, discard: bool = False):
        """Return a lease to the pool. Releasing twice is a no-op."""
        if lease.released:
            return
        connection = lease._connection
        lease._released = True
        lease._connection = None

        # Bookkeeping first: a cancelled release must still count as returned
        self._outstanding -= 1
        if self._outstanding == 0:
            self._all_returned.set()

        if self._closed:
            # Late return after drain() gave up and terminated the pool
            connection.terminate()
            return
        if discard or lease.discarded:
            connection.terminate()
            logger.info(f"Discarded connection from lease {lease.lease_id}")
        await self._pool.release(connection)
        logger.debug(f"Lease {lease.lease_id} released (outstanding: {self._outstanding})")

    @asynccontextmanager
    async def lease(self, timeout: Optional[float] = None):
        """
        Borrow a connection for the duration of a block.

        Usage:
            async with pool.lease() as lease:
                rows = await lease.connection.fetch("SELECT 1")
        """
        lease = await self.acquire(timeout=timeout)
        try:
            yield lease
        except asyncio.CancelledError:
            # Connection state is unknown after an interrupted query
            lease.discard()
            raise
        finally:
            await self.release(lease)

    async def drain(self, timeout: Optional[float] = None):
        """Stop issuing leases, wait for outstanding ones, then close the pool."""
        if self._closed:
            return
        self._draining = True
        logger.info(f"Draining connection pool ({self._outstanding} leases outstanding)")

        try:
            await asyncio.wait_for(self._all_returned.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self._outstanding} leases still out after {timeout}s; terminating pool")
            self._closed = True
            self._pool.terminate()
            return

        self._closed = True
        if self._pool is not None:
            await self._pool.close()
        logger.info("Database connection pool closed")

    def stats(self) -> Dict[str, Any]:
        """Pool statistics for monitoring."""
        if self._closed:
            status = "closed"
        elif self._draining:
            status = "draining"
        elif self._pool is not None:
            status = "open"
        else:
            status = "not_opened"
        opened = self._pool is not None and not self._closed
        return {
            "status": status,
            "size": self._pool.get_size() if opened else 0,
            "idle": self._pool.get_idle_size() if opened else 0,
            "outstanding": self._outstanding,
            "max_size": self._pool.get_max_size() if self._pool is not None else 0,
        }
