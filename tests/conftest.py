"""
Pytest configuration and shared fixtures for pgtools MCP Server tests

APPROACH: In-memory fakes instead of a live PostgreSQL server
- FakeConnection mimics the asyncpg.Connection methods the handlers use
  and records every statement it receives
- FakePool follows the asyncpg.Pool contract (bounded, lazily opened,
  closed connections replaced on acquire)
- FakeConnector is FakePool's connection factory; it counts opens
- Each test builds its own pool / catalogue / registry (no shared state)
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import RegistryConfig
from database import ConnectionPool
from models import Category, Identifier, Operation, RiskLevel, RowSet, Scalar
from registry.catalogue import OperationCatalogue
from registry.facade import ToolRegistry


# ============================================================================
# Fake asyncpg objects
# ============================================================================

class FakeAttribute:
    def __init__(self, name: str):
        self.name = name


class FakeStatement:
    """Stands in for asyncpg.PreparedStatement."""

    def __init__(self, connection: "FakeConnection", sql: str):
        self._connection = connection
        self.sql = sql

    def get_attributes(self):
        return [FakeAttribute(name) for name in self._connection.columns]

    async def fetch(self, *args):
        self._connection.record(self.sql, args)
        self._connection.raise_if_scripted()
        return list(self._connection.rows)

    def get_statusmsg(self) -> str:
        return self._connection.status


class FakeConnection:
    """
    Records statements and returns scripted results.

    rows / columns / row / status configure what fetch, prepare, fetchrow
    and execute return; fail_with makes the next database call raise.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, status: str = "OK"):
        self.rows: List[Dict[str, Any]] = rows or []
        self.columns: List[str] = list(self.rows[0].keys()) if self.rows else []
        self.row: Optional[Dict[str, Any]] = None
        self.status = status
        self.fail_with: Optional[BaseException] = None
        self.executed: List[tuple] = []
        self.prepared: List[str] = []
        self.transactions: List[bool] = []
        self.closed = False
        self.terminated = False

    def record(self, sql: str, args: tuple):
        self.executed.append((sql, args))

    def raise_if_scripted(self):
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    @property
    def statements(self) -> List[str]:
        return [" ".join(sql.split()) for sql, _ in self.executed]

    async def fetch(self, sql: str, *args):
        self.record(sql, args)
        self.raise_if_scripted()
        return list(self.rows)

    async def fetchrow(self, sql: str, *args):
        self.record(sql, args)
        self.raise_if_scripted()
        if self.row is not None:
            return self.row
        return self.rows[0] if self.rows else None

    async def fetchval(self, sql: str, *args):
        row = await self.fetchrow(sql, *args)
        return next(iter(row.values())) if row else None

    async def execute(self, sql: str, *args):
        self.record(sql, args)
        self.raise_if_scripted()
        return self.status

    async def prepare(self, sql: str):
        self.prepared.append(" ".join(sql.split()))
        return FakeStatement(self, sql)

    @asynccontextmanager
    async def _transaction(self, readonly: bool):
        self.transactions.append(readonly)
        yield

    def transaction(self, readonly: bool = False, **kwargs):
        return self._transaction(readonly)

    def is_closed(self) -> bool:
        return self.closed or self.terminated

    async def close(self):
        self.closed = True

    def terminate(self):
        self.terminated = True


class FakeConnector:
    """Connection factory for FakePool; keeps every connection it opened."""

    def __init__(self, fail_after: Optional[int] = None):
        self.opened: List[FakeConnection] = []
        self.fail_after = fail_after

    async def __call__(self) -> FakeConnection:
        if self.fail_after is not None and len(self.opened) >= self.fail_after:
            raise ConnectionRefusedError("could not connect to server: Connection refused")
        connection = FakeConnection()
        self.opened.append(connection)
        return connection


class _FakeHolder:
    """One pool slot, like asyncpg's PoolConnectionHolder."""

    def __init__(self):
        self.connection: Optional[FakeConnection] = None
        self.in_use = False

    @property
    def live(self) -> bool:
        return self.connection is not None and not self.connection.is_closed()


class FakePool:
    """
    Stands in for asyncpg.Pool.

    Same contract as asyncpg: a LIFO queue of holders, acquire(timeout=)
    raises asyncio.TimeoutError, closed connections are replaced on the
    next acquire, close() closes every open connection.
    """

    def __init__(self, connector: "FakeConnector", min_size: int = 1, max_size: int = 2):
        self._connector = connector
        self._min_size = min_size
        self._max_size = max_size
        self._holders = [_FakeHolder() for _ in range(max_size)]
        self._queue: asyncio.LifoQueue = asyncio.LifoQueue()
        for holder in self._holders:
            self._queue.put_nowait(holder)
        self._leased: Dict[int, _FakeHolder] = {}
        self.closed = False
        self.terminated = False

    @classmethod
    def factory(cls, connector: "FakeConnector", min_size: int = 1, max_size: int = 2):
        """A create_pool callable for ConnectionPool."""
        async def _create():
            pool = cls(connector, min_size=min_size, max_size=max_size)
            await pool.connect_initial()
            return pool
        return _create

    async def connect_initial(self):
        # asyncpg connects from the end so the first acquire gets a live one
        opened = []
        try:
            for holder in reversed(self._holders[len(self._holders) - self._min_size:]):
                holder.connection = await self._connector()
                opened.append(holder.connection)
        except BaseException:
            for connection in opened:
                await connection.close()
            raise

    async def acquire(self, *, timeout: Optional[float] = None):
        holder = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        try:
            if not holder.live:
                holder.connection = await self._connector()
        except BaseException:
            self._queue.put_nowait(holder)
            raise
        holder.in_use = True
        self._leased[id(holder.connection)] = holder
        return holder.connection

    async def release(self, connection, *, timeout: Optional[float] = None):
        holder = self._leased.pop(id(connection))
        holder.in_use = False
        if connection.is_closed():
            holder.connection = None
        self._queue.put_nowait(holder)

    async def close(self):
        for holder in self._holders:
            if holder.live:
                await holder.connection.close()
        self.closed = True

    def terminate(self):
        for holder in self._holders:
            if holder.live:
                holder.connection.terminate()
        self.terminated = True

    def get_size(self) -> int:
        return sum(1 for holder in self._holders if holder.live)

    def get_idle_size(self) -> int:
        return sum(1 for holder in self._holders if holder.live and not holder.in_use)

    def get_max_size(self) -> int:
        return self._max_size


# ============================================================================
# Test catalogue
# ============================================================================

async def _ping(conn, arguments):
    return Scalar("pong")


async def _list_tables(conn, arguments):
    rows = await conn.fetch("SELECT table_name FROM tables WHERE schema = $1", arguments["schema"])
    return RowSet.from_records(rows, columns=("table_name",))


async def _create_table(conn, arguments):
    await conn.execute(f'CREATE TABLE "{arguments["table"]}" ()')
    return Identifier("table", arguments["table"], "created")


async def _drop_table(conn, arguments):
    await conn.execute(f'DROP TABLE "{arguments["table"]}"')
    return Identifier("table", arguments["table"], "dropped")


async def _generate_rows(conn, arguments):
    await conn.fetch("SELECT generate_series(1, $1)", arguments["count"])
    return RowSet(columns=("n",), rows=[{"n": i} for i in range(arguments["count"])])


async def _fail(conn, arguments):
    raise RuntimeError('relation "missing" does not exist')


async def _lose_connection(conn, arguments):
    raise ConnectionResetError("connection was closed in the middle of operation")


async def _create_index(conn, arguments):
    await conn.execute("CREATE INDEX")
    return Identifier("index", "idx", "created")


TABLE_ARG = {"type": "string", "format": "identifier", "description": "Table name"}
SCHEMA_ARG = {"type": "string", "format": "identifier", "default": "public"}


def make_test_catalogue() -> OperationCatalogue:
    """Small catalogue: core (essential), table, index."""
    categories = [
        Category("core", "Always available"),
        Category("table", "Table operations"),
        Category("index", "Index operations"),
    ]
    operations = [
        Operation("ping", "core", "Health check", {"type": "object", "properties": {}}, RiskLevel.READ, _ping),
        Operation(
            "list_tables", "table", "List tables",
            {"type": "object", "properties": {"schema": SCHEMA_ARG}},
            RiskLevel.READ, _list_tables,
        ),
        Operation(
            "create_table", "table", "Create a table",
            {"type": "object", "properties": {"table": TABLE_ARG}, "required": ["table"]},
            RiskLevel.WRITE, _create_table,
        ),
        Operation(
            "drop_table", "table", "Drop a table",
            {"type": "object", "properties": {"table": TABLE_ARG}, "required": ["table"]},
            RiskLevel.DESTRUCTIVE, _drop_table,
        ),
        Operation(
            "generate_rows", "table", "Return count rows",
            {"type": "object", "properties": {"count": {"type": "integer", "minimum": 0}}, "required": ["count"]},
            RiskLevel.READ, _generate_rows,
        ),
        Operation("fail", "table", "Always fails", {"type": "object", "properties": {}}, RiskLevel.READ, _fail),
        Operation(
            "lose_connection", "table", "Connection drops mid-query",
            {"type": "object", "properties": {}}, RiskLevel.READ, _lose_connection,
        ),
        Operation(
            "create_index", "index", "Create an index",
            {"type": "object", "properties": {}}, RiskLevel.WRITE, _create_index,
        ),
    ]
    return OperationCatalogue(categories, operations)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def catalogue():
    return make_test_catalogue()


@pytest_asyncio.fixture
async def pool(connector):
    """Opened pool of at most 2 connections with a short acquire timeout."""
    pool = ConnectionPool(FakePool.factory(connector, min_size=1, max_size=2), acquire_timeout=0.2)
    await pool.open()
    yield pool
    await pool.drain(timeout=1)


@pytest_asyncio.fixture
async def registry(catalogue, pool):
    """Registry over the test catalogue with core preloaded."""
    return ToolRegistry(catalogue, pool, RegistryConfig(max_rows=100), secrets=("s3cr3t-pass",))


def connections_used(connector: FakeConnector) -> List[str]:
    """Every statement any pooled connection received."""
    return [sql for connection in connector.opened for sql in connection.statements]
