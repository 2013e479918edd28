"""
Tests for invocation dispatch: resolution, validation, confirmation,
lease handling and error mapping
"""

import asyncio

import pytest

from models import Category, ErrorKind, Operation, RiskLevel, Scalar
from registry.catalogue import OperationCatalogue
from registry.dispatcher import Dispatcher
from registry.loader import RegistrationTable
from registry.shaper import ResponseShaper
from tests.conftest import connections_used


@pytest.fixture
def dispatcher(catalogue, pool):
    table = RegistrationTable(catalogue, essential=("core", "table"))
    return Dispatcher(catalogue, table, pool, ResponseShaper(secrets=("s3cr3t-pass",)))


class TestResolution:

    @pytest.mark.asyncio
    async def test_unknown_operation_acquires_nothing(self, dispatcher, pool, monkeypatch):
        acquired = []
        original = pool.acquire

        async def counting_acquire(*args, **kwargs):
            acquired.append(1)
            return await original(*args, **kwargs)

        monkeypatch.setattr(pool, "acquire", counting_acquire)
        envelope = await dispatcher.invoke("no_such_operation", {})

        assert envelope.error_kind == ErrorKind.UNKNOWN_OPERATION
        assert acquired == []

    @pytest.mark.asyncio
    async def test_operation_of_unloaded_category(self, dispatcher, connector):
        envelope = await dispatcher.invoke("create_index", {})

        assert envelope.error_kind == ErrorKind.OPERATION_NOT_LOADED
        assert "load_category" in envelope.error_message
        assert connections_used(connector) == []


class TestValidationAndConfirmation:

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_execute(self, dispatcher, connector, pool):
        envelope = await dispatcher.invoke("create_table", {"table": "bad name"})

        assert envelope.error_kind == ErrorKind.INVALID_ARGUMENTS
        assert envelope.details[0]["path"] == "table"
        assert connections_used(connector) == []
        assert pool.outstanding == 0

    @pytest.mark.asyncio
    async def test_destructive_without_confirmation(self, dispatcher, connector, pool):
        before = pool.stats()
        envelope = await dispatcher.invoke("drop_table", {"table": "users"})

        assert envelope.error_kind == ErrorKind.CONFIRMATION_REQUIRED
        assert pool.stats() == before
        assert connections_used(connector) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("flag", [False, "true", 1])
    async def test_confirmation_must_be_literal_true(self, dispatcher, flag):
        envelope = await dispatcher.invoke("drop_table", {"table": "users", "confirm": flag})
        assert not envelope.ok

    @pytest.mark.asyncio
    async def test_destructive_with_confirmation_runs(self, dispatcher, connector):
        envelope = await dispatcher.invoke("drop_table", {"table": "users", "confirm": True})

        assert envelope.ok
        assert envelope.payload["action"] == "dropped"
        assert 'DROP TABLE "users"' in connections_used(connector)

    @pytest.mark.asyncio
    async def test_confirmation_flag_not_passed_to_operation(self, pool):
        received = {}

        async def body(conn, arguments):
            received.update(arguments)
            return Scalar("done")

        catalogue = OperationCatalogue(
            [Category("core", "")],
            [Operation("wipe", "core", "", {"type": "object", "properties": {}}, RiskLevel.DESTRUCTIVE, body)],
        )
        dispatcher = Dispatcher(catalogue, RegistrationTable(catalogue, ("core",)), pool, ResponseShaper())

        envelope = await dispatcher.invoke("wipe", {"confirm": True})

        assert envelope.ok
        assert received == {}


class TestExecution:

    @pytest.mark.asyncio
    async def test_success_releases_lease(self, dispatcher, pool):
        envelope = await dispatcher.invoke("list_tables", {})

        assert envelope.ok
        assert envelope.payload["kind"] == "rows"
        assert pool.outstanding == 0

    @pytest.mark.asyncio
    async def test_read_runs_in_readonly_transaction(self, dispatcher, connector):
        await dispatcher.invoke("list_tables", {})
        await dispatcher.invoke("create_table", {"table": "t"})

        transactions = [flag for connection in connector.opened for flag in connection.transactions]
        assert transactions == [True, False]

    @pytest.mark.asyncio
    async def test_failure_is_invocation_scoped(self, dispatcher, pool, connector):
        envelope = await dispatcher.invoke("fail", {})

        assert envelope.error_kind == ErrorKind.EXECUTION_FAILURE
        assert "list_tables" in envelope.error_message
        assert pool.outstanding == 0
        # The connection is healthy and reused
        assert not connector.opened[0].terminated
        assert (await dispatcher.invoke("ping", {})).ok

    @pytest.mark.asyncio
    async def test_connection_error_discards_connection(self, dispatcher, pool, connector):
        envelope = await dispatcher.invoke("lose_connection", {})

        assert envelope.error_kind == ErrorKind.EXECUTION_FAILURE
        assert connector.opened[0].terminated
        assert pool.outstanding == 0

        assert (await dispatcher.invoke("ping", {})).ok
        assert len(connector.opened) == 2

    @pytest.mark.asyncio
    async def test_execution_timeout(self, pool, connector):
        async def slow(conn, arguments):
            await asyncio.sleep(5)

        catalogue = OperationCatalogue(
            [Category("core", "")],
            [Operation("slow", "core", "", {"type": "object", "properties": {}}, RiskLevel.READ, slow)],
        )
        dispatcher = Dispatcher(
            catalogue, RegistrationTable(catalogue, ("core",)), pool, ResponseShaper(), execution_timeout=0.05
        )

        envelope = await dispatcher.invoke("slow", {})

        assert envelope.error_kind == ErrorKind.EXECUTION_FAILURE
        assert "did not finish" in envelope.error_message
        assert pool.outstanding == 0
        assert connector.opened[0].terminated

    @pytest.mark.asyncio
    async def test_command_timeout_without_execution_timeout(self, pool, connector):
        async def slow(conn, arguments):
            # What asyncpg raises when command_timeout expires
            raise asyncio.TimeoutError()

        catalogue = OperationCatalogue(
            [Category("core", "")],
            [Operation("slow", "core", "", {"type": "object", "properties": {}}, RiskLevel.READ, slow)],
        )
        dispatcher = Dispatcher(
            catalogue, RegistrationTable(catalogue, ("core",)), pool, ResponseShaper(), execution_timeout=None
        )

        envelope = await dispatcher.invoke("slow", {})

        assert envelope.error_kind == ErrorKind.EXECUTION_FAILURE
        assert envelope.error_message == "slow timed out"
        assert pool.outstanding == 0
        assert connector.opened[0].terminated

    @pytest.mark.asyncio
    async def test_pool_exhausted_is_retryable(self, dispatcher, pool):
        leases = [await pool.acquire(), await pool.acquire()]

        envelope = await dispatcher.invoke("ping", {})

        assert envelope.error_kind == ErrorKind.POOL_EXHAUSTED
        assert envelope.retryable is True
        for lease in leases:
            await pool.release(lease)

    @pytest.mark.asyncio
    async def test_shutdown_rejects_invocations(self, dispatcher, pool):
        await pool.drain()

        envelope = await dispatcher.invoke("ping", {})

        assert envelope.error_kind == ErrorKind.SHUTDOWN_IN_PROGRESS

    @pytest.mark.asyncio
    async def test_concurrent_invocations_hold_one_lease_each(self, pool):
        peak = []
        gate = asyncio.Event()

        async def body(conn, arguments):
            peak.append(pool.outstanding)
            await gate.wait()
            return Scalar(1)

        catalogue = OperationCatalogue(
            [Category("core", "")],
            [Operation("wait", "core", "", {"type": "object", "properties": {}}, RiskLevel.READ, body)],
        )
        dispatcher = Dispatcher(catalogue, RegistrationTable(catalogue, ("core",)), pool, ResponseShaper())

        tasks = [asyncio.create_task(dispatcher.invoke("wait", {})) for _ in range(2)]
        await asyncio.sleep(0.02)
        gate.set()
        envelopes = await asyncio.gather(*tasks)

        assert all(envelope.ok for envelope in envelopes)
        assert max(peak) == 2
        assert pool.outstanding == 0

    @pytest.mark.asyncio
    async def test_cancelled_invocation_releases_lease(self, pool):
        started = asyncio.Event()

        async def body(conn, arguments):
            started.set()
            await asyncio.sleep(10)

        catalogue = OperationCatalogue(
            [Category("core", "")],
            [Operation("hang", "core", "", {"type": "object", "properties": {}}, RiskLevel.READ, body)],
        )
        dispatcher = Dispatcher(catalogue, RegistrationTable(catalogue, ("core",)), pool, ResponseShaper())

        task = asyncio.create_task(dispatcher.invoke("hang", {}))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert pool.outstanding == 0


class TestSqlArgumentChecks:
    """Query and expression checks run during validation, before any lease."""

    @pytest.fixture
    def shipped(self, pool):
        from tools import build_catalogue

        catalogue = build_catalogue()
        table = RegistrationTable(catalogue, essential=("query", "column", "policy"))
        return Dispatcher(catalogue, table, pool, ResponseShaper())

    @pytest.mark.asyncio
    async def test_write_query_rejected_before_lease(self, shipped, pool, connector, monkeypatch):
        acquired = []
        original = pool.acquire

        async def counting_acquire(*args, **kwargs):
            acquired.append(1)
            return await original(*args, **kwargs)

        monkeypatch.setattr(pool, "acquire", counting_acquire)
        before = pool.stats()

        envelope = await shipped.invoke("execute_query", {"query": "DELETE FROM t"})

        assert envelope.error_kind == ErrorKind.INVALID_ARGUMENTS
        assert envelope.details[0]["code"] == "READ_ONLY_VIOLATION"
        assert acquired == []
        assert pool.stats() == before
        assert connections_used(connector) == []

    @pytest.mark.asyncio
    async def test_explain_prefix_rejected_before_lease(self, shipped, pool, connector):
        before = pool.stats()

        envelope = await shipped.invoke("explain_query", {"query": "EXPLAIN SELECT 1"})

        assert envelope.error_kind == ErrorKind.INVALID_ARGUMENTS
        assert envelope.details[0]["code"] == "INVALID_QUERY"
        assert pool.stats() == before
        assert connections_used(connector) == []

    @pytest.mark.asyncio
    async def test_stacked_statement_in_default_never_runs(self, shipped, connector):
        envelope = await shipped.invoke("add_column", {
            "table": "t", "column": "c", "type": "integer", "default": "0; DROP TABLE users",
        })

        assert envelope.error_kind == ErrorKind.INVALID_ARGUMENTS
        assert envelope.details[0]["path"] == "default"
        assert connections_used(connector) == []

    @pytest.mark.asyncio
    async def test_stacked_statement_in_policy_check_never_runs(self, shipped, connector):
        envelope = await shipped.invoke("create_policy", {
            "table": "docs", "name": "p", "check": "true); DROP TABLE users; --",
        })

        assert envelope.error_kind == ErrorKind.INVALID_ARGUMENTS
        assert envelope.details[0]["path"] == "check"
        assert connections_used(connector) == []
