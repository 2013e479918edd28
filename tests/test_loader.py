"""
Tests for lazy category registration
"""

import asyncio

import pytest

from models import RegistrationState
from registry.errors import UnknownCategory
from registry.loader import CategoryLoader, RegistrationTable


@pytest.fixture
def table(catalogue):
    return RegistrationTable(catalogue, essential=("core",))


@pytest.fixture
def loader(catalogue, table):
    return CategoryLoader(catalogue, table)


class TestRegistrationTable:

    def test_essential_categories_start_registered(self, table):
        assert table.state("core") == RegistrationState.REGISTERED
        assert table.state("table") == RegistrationState.UNREGISTERED
        assert table.registered_categories() == ["core"]

    def test_unknown_essential_category_rejected(self, catalogue):
        with pytest.raises(UnknownCategory):
            RegistrationTable(catalogue, essential=("bogus",))

    def test_state_of_unknown_category(self, table):
        with pytest.raises(UnknownCategory):
            table.state("bogus")


class TestCategoryLoader:

    @pytest.mark.asyncio
    async def test_load_reports_newly_invocable(self, loader, table):
        result = await loader.load("table")

        assert not result.already_loaded
        assert result.newly_invocable[:2] == ("list_tables", "create_table")
        assert table.is_registered("table")

    @pytest.mark.asyncio
    async def test_second_load_is_a_no_op(self, loader):
        await loader.load("table")
        result = await loader.load("table")

        assert result.already_loaded
        assert result.newly_invocable == ()

    @pytest.mark.asyncio
    async def test_loading_essential_category_reports_nothing_new(self, loader):
        result = await loader.load("core")
        assert result.already_loaded

    @pytest.mark.asyncio
    async def test_unknown_category_registers_nothing(self, loader, table):
        with pytest.raises(UnknownCategory):
            await loader.load("bogus")
        assert table.registered_categories() == ["core"]

    @pytest.mark.asyncio
    async def test_no_cascade(self, loader, table):
        await loader.load("table")
        assert not table.is_registered("index")

    @pytest.mark.asyncio
    async def test_concurrent_loads_report_once(self, loader):
        results = await asyncio.gather(*(loader.load("table") for _ in range(10)))

        fresh = [result for result in results if not result.already_loaded]
        assert len(fresh) == 1
        assert all(result.newly_invocable == () for result in results if result.already_loaded)

    @pytest.mark.asyncio
    async def test_listeners_called_once_per_transition(self, loader):
        seen = []

        async def async_listener(result):
            seen.append(("async", result.category))

        loader.add_listener(lambda result: seen.append(("sync", result.category)))
        loader.add_listener(async_listener)

        await loader.load("index")
        await loader.load("index")

        assert seen == [("sync", "index"), ("async", "index")]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_load(self, loader, table):
        def broken(result):
            raise RuntimeError("listener failed")

        loader.add_listener(broken)
        result = await loader.load("index")

        assert not result.already_loaded
        assert table.is_registered("index")

    @pytest.mark.asyncio
    async def test_registered_operation_names_follow_catalogue_order(self, loader):
        await loader.load("index")
        await loader.load("table")

        names = loader.registered_operation_names()
        assert names[0] == "ping"
        assert names[1] == "list_tables"
        assert names[-1] == "create_index"
