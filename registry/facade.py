"""
Registry Facade - the single entry point for external collaborators.

    registry = await create_registry(db_config, registry_config)
    await registry.list_categories()
    await registry.load_category("table")
    await registry.invoke("list_tables", {"schema": "public"})
    await registry.close()

Every entry point returns a ResponseEnvelope; only startup failures raise.
"""

import logging
from typing import Any, Dict, List, Optional

from config import DatabaseConfig, RegistryConfig
from database import ConnectionPool, PoolFactory
from models import Operation, ResponseEnvelope
from .catalogue import OperationCatalogue
from .dispatcher import Dispatcher
from .errors import RegistryError
from .loader import CategoryLoader, LoadListener, RegistrationTable
from .shaper import ResponseShaper, ShapeLimits

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Wires catalogue, registration state, loader, dispatcher and shaper
    around an explicitly passed pool. Several independent instances can
    coexist (no module-level state).
    """

    def __init__(
        self,
        catalogue: OperationCatalogue,
        pool: ConnectionPool,
        config: Optional[RegistryConfig] = None,
        secrets: tuple = (),
    ):
        self.config = config or RegistryConfig()
        self.catalogue = catalogue
        self.pool = pool
        self.registration = RegistrationTable(catalogue, self.config.essential_categories)
        self.loader = CategoryLoader(catalogue, self.registration)
        self.shaper = ResponseShaper(ShapeLimits.from_config(self.config), secrets=secrets)
        self.dispatcher = Dispatcher(
            catalogue,
            self.registration,
            pool,
            self.shaper,
            confirm_field=self.config.confirm_field,
            execution_timeout=self.config.execution_timeout,
        )

    def add_load_listener(self, listener: LoadListener):
        self.loader.add_listener(listener)

    async def list_categories(self) -> ResponseEnvelope:
        categories = [
            {
                "name": category.name,
                "description": category.description,
                "state": self.registration.state(category.name).value,
                "operations": [op.name for op in self.catalogue.operations_of(category.name)],
            }
            for category in self.catalogue.all_categories()
        ]
        return ResponseEnvelope.success({"kind": "categories", "categories": categories}, "list_categories")

    async def load_category(self, name: str) -> ResponseEnvelope:
        try:
            result = await self.loader.load(name)
        except RegistryError as e:
            return self.shaper.shape_error(e, "load_category")
        return ResponseEnvelope.success({"kind": "load", **result.to_dict()}, "load_category")

    async def invoke(self, operation_name: str, arguments: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        return await self.dispatcher.invoke(operation_name, arguments)

    def list_operations(self) -> List[Operation]:
        """Operations currently invocable, in catalogue order."""
        return [
            self.catalogue.operation(name)
            for name in self.loader.registered_operation_names()
        ]

    def pool_stats(self) -> Dict[str, Any]:
        return self.pool.stats()

    async def close(self, timeout: Optional[float] = None):
        """Drain the pool; later invocations get ShutdownInProgress."""
        await self.pool.drain(timeout=timeout)


async def create_registry(
    db_config: DatabaseConfig,
    registry_config: Optional[RegistryConfig] = None,
    catalogue: Optional[OperationCatalogue] = None,
    create_pool: Optional[PoolFactory] = None,
) -> ToolRegistry:
    """
    Build the catalogue, open the pool and return a ready registry.

    Raises CatalogueError or PoolStartupError; nothing is reachable when
    startup fails.
    """
    registry_config = registry_config or RegistryConfig()
    if catalogue is None:
        from tools import build_catalogue
        catalogue = build_catalogue(confirm_field=registry_config.confirm_field)

    pool = ConnectionPool.from_config(db_config, create_pool=create_pool)
    await pool.open()
    try:
        registry = ToolRegistry(catalogue, pool, registry_config, secrets=(db_config.password,))
    except Exception:
        await pool.drain()
        raise
    logger.info(
        f"Tool registry ready: {len(catalogue)} operations, "
        f"preloaded categories: {', '.join(registry.registration.registered_categories()) or 'none'}"
    )
    return registry
