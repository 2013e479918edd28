"""
Dispatcher - resolves, validates and executes one invocation.

Steps (strictly sequential within an invocation):
1. resolve the name (UnknownOperation / OperationNotLoaded)
2. validate arguments against the input schema (InvalidArguments)
3. destructive operations need the confirmation flag (ConfirmationRequired)
4. acquire exactly one lease (PoolExhausted / ShutdownInProgress)
5. execute with that lease, inside a transaction unless the operation opts out
6. release the lease on every exit path, then shape the result

Operation bodies only see the leased connection, never the pool, so an
invocation can not hold more than one lease.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import asyncpg

from database import ConnectionLease, ConnectionPool
from models import Operation, RawResult, ResponseEnvelope, RiskLevel
from utils.error_messages import enhance_error_message
from .catalogue import OperationCatalogue
from .errors import ConfirmationRequired, ExecutionFailure, OperationNotLoaded, RegistryError
from .loader import RegistrationTable
from .shaper import ResponseShaper
from .validators import validate_arguments

logger = logging.getLogger(__name__)

# Failures after which the connection itself can not be trusted
CONNECTION_ERRORS = (
    asyncpg.InterfaceError,
    asyncpg.PostgresConnectionError,
    ConnectionError,
    OSError,
)


class Dispatcher:

    def __init__(
        self,
        catalogue: OperationCatalogue,
        table: RegistrationTable,
        pool: ConnectionPool,
        shaper: ResponseShaper,
        confirm_field: str = "confirm",
        execution_timeout: Optional[float] = None,
    ):
        self._catalogue = catalogue
        self._table = table
        self._pool = pool
        self._shaper = shaper
        self._confirm_field = confirm_field
        self._execution_timeout = execution_timeout

    def resolve(self, name: str) -> Operation:
        operation = self._catalogue.operation(name)
        if not self._table.is_registered(operation.category):
            raise OperationNotLoaded(name, operation.category)
        return operation

    def _check_confirmation(self, operation: Operation, arguments: Dict[str, Any]) -> Dict[str, Any]:
        if not operation.is_destructive:
            return arguments
        if arguments.get(self._confirm_field) is not True:
            raise ConfirmationRequired(operation.name, self._confirm_field)
        # The flag is for the dispatcher, not the operation body
        return {key: value for key, value in arguments.items() if key != self._confirm_field}

    async def invoke(self, name: str, raw_arguments: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        try:
            operation = self.resolve(name)
            arguments = validate_arguments(operation.input_schema, raw_arguments, operation.name)
            arguments = self._check_confirmation(operation, arguments)

            async with self._pool.lease() as lease:
                raw = await self._execute(operation, arguments, lease)
        except RegistryError as e:
            logger.info(f"Invocation of {name} failed: {e.kind.value}")
            return self._shaper.shape_error(e, name)

        return self._shaper.shape(raw, name)

    async def _execute(self, operation: Operation, arguments: Dict[str, Any], lease: ConnectionLease) -> RawResult:
        logger.debug(f"Executing {operation.name} on lease {lease.lease_id}")
        try:
            if self._execution_timeout is None:
                return await self._run(operation, arguments, lease.connection)
            return await asyncio.wait_for(
                self._run(operation, arguments, lease.connection),
                timeout=self._execution_timeout,
            )
        except asyncio.TimeoutError as e:
            # Either execution_timeout or asyncpg's own command_timeout
            lease.discard()
            if self._execution_timeout is None:
                message = f"{operation.name} timed out"
            else:
                message = f"{operation.name} did not finish within {self._execution_timeout:g}s"
            logger.warning(message)
            raise ExecutionFailure(message, cause=e) from e
        except CONNECTION_ERRORS as e:
            lease.discard()
            logger.error(f"Connection failure during {operation.name}: {e}", exc_info=True)
            raise ExecutionFailure(
                self._shaper.sanitize(f"Database connection failed: {e}"), cause=e
            ) from e
        except RegistryError:
            raise
        except Exception as e:
            logger.error(f"Error executing {operation.name}: {e}", exc_info=True)
            raise ExecutionFailure(self._shaper.sanitize(enhance_error_message(e)), cause=e) from e

    async def _run(self, operation: Operation, arguments: Dict[str, Any], connection) -> RawResult:
        if not operation.transactional:
            return await operation.execute(connection, arguments)
        readonly = operation.risk_level == RiskLevel.READ
        async with connection.transaction(readonly=readonly):
            return await operation.execute(connection, arguments)
