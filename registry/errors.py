"""
Registry error taxonomy

Every error an invocation can hit is a RegistryError subclass carrying its
ErrorKind. These are converted to error envelopes at the dispatcher/facade
boundary; none of them aborts the process. CatalogueError and
PoolStartupError are the only fatal (startup) failures.
"""

from typing import Any, Dict, List, Optional

from models import ErrorKind


class RegistryError(Exception):
    """Base exception for invocation-scoped errors."""
    kind: ErrorKind = ErrorKind.EXECUTION_FAILURE
    retryable: bool = False

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UnknownCategory(RegistryError):
    kind = ErrorKind.UNKNOWN_CATEGORY

    def __init__(self, name: str, known: Optional[List[str]] = None):
        message = f"Unknown category '{name}'"
        if known:
            message += f". Valid categories: {', '.join(known)}"
        super().__init__(message)
        self.name = name


class UnknownOperation(RegistryError):
    kind = ErrorKind.UNKNOWN_OPERATION

    def __init__(self, name: str):
        super().__init__(f"Unknown operation '{name}'")
        self.name = name


class OperationNotLoaded(RegistryError):
    kind = ErrorKind.OPERATION_NOT_LOADED

    def __init__(self, name: str, category: str):
        super().__init__(
            f"Operation '{name}' belongs to category '{category}', which is not loaded. "
            f"Call load_category with category='{category}' first."
        )
        self.name = name
        self.category = category


class InvalidArguments(RegistryError):
    kind = ErrorKind.INVALID_ARGUMENTS

    def __init__(self, operation: str, violations: List[Dict[str, Any]]):
        summary = "; ".join(v["message"] for v in violations[:5])
        if len(violations) > 5:
            summary += f" (and {len(violations) - 5} more)"
        super().__init__(f"Invalid arguments for '{operation}': {summary}", details=violations)
        self.violations = violations


class ConfirmationRequired(RegistryError):
    kind = ErrorKind.CONFIRMATION_REQUIRED

    def __init__(self, operation: str, confirm_field: str):
        super().__init__(
            f"'{operation}' is destructive. Re-invoke with {confirm_field}=true to proceed."
        )
        self.confirm_field = confirm_field


class PoolExhausted(RegistryError):
    kind = ErrorKind.POOL_EXHAUSTED
    retryable = True

    def __init__(self, timeout: float):
        super().__init__(
            f"No database connection became available within {timeout:g}s. Retry after a short backoff."
        )
        self.timeout = timeout


class ShutdownInProgress(RegistryError):
    kind = ErrorKind.SHUTDOWN_IN_PROGRESS

    def __init__(self):
        super().__init__("Server is shutting down; no new database work is accepted.")


class ExecutionFailure(RegistryError):
    """The database (or the operation body) rejected the operation."""
    kind = ErrorKind.EXECUTION_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


# Fatal startup errors

class CatalogueError(Exception):
    """Catalogue failed to build."""


class PoolStartupError(Exception):
    """The pool could not open its initial connections."""
