"""
Category Loader - lazy registration of catalogue categories.

RegistrationTable holds the per-category state. Its only mutation is the
unregistered -> registered transition, performed by CategoryLoader under
that category's own lock so exactly one concurrent caller observes the
newly invocable operations. There is no lock spanning categories.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

from models import LoadResult, RegistrationState
from .catalogue import OperationCatalogue

logger = logging.getLogger(__name__)

LoadListener = Callable[[LoadResult], Union[None, Awaitable[None]]]


class RegistrationTable:
    """Per-category registration state, owned by the registry facade."""

    def __init__(self, catalogue: OperationCatalogue, essential: Iterable[str] = ()):
        self._catalogue = catalogue
        self._states: Dict[str, RegistrationState] = {
            category.name: RegistrationState.UNREGISTERED
            for category in catalogue.all_categories()
        }
        self._locks: Dict[str, asyncio.Lock] = {name: asyncio.Lock() for name in self._states}

        for name in essential:
            # Raises UnknownCategory for a misconfigured essential set
            catalogue.category(name)
            self._states[name] = RegistrationState.REGISTERED
            logger.info(f"Essential category preloaded: {name}")

    def state(self, category: str) -> RegistrationState:
        self._catalogue.category(category)
        return self._states[category]

    def is_registered(self, category: str) -> bool:
        return self._states.get(category) == RegistrationState.REGISTERED

    def registered_categories(self) -> List[str]:
        return [name for name, state in self._states.items() if state == RegistrationState.REGISTERED]

    def lock_for(self, category: str) -> asyncio.Lock:
        return self._locks[category]

    def _mark_registered(self, category: str):
        self._states[category] = RegistrationState.REGISTERED


class CategoryLoader:
    """
    Materializes a category's operations at most once per process.

    load() on a registered category is a no-op that reports nothing new;
    unknown categories raise UnknownCategory and register nothing. Loading
    never cascades into other categories.
    """

    def __init__(self, catalogue: OperationCatalogue, table: RegistrationTable):
        self._catalogue = catalogue
        self._table = table
        self._listeners: List[LoadListener] = []

    def add_listener(self, listener: LoadListener):
        """Called after a category actually transitions to registered."""
        self._listeners.append(listener)

    async def load(self, category_name: str) -> LoadResult:
        operations = self._catalogue.operations_of(category_name)

        async with self._table.lock_for(category_name):
            if self._table.is_registered(category_name):
                logger.debug(f"Category '{category_name}' already loaded")
                return LoadResult(category=category_name, newly_invocable=(), already_loaded=True)
            self._table._mark_registered(category_name)

        result = LoadResult(
            category=category_name,
            newly_invocable=tuple(operation.name for operation in operations),
            already_loaded=False,
        )
        logger.info(f"📦 Loaded category '{category_name}': {', '.join(result.newly_invocable)}")
        await self._notify(result)
        return result

    async def _notify(self, result: LoadResult):
        for listener in self._listeners:
            try:
                outcome = listener(result)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                logger.warning(f"Load listener failed for category '{result.category}': {e}")

    def registered_operation_names(self, category: Optional[str] = None) -> List[str]:
        names = [category] if category else self._table.registered_categories()
        result = []
        for name in names:
            if self._table.is_registered(name):
                result.extend(operation.name for operation in self._catalogue.operations_of(name))
        return result
