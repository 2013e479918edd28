"""
Operation Catalogue - static definition of every operation.

Built once at startup from a fixed list of categories and operations and
read-only afterwards, so lookups need no synchronization. Construction
fails with CatalogueError instead of producing a partially valid catalogue.
"""

import logging
from copy import deepcopy
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from models import Category, Operation, RiskLevel
from .errors import CatalogueError, UnknownCategory, UnknownOperation
from .validators import check_schema

logger = logging.getLogger(__name__)


def _with_confirmation(schema: Mapping, confirm_field: str) -> dict:
    """Add the optional confirmation flag destructive operations are checked for."""
    schema = deepcopy(dict(schema))
    properties = schema.setdefault("properties", {})
    properties.setdefault(confirm_field, {
        "type": "boolean",
        "description": "Must be true to run this destructive operation.",
    })
    return schema


class OperationCatalogue:
    """
    Immutable catalogue of categories and their operations.

    Categories keep declaration order; every operation belongs to exactly
    one declared category.
    """

    def __init__(
        self,
        categories: Sequence[Category],
        operations: Iterable[Operation],
        confirm_field: str = "confirm",
    ):
        self.confirm_field = confirm_field
        members: Dict[str, List[str]] = {}
        descriptions: Dict[str, str] = {}

        for category in categories:
            if category.name in descriptions:
                raise CatalogueError(f"Duplicate category '{category.name}'")
            descriptions[category.name] = category.description
            members[category.name] = []

        ops: Dict[str, Operation] = {}
        for operation in operations:
            if operation.name in ops:
                raise CatalogueError(f"Duplicate operation '{operation.name}'")
            if operation.category not in members:
                raise CatalogueError(
                    f"Operation '{operation.name}' names undeclared category '{operation.category}'"
                )
            if not isinstance(operation.risk_level, RiskLevel):
                raise CatalogueError(f"Operation '{operation.name}' has invalid risk level {operation.risk_level!r}")
            problems = check_schema(operation.input_schema)
            if problems:
                raise CatalogueError(f"Operation '{operation.name}' has a malformed input schema: {'; '.join(problems)}")

            schema = deepcopy(dict(operation.input_schema))
            if operation.is_destructive:
                schema = _with_confirmation(schema, confirm_field)
            ops[operation.name] = replace(operation, input_schema=MappingProxyType(schema))
            members[operation.category].append(operation.name)

        for category in categories:
            declared = set(category.member_operation_names)
            if declared and declared != set(members[category.name]):
                raise CatalogueError(
                    f"Category '{category.name}' declares members {sorted(declared)} "
                    f"but operations {sorted(members[category.name])} name it"
                )

        self._categories: Tuple[Category, ...] = tuple(
            Category(
                name=category.name,
                description=descriptions[category.name],
                member_operation_names=frozenset(members[category.name]),
            )
            for category in categories
        )
        self._category_index: Mapping[str, Category] = MappingProxyType(
            {category.name: category for category in self._categories}
        )
        self._member_order: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {name: tuple(names) for name, names in members.items()}
        )
        self._operations: Mapping[str, Operation] = MappingProxyType(ops)

        logger.info(f"Catalogue built: {len(self._categories)} categories, {len(self._operations)} operations")

    def all_categories(self) -> Tuple[Category, ...]:
        """Categories in declaration order."""
        return self._categories

    def category_names(self) -> List[str]:
        return [category.name for category in self._categories]

    def category(self, name: str) -> Category:
        try:
            return self._category_index[name]
        except KeyError:
            raise UnknownCategory(name, self.category_names()) from None

    def operations_of(self, category_name: str) -> Tuple[Operation, ...]:
        """Operations of a category, in declaration order."""
        if category_name not in self._category_index:
            raise UnknownCategory(category_name, self.category_names())
        return tuple(self._operations[name] for name in self._member_order[category_name])

    def operation(self, name: str) -> Operation:
        try:
            return self._operations[name]
        except KeyError:
            raise UnknownOperation(name) from None

    def has_operation(self, name: str) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)
