"""
Operation Catalogue Definitions

Categories (in the order they are listed to clients):
- core: database facts and schemas (preloaded)
- schema, table, column, index: DDL
- query: free-form SQL
- policy, role: row level security and access control
- function, storage: introspection and maintenance

Only core is registered at startup; the rest are loaded on demand via
load_category.
"""

from typing import List

from models import Category, Operation
from registry.catalogue import OperationCatalogue
from .core_tools import get_core_operations, get_schema_operations
from .function_tools import get_function_operations
from .index_tools import get_index_operations
from .policy_tools import get_policy_operations
from .query_tools import get_query_operations
from .role_tools import get_role_operations
from .storage_tools import get_storage_operations
from .table_tools import get_column_operations, get_table_operations

CATEGORIES = [
    Category("core", "Database facts and schema listing. Always available."),
    Category("schema", "Create and drop schemas."),
    Category("table", "List, describe, create, rename and drop tables."),
    Category("column", "Add, rename, retype and drop columns."),
    Category("index", "List, create and drop indexes."),
    Category("query", "Run read-only queries, explain plans and execute arbitrary statements."),
    Category("policy", "Row level security: enable/disable RLS and manage policies."),
    Category("role", "Roles and table privileges."),
    Category("function", "Inspect functions and procedures."),
    Category("storage", "Database and table sizes, VACUUM."),
]


def get_all_operations() -> List[Operation]:
    return [
        *get_core_operations(),
        *get_schema_operations(),
        *get_table_operations(),
        *get_column_operations(),
        *get_index_operations(),
        *get_query_operations(),
        *get_policy_operations(),
        *get_role_operations(),
        *get_function_operations(),
        *get_storage_operations(),
    ]


def build_catalogue(confirm_field: str = "confirm") -> OperationCatalogue:
    """Build the full catalogue. Raises CatalogueError if any definition is invalid."""
    return OperationCatalogue(CATEGORIES, get_all_operations(), confirm_field=confirm_field)


__all__ = [
    'CATEGORIES',
    'build_catalogue',
    'get_all_operations',
]
