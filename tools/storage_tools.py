"""
Storage Operations
"""

from typing import List

from handlers.storage_handlers import handle_get_database_size, handle_list_table_sizes, handle_vacuum_table
from models import Operation, RiskLevel
from .common import flag, identifier, object_schema, schema_field


def get_storage_operations() -> List[Operation]:
    return [
        Operation(
            name="get_database_size",
            category="storage",
            description="Get the total on-disk size of the current database.",
            input_schema=object_schema({}),
            risk_level=RiskLevel.READ,
            execute=handle_get_database_size,
        ),
        Operation(
            name="list_table_sizes",
            category="storage",
            description="List the largest tables in a schema with table, index and total sizes.",
            input_schema=object_schema({
                "schema": schema_field(),
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 1000,
                    "default": 20,
                    "description": "Number of tables to return (default: 20)",
                },
            }),
            risk_level=RiskLevel.READ,
            execute=handle_list_table_sizes,
        ),
        Operation(
            name="vacuum_table",
            category="storage",
            description="VACUUM a table to reclaim space, optionally with ANALYZE to refresh planner statistics. full=true rewrites the table and locks it exclusively.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "analyze": flag("Also update planner statistics", default=True),
                    "full": flag("VACUUM FULL (exclusive lock, rewrites the table)"),
                },
                required=["table"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_vacuum_table,
            transactional=False,
        ),
    ]
