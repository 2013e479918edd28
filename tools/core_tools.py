"""
Core and Schema Operations
The core category is preloaded; schema DDL is loaded on demand.
"""

from typing import List

from handlers.core_handlers import (
    handle_create_schema,
    handle_drop_schema,
    handle_get_database_info,
    handle_list_schemas,
)
from models import Operation, RiskLevel
from .common import flag, identifier, object_schema


def get_core_operations() -> List[Operation]:
    return [
        Operation(
            name="get_database_info",
            category="core",
            description="Get basic facts about the connected database: name, current user, server version, size, timezone and whether it is a read replica. Start here to confirm which database you are working with.",
            input_schema=object_schema({}),
            risk_level=RiskLevel.READ,
            execute=handle_get_database_info,
        ),
        Operation(
            name="list_schemas",
            category="core",
            description="List schemas in the database with their owners. System schemas (pg_*, information_schema) are hidden unless include_system is true.",
            input_schema=object_schema({
                "include_system": flag("Include pg_* and information_schema"),
            }),
            risk_level=RiskLevel.READ,
            execute=handle_list_schemas,
        ),
    ]


def get_schema_operations() -> List[Operation]:
    return [
        Operation(
            name="create_schema",
            category="schema",
            description="Create a schema, optionally owned by another role.",
            input_schema=object_schema(
                {
                    "name": identifier("Schema name"),
                    "if_not_exists": flag("Do nothing if the schema already exists"),
                    "owner": identifier("Role that owns the new schema (default: current user)"),
                },
                required=["name"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_create_schema,
        ),
        Operation(
            name="drop_schema",
            category="schema",
            description="Drop a schema. With cascade=true every object inside it is dropped too. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "name": identifier("Schema name"),
                    "if_exists": flag("Do nothing if the schema does not exist"),
                    "cascade": flag("Also drop all objects contained in the schema"),
                },
                required=["name"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_drop_schema,
        ),
    ]
