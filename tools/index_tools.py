"""
Index Operations
"""

from typing import List

from handlers.index_handlers import handle_create_index, handle_drop_index, handle_list_indexes
from models import Operation, RiskLevel
from .common import flag, identifier, object_schema, schema_field

INDEX_METHODS = ["btree", "hash", "gin", "gist", "brin"]


def get_index_operations() -> List[Operation]:
    return [
        Operation(
            name="list_indexes",
            category="index",
            description="List indexes in a schema with their definitions, optionally for a single table.",
            input_schema=object_schema({
                "schema": schema_field(),
                "table": identifier("Only list indexes on this table"),
            }),
            risk_level=RiskLevel.READ,
            execute=handle_list_indexes,
        ),
        Operation(
            name="create_index",
            category="index",
            description="Create an index on one or more columns. The name defaults to <table>_<columns>_idx (or _key when unique).",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "columns": {
                        "type": "array",
                        "items": identifier("Column name"),
                        "minItems": 1,
                        "maxItems": 32,
                        "description": "Indexed columns, in key order",
                    },
                    "name": identifier("Index name"),
                    "unique": flag("Create a UNIQUE index"),
                    "method": {
                        "type": "string",
                        "enum": INDEX_METHODS,
                        "default": "btree",
                        "description": "Index access method",
                    },
                    "if_not_exists": flag("Do nothing if an index with this name exists"),
                },
                required=["table", "columns"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_create_index,
        ),
        Operation(
            name="drop_index",
            category="index",
            description="Drop an index. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "name": identifier("Index name"),
                    "if_exists": flag("Do nothing if the index does not exist"),
                    "cascade": flag("Also drop dependent objects"),
                },
                required=["name"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_drop_index,
        ),
    ]
