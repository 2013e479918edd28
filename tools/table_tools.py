"""
Table and Column Operations
"""

from typing import List

from handlers.table_handlers import (
    handle_add_column,
    handle_alter_column_type,
    handle_create_table,
    handle_describe_table,
    handle_drop_column,
    handle_drop_table,
    handle_list_tables,
    handle_rename_column,
    handle_rename_table,
)
from models import Operation, RiskLevel
from .common import flag, identifier, object_schema, schema_field, sql_expression, sql_type

COLUMN_DEFINITION = {
    "type": "object",
    "properties": {
        "name": identifier("Column name"),
        "type": sql_type(),
        "nullable": flag("Allow NULL values", default=True),
        "primary_key": flag("Part of the primary key"),
        "unique": flag("Add a UNIQUE constraint"),
        "default": sql_expression("Default value as a SQL expression, e.g. now(), 0, 'active'"),
    },
    "required": ["name", "type"],
}


def get_table_operations() -> List[Operation]:
    return [
        Operation(
            name="list_tables",
            category="table",
            description="List tables in a schema with estimated row counts and whether row level security is enabled. Set include_views to also list views, materialized views and foreign tables.",
            input_schema=object_schema({
                "schema": schema_field(),
                "include_views": flag("Also list views, materialized views and foreign tables"),
            }),
            risk_level=RiskLevel.READ,
            execute=handle_list_tables,
        ),
        Operation(
            name="describe_table",
            category="table",
            description="Describe a table's columns: data type, nullability, default and primary key membership, in column order.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                },
                required=["table"],
            ),
            risk_level=RiskLevel.READ,
            execute=handle_describe_table,
        ),
        Operation(
            name="create_table",
            category="table",
            description="Create a table from a list of column definitions. Columns marked primary_key form a (possibly composite) primary key.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "columns": {
                        "type": "array",
                        "items": COLUMN_DEFINITION,
                        "minItems": 1,
                        "maxItems": 200,
                        "description": "Column definitions, in table order",
                    },
                    "if_not_exists": flag("Do nothing if the table already exists"),
                },
                required=["table", "columns"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_create_table,
        ),
        Operation(
            name="rename_table",
            category="table",
            description="Rename a table within its schema.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Current table name"),
                    "new_name": identifier("New table name"),
                },
                required=["table", "new_name"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_rename_table,
        ),
        Operation(
            name="drop_table",
            category="table",
            description="Drop a table and all of its data. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "if_exists": flag("Do nothing if the table does not exist"),
                    "cascade": flag("Also drop dependent objects such as views and foreign keys"),
                },
                required=["table"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_drop_table,
        ),
    ]


def get_column_operations() -> List[Operation]:
    return [
        Operation(
            name="add_column",
            category="column",
            description="Add a column to an existing table.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "column": identifier("New column name"),
                    "type": sql_type(),
                    "nullable": flag("Allow NULL values", default=True),
                    "unique": flag("Add a UNIQUE constraint"),
                    "default": COLUMN_DEFINITION["properties"]["default"],
                    "if_not_exists": flag("Do nothing if the column already exists"),
                },
                required=["table", "column", "type"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_add_column,
        ),
        Operation(
            name="rename_column",
            category="column",
            description="Rename a column.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "column": identifier("Current column name"),
                    "new_name": identifier("New column name"),
                },
                required=["table", "column", "new_name"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_rename_column,
        ),
        Operation(
            name="alter_column_type",
            category="column",
            description="Change a column's data type. Provide a USING expression when PostgreSQL can not cast the existing values automatically.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "column": identifier("Column name"),
                    "type": sql_type("New PostgreSQL data type"),
                    "using": sql_expression("Conversion expression, e.g. created_at::date"),
                },
                required=["table", "column", "type"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_alter_column_type,
        ),
        Operation(
            name="drop_column",
            category="column",
            description="Drop a column and its data. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "column": identifier("Column name"),
                    "if_exists": flag("Do nothing if the column does not exist"),
                    "cascade": flag("Also drop dependent objects"),
                },
                required=["table", "column"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_drop_column,
        ),
    ]
