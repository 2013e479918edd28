"""
Table and Column Handlers
Handles: list_tables, describe_table, create_table, rename_table, drop_table,
add_column, rename_column, alter_column_type, drop_column
"""

import logging
from typing import Any

from models import Identifier, RowSet
from registry.errors import ExecutionFailure
from utils.sql import execute_single, qualified_name, quote_ident, quote_ident_list

logger = logging.getLogger(__name__)


async def handle_list_tables(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT
            c.relname AS table_name,
            CASE c.relkind
                WHEN 'r' THEN 'table'
                WHEN 'p' THEN 'partitioned table'
                WHEN 'v' THEN 'view'
                WHEN 'm' THEN 'materialized view'
                WHEN 'f' THEN 'foreign table'
            END AS table_type,
            c.reltuples::bigint AS estimated_rows,
            c.relrowsecurity AS rls_enabled,
            obj_description(c.oid, 'pg_class') AS comment
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = $1
          AND (c.relkind IN ('r', 'p') OR ($2 AND c.relkind IN ('v', 'm', 'f')))
        ORDER BY c.relname
        """,
        arguments["schema"],
        arguments["include_views"],
    )
    return RowSet.from_records(
        rows, columns=("table_name", "table_type", "estimated_rows", "rls_enabled", "comment")
    )


async def handle_describe_table(conn, arguments: dict[str, Any]) -> RowSet:
    schema, table = arguments["schema"], arguments["table"]
    rows = await conn.fetch(
        """
        SELECT
            a.attname AS column_name,
            format_type(a.atttypid, a.atttypmod) AS data_type,
            NOT a.attnotnull AS nullable,
            pg_get_expr(d.adbin, d.adrelid) AS default_value,
            COALESCE(
                (SELECT TRUE FROM pg_index i
                 WHERE i.indrelid = a.attrelid AND i.indisprimary AND a.attnum = ANY(i.indkey)),
                FALSE
            ) AS primary_key
        FROM pg_attribute a
        JOIN pg_class c ON c.oid = a.attrelid
        JOIN pg_namespace n ON n.oid = c.relnamespace
        LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
        WHERE n.nspname = $1 AND c.relname = $2 AND a.attnum > 0 AND NOT a.attisdropped
        ORDER BY a.attnum
        """,
        schema,
        table,
    )
    if not rows:
        raise ExecutionFailure(f'Table "{schema}.{table}" does not exist or has no columns')
    return RowSet.from_records(
        rows, columns=("column_name", "data_type", "nullable", "default_value", "primary_key")
    )


def _column_definition(column: dict[str, Any]) -> str:
    parts = [quote_ident(column["name"]), column["type"]]
    if not column.get("nullable", True):
        parts.append("NOT NULL")
    if column.get("unique"):
        parts.append("UNIQUE")
    if column.get("default") is not None:
        parts.append(f"DEFAULT {column['default']}")
    return " ".join(parts)


async def handle_create_table(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table = arguments["schema"], arguments["table"]
    columns = arguments["columns"]

    definitions = [_column_definition(column) for column in columns]
    primary_key = [column["name"] for column in columns if column.get("primary_key")]
    if primary_key:
        definitions.append(f"PRIMARY KEY ({quote_ident_list(primary_key)})")

    sql = "CREATE TABLE "
    if arguments["if_not_exists"]:
        sql += "IF NOT EXISTS "
    sql += f"{qualified_name(schema, table)} (\n    " + ",\n    ".join(definitions) + "\n)"

    await execute_single(conn, sql)
    logger.info(f"Table created: {schema}.{table}")
    return Identifier("table", f"{schema}.{table}", "created")


async def handle_rename_table(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, new_name = arguments["schema"], arguments["table"], arguments["new_name"]
    await conn.execute(f"ALTER TABLE {qualified_name(schema, table)} RENAME TO {quote_ident(new_name)}")
    return Identifier("table", f"{schema}.{new_name}", "renamed")


async def handle_drop_table(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table = arguments["schema"], arguments["table"]
    sql = "DROP TABLE "
    if arguments["if_exists"]:
        sql += "IF EXISTS "
    sql += qualified_name(schema, table)
    if arguments["cascade"]:
        sql += " CASCADE"
    await conn.execute(sql)
    logger.info(f"Table dropped: {schema}.{table}")
    return Identifier("table", f"{schema}.{table}", "dropped")


async def handle_add_column(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, column = arguments["schema"], arguments["table"], arguments["column"]
    definition = _column_definition({
        "name": column,
        "type": arguments["type"],
        "nullable": arguments["nullable"],
        "unique": arguments["unique"],
        "default": arguments.get("default"),
    })
    clause = "ADD COLUMN IF NOT EXISTS" if arguments["if_not_exists"] else "ADD COLUMN"
    await execute_single(conn, f"ALTER TABLE {qualified_name(schema, table)} {clause} {definition}")
    return Identifier("column", f"{schema}.{table}.{column}", "created")


async def handle_rename_column(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table = arguments["schema"], arguments["table"]
    await conn.execute(
        f"ALTER TABLE {qualified_name(schema, table)} "
        f"RENAME COLUMN {quote_ident(arguments['column'])} TO {quote_ident(arguments['new_name'])}"
    )
    return Identifier("column", f"{schema}.{table}.{arguments['new_name']}", "renamed")


async def handle_alter_column_type(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, column = arguments["schema"], arguments["table"], arguments["column"]
    sql = (
        f"ALTER TABLE {qualified_name(schema, table)} "
        f"ALTER COLUMN {quote_ident(column)} TYPE {arguments['type']}"
    )
    if arguments.get("using"):
        sql += f" USING {arguments['using']}"
    await execute_single(conn, sql)
    return Identifier("column", f"{schema}.{table}.{column}", "altered")


async def handle_drop_column(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, column = arguments["schema"], arguments["table"], arguments["column"]
    sql = f"ALTER TABLE {qualified_name(schema, table)} DROP COLUMN "
    if arguments["if_exists"]:
        sql += "IF EXISTS "
    sql += quote_ident(column)
    if arguments["cascade"]:
        sql += " CASCADE"
    await conn.execute(sql)
    logger.info(f"Column dropped: {schema}.{table}.{column}")
    return Identifier("column", f"{schema}.{table}.{column}", "dropped")
