"""
Index Handlers
Handles: list_indexes, create_index, drop_index
"""

import logging
from typing import Any

from models import Identifier, RowSet
from utils.sql import qualified_name, quote_ident, quote_ident_list

logger = logging.getLogger(__name__)

MAX_IDENTIFIER_LENGTH = 63


def default_index_name(table: str, columns: list[str], unique: bool = False) -> str:
    """PostgreSQL-style name: <table>_<col>_<col>_idx (or _key for unique), cut to 63 chars."""
    suffix = "_key" if unique else "_idx"
    base = f"{table}_{'_'.join(columns)}"
    return base[: MAX_IDENTIFIER_LENGTH - len(suffix)] + suffix


async def handle_list_indexes(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT
            i.tablename AS table_name,
            i.indexname AS index_name,
            i.indexdef AS definition
        FROM pg_indexes i
        WHERE i.schemaname = $1 AND ($2::text IS NULL OR i.tablename = $2)
        ORDER BY i.tablename, i.indexname
        """,
        arguments["schema"],
        arguments.get("table"),
    )
    return RowSet.from_records(rows, columns=("table_name", "index_name", "definition"))


async def handle_create_index(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, columns = arguments["schema"], arguments["table"], arguments["columns"]
    unique = arguments["unique"]
    name = arguments.get("name") or default_index_name(table, columns, unique)

    sql = "CREATE UNIQUE INDEX " if unique else "CREATE INDEX "
    if arguments["if_not_exists"]:
        sql += "IF NOT EXISTS "
    sql += (
        f"{quote_ident(name)} ON {qualified_name(schema, table)} "
        f"USING {arguments['method']} ({quote_ident_list(columns)})"
    )
    await conn.execute(sql)
    logger.info(f"Index created: {schema}.{name}")
    return Identifier("index", f"{schema}.{name}", "created")


async def handle_drop_index(conn, arguments: dict[str, Any]) -> Identifier:
    schema, name = arguments["schema"], arguments["name"]
    sql = "DROP INDEX "
    if arguments["if_exists"]:
        sql += "IF EXISTS "
    sql += qualified_name(schema, name)
    if arguments["cascade"]:
        sql += " CASCADE"
    await conn.execute(sql)
    return Identifier("index", f"{schema}.{name}", "dropped")
