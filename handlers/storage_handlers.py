"""
Storage Handlers
Handles: get_database_size, list_table_sizes, vacuum_table
"""

import logging
from typing import Any

from models import Identifier, RowSet, Scalar
from utils.sql import qualified_name

logger = logging.getLogger(__name__)


async def handle_get_database_size(conn, arguments: dict[str, Any]) -> Scalar:
    row = await conn.fetchrow(
        """
        SELECT
            current_database() AS database,
            pg_database_size(current_database()) AS bytes,
            pg_size_pretty(pg_database_size(current_database())) AS pretty
        """
    )
    return Scalar(dict(row))


async def handle_list_table_sizes(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT
            c.relname AS table_name,
            pg_total_relation_size(c.oid) AS total_bytes,
            pg_size_pretty(pg_total_relation_size(c.oid)) AS total_size,
            pg_size_pretty(pg_relation_size(c.oid)) AS table_size,
            pg_size_pretty(pg_indexes_size(c.oid)) AS index_size
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = $1 AND c.relkind IN ('r', 'p', 'm')
        ORDER BY pg_total_relation_size(c.oid) DESC
        LIMIT $2
        """,
        arguments["schema"],
        arguments["limit"],
    )
    return RowSet.from_records(
        rows, columns=("table_name", "total_bytes", "total_size", "table_size", "index_size")
    )


async def handle_vacuum_table(conn, arguments: dict[str, Any]) -> Identifier:
    """VACUUM can not run inside a transaction block; the operation is declared non-transactional."""
    schema, table = arguments["schema"], arguments["table"]
    options = []
    if arguments["full"]:
        options.append("FULL")
    if arguments["analyze"]:
        options.append("ANALYZE")

    sql = "VACUUM "
    if options:
        sql += f"({', '.join(options)}) "
    sql += qualified_name(schema, table)

    logger.info(f"🧹 {sql}")
    await conn.execute(sql)
    return Identifier("table", f"{schema}.{table}", "vacuumed")
