"""
Core Handlers
Handles: get_database_info, list_schemas, create_schema, drop_schema
"""

import logging
from typing import Any

from models import Identifier, RowSet
from utils.sql import quote_ident

logger = logging.getLogger(__name__)


async def handle_get_database_info(conn, arguments: dict[str, Any]) -> RowSet:
    row = await conn.fetchrow(
        """
        SELECT
            current_database() AS database,
            current_user AS current_user,
            current_setting('server_version') AS server_version,
            pg_size_pretty(pg_database_size(current_database())) AS size,
            current_setting('TimeZone') AS timezone,
            pg_is_in_recovery() AS read_replica
        """
    )
    return RowSet.from_records([row])


async def handle_list_schemas(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT n.nspname AS schema_name, pg_get_userbyid(n.nspowner) AS owner
        FROM pg_namespace n
        WHERE $1 OR (n.nspname !~ '^pg_' AND n.nspname <> 'information_schema')
        ORDER BY n.nspname
        """,
        arguments["include_system"],
    )
    return RowSet.from_records(rows, columns=("schema_name", "owner"))


async def handle_create_schema(conn, arguments: dict[str, Any]) -> Identifier:
    name = arguments["name"]
    sql = "CREATE SCHEMA "
    if arguments["if_not_exists"]:
        sql += "IF NOT EXISTS "
    sql += quote_ident(name)
    if arguments.get("owner"):
        sql += f" AUTHORIZATION {quote_ident(arguments['owner'])}"
    await conn.execute(sql)
    logger.info(f"Schema created: {name}")
    return Identifier("schema", name, "created")


async def handle_drop_schema(conn, arguments: dict[str, Any]) -> Identifier:
    name = arguments["name"]
    sql = "DROP SCHEMA "
    if arguments["if_exists"]:
        sql += "IF EXISTS "
    sql += quote_ident(name)
    if arguments["cascade"]:
        sql += " CASCADE"
    await conn.execute(sql)
    logger.info(f"Schema dropped: {name}")
    return Identifier("schema", name, "dropped")
