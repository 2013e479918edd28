"""
Query Handlers

Handles the free-form SQL tools: execute_query (read-only), explain_query
and execute_statement (anything else, destructive, needs confirmation).

The read-only and EXPLAIN checks live in the input schema formats
("read_query", "explainable_query"), so rejected queries never reach here.
"""

import logging
from typing import Any

from models import RowSet, Scalar
from utils.error_messages import sanitize_message

logger = logging.getLogger(__name__)


async def _fetch_with_columns(conn, query: str, params: list) -> RowSet:
    # Prepared statements expose column names even when no rows come back
    stmt = await conn.prepare(query)
    columns = [attribute.name for attribute in stmt.get_attributes()]
    rows = await stmt.fetch(*params)
    return RowSet.from_records(rows, columns=columns)


async def handle_execute_query(conn, arguments: dict[str, Any]) -> RowSet:
    """
    Run a read-only query with positional parameters ($1, $2, ...).

    The dispatcher runs read operations in a READ ONLY transaction as well.
    """
    query = arguments["query"]
    logger.info(f"execute_query: {sanitize_message(query)[:120]}")
    return await _fetch_with_columns(conn, query, arguments["params"])


async def handle_explain_query(conn, arguments: dict[str, Any]) -> RowSet:
    options = ["FORMAT TEXT"]
    if arguments["analyze"]:
        options.insert(0, "ANALYZE")
    rows = await conn.fetch(f"EXPLAIN ({', '.join(options)}) {arguments['query']}", *arguments["params"])
    return RowSet(columns=("plan",), rows=[{"plan": row[0]} for row in rows])


async def handle_execute_statement(conn, arguments: dict[str, Any]) -> RowSet | Scalar:
    """Run any single statement (INSERT/UPDATE/DELETE/DDL)."""
    sql = arguments["sql"]
    params = arguments["params"]
    # Statements such as ALTER ROLE ... PASSWORD carry credentials
    logger.info(f"execute_statement: {sanitize_message(sql)[:120]}")

    if arguments["return_rows"]:
        stmt = await conn.prepare(sql)
        columns = [attribute.name for attribute in stmt.get_attributes()]
        rows = await stmt.fetch(*params)
        result = RowSet.from_records(rows, columns=columns)
        return RowSet(columns=result.columns, rows=result.rows, status=stmt.get_statusmsg())

    status = await conn.execute(sql, *params)
    return Scalar(status)
