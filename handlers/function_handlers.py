"""
Function Handlers
Handles: list_functions, get_function_definition
"""

from typing import Any

from models import RowSet, Scalar
from registry.errors import ExecutionFailure


async def handle_list_functions(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT
            p.proname AS function_name,
            pg_get_function_identity_arguments(p.oid) AS arguments,
            pg_get_function_result(p.oid) AS returns,
            l.lanname AS language,
            CASE p.prokind
                WHEN 'f' THEN 'function'
                WHEN 'p' THEN 'procedure'
                WHEN 'a' THEN 'aggregate'
                WHEN 'w' THEN 'window'
            END AS kind
        FROM pg_proc p
        JOIN pg_namespace n ON n.oid = p.pronamespace
        JOIN pg_language l ON l.oid = p.prolang
        WHERE n.nspname = $1
        ORDER BY p.proname, arguments
        """,
        arguments["schema"],
    )
    return RowSet.from_records(rows, columns=("function_name", "arguments", "returns", "language", "kind"))


async def handle_get_function_definition(conn, arguments: dict[str, Any]) -> Scalar:
    schema, name = arguments["schema"], arguments["name"]
    rows = await conn.fetch(
        """
        SELECT pg_get_functiondef(p.oid) AS definition
        FROM pg_proc p
        JOIN pg_namespace n ON n.oid = p.pronamespace
        WHERE n.nspname = $1 AND p.proname = $2 AND p.prokind IN ('f', 'p')
        ORDER BY p.oid
        """,
        schema,
        name,
    )
    if not rows:
        raise ExecutionFailure(f'Function "{schema}.{name}" does not exist')
    # Overloads are returned together
    return Scalar("\n\n".join(row["definition"] for row in rows))
