"""
Row Level Security Handlers
Handles: list_policies, enable_rls, disable_rls, create_policy, drop_policy
"""

import logging
from typing import Any

from models import Identifier, RowSet
from utils.sql import execute_single, qualified_name, quote_ident

logger = logging.getLogger(__name__)

# Role keywords that must not be quoted
ROLE_KEYWORDS = {"public", "current_user", "current_role", "session_user"}


def _role_list(roles: list[str]) -> str:
    return ", ".join(
        role.upper() if role.lower() in ROLE_KEYWORDS else quote_ident(role)
        for role in roles
    )


async def handle_list_policies(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT
            tablename AS table_name,
            policyname AS policy_name,
            permissive,
            roles::text[] AS roles,
            cmd AS command,
            qual AS using_expression,
            with_check AS check_expression
        FROM pg_policies
        WHERE schemaname = $1 AND ($2::text IS NULL OR tablename = $2)
        ORDER BY tablename, policyname
        """,
        arguments["schema"],
        arguments.get("table"),
    )
    return RowSet.from_records(
        rows,
        columns=(
            "table_name", "policy_name", "permissive", "roles",
            "command", "using_expression", "check_expression",
        ),
    )


async def handle_enable_rls(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table = arguments["schema"], arguments["table"]
    target = qualified_name(schema, table)
    await conn.execute(f"ALTER TABLE {target} ENABLE ROW LEVEL SECURITY")
    if arguments["force"]:
        await conn.execute(f"ALTER TABLE {target} FORCE ROW LEVEL SECURITY")
    logger.info(f"RLS enabled on {schema}.{table}")
    return Identifier("table", f"{schema}.{table}", "rls_enabled")


async def handle_disable_rls(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table = arguments["schema"], arguments["table"]
    target = qualified_name(schema, table)
    await conn.execute(f"ALTER TABLE {target} NO FORCE ROW LEVEL SECURITY")
    await conn.execute(f"ALTER TABLE {target} DISABLE ROW LEVEL SECURITY")
    logger.info(f"RLS disabled on {schema}.{table}")
    return Identifier("table", f"{schema}.{table}", "rls_disabled")


async def handle_create_policy(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, name = arguments["schema"], arguments["table"], arguments["name"]

    sql = f"CREATE POLICY {quote_ident(name)} ON {qualified_name(schema, table)}"
    sql += " AS PERMISSIVE" if arguments["permissive"] else " AS RESTRICTIVE"
    sql += f" FOR {arguments['command']}"
    if arguments.get("roles"):
        sql += f" TO {_role_list(arguments['roles'])}"
    if arguments.get("using"):
        sql += f" USING ({arguments['using']})"
    if arguments.get("check"):
        sql += f" WITH CHECK ({arguments['check']})"

    # Free-form expressions: one command only
    await execute_single(conn, sql)
    logger.info(f"Policy created: {name} on {schema}.{table}")
    return Identifier("policy", f"{schema}.{table}.{name}", "created")


async def handle_drop_policy(conn, arguments: dict[str, Any]) -> Identifier:
    schema, table, name = arguments["schema"], arguments["table"], arguments["name"]
    sql = "DROP POLICY "
    if arguments["if_exists"]:
        sql += "IF EXISTS "
    sql += f"{quote_ident(name)} ON {qualified_name(schema, table)}"
    await conn.execute(sql)
    return Identifier("policy", f"{schema}.{table}.{name}", "dropped")
