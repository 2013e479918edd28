"""
Role Handlers
Handles: list_roles, create_role, grant_privileges, revoke_privileges, drop_role
"""

import logging
from typing import Any

from models import Identifier, RowSet
from utils.sql import qualified_name, quote_ident, quote_ident_list, quote_literal

logger = logging.getLogger(__name__)


async def handle_list_roles(conn, arguments: dict[str, Any]) -> RowSet:
    rows = await conn.fetch(
        """
        SELECT
            r.rolname AS role_name,
            r.rolcanlogin AS can_login,
            r.rolsuper AS superuser,
            r.rolcreatedb AS create_db,
            r.rolcreaterole AS create_role,
            r.rolconnlimit AS connection_limit,
            ARRAY(
                SELECT m.rolname FROM pg_auth_members am
                JOIN pg_roles m ON m.oid = am.roleid
                WHERE am.member = r.oid
                ORDER BY m.rolname
            ) AS member_of
        FROM pg_roles r
        WHERE $1 OR r.rolname !~ '^pg_'
        ORDER BY r.rolname
        """,
        arguments["include_system"],
    )
    return RowSet.from_records(
        rows,
        columns=(
            "role_name", "can_login", "superuser", "create_db",
            "create_role", "connection_limit", "member_of",
        ),
    )


async def handle_create_role(conn, arguments: dict[str, Any]) -> Identifier:
    name = arguments["name"]
    options = [
        "LOGIN" if arguments["login"] else "NOLOGIN",
        "INHERIT" if arguments["inherit"] else "NOINHERIT",
        "CREATEDB" if arguments["create_db"] else "NOCREATEDB",
        "CREATEROLE" if arguments["create_role"] else "NOCREATEROLE",
    ]
    if arguments.get("connection_limit") is not None:
        options.append(f"CONNECTION LIMIT {int(arguments['connection_limit'])}")
    # CREATE ROLE can not take bind parameters
    if arguments.get("password"):
        options.append(f"PASSWORD {quote_literal(arguments['password'])}")
    if arguments.get("in_roles"):
        options.append(f"IN ROLE {quote_ident_list(arguments['in_roles'])}")

    await conn.execute(f"CREATE ROLE {quote_ident(name)} WITH {' '.join(options)}")
    logger.info(f"Role created: {name}")
    return Identifier("role", name, "created")


def _privilege_target(arguments: dict[str, Any]) -> str:
    if arguments.get("table"):
        return f"TABLE {qualified_name(arguments['schema'], arguments['table'])}"
    return f"ALL TABLES IN SCHEMA {quote_ident(arguments['schema'])}"


async def handle_grant_privileges(conn, arguments: dict[str, Any]) -> Identifier:
    role = arguments["role"]
    privileges = ", ".join(arguments["privileges"])
    sql = f"GRANT {privileges} ON {_privilege_target(arguments)} TO {quote_ident(role)}"
    if arguments["with_grant_option"]:
        sql += " WITH GRANT OPTION"
    await conn.execute(sql)
    logger.info(f"Granted {privileges} to {role}")
    return Identifier("role", role, "granted")


async def handle_revoke_privileges(conn, arguments: dict[str, Any]) -> Identifier:
    role = arguments["role"]
    privileges = ", ".join(arguments["privileges"])
    sql = f"REVOKE {privileges} ON {_privilege_target(arguments)} FROM {quote_ident(role)}"
    if arguments["cascade"]:
        sql += " CASCADE"
    await conn.execute(sql)
    logger.info(f"Revoked {privileges} from {role}")
    return Identifier("role", role, "revoked")


async def handle_drop_role(conn, arguments: dict[str, Any]) -> Identifier:
    name = arguments["name"]
    sql = "DROP ROLE "
    if arguments["if_exists"]:
        sql += "IF EXISTS "
    sql += quote_ident(name)
    await conn.execute(sql)
    logger.info(f"Role dropped: {name}")
    return Identifier("role", name, "dropped")
