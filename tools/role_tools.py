"""
Role Operations
"""

from typing import List

from handlers.role_handlers import (
    handle_create_role,
    handle_drop_role,
    handle_grant_privileges,
    handle_list_roles,
    handle_revoke_privileges,
)
from models import Operation, RiskLevel
from .common import flag, identifier, object_schema, schema_field

TABLE_PRIVILEGES = ["SELECT", "INSERT", "UPDATE", "DELETE", "TRUNCATE", "REFERENCES", "TRIGGER", "ALL"]

PRIVILEGES = {
    "type": "array",
    "items": {"type": "string", "enum": TABLE_PRIVILEGES},
    "minItems": 1,
    "description": "Table privileges",
}


def get_role_operations() -> List[Operation]:
    return [
        Operation(
            name="list_roles",
            category="role",
            description="List roles with their login/superuser attributes and memberships. Built-in pg_* roles are hidden unless include_system is true.",
            input_schema=object_schema({
                "include_system": flag("Include built-in pg_* roles"),
            }),
            risk_level=RiskLevel.READ,
            execute=handle_list_roles,
        ),
        Operation(
            name="create_role",
            category="role",
            description="Create a role. Set login=true (and a password) for a role that can connect.",
            input_schema=object_schema(
                {
                    "name": identifier("Role name"),
                    "login": flag("Role can log in"),
                    "password": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 200,
                        "description": "Password for login roles (never echoed back)",
                    },
                    "inherit": flag("Inherit privileges of roles it is a member of", default=True),
                    "create_db": flag("Role can create databases"),
                    "create_role": flag("Role can create other roles"),
                    "connection_limit": {
                        "type": "integer",
                        "minimum": -1,
                        "description": "Maximum concurrent connections (-1 for no limit)",
                    },
                    "in_roles": {
                        "type": "array",
                        "items": identifier("Role name"),
                        "description": "Existing roles the new role becomes a member of",
                    },
                },
                required=["name"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_create_role,
        ),
        Operation(
            name="grant_privileges",
            category="role",
            description="Grant table privileges to a role, on one table or on all tables in a schema.",
            input_schema=object_schema(
                {
                    "role": identifier("Role receiving the privileges"),
                    "privileges": PRIVILEGES,
                    "schema": schema_field(),
                    "table": identifier("Table name (omit for all tables in the schema)"),
                    "with_grant_option": flag("Role may grant these privileges to others"),
                },
                required=["role", "privileges"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_grant_privileges,
        ),
        Operation(
            name="revoke_privileges",
            category="role",
            description="Revoke table privileges from a role, on one table or on all tables in a schema.",
            input_schema=object_schema(
                {
                    "role": identifier("Role losing the privileges"),
                    "privileges": PRIVILEGES,
                    "schema": schema_field(),
                    "table": identifier("Table name (omit for all tables in the schema)"),
                    "cascade": flag("Also revoke privileges granted onward by this role"),
                },
                required=["role", "privileges"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_revoke_privileges,
        ),
        Operation(
            name="drop_role",
            category="role",
            description="Drop a role. Fails while the role still owns objects or holds privileges. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "name": identifier("Role name"),
                    "if_exists": flag("Do nothing if the role does not exist"),
                },
                required=["name"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_drop_role,
        ),
    ]
