"""
Row Level Security Operations
"""

from typing import List

from handlers.policy_handlers import (
    handle_create_policy,
    handle_disable_rls,
    handle_drop_policy,
    handle_enable_rls,
    handle_list_policies,
)
from models import Operation, RiskLevel
from .common import flag, identifier, object_schema, schema_field, sql_expression

POLICY_COMMANDS = ["ALL", "SELECT", "INSERT", "UPDATE", "DELETE"]


def get_policy_operations() -> List[Operation]:
    return [
        Operation(
            name="list_policies",
            category="policy",
            description="List row level security policies in a schema, optionally for a single table.",
            input_schema=object_schema({
                "schema": schema_field(),
                "table": identifier("Only list policies on this table"),
            }),
            risk_level=RiskLevel.READ,
            execute=handle_list_policies,
        ),
        Operation(
            name="enable_rls",
            category="policy",
            description="Enable row level security on a table. With force=true the table owner is subject to the policies too.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "force": flag("Also apply policies to the table owner"),
                },
                required=["table"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_enable_rls,
        ),
        Operation(
            name="disable_rls",
            category="policy",
            description="Disable row level security on a table. Existing policies are kept but no longer enforced.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                },
                required=["table"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_disable_rls,
        ),
        Operation(
            name="create_policy",
            category="policy",
            description="Create a row level security policy. 'using' filters visible rows; 'check' validates new rows for INSERT/UPDATE.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "name": identifier("Policy name"),
                    "command": {
                        "type": "string",
                        "enum": POLICY_COMMANDS,
                        "default": "ALL",
                        "description": "Command the policy applies to",
                    },
                    "permissive": flag("PERMISSIVE (true) or RESTRICTIVE (false)", default=True),
                    "roles": {
                        "type": "array",
                        "items": identifier("Role name, or public / current_user / session_user"),
                        "maxItems": 50,
                        "description": "Roles the policy applies to (default: public)",
                    },
                    "using": sql_expression("USING expression, e.g. owner_id = current_user", max_length=2000),
                    "check": sql_expression("WITH CHECK expression", max_length=2000),
                },
                required=["table", "name"],
            ),
            risk_level=RiskLevel.WRITE,
            execute=handle_create_policy,
        ),
        Operation(
            name="drop_policy",
            category="policy",
            description="Drop a row level security policy. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "table": identifier("Table name"),
                    "name": identifier("Policy name"),
                    "if_exists": flag("Do nothing if the policy does not exist"),
                },
                required=["table", "name"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_drop_policy,
        ),
    ]
