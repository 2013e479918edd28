"""
Query Operations
Free-form SQL: read-only queries, plans, and arbitrary statements.
"""

from typing import List

from handlers.query_handlers import handle_execute_query, handle_execute_statement, handle_explain_query
from models import Operation, RiskLevel
from .common import flag, object_schema

PARAMS = {
    "type": "array",
    "items": {"description": "Value bound to $1, $2, ... in order"},
    "maxItems": 100,
    "default": [],
    "description": "Positional parameters for $1, $2, ... placeholders",
}


def get_query_operations() -> List[Operation]:
    return [
        Operation(
            name="execute_query",
            category="query",
            description="Execute a read-only SQL query (SELECT, WITH ... SELECT, VALUES, TABLE or EXPLAIN). Use $1, $2 placeholders with params instead of inlining values. Results are capped; check 'truncated' in the response.",
            input_schema=object_schema(
                {
                    "query": {
                        "type": "string",
                        "format": "read_query",
                        "minLength": 1,
                        "maxLength": 100000,
                        "description": "A single read-only SQL statement",
                    },
                    "params": PARAMS,
                },
                required=["query"],
            ),
            risk_level=RiskLevel.READ,
            execute=handle_execute_query,
        ),
        Operation(
            name="explain_query",
            category="query",
            description="Show the execution plan for a read-only query. analyze=true runs the query to report actual timings.",
            input_schema=object_schema(
                {
                    "query": {
                        "type": "string",
                        "format": "explainable_query",
                        "minLength": 1,
                        "maxLength": 100000,
                        "description": "The query to explain, without the EXPLAIN keyword",
                    },
                    "params": PARAMS,
                    "analyze": flag("Run the query and report actual row counts and timings"),
                },
                required=["query"],
            ),
            risk_level=RiskLevel.READ,
            execute=handle_explain_query,
        ),
        Operation(
            name="execute_statement",
            category="query",
            description="Execute any single SQL statement (INSERT, UPDATE, DELETE, DDL). Runs in a transaction that rolls back on error. Set return_rows for statements with RETURNING. Destructive: requires confirm=true.",
            input_schema=object_schema(
                {
                    "sql": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 100000,
                        "description": "SQL statement to execute",
                    },
                    "params": PARAMS,
                    "return_rows": flag("Return the rows produced by a RETURNING clause"),
                },
                required=["sql"],
            ),
            risk_level=RiskLevel.DESTRUCTIVE,
            execute=handle_execute_statement,
        ),
    ]
