"""
Function Operations
"""

from typing import List

from handlers.function_handlers import handle_get_function_definition, handle_list_functions
from models import Operation, RiskLevel
from .common import identifier, object_schema, schema_field


def get_function_operations() -> List[Operation]:
    return [
        Operation(
            name="list_functions",
            category="function",
            description="List functions, procedures and aggregates in a schema with their signatures.",
            input_schema=object_schema({"schema": schema_field()}),
            risk_level=RiskLevel.READ,
            execute=handle_list_functions,
        ),
        Operation(
            name="get_function_definition",
            category="function",
            description="Get the CREATE statement for a function or procedure. All overloads with that name are returned.",
            input_schema=object_schema(
                {
                    "schema": schema_field(),
                    "name": identifier("Function name"),
                },
                required=["name"],
            ),
            risk_level=RiskLevel.READ,
            execute=handle_get_function_definition,
        ),
    ]
