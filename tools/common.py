"""
Shared input-schema fragments for the operation definitions.
"""

from typing import Any, Dict

# Type names like "text", "varchar(255)", "numeric(10, 2)", "int[]", "timestamp with time zone"
SQL_TYPE_PATTERN = r"^[A-Za-z][A-Za-z0-9_ ]*(\(\s*\d+(\s*,\s*\d+)?\s*\))?(\[\])*$"


def identifier(description: str) -> Dict[str, Any]:
    return {"type": "string", "format": "identifier", "description": description}


def schema_field(default: str = "public") -> Dict[str, Any]:
    return {
        "type": "string",
        "format": "identifier",
        "description": f"Schema name (default: {default})",
        "default": default,
    }


def flag(description: str, default: bool = False) -> Dict[str, Any]:
    return {"type": "boolean", "description": description, "default": default}


def sql_type(description: str = "PostgreSQL data type, e.g. text, integer, varchar(255), numeric(10,2), uuid[]") -> Dict[str, Any]:
    return {"type": "string", "pattern": SQL_TYPE_PATTERN, "maxLength": 100, "description": description}


def object_schema(properties: Dict[str, Any], required=()) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(required),
    }


def sql_expression(description: str, max_length: int = 500) -> Dict[str, Any]:
    return {
        "type": "string",
        "format": "sql_expression",
        "minLength": 1,
        "maxLength": max_length,
        "description": description,
    }
