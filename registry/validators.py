"""
Input Validators

One generic routine validates raw tool arguments against an operation's
declarative input schema (a JSON-Schema subset) and returns every field
violation with a path and a helpful message.

Supported keywords per field: type, enum, format, pattern, minLength,
maxLength, minimum, maximum, items, minItems, maxItems, properties,
required, additionalProperties, default, description.

Formats: "identifier" (plain PostgreSQL name), "read_query" (single
read-only statement), "explainable_query" (read_query without a leading
EXPLAIN), "sql_expression" (one expression, safe to splice into DDL).
"""

import json
import re
from copy import deepcopy
from typing import Any, Mapping, Optional

from utils.sql import validate_explainable_query, validate_read_query, validate_sql_expression
from .errors import InvalidArguments

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")
MAX_IDENTIFIER_LENGTH = 63  # PostgreSQL NAMEDATALEN - 1

# format -> (check returning (ok, message), violation code)
SQL_FORMATS = {
    "read_query": (validate_read_query, "READ_ONLY_VIOLATION"),
    "explainable_query": (validate_explainable_query, "INVALID_QUERY"),
    "sql_expression": (validate_sql_expression, "INVALID_EXPRESSION"),
}

VALID_TYPES = {"string", "integer", "number", "boolean", "array", "object"}
VALID_FORMATS = {"identifier"} | set(SQL_FORMATS)
KNOWN_KEYWORDS = {
    "type", "enum", "format", "pattern", "minLength", "maxLength", "minimum", "maximum",
    "items", "minItems", "maxItems", "properties", "required", "additionalProperties",
    "default", "description",
}


def _error(code: str, path: str, message: str, **extra) -> dict:
    """Build a structured validation error."""
    err = {"code": code, "path": path, "message": message}
    err.update(extra)
    return err


def _join(path: str, key) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else str(key)


def _type_matches(expected: str, value: Any) -> bool:
    # bool is an int subclass; never accept it for numeric fields
    if expected == "string":
        return isinstance(value, str)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    return False


def _coerce_json_string(expected: Optional[str], value: Any) -> Any:
    """MCP clients sometimes send arrays/objects as JSON strings."""
    if expected in ("array", "object") and isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _validate_value(schema: Mapping[str, Any], value: Any, path: str, errors: list) -> Any:
    expected = schema.get("type")
    value = _coerce_json_string(expected, value)

    if expected and not _type_matches(expected, value):
        errors.append(_error(
            "INVALID_TYPE", path,
            f"'{path}' must be of type {expected}, got {type(value).__name__}",
        ))
        return value

    if "enum" in schema and value not in schema["enum"]:
        errors.append(_error(
            "INVALID_VALUE", path,
            f"'{path}' must be one of {schema['enum']}",
            validValues=list(schema["enum"]),
        ))

    if isinstance(value, str):
        if schema.get("format") == "identifier":
            if not IDENTIFIER_RE.match(value):
                errors.append(_error(
                    "INVALID_IDENTIFIER", path,
                    f"'{path}' must be a plain identifier (letters, digits, _ or $, not starting with a digit)",
                ))
            elif len(value) > MAX_IDENTIFIER_LENGTH:
                errors.append(_error(
                    "INVALID_IDENTIFIER", path,
                    f"'{path}' is longer than {MAX_IDENTIFIER_LENGTH} characters",
                ))
        elif schema.get("format") in SQL_FORMATS:
            check, code = SQL_FORMATS[schema["format"]]
            ok, message = check(value)
            if not ok:
                errors.append(_error(code, path, f"'{path}': {message}"))
        if "pattern" in schema and not re.fullmatch(schema["pattern"], value):
            errors.append(_error("INVALID_FORMAT", path, f"'{path}' does not match the expected format"))
        if "minLength" in schema and len(value) < schema["minLength"]:
            errors.append(_error("INVALID_VALUE", path, f"'{path}' must be at least {schema['minLength']} characters"))
        if "maxLength" in schema and len(value) > schema["maxLength"]:
            errors.append(_error("INVALID_VALUE", path, f"'{path}' must be at most {schema['maxLength']} characters"))

    elif expected in ("integer", "number"):
        if "minimum" in schema and value < schema["minimum"]:
            errors.append(_error("INVALID_VALUE", path, f"'{path}' must be >= {schema['minimum']}"))
        if "maximum" in schema and value > schema["maximum"]:
            errors.append(_error("INVALID_VALUE", path, f"'{path}' must be <= {schema['maximum']}"))

    elif isinstance(value, list):
        if "minItems" in schema and len(value) < schema["minItems"]:
            errors.append(_error("INVALID_VALUE", path, f"'{path}' must have at least {schema['minItems']} items"))
        if "maxItems" in schema and len(value) > schema["maxItems"]:
            errors.append(_error("INVALID_VALUE", path, f"'{path}' must have at most {schema['maxItems']} items"))
        item_schema = schema.get("items")
        if item_schema:
            value = [
                _validate_value(item_schema, item, _join(path, index), errors)
                for index, item in enumerate(value)
            ]

    elif isinstance(value, dict) and "properties" in schema:
        value = _validate_object(schema, value, path, errors)

    return value


def _validate_object(schema: Mapping[str, Any], arguments: dict, path: str, errors: list) -> dict:
    properties = schema.get("properties", {})
    validated = {}

    for name in schema.get("required", []):
        if arguments.get(name) is None:
            errors.append(_error("MISSING_FIELD", _join(path, name), f"'{_join(path, name)}' is required"))

    if not schema.get("additionalProperties", False):
        for name in arguments:
            if name not in properties:
                errors.append(_error(
                    "UNKNOWN_FIELD", _join(path, name),
                    f"Unknown field '{_join(path, name)}'",
                    validFields=list(properties.keys()),
                ))

    for name, value in arguments.items():
        field_schema = properties.get(name)
        if field_schema is None:
            if schema.get("additionalProperties", False):
                validated[name] = value
            continue
        # Explicit null means "not provided" for optional fields
        if value is None:
            continue
        validated[name] = _validate_value(field_schema, value, _join(path, name), errors)

    for name, field_schema in properties.items():
        if name not in validated and "default" in field_schema:
            validated[name] = deepcopy(field_schema["default"])

    return validated


def validate_arguments(schema: Mapping[str, Any], raw_arguments: Any, operation: str = "operation") -> dict:
    """
    Validate raw arguments against an input schema.

    Returns a new dict holding the validated arguments with defaults applied.
    Raises InvalidArguments listing every violation; nothing is executed on
    invalid input.
    """
    if raw_arguments is None:
        raw_arguments = {}
    if not isinstance(raw_arguments, dict):
        raise InvalidArguments(operation, [
            _error("INVALID_TYPE", "", "Arguments must be an object")
        ])

    errors: list = []
    validated = _validate_object(schema, raw_arguments, "", errors)
    if errors:
        raise InvalidArguments(operation, errors)
    return validated


def check_schema(schema: Any, path: str = "") -> list[str]:
    """
    Check that an input schema only uses supported keywords and types.
    Returns a list of problems (empty when the schema is well-formed).
    """
    problems = []
    if not isinstance(schema, dict):
        return [f"{path or '<root>'}: schema must be an object"]

    unknown = set(schema) - KNOWN_KEYWORDS
    if unknown:
        problems.append(f"{path or '<root>'}: unsupported keywords {sorted(unknown)}")

    schema_type = schema.get("type")
    if schema_type is not None and schema_type not in VALID_TYPES:
        problems.append(f"{path or '<root>'}: unsupported type '{schema_type}'")
    if "format" in schema and schema["format"] not in VALID_FORMATS:
        problems.append(f"{path or '<root>'}: unsupported format '{schema['format']}'")
    if "pattern" in schema:
        try:
            re.compile(schema["pattern"])
        except re.error as e:
            problems.append(f"{path or '<root>'}: invalid pattern ({e})")

    properties = schema.get("properties", {})
    for name in schema.get("required", []):
        if name not in properties:
            problems.append(f"{_join(path, name)}: required but not declared in properties")
    for name, field_schema in properties.items():
        problems.extend(check_schema(field_schema, _join(path, name)))
    if "items" in schema:
        problems.extend(check_schema(schema["items"], _join(path, "items")))

    return problems
