"""
SQL building helpers

Identifiers are validated by the input schema before they reach these
helpers; quoting here is the second line so generated DDL stays well-formed.
"""

import re
from typing import Iterable, Optional

# SELECT / WITH / EXPLAIN may still hide writes; statement keywords only
_FORBIDDEN_IN_READ = [
    (r'\bINSERT\b', 'INSERT'),
    (r'\bUPDATE\b', 'UPDATE'),
    (r'\bDELETE\s+FROM\b', 'DELETE FROM'),
    (r'\bTRUNCATE\b', 'TRUNCATE'),
    (r'\bCREATE\s+(TABLE|INDEX|VIEW|FUNCTION|PROCEDURE|SCHEMA|DATABASE|ROLE|POLICY)\b', 'CREATE'),
    (r'\bALTER\b', 'ALTER'),
    (r'\bDROP\b', 'DROP'),
    (r'\bGRANT\b', 'GRANT'),
    (r'\bREVOKE\b', 'REVOKE'),
    (r'\bVACUUM\b', 'VACUUM'),
    (r'\bREINDEX\b', 'REINDEX'),
    (r'\bCALL\b', 'CALL'),
    (r'\bCOPY\b', 'COPY'),
]

# Scanned left to right so a quote inside a comment (or "--" inside a
# literal) is not mistaken for the start of something else
_SKIPPABLE = re.compile(
    r"""
      (?P<dollar>(?<![A-Za-z0-9_$])\$(?P<tag>[A-Za-z_][A-Za-z0-9_]*|)\$.*?\$(?P=tag)\$)
    | (?P<escape>(?<![A-Za-z0-9_$])[Ee]'(?:[^'\\]|\\.|'')*')
    | (?P<string>'(?:[^']|'')*')
    | (?P<ident>"(?:[^"]|"")*")
    | (?P<line>--[^\n]*)
    | (?P<block>/\*.*?\*/)
    """,
    re.VERBOSE | re.DOTALL,
)


def quote_ident(name: str) -> str:
    """Quote an identifier for PostgreSQL."""
    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema: Optional[str], name: str) -> str:
    if schema:
        return f"{quote_ident(schema)}.{quote_ident(name)}"
    return quote_ident(name)


def quote_ident_list(names: Iterable[str]) -> str:
    return ", ".join(quote_ident(name) for name in names)


def quote_literal(value: str) -> str:
    """Quote a string literal for statements that can not take parameters (e.g. CREATE ROLE ... PASSWORD)."""
    return "'" + value.replace("'", "''") + "'"


def _blank(match: re.Match) -> str:
    if match.group("ident"):
        return '""'
    if match.group("line") or match.group("block"):
        return " "
    return "''"


def strip_literals(query: str) -> str:
    """
    Remove comments, string literals and quoted identifiers before keyword checks.

    Handles standard '...' strings, E'...' strings with backslash escapes
    and dollar-quoted $$...$$ / $tag$...$tag$ bodies.
    """
    return _SKIPPABLE.sub(_blank, query)


def validate_read_query(query: str) -> tuple[bool, str]:
    """
    Check that a SQL query is read-only.

    Returns: (is_safe, error_message)

    Only SELECT, WITH ... SELECT and EXPLAIN are allowed, as a single
    statement. Keywords inside string literals, quoted identifiers and
    comments are ignored.
    """
    stripped = strip_literals(query).strip().rstrip(";").strip()
    upper = stripped.upper()

    if not upper.startswith(('SELECT', 'WITH', 'EXPLAIN', 'VALUES', 'TABLE')):
        return False, "Query must start with SELECT, WITH, EXPLAIN, VALUES or TABLE"

    if ";" in stripped:
        return False, "Only a single statement is allowed"

    for pattern, keyword in _FORBIDDEN_IN_READ:
        if re.search(pattern, upper):
            return False, f"Query contains forbidden operation: {keyword}"

    return True, ""


def validate_explainable_query(query: str) -> tuple[bool, str]:
    """A read-only query that does not already start with EXPLAIN."""
    is_safe, message = validate_read_query(query)
    if not is_safe:
        return is_safe, message
    if strip_literals(query).lstrip().upper().startswith("EXPLAIN"):
        return False, "Pass the query itself, without EXPLAIN"
    return True, ""


def validate_sql_expression(expression: str) -> tuple[bool, str]:
    """
    Check a free-form SQL expression (DEFAULT, USING, WITH CHECK) before it
    is spliced into DDL.

    The expression must stay one expression: no ';' and balanced
    parentheses outside literals and comments.
    """
    stripped = strip_literals(expression)
    if ";" in stripped:
        return False, "Expression must not contain ';'"

    depth = 0
    for char in stripped:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        return False, "Expression has unbalanced parentheses"

    return True, ""


async def execute_single(conn, sql: str) -> str:
    """
    Run one statement through the extended query protocol.

    Unlike conn.execute(sql) without arguments, a prepared statement is
    refused by the server if the text holds more than one command.
    """
    stmt = await conn.prepare(sql)
    await stmt.fetch()
    return stmt.get_statusmsg()
