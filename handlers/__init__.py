"""
Operation bodies, one module per category.

Every handler has the signature

    async def handle_<operation>(conn, arguments: dict) -> RowSet | Scalar | Identifier

where conn is the single leased connection for the invocation and
arguments have already been validated (defaults applied, confirmation flag
removed). Handlers never acquire connections themselves.
"""
