"""
MCP Server Entry Point for PostgreSQL database operations
Run with: python server.py

Tools are grouped into categories. Only essential categories are listed at
startup; the client calls load_category to make the others invocable, and
the server sends a tools/list_changed notification afterwards.
"""

import asyncio
import logging
import sys
from typing import Any, List, Optional

from mcp.server.models import InitializationOptions
from mcp.server import NotificationOptions, Server
from mcp.server.stdio import stdio_server
from mcp import types

from config import DatabaseConfig, RegistryConfig, get_log_level, load_app_environment
from models import Operation, ResponseEnvelope
from registry.facade import ToolRegistry, create_registry

__version__ = "1.0.0"

SERVER_NAME = "pgtools-mcp-server"

logger = logging.getLogger(__name__)

def list_categories_tool() -> types.Tool:
    return types.Tool(
        name="list_categories",
        description="List the tool categories with their descriptions, operations and whether they are loaded. Operations of a category become callable only after load_category.",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": []
        }
    )


def load_category_tool(category_names: List[str]) -> types.Tool:
    return types.Tool(
        name="load_category",
        description="Load a tool category so its operations become callable. Loading an already loaded category is harmless. Call list_categories first to see what each category contains.",
        inputSchema={
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "enum": category_names,
                    "description": "Category to load"
                }
            },
            "required": ["category"]
        }
    )


def operation_tool(operation: Operation) -> types.Tool:
    description = operation.description
    if operation.risk_level.value != "read" and "Destructive" not in description:
        description = f"{description} [{operation.risk_level.value}]"
    return types.Tool(
        name=operation.name,
        description=description,
        inputSchema=dict(operation.input_schema),
    )


def envelope_to_content(envelope: ResponseEnvelope) -> list[types.TextContent]:
    """Render an envelope as the JSON text the client receives."""
    return [types.TextContent(
        type="text",
        text=envelope.model_dump_json(exclude_none=True, indent=2)
    )]


def list_registry_tools(registry: ToolRegistry) -> list[types.Tool]:
    """Meta tools plus every operation of the currently loaded categories."""
    tools = [
        list_categories_tool(),
        load_category_tool(registry.catalogue.category_names()),
    ]
    tools.extend(operation_tool(operation) for operation in registry.list_operations())
    return tools


async def route_call(registry: ToolRegistry, name: str, arguments: Optional[dict[str, Any]]) -> ResponseEnvelope:
    """Route meta tools to the registry and everything else to the dispatcher."""
    arguments = arguments or {}

    if name == "list_categories":
        return await registry.list_categories()
    if name == "load_category":
        return await registry.load_category(arguments.get("category", ""))
    return await registry.invoke(name, arguments)


def build_server(registry: ToolRegistry) -> Server:
    """Create the MCP server wired to one registry."""
    app = Server(SERVER_NAME)

    @app.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return list_registry_tools(registry)

    @app.call_tool()
    async def handle_call_tool(
        name: str, arguments: Optional[dict[str, Any]]
    ) -> list[types.TextContent]:
        envelope = await route_call(registry, name, arguments)

        if name == "load_category" and envelope.ok and not envelope.payload["already_loaded"]:
            await _notify_tools_changed(app)
        if not envelope.ok:
            logger.info(f"Tool {name} returned {envelope.error_kind.value}: {envelope.error_message}")
        return envelope_to_content(envelope)

    return app


async def _notify_tools_changed(app: Server):
    try:
        await app.request_context.session.send_tool_list_changed()
    except LookupError:
        # Called outside a request (tests, direct use)
        logger.debug("No active session; skipping tools/list_changed notification")
    except Exception as e:
        logger.warning(f"Failed to send tools/list_changed notification: {e}")


async def main():
    """Main entry point for MCP server"""
    registry: Optional[ToolRegistry] = None

    try:
        env_mode = load_app_environment()
        db_config = DatabaseConfig.from_environment(env_mode)
        registry_config = RegistryConfig.from_environment()

        registry = await create_registry(db_config, registry_config)
        app = build_server(registry)

        logger.info("pgtools MCP Server starting...")
        logger.info(f"Environment: {env_mode}")
        logger.info(f"Connected to database: {db_config.database} at {db_config.host}")

        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=app.get_capabilities(
                        notification_options=NotificationOptions(tools_changed=True),
                        experimental_capabilities={}
                    )
                )
            )
    except Exception as e:
        logger.error(f"Failed to start MCP server: {e}", exc_info=True)
        raise
    finally:
        if registry:
            await registry.close(timeout=registry.pool.acquire_timeout)
            logger.info("Database connection pool closed")


def cli_entry():
    """Entry point for console script - wraps async main()"""
    import argparse

    parser = argparse.ArgumentParser(description="PostgreSQL database operations MCP Server")
    parser.add_argument('--version', '-v', action='store_true', help='Show version')
    parser.add_argument('--env', type=str, default=None, help='Environment mode (development, test, production)')

    args = parser.parse_args()

    if args.version:
        print(f"{SERVER_NAME} version {__version__}")
        sys.exit(0)

    if args.env:
        import os
        os.environ['APP_ENV'] = args.env

    # stderr only; stdout carries the MCP stdio transport
    logging.basicConfig(level=get_log_level(), stream=sys.stderr)
    logger.info("Starting in stdio mode...")
    asyncio.run(main())


if __name__ == "__main__":
    cli_entry()
