"""Sprintboard MCP Server - expose cached sprint boards to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent
from pydantic import ValidationError

from sprintboard_core.config import get_settings
from sprintboard_core.exceptions import SprintboardError
from sprintboard_core.project_cache import ProjectCache

from . import tools
from . import handlers

settings = get_settings()

# Configure logging to stderr (stdout carries the MCP stream)
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("sprintboard-mcp")

logger.info(f"MCP Server starting with API base URL: {settings.api_base_url}")
if settings.api_token:
    logger.info("MCP Server configured with bearer token authentication")
else:
    logger.info("MCP Server running without authentication (local development mode)")


# MCP Server instance
app = Server("sprintboard-mcp")

# One engine per server process; created on first tool call inside the event loop
_project_cache: Optional[ProjectCache] = None


def get_project_cache() -> ProjectCache:
    global _project_cache
    if _project_cache is None:
        _project_cache = ProjectCache(settings)
    return _project_cache


@app.list_tools()
async def list_tools():
    """List available MCP tools."""
    return tools.get_tools()


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle MCP tool calls by delegating to handlers."""
    logger.info(f"Tool call: {name} with arguments: {arguments}")

    handler = handlers.HANDLERS.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        return await handler(dict(arguments or {}), get_project_cache(), settings)

    except ValidationError as e:
        logger.error(f"Invalid arguments for {name}: {e}")
        return [TextContent(type="text", text=f"Error: invalid arguments: {e}")]

    except KeyError as e:
        logger.error(f"Missing argument for {name}: {e}")
        return [TextContent(type="text", text=f"Error: missing required argument {e}")]

    except SprintboardError as e:
        logger.error(f"Cache engine error during {name} call: {e}")
        return [TextContent(type="text", text=f"Error: {e}")]

    except Exception as e:
        # Catch-all for unexpected errors
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Arguments: {arguments}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        return [TextContent(type="text", text=f"Error: {type(e).__name__}: {str(e)}")]


async def main():
    """Run the MCP server."""
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        if _project_cache is not None:
            await _project_cache.aclose()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
