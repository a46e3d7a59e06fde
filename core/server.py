import logging

from mcp.server.fastmcp import FastMCP

from core.services import Services
from gforms.forms_tools import register_forms_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "autoform"
SERVER_INSTRUCTIONS = (
    "Generate Google Forms from natural language. Typical flow: generate_form_schema, "
    "optionally validate_form_schema or preview_form_requests, then create_google_form."
)


def build_server(
    services: Services, host: str = "127.0.0.1", port: int = 8000
) -> FastMCP:
    """Create the FastMCP server with every form tool registered."""
    server = FastMCP(
        SERVER_NAME, instructions=SERVER_INSTRUCTIONS, host=host, port=port
    )
    register_forms_tools(server, services)
    logger.info(f"[build_server] MCP server '{SERVER_NAME}' ready")
    return server
