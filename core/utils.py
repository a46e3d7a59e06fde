import functools
import json
import logging

from googleapiclient.errors import HttpError

from gforms.client import classify_http_error
from gforms.errors import FormsError

logger = logging.getLogger(__name__)


def format_tool_error(tool_name: str, error: FormsError) -> str:
    """Readable tool result for a pipeline error, with structured details appended."""
    payload = error.to_dict()
    text = f"Error in {tool_name} ({payload['kind']}): {error.message}"
    if "path" in payload:
        text += f"\nPath: {payload['path']}"
    if "details" in payload:
        text += f"\nDetails: {json.dumps(payload['details'], indent=2, default=str)}"
    return text


def handle_tool_errors(tool_name: str):
    """
    Decorator for async MCP tools.

    Pipeline errors and Google API HttpErrors become a readable result string
    and are logged. Anything else is logged and re-raised for the MCP layer.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except FormsError as error:
                logger.error(f"[{tool_name}] {error.kind}: {error.message}")
                return format_tool_error(tool_name, error)
            except HttpError as error:
                classified = classify_http_error(error, tool_name)
                logger.error(f"[{tool_name}] {classified.kind}: {classified.message}")
                return format_tool_error(tool_name, classified)
            except Exception as error:
                logger.exception(f"[{tool_name}] Unexpected error: {error}")
                raise

        return wrapper

    return decorator
