import argparse
import logging
import sys

from core.config import load_settings
from core.logging_setup import configure_logging
from core.server import build_server
from core.services import build_services

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="MCP server that turns prompts into Google Forms"
    )
    parser.add_argument(
        "--config", help="Path to a YAML settings file (default: $AUTOFORM_CONFIG)"
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    parser.add_argument(
        "--host", default="127.0.0.1", help="Bind address for streamable-http"
    )
    parser.add_argument(
        "--port", type=int, default=8000, help="Port for streamable-http"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    services = build_services(settings)
    server = build_server(services, host=args.host, port=args.port)

    if args.transport == "streamable-http":
        import uvicorn

        from core.app import create_app

        logger.info(f"Starting streamable HTTP server on {args.host}:{args.port}")
        uvicorn.run(create_app(server), host=args.host, port=args.port)
    else:
        logger.info("Starting stdio server")
        server.run(transport="stdio")
    return 0


if __name__ == "__main__":
    sys.exit(main())
