"""FileHub command-line interface.

Usage:
    python -m filehub serve [--host HOST] [--port PORT] [--reload]
    python -m filehub list [--owner OWNER]

Exit codes:
    0: Success
    1: Internal error
    2: Configuration error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import uvicorn

from filehub.config import ConfigError, Settings, load_settings
from filehub.ledger import JsonlFileLedger
from filehub.logging_config import configure_logging

logger = logging.getLogger(__name__)

APP_FACTORY = "filehub.api.main:create_app"


def _output_json(data: Any) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the HTTP server with uvicorn."""
    host = args.host or settings.host
    port = args.port or settings.port

    logger.info("Starting FileHub on http://%s:%d (upload_dir=%s)", host, port, settings.upload_dir)
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=host,
        port=port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    """Print ledger descriptors as JSON."""
    ledger = JsonlFileLedger(settings.ledger_path)
    if args.owner:
        descriptors = ledger.list_by_owner(args.owner)
    else:
        descriptors = ledger.list_all()

    _output_json([d.to_dict() for d in descriptors])
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="filehub",
        description="FileHub - file upload and range-serving service",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default=None, help="Bind host (default: FILEHUB_HOST)")
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Listening port (default: FILEHUB_PORT)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )

    list_parser = subparsers.add_parser("list", help="Print recorded file descriptors")
    list_parser.add_argument("--owner", default=None, help="Only files uploaded by this owner")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "serve":
            return cmd_serve(args, settings)
        if args.command == "list":
            return cmd_list(args, settings)
        return 0
    except Exception:
        logger.exception("Command %s failed", args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
