"""Command-line entry point for ``bitbucket-mcp`` / ``python -m bitbucket_mcp``."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

from bitbucket_mcp.errors import SafeError
from bitbucket_mcp.safety import configure_logging
from bitbucket_mcp.server import run_server, test_server

EXIT_CONFIG_ERROR = 2


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bitbucket-mcp", description="Bitbucket MCP server (stdio)")
    parser.add_argument(
        "--test",
        action="store_true",
        help="Build tool and resource descriptors without contacting Bitbucket, then exit.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("BITBUCKET_MCP_LOG_LEVEL", "INFO"),
        help="Logging level for stderr output (default: $BITBUCKET_MCP_LOG_LEVEL or INFO).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the server, or the offline self-test with `--test`.

    Returns the process exit code; startup configuration errors exit with 2.
    """
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args.test:
        configure_logging(args.log_level)
        asyncio.run(test_server())
        return 0

    try:
        asyncio.run(run_server(log_level=args.log_level))
    except SafeError:
        # Already logged by run_server.
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("\nServer stopped by user", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
