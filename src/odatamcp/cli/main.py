"""CLI entrypoint for the OData MCP bridge."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import anyio

from odatamcp.config.serving_models import ServerConfig, parse_tool_options
from odatamcp.mcp.server import serve
from odatamcp.schema import SchemaLoadError

LOG = logging.getLogger("odatamcp.cli")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "odata-mcp.log"
# Hourly files, one week of history.
LOG_BACKUP_COUNT = 168

EXAMPLES = """\
Examples:
  odata-mcp https://services.odata.org/V4/Northwind/Northwind.svc
  odata-mcp https://services.odata.org/V4/Northwind/Northwind.svc +f
  odata-mcp https://services.odata.org/V4/Northwind/Northwind.svc -c +f
"""


# ---------------------------------------------------------------------------
# Argument parsing / logging setup
# ---------------------------------------------------------------------------


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _setup_logging(verbosity: int, *, interactive: bool, log_dir: Path) -> None:
    """
    Configure logging based on -v/--verbose count and the terminal.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG. Without a terminal stdout carries the
    MCP stream, so records go to an hourly rotated file at INFO or finer.
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    if interactive:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=sys.stderr)
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        when="h",
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logging.basicConfig(level=min(level, logging.INFO), handlers=[handler])


def _add_toggle_args(parser: argparse.ArgumentParser) -> None:
    toggles = parser.add_argument_group("tool options")
    for letter, label, default in (
        ("c", "count", "+c"),
        ("g", "get", "+g"),
        ("f", "filter", "-f"),
    ):
        toggles.add_argument(
            f"+{letter}",
            f"+{letter.upper()}",
            dest="tool_options",
            action="append_const",
            const=f"+{letter}",
            help=f"Enable {label} tools (default: {default})",
        )
        toggles.add_argument(
            f"-{letter}",
            f"-{letter.upper()}",
            dest="tool_options",
            action="append_const",
            const=f"-{letter}",
            help=f"Disable {label} tools",
        )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Parser accepting ``<metadata-url> [tool-options]``.
    """
    parser = argparse.ArgumentParser(
        prog="odata-mcp",
        description="Expose an OData service's entity sets as MCP tools over stdio.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        prefix_chars="-+",
    )
    parser.add_argument(
        "metadata_url",
        nargs="?",
        help="OData service root or $metadata URL",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v INFO, -vv DEBUG)",
    )
    _add_toggle_args(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run the OData MCP server.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args, unknown = parser.parse_known_args(None if argv is None else list(argv))
    if args.metadata_url is None:
        parser.print_help(sys.stderr)
        return 0

    toggles, _ = parse_tool_options(args.tool_options or [])
    try:
        config = ServerConfig.from_args(args.metadata_url, toggles)
    except ValueError as exc:
        parser.print_usage(sys.stderr)
        sys.stderr.write(f"odata-mcp: error: {exc}\n")
        return 2

    _setup_logging(args.verbose, interactive=_is_interactive(), log_dir=config.log_dir)
    for token in unknown:
        LOG.warning("Unknown tool option: %s", token)

    try:
        anyio.run(serve, config)
    except SchemaLoadError as exc:
        LOG.critical("Failed to load OData metadata (%s): %s", exc.kind, exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
