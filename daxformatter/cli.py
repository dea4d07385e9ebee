"""
DAX Formatter MCP command line.

Usage:
    daxformatter [serve] [options]
    daxformatter format [options] [EXPRESSION ...]
    python -m daxformatter --help

Commands:
    serve     Run the MCP gateway on stdin/stdout (default when no command
              is given). This is what MCP hosts launch.
    format    Format expressions once and print the result. Expressions are
              taken from the arguments, from --file, or from stdin.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import yaml

from daxformatter.core.config import DaxFormatterConfig
from daxformatter.core.logs import configure_logging
from daxformatter.sdk.client import DaxFormatterClient
from daxformatter.sdk.errors import DaxFormatterError
from daxformatter.sdk.models import (
    DaxFormatterMultipleRequest,
    DaxFormatterSingleRequest,
    FunctionSpacing,
    LineLength,
)
from daxformatter.version import __version__

logger = logging.getLogger("DaxFormatter.cli")

_COMMANDS = ("serve", "format")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="YAML configuration file (default: environment variables only).",
    )
    parser.add_argument(
        "--service-url",
        default=None,
        metavar="URL",
        help="DAX Formatter service base URL (default: DAXFMT_SERVICE_URL or https://www.daxformatter.com).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Timeout for each call to the formatting service (default: DAXFMT_TIMEOUT_SEC or 30).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        metavar="LEVEL",
        help="Logging level (default: DAXFMT_LOG_LEVEL or INFO).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        metavar="PATH",
        help="Append logs to this file instead of stderr.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daxformatter",
        description="DAX Formatter MCP gateway and one-shot formatter.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  daxformatter\n"
               "  daxformatter serve --log-file daxformatter.log\n"
               "  daxformatter format \"EVALUATE VALUES(Sales[Amount])\"\n"
               "  daxformatter format --file measure.dax --line-length ShortLine\n",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser(
        "serve",
        help="Run the MCP gateway over stdio.",
        description=(
            "Reads line-delimited JSON-RPC requests from stdin and writes one\n"
            "response line per request to stdout. Logs never go to stdout."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_arguments(serve)
    serve.add_argument(
        "--no-fallback",
        action="store_true",
        default=False,
        help="Return an error when a batch call fails instead of formatting expressions one by one.",
    )

    fmt = subparsers.add_parser(
        "format",
        help="Format DAX expressions once and print them.",
    )
    _add_common_arguments(fmt)
    fmt.add_argument("expressions", nargs="*", metavar="EXPRESSION", help="DAX expressions to format.")
    fmt.add_argument(
        "--file",
        default=None,
        metavar="PATH",
        help="Read one expression from this file ('-' for stdin).",
    )
    fmt.add_argument(
        "--line-length",
        choices=[member.value for member in LineLength],
        default=None,
        help="Maximum line length (service default: LongLine).",
    )
    fmt.add_argument(
        "--spacing",
        choices=[member.value for member in FunctionSpacing],
        default=None,
        help="Spacing after function names (service default: BestPractice).",
    )
    return parser


def load_config(args: argparse.Namespace) -> DaxFormatterConfig:
    """Resolve configuration: file or environment first, then command line overrides."""
    config = DaxFormatterConfig.from_yaml(args.config) if args.config else DaxFormatterConfig.from_env()
    if args.service_url:
        config.service.base_url = args.service_url.strip()
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ValueError("--timeout must be positive")
        config.service.timeout = args.timeout
    if args.log_level:
        config.logging.level = args.log_level.upper()
    if args.log_file:
        config.logging.file = args.log_file
    if getattr(args, "no_fallback", False):
        config.gateway.batch_fallback = False
    return config


def _read_expressions(args: argparse.Namespace) -> List[str]:
    expressions = list(args.expressions)
    if args.file == "-" or (args.file is None and not expressions):
        expressions.append(sys.stdin.read())
    elif args.file is not None:
        with open(args.file, "r", encoding="utf-8") as f:
            expressions.append(f.read())
    return [expression for expression in expressions if expression.strip()]


def cmd_serve(args: argparse.Namespace, config: DaxFormatterConfig) -> int:
    from daxformatter.mcp.server import run

    try:
        run(config)
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
    return 0


def cmd_format(args: argparse.Namespace, config: DaxFormatterConfig) -> int:
    expressions = _read_expressions(args)
    if not expressions:
        print("Error: no DAX expression given", file=sys.stderr)
        return 1

    settings = {}
    if args.line_length:
        settings["max_line_length"] = LineLength(args.line_length)
    if args.spacing:
        settings["skip_space_after_function_name"] = FunctionSpacing(args.spacing)

    try:
        with DaxFormatterClient(
            base_url=config.service.base_url,
            timeout=config.service.timeout,
            max_retries=config.service.max_retries,
        ) as client:
            if len(expressions) == 1:
                results = [client.format_request(DaxFormatterSingleRequest(dax=expressions[0], **settings))]
            else:
                results = client.format_multiple(DaxFormatterMultipleRequest(dax=expressions, **settings))
    except (DaxFormatterError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print("\n\n".join(result.formatted.rstrip("\n") for result in results))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args_list = list(sys.argv[1:] if argv is None else argv)
    if not args_list or (args_list[0] not in _COMMANDS and args_list[0] not in ("-h", "--help", "--version")):
        args_list.insert(0, "serve")

    parser = build_parser()
    args = parser.parse_args(args_list)

    try:
        config = load_config(args)
    except (ValueError, yaml.YAMLError) as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        return 2
    configure_logging(config.logging)

    if args.command == "serve":
        return cmd_serve(args, config)
    if args.command == "format":
        return cmd_format(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
