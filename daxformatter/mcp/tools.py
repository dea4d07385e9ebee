"""
DAX formatting tools.

``format_dax`` formats one expression. ``format_dax_multiple`` sends the
whole batch in one call and, when that call fails for any reason, degrades
to one call per expression so a single bad expression (or a service that
rejects large batches) still yields every result it can.
"""

import logging
from typing import Any, List, Optional, Sequence

from daxformatter.core.config import GatewayConfig
from daxformatter.sdk.client import DaxFormatterClient
from daxformatter.sdk.errors import DaxFormatterError
from daxformatter.sdk.models import (
    DaxFormatterMultipleRequest,
    DaxFormatterResponse,
    DaxFormatterSingleRequest,
)

from .arguments import (
    ArgumentsError,
    FormatDaxArguments,
    FormatDaxMultipleArguments,
    FormattingOptions,
    parse_model,
)
from .envelope import RpcResponse, error_response, success_response
from .metrics import ToolCallMetrics
from .protocol import INTERNAL_ERROR, INVALID_PARAMS, FormatterTool
from .utils import public_error_message, text_content, truncate_tool_text

logger = logging.getLogger("DaxFormatter.mcp.tools")


def formatted_block(position: int, formatted: str) -> str:
    return f"**Expression {position}:**\n```dax\n{formatted}\n```"


def error_block(position: int, message: str) -> str:
    return f"**Expression {position} (Error):**\n```\nError: {message}\n```"


def format_expression(
    client: DaxFormatterClient,
    expression: str,
    options: Optional[FormattingOptions],
) -> DaxFormatterResponse:
    """Format one expression, sending only the options that were supplied."""
    if options is None:
        return client.format(expression)
    request = DaxFormatterSingleRequest(dax=expression)
    options.apply_to(request)
    return client.format_request(request)


def format_sequentially(
    client: DaxFormatterClient,
    expressions: Sequence[str],
    options: Optional[FormattingOptions],
) -> List[str]:
    """
    Format each expression on its own, in order.

    Any failure for one expression becomes that position's error block;
    the remaining positions are still formatted.
    """
    blocks: List[str] = []
    for position, expression in enumerate(expressions, start=1):
        try:
            response = format_expression(client, expression, options)
        except DaxFormatterError as exc:
            logger.info("Expression %d failed in fallback mode: %s", position, exc)
            blocks.append(error_block(position, public_error_message(exc)))
            continue
        except Exception as exc:
            logger.exception("Unexpected failure formatting expression %d in fallback mode", position)
            blocks.append(error_block(position, public_error_message(exc)))
            continue
        blocks.append(formatted_block(position, response.formatted))
    return blocks


def _invalid_arguments(msg_id: Any, exc: ArgumentsError, fallback_message: str) -> RpcResponse:
    if exc.field == "options":
        return error_response(msg_id, INVALID_PARAMS, f"Invalid formatting options: {exc}")
    return error_response(msg_id, INVALID_PARAMS, fallback_message)


def handle_format_dax(
    msg_id: Any,
    raw_arguments: Any,
    client: DaxFormatterClient,
    gateway: GatewayConfig,
) -> RpcResponse:
    try:
        arguments = parse_model(FormatDaxArguments, raw_arguments)
    except ArgumentsError as exc:
        return _invalid_arguments(msg_id, exc, "Invalid DAX expression provided")
    if not arguments.dax:
        return error_response(msg_id, INVALID_PARAMS, "Invalid DAX expression provided")

    try:
        response = format_expression(client, arguments.dax, arguments.options)
    except DaxFormatterError as exc:
        logger.warning("DAX formatting failed: %s", exc)
        return error_response(msg_id, INTERNAL_ERROR, f"Error formatting DAX: {public_error_message(exc)}")

    text = f"Formatted DAX:\n\n```dax\n{response.formatted}\n```"
    return success_response(
        msg_id,
        text_content(truncate_tool_text(text, FormatterTool.FORMAT_DAX.value, gateway.tool_response_max_chars)),
    )


def handle_format_dax_multiple(
    msg_id: Any,
    raw_arguments: Any,
    client: DaxFormatterClient,
    gateway: GatewayConfig,
    metrics: Optional[ToolCallMetrics] = None,
) -> RpcResponse:
    try:
        arguments = parse_model(FormatDaxMultipleArguments, raw_arguments)
    except ArgumentsError as exc:
        return _invalid_arguments(msg_id, exc, "Invalid expressions provided")
    if not arguments.expressions:
        return error_response(msg_id, INVALID_PARAMS, "Invalid expressions provided")

    expressions = list(arguments.expressions)
    request = DaxFormatterMultipleRequest(dax=expressions)
    if arguments.options is not None:
        arguments.options.apply_to(request)

    try:
        responses = client.format_multiple(request)
    except Exception as exc:
        if not gateway.batch_fallback:
            logger.warning("Batch formatting failed and fallback is disabled: %s", exc)
            return error_response(
                msg_id,
                INTERNAL_ERROR,
                f"Error formatting multiple DAX expressions: {public_error_message(exc)}",
            )
        logger.info("Batch formatting failed, falling back to individual formatting: %s", exc)
        if metrics is not None:
            metrics.fallback_used = True
        blocks = format_sequentially(client, expressions, arguments.options)
        header = f"Formatted {len(expressions)} DAX expressions (fallback mode):"
    else:
        blocks = [
            formatted_block(position, response.formatted)
            for position, response in enumerate(responses, start=1)
        ]
        header = f"Formatted {len(responses)} DAX expressions:"

    text = header + "\n\n" + "\n\n".join(blocks)
    return success_response(
        msg_id,
        text_content(
            truncate_tool_text(text, FormatterTool.FORMAT_DAX_MULTIPLE.value, gateway.tool_response_max_chars)
        ),
    )
