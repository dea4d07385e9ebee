import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from daxformatter.core.config import DaxFormatterConfig
from daxformatter.sdk.client import DaxFormatterClient
from daxformatter.version import __version__

from .arguments import ToolCallRequest
from .definitions import DESTRUCTIVE_TOOLS, IDEMPOTENT_TOOLS, READ_ONLY_TOOLS, TOOLS_SCHEMAS
from .envelope import RpcRequest, RpcResponse, error_response, success_response
from .metrics import ToolCallMetrics
from .protocol import (
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    FormatterTool,
    McpMethod,
    is_notification_method,
)
from .tools import handle_format_dax, handle_format_dax_multiple

logger = logging.getLogger("DaxFormatter.mcp.handlers")

INSTRUCTIONS = (
    "Use format_dax to format one DAX expression and format_dax_multiple to format "
    "several in one call. Formatting options are optional; omitted options use the "
    "DAX Formatter service defaults."
)


class GatewayContext:
    """Process-lifetime collaborators shared by every request."""

    def __init__(self, client: DaxFormatterClient, config: DaxFormatterConfig):
        self.client = client
        self.config = config


def handle_initialize(msg_id: Any, params: Any, context: GatewayContext) -> RpcResponse:
    """Answer the handshake. Client capabilities are not negotiated."""
    result = {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {"listChanged": False}},
        "serverInfo": {"name": context.config.gateway.server_name, "version": __version__},
        "instructions": INSTRUCTIONS,
    }
    return success_response(msg_id, result)


def handle_list_tools(msg_id: Any, params: Any, context: GatewayContext) -> RpcResponse:
    """List available tools with schemas and hints."""
    tools_list: List[Dict[str, Any]] = []
    for schema_def in TOOLS_SCHEMAS:
        name = schema_def["name"]
        read_only = name in READ_ONLY_TOOLS
        tools_list.append({
            "name": name,
            "description": schema_def["description"],
            "inputSchema": schema_def["inputSchema"],
            "annotations": {
                "readOnlyHint": read_only,
                "destructiveHint": name in DESTRUCTIVE_TOOLS,
                "idempotentHint": name in IDEMPOTENT_TOOLS or read_only,
                "openWorldHint": True,
            },
        })
    return success_response(msg_id, {"tools": tools_list})


def handle_list_resources(msg_id: Any, params: Any, context: GatewayContext) -> RpcResponse:
    return success_response(msg_id, {"resources": []})


def handle_list_prompts(msg_id: Any, params: Any, context: GatewayContext) -> RpcResponse:
    return success_response(msg_id, {"prompts": []})


def handle_call_tool(msg_id: Any, params: Any, context: GatewayContext) -> RpcResponse:
    """Validate a tools/call request and route it to the named tool."""
    if params is None:
        return error_response(msg_id, INVALID_PARAMS, "Invalid params")
    if not isinstance(params, dict):
        return error_response(msg_id, INVALID_PARAMS, "Invalid tool call request")
    try:
        call = ToolCallRequest.model_validate(params)
    except ValidationError as exc:
        logger.info("Rejected tools/call params: %s", exc.errors()[0].get("msg"))
        return error_response(msg_id, INVALID_PARAMS, "Invalid tool call request")

    try:
        tool = FormatterTool(call.name)
    except ValueError:
        return error_response(msg_id, INVALID_PARAMS, f"Unknown tool: {call.name}")

    gateway = context.config.gateway
    metrics = ToolCallMetrics(msg_id, tool.value)
    response: Optional[RpcResponse] = None
    try:
        if tool is FormatterTool.FORMAT_DAX:
            response = handle_format_dax(msg_id, call.arguments, context.client, gateway)
        else:
            response = handle_format_dax_multiple(
                msg_id, call.arguments, context.client, gateway, metrics=metrics
            )
        metrics.record_response(response)
        return response
    finally:
        if response is None:
            metrics.saw_error = True
        metrics.log_telemetry(warn_threshold_ms=gateway.tool_call_warn_ms)


MethodHandler = Callable[[Any, Any, GatewayContext], RpcResponse]

METHOD_HANDLERS: Dict[McpMethod, MethodHandler] = {
    McpMethod.INITIALIZE: handle_initialize,
    McpMethod.TOOLS_LIST: handle_list_tools,
    McpMethod.TOOLS_CALL: handle_call_tool,
    McpMethod.RESOURCES_LIST: handle_list_resources,
    McpMethod.PROMPTS_LIST: handle_list_prompts,
}


def dispatch_message(request: RpcRequest, context: GatewayContext) -> Optional[RpcResponse]:
    """
    Route one decoded request to its handler.

    Returns the response to write, or None when nothing is owed: methods
    under ``notifications/`` and requests that carry no ``id`` are logged
    and dropped. Exceptions raised by handlers propagate to the caller,
    which owns the internal-error reply.
    """
    if request.is_notification:
        if is_notification_method(request.method):
            logger.info("Received notification %s", request.method)
        else:
            logger.info("Ignoring %s request without id", request.method)
        return None

    try:
        method = McpMethod(request.method)
    except ValueError:
        logger.info("Method not found: %s", request.method)
        return error_response(request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}")

    handler = METHOD_HANDLERS[method]
    return handler(request.id, request.params, context)
