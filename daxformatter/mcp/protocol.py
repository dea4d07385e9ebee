"""
DAX Formatter MCP Protocol Constants
"""

from enum import Enum

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

# Methods under this prefix are fire-and-forget notifications.
NOTIFICATION_PREFIX = "notifications/"

# Standard JSON-RPC Error Codes
PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class McpMethod(str, Enum):
    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    PROMPTS_LIST = "prompts/list"


class FormatterTool(str, Enum):
    FORMAT_DAX = "format_dax"
    FORMAT_DAX_MULTIPLE = "format_dax_multiple"


def is_notification_method(method: str) -> bool:
    return method.startswith(NOTIFICATION_PREFIX)
