"""
DAX Formatter MCP: DAX formatting for AI assistants over stdio JSON-RPC
"""

from daxformatter.sdk import (
    DaxFormatterAPIError,
    DaxFormatterClient,
    DaxFormatterConnectionError,
    DaxFormatterError,
    DaxFormatterSyntaxError,
)
from daxformatter.version import __version__

__all__ = [
    "__version__",
    "DaxFormatterClient",
    "DaxFormatterError",
    "DaxFormatterConnectionError",
    "DaxFormatterAPIError",
    "DaxFormatterSyntaxError",
]
