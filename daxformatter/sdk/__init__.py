"""
DAX Formatter SDK public exports.
"""

from daxformatter.sdk.client import DaxFormatterClient
from daxformatter.sdk.errors import (
    DaxFormatterAPIError,
    DaxFormatterConnectionError,
    DaxFormatterError,
    DaxFormatterSyntaxError,
)
from daxformatter.sdk.models import (
    DaxFormatterMultipleRequest,
    DaxFormatterResponse,
    DaxFormatterSingleRequest,
    FunctionSpacing,
    LineLength,
)

__all__ = [
    "DaxFormatterClient",
    "DaxFormatterError",
    "DaxFormatterConnectionError",
    "DaxFormatterAPIError",
    "DaxFormatterSyntaxError",
    "DaxFormatterSingleRequest",
    "DaxFormatterMultipleRequest",
    "DaxFormatterResponse",
    "LineLength",
    "FunctionSpacing",
]
