from typing import Any, Dict, List

from daxformatter.sdk.models import FunctionSpacing, LineLength

from .protocol import FormatterTool

FORMATTING_OPTIONS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "description": "Optional formatting options",
    "properties": {
        "maxLineLength": {
            "type": "string",
            "enum": [member.value for member in LineLength],
            "default": LineLength.LONG_LINE.value,
            "description": "Maximum line length (ShortLine, LongLine, or VeryLongLine)",
        },
        "skipSpaceAfterFunctionName": {
            "type": "string",
            "enum": [member.value for member in FunctionSpacing],
            "default": FunctionSpacing.BEST_PRACTICE.value,
            "description": "Spacing after function names (BestPractice or False)",
        },
        "listSeparator": {
            "type": "string",
            "default": ",",
            "description": "List separator character",
        },
        "decimalSeparator": {
            "type": "string",
            "default": ".",
            "description": "Decimal separator character",
        },
        "databaseName": {
            "type": "string",
            "description": "Database name for context (will be anonymized)",
        },
        "serverName": {
            "type": "string",
            "description": "Server name for context (will be anonymized)",
        },
    },
}

TOOLS_SCHEMAS: List[Dict[str, Any]] = [
    {
        "name": FormatterTool.FORMAT_DAX.value,
        "description": "Format a single DAX expression according to SQLBI formatting standards",
        "inputSchema": {
            "type": "object",
            "properties": {
                "dax": {"type": "string", "description": "The DAX expression to format"},
                "options": FORMATTING_OPTIONS_SCHEMA,
            },
            "required": ["dax"],
        },
    },
    {
        "name": FormatterTool.FORMAT_DAX_MULTIPLE.value,
        "description": "Format multiple DAX expressions in a single request",
        "inputSchema": {
            "type": "object",
            "properties": {
                "expressions": {
                    "type": "array",
                    "description": "Array of DAX expressions to format",
                    "items": {"type": "string"},
                    "minItems": 1,
                },
                "options": FORMATTING_OPTIONS_SCHEMA,
            },
            "required": ["expressions"],
        },
    },
]

# Formatting never mutates anything and the same input always formats the same way.
READ_ONLY_TOOLS = {tool.value for tool in FormatterTool}
IDEMPOTENT_TOOLS = {tool.value for tool in FormatterTool}
DESTRUCTIVE_TOOLS: set = set()
