import logging
from typing import Any, Dict, List

logger = logging.getLogger("DaxFormatter.mcp.utils")


def truncate_tool_text(text: str, name: str, max_chars: int) -> str:
    """Apply the response length limit to tool text."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    omitted = len(text) - max_chars
    trailer = f"\n... [truncated {omitted} chars; set DAXFMT_TOOL_RESPONSE_MAX_CHARS to increase limit]"
    keep_chars = max(0, max_chars - len(trailer))
    logger.warning(
        "Truncating MCP tool response for '%s' from %d to %d chars.",
        name,
        len(text),
        max_chars,
    )
    return text[:keep_chars] + trailer


def text_content(text: str) -> Dict[str, List[Dict[str, Any]]]:
    """Wrap text in the tool result shape MCP clients render."""
    return {"content": [{"type": "text", "text": text}]}


def public_error_message(error: Exception) -> str:
    """Single-line message safe to return to the assistant."""
    message = str(error).strip() or error.__class__.__name__
    return " ".join(message.splitlines())
