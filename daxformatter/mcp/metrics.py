import time
import logging
from typing import Any, Optional

from .envelope import RpcResponse, encode_response

logger = logging.getLogger("DaxFormatter.mcp.metrics")


class ToolCallMetrics:
    """
    Tracks timing and payload size for a single tools/call request.
    """
    def __init__(self, msg_id: Any, name: str):
        self.msg_id = msg_id
        self.name = name
        self.response_bytes = 0
        self.saw_error = False
        self.fallback_used = False
        self.started_monotonic = time.monotonic()

    def record_response(self, response: RpcResponse) -> None:
        """Record the response produced for this call."""
        # +1 for the newline delimiter added by the transport
        self.response_bytes = len(encode_response(response).encode("utf-8")) + 1
        self.saw_error = response.is_error

    def get_outcome(self) -> str:
        if self.saw_error:
            return "error"
        if self.response_bytes > 0:
            return "success"
        return "no_response"

    def elapsed_ms(self) -> float:
        return max(0.0, (time.monotonic() - self.started_monotonic) * 1000.0)

    def log_telemetry(self, warn_threshold_ms: Optional[float] = None) -> None:
        elapsed_ms = self.elapsed_ms()
        slow = warn_threshold_ms is not None and elapsed_ms >= warn_threshold_ms
        log_method = logger.warning if slow else logger.info
        log_method(
            "Tool call telemetry: name=%s id=%r outcome=%s fallback=%s elapsed_ms=%.1f response_bytes=%d",
            self.name,
            self.msg_id,
            self.get_outcome(),
            self.fallback_used,
            elapsed_ms,
            self.response_bytes,
        )
