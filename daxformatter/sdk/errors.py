"""
DAX Formatter SDK exceptions.
"""

from __future__ import annotations

from typing import Any, List, Optional


class DaxFormatterError(RuntimeError):
    """Base class for SDK errors."""


class DaxFormatterConnectionError(DaxFormatterError):
    """Raised when the SDK cannot reach the DAX Formatter service."""


class DaxFormatterAPIError(DaxFormatterError):
    """Raised when the service returns an HTTP error or an unusable payload."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        payload: Optional[Any] = None,
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        self.path = path
        self.payload = payload
        status_hint = f" (status={status_code})" if status_code is not None else ""
        path_hint = f" [{path}]" if path else ""
        super().__init__(f"{detail}{status_hint}{path_hint}")


class DaxFormatterSyntaxError(DaxFormatterAPIError):
    """Raised when the service rejects an expression it could not parse."""

    def __init__(self, messages: List[str], *, path: Optional[str] = None) -> None:
        self.messages = list(messages)
        super().__init__("; ".join(self.messages) or "DAX syntax error", path=path)

    def __str__(self) -> str:
        # Syntax errors are shown to the assistant verbatim, without HTTP hints.
        return self.detail
