"""
DAX Formatter service wire models.

The web API speaks PascalCase JSON. Requests only carry the settings that
were explicitly set so the service applies its own defaults for the rest;
server and database names are hashed before they leave the process.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from daxformatter.version import __version__

CALLER_APP = "DaxFormatterMcp"


class LineLength(str, Enum):
    SHORT_LINE = "ShortLine"
    LONG_LINE = "LongLine"
    VERY_LONG_LINE = "VeryLongLine"


class FunctionSpacing(str, Enum):
    BEST_PRACTICE = "BestPractice"
    NO_SPACE = "False"


# Integer codes used by the web API for the enumerated settings.
_LINE_LENGTH_CODES = {
    LineLength.SHORT_LINE: 0,
    LineLength.LONG_LINE: 1,
    LineLength.VERY_LONG_LINE: 2,
}
_FUNCTION_SPACING_CODES = {
    FunctionSpacing.BEST_PRACTICE: 0,
    FunctionSpacing.NO_SPACE: 1,
}


def anonymize(value: str) -> str:
    """Hash a server or database name so the service never sees it in clear."""
    return hashlib.sha256(value.encode("utf-8", "surrogatepass")).hexdigest().upper()


class _FormatRequestBase(BaseModel):
    max_line_length: Optional[LineLength] = None
    skip_space_after_function_name: Optional[FunctionSpacing] = None
    list_separator: Optional[str] = None
    decimal_separator: Optional[str] = None
    database_name: Optional[str] = None
    server_name: Optional[str] = None
    caller_app: str = CALLER_APP
    caller_version: str = __version__

    def _settings_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "CallerApp": self.caller_app,
            "CallerVersion": self.caller_version,
        }
        if self.max_line_length is not None:
            payload["MaxLineLength"] = _LINE_LENGTH_CODES[self.max_line_length]
        if self.skip_space_after_function_name is not None:
            payload["SkipSpaceAfterFunctionName"] = _FUNCTION_SPACING_CODES[
                self.skip_space_after_function_name
            ]
        if self.list_separator:
            payload["ListSeparator"] = self.list_separator[0]
        if self.decimal_separator:
            payload["DecimalSeparator"] = self.decimal_separator[0]
        if self.database_name:
            payload["DatabaseName"] = anonymize(self.database_name)
        if self.server_name:
            payload["ServerName"] = anonymize(self.server_name)
        return payload


class DaxFormatterSingleRequest(_FormatRequestBase):
    dax: str

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"Dax": self.dax}
        payload.update(self._settings_payload())
        return payload


class DaxFormatterMultipleRequest(_FormatRequestBase):
    dax: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"Dax": list(self.dax)}
        payload.update(self._settings_payload())
        return payload


class DaxFormatterErrorDetail(BaseModel):
    line: int = Field(default=0, validation_alias=AliasChoices("line", "Line"))
    column: int = Field(default=0, validation_alias=AliasChoices("column", "Column"))
    message: str = Field(default="", validation_alias=AliasChoices("message", "Message"))

    def describe(self) -> str:
        return f"Line {self.line}, column {self.column}: {self.message}"


class DaxFormatterResponse(BaseModel):
    formatted: str = Field(default="", validation_alias=AliasChoices("formatted", "Formatted"))
    errors: List[DaxFormatterErrorDetail] = Field(
        default_factory=list,
        validation_alias=AliasChoices("errors", "Errors"),
    )

    @field_validator("formatted", mode="before")
    @classmethod
    def _null_formatted(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("errors", mode="before")
    @classmethod
    def _null_errors(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def error_messages(self) -> List[str]:
        return [error.describe() for error in self.errors]
