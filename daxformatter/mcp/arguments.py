"""
Typed decoding of ``tools/call`` parameters.

Parameters arrive as loosely typed JSON. Each shape is checked by a pydantic
model; a shape mismatch surfaces as ``ArgumentsError`` which the router maps
to an invalid-params response.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from daxformatter.sdk.models import (
    DaxFormatterMultipleRequest,
    DaxFormatterSingleRequest,
    FunctionSpacing,
    LineLength,
)

logger = logging.getLogger("DaxFormatter.mcp.arguments")

ModelT = TypeVar("ModelT", bound=BaseModel)
EnumT = TypeVar("EnumT", bound=Enum)


class ArgumentsError(ValueError):
    """Raised when tool parameters do not have the expected shape."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ToolCallRequest(BaseModel):
    name: StrictStr
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("tool name must be a non-empty string")
        return v

    @field_validator("arguments", mode="before")
    @classmethod
    def _null_arguments(cls, v: Any) -> Any:
        return {} if v is None else v


def _parse_enum(enum_cls: Type[EnumT], value: str, key: str) -> Optional[EnumT]:
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(
            "Ignoring unsupported %s=%r; expected one of %s",
            key,
            value,
            [member.value for member in enum_cls],
        )
        return None


class FormattingOptions(BaseModel):
    """Formatting settings as the assistant sends them (camelCase keys)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    max_line_length: Optional[StrictStr] = Field(default=None, alias="maxLineLength")
    skip_space_after_function_name: Optional[StrictStr] = Field(
        default=None, alias="skipSpaceAfterFunctionName"
    )
    list_separator: Optional[StrictStr] = Field(default=None, alias="listSeparator")
    decimal_separator: Optional[StrictStr] = Field(default=None, alias="decimalSeparator")
    database_name: Optional[StrictStr] = Field(default=None, alias="databaseName")
    server_name: Optional[StrictStr] = Field(default=None, alias="serverName")

    def apply_to(
        self,
        request: Union[DaxFormatterSingleRequest, DaxFormatterMultipleRequest],
    ) -> None:
        """Copy every explicitly supplied setting onto a service request."""
        if self.max_line_length:
            line_length = _parse_enum(LineLength, self.max_line_length, "maxLineLength")
            if line_length is not None:
                request.max_line_length = line_length
        if self.skip_space_after_function_name:
            spacing = _parse_enum(
                FunctionSpacing,
                self.skip_space_after_function_name,
                "skipSpaceAfterFunctionName",
            )
            if spacing is not None:
                request.skip_space_after_function_name = spacing
        if self.list_separator:
            request.list_separator = self.list_separator[0]
        if self.decimal_separator:
            request.decimal_separator = self.decimal_separator[0]
        if self.database_name:
            request.database_name = self.database_name
        if self.server_name:
            request.server_name = self.server_name


class FormatDaxArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dax: Optional[StrictStr] = None
    options: Optional[FormattingOptions] = None


class FormatDaxMultipleArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")

    expressions: Optional[List[StrictStr]] = None
    options: Optional[FormattingOptions] = None


def parse_model(model_cls: Type[ModelT], payload: Any) -> ModelT:
    """Validate ``payload`` against ``model_cls`` or raise ``ArgumentsError``."""
    if not isinstance(payload, dict):
        raise ArgumentsError("expected a JSON object")
    try:
        return model_cls.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = first.get("loc", ())
        field = str(location[0]) if location else None
        path = ".".join(str(part) for part in location) or "arguments"
        raise ArgumentsError(f"{path}: {first.get('msg', 'invalid value')}", field=field) from exc
