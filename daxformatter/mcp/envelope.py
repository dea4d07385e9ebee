"""
JSON-RPC 2.0 envelope codec for the line-delimited stdio transport.

Decoding is tolerant of absent optional fields (``jsonrpc``, ``id``,
``params``) and strict about the required ``method``. Encoding always
produces a single line carrying exactly one of ``result`` or ``error``.
"""

import json
from typing import Any, Dict, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictInt,
    StrictStr,
    ValidationError,
    confloat,
    model_validator,
)

from .protocol import JSONRPC_VERSION, is_notification_method

# Non-finite numbers have no JSON spelling, so they cannot be echoed back.
RequestId = Union[StrictStr, StrictInt, confloat(strict=True, allow_inf_nan=False)]


class EnvelopeDecodeError(ValueError):
    """Raised when an inbound line is not a JSON-RPC envelope."""


class RpcError(BaseModel):
    code: StrictInt
    message: StrictStr


class RpcRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Optional[RequestId] = None
    method: StrictStr
    params: Any = None

    @property
    def has_id(self) -> bool:
        """True when the sender supplied an ``id`` member, even a null one."""
        return "id" in self.model_fields_set

    @property
    def is_notification(self) -> bool:
        return is_notification_method(self.method) or not self.has_id


class RpcResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Optional[RequestId] = None
    result: Any = None
    error: Optional[RpcError] = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> "RpcResponse":
        has_result = "result" in self.model_fields_set
        has_error = self.error is not None
        if has_result == has_error:
            raise ValueError("a response carries exactly one of result or error")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None


def success_response(msg_id: Any, result: Any) -> RpcResponse:
    return RpcResponse(id=msg_id, result=result)


def error_response(msg_id: Any, code: int, message: str) -> RpcResponse:
    return RpcResponse(id=msg_id, error=RpcError(code=code, message=message))


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "envelope"
    return f"{location}: {first.get('msg', 'invalid value')}"


def _load_object(line: str) -> Dict[str, Any]:
    try:
        document = json.loads(line)
    except ValueError as exc:
        raise EnvelopeDecodeError(f"Invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise EnvelopeDecodeError("Invalid JSON: document nested too deeply") from exc
    if not isinstance(document, dict):
        raise EnvelopeDecodeError("Message must be a JSON object")
    return document


def decode_request(line: str) -> RpcRequest:
    """Parse one transport line into a request envelope."""
    document = _load_object(line)
    try:
        return RpcRequest.model_validate(document)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"Invalid Request: {_describe_validation_error(exc)}") from exc


def decode_response(line: str) -> RpcResponse:
    """Parse one transport line into a response envelope."""
    document = _load_object(line)
    try:
        return RpcResponse.model_validate(document)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"Invalid Response: {_describe_validation_error(exc)}") from exc


def response_to_dict(response: RpcResponse) -> Dict[str, Any]:
    message: Dict[str, Any] = {"jsonrpc": response.jsonrpc, "id": response.id}
    if response.error is not None:
        message["error"] = response.error.model_dump()
    else:
        message["result"] = response.result
    return message


def encode_response(response: RpcResponse) -> str:
    """Serialize a response to one line of compact JSON (no trailing newline)."""
    return json.dumps(response_to_dict(response), ensure_ascii=False, allow_nan=False, separators=(",", ":"))
