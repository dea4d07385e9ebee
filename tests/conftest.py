from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Tuple

import pytest

from daxformatter.core.config import DaxFormatterConfig, GatewayConfig
from daxformatter.mcp.handlers import GatewayContext
from daxformatter.sdk.errors import DaxFormatterSyntaxError
from daxformatter.sdk.models import (
    DaxFormatterMultipleRequest,
    DaxFormatterResponse,
    DaxFormatterSingleRequest,
)


class StubFormatterClient:
    """In-memory stand-in for DaxFormatterClient with a deterministic formatter."""

    def __init__(
        self,
        *,
        formatter: Optional[Callable[[str], str]] = None,
        failing: Iterable[str] = (),
        batch_error: Optional[Exception] = None,
        single_error: Optional[Exception] = None,
    ):
        self.formatter = formatter or (lambda expression: expression.upper())
        self.failing = set(failing)
        self.batch_error = batch_error
        self.single_error = single_error
        self.calls: List[Tuple[str, Any, Any]] = []

    def _render(self, expression: str) -> DaxFormatterResponse:
        if self.single_error is not None:
            raise self.single_error
        if expression in self.failing:
            raise DaxFormatterSyntaxError([f"Line 1, column 1: cannot parse {expression}"])
        return DaxFormatterResponse(formatted=self.formatter(expression))

    def format(self, expression: str) -> DaxFormatterResponse:
        self.calls.append(("format", expression, None))
        return self._render(expression)

    def format_request(self, request: DaxFormatterSingleRequest) -> DaxFormatterResponse:
        self.calls.append(("format_request", request.dax, request))
        return self._render(request.dax)

    def format_multiple(self, request: DaxFormatterMultipleRequest) -> List[DaxFormatterResponse]:
        self.calls.append(("format_multiple", list(request.dax), request))
        if self.batch_error is not None:
            raise self.batch_error
        rejected = [
            f"Expression {index}: Line 1, column 1: cannot parse {expression}"
            for index, expression in enumerate(request.dax, start=1)
            if expression in self.failing
        ]
        if rejected:
            raise DaxFormatterSyntaxError(rejected)
        return [DaxFormatterResponse(formatted=self.formatter(expression)) for expression in request.dax]

    def calls_named(self, name: str) -> List[Tuple[str, Any, Any]]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def stub_client() -> StubFormatterClient:
    return StubFormatterClient()


@pytest.fixture
def make_context():
    def _make(client: Any, **gateway_overrides: Any) -> GatewayContext:
        config = DaxFormatterConfig(gateway=GatewayConfig(**gateway_overrides))
        return GatewayContext(client, config)

    return _make
