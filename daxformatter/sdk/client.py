"""
DAX Formatter web API client (sync).
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests
from pydantic import ValidationError

from daxformatter.sdk.errors import (
    DaxFormatterAPIError,
    DaxFormatterConnectionError,
    DaxFormatterSyntaxError,
)
from daxformatter.sdk.models import (
    DaxFormatterMultipleRequest,
    DaxFormatterResponse,
    DaxFormatterSingleRequest,
)

logger = logging.getLogger("DaxFormatter.sdk.client")

DEFAULT_BASE_URL = "https://www.daxformatter.com"
SINGLE_FORMAT_PATH = "/api/daxformatter/DaxTextFormat"
MULTIPLE_FORMAT_PATH = "/api/daxformatter/DaxTextFormatMulti"


def _normalize_base_url(base_url: str) -> str:
    value = base_url.rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid DAX Formatter base URL: {base_url!r}")
    return value


def _coerce_error_detail(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("detail", "Message", "message"):
            detail = payload.get(key)
            if isinstance(detail, str):
                return detail
            if detail is not None:
                try:
                    return json.dumps(detail, sort_keys=True)
                except (TypeError, ValueError):
                    return str(detail)
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return fallback


class DaxFormatterClient:
    """
    Synchronous client for the DAX Formatter REST API.

    One instance is meant to live for the whole process and be reused for
    sequential calls; it owns a single ``requests.Session``.

    Usage:
        from daxformatter.sdk import DaxFormatterClient
        with DaxFormatterClient() as client:
            print(client.format("evaluate values(Sales[Amount])").formatted)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 0,
        retry_delay: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = _normalize_base_url(base_url)
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.retry_delay = retry_delay
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "DaxFormatterClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    def _post(self, path: str, json_body: Dict[str, Any]) -> Any:
        url = self._url(path)
        attempts = self.max_retries + 1
        response = None
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = self._session.request(
                    method="POST",
                    url=url,
                    json=json_body,
                    timeout=self.timeout,
                )
                break
            except (requests.ConnectionError, requests.Timeout) as exc:
                last_error = exc
                logger.warning(
                    "DAX Formatter request failed (attempt %d/%d): %s",
                    attempt + 1,
                    attempts,
                    exc,
                )
                if attempt < attempts - 1:
                    time.sleep(self.retry_delay * (attempt + 1))
            except requests.RequestException as exc:
                raise DaxFormatterConnectionError(
                    f"Failed to connect to DAX Formatter service at {self.base_url}: {exc}"
                ) from exc

        if response is None:
            if isinstance(last_error, requests.Timeout):
                message = f"DAX Formatter service at {self.base_url} timed out after {self.timeout}s"
            else:
                message = f"Failed to connect to DAX Formatter service at {self.base_url}: {last_error}"
            raise DaxFormatterConnectionError(message) from last_error

        payload: Any
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
        else:
            payload = None

        if response.status_code >= 400:
            detail = _coerce_error_detail(payload, f"HTTP {response.status_code} error")
            raise DaxFormatterAPIError(detail, status_code=response.status_code, path=path, payload=payload)
        return payload

    def _parse_response(self, payload: Any, path: str) -> DaxFormatterResponse:
        if not isinstance(payload, dict):
            raise DaxFormatterAPIError("Invalid format response payload", path=path, payload=payload)
        try:
            return DaxFormatterResponse.model_validate(payload)
        except ValidationError as exc:
            raise DaxFormatterAPIError(
                f"Unreadable format response payload: {exc.error_count()} invalid field(s)",
                path=path,
                payload=payload,
            ) from exc

    def format(self, expression: str) -> DaxFormatterResponse:
        """Format one expression with the service defaults."""
        return self.format_request(DaxFormatterSingleRequest(dax=expression))

    def format_request(self, request: DaxFormatterSingleRequest) -> DaxFormatterResponse:
        payload = self._post(SINGLE_FORMAT_PATH, request.to_payload())
        result = self._parse_response(payload, SINGLE_FORMAT_PATH)
        if result.has_errors:
            raise DaxFormatterSyntaxError(result.error_messages(), path=SINGLE_FORMAT_PATH)
        return result

    def format_multiple(self, request: DaxFormatterMultipleRequest) -> List[DaxFormatterResponse]:
        """
        Format every expression of ``request`` in one round trip.

        The service answers with one entry per expression, in input order.
        A count mismatch, or any expression rejected by the service, fails
        the whole call.
        """
        payload = self._post(MULTIPLE_FORMAT_PATH, request.to_payload())
        if not isinstance(payload, list):
            raise DaxFormatterAPIError("Invalid batch format response payload", path=MULTIPLE_FORMAT_PATH, payload=payload)
        if len(payload) != len(request.dax):
            raise DaxFormatterAPIError(
                f"Expected {len(request.dax)} formatted expressions, got {len(payload)}",
                path=MULTIPLE_FORMAT_PATH,
                payload=payload,
            )

        results = [self._parse_response(item, MULTIPLE_FORMAT_PATH) for item in payload]
        rejected: List[str] = []
        for index, result in enumerate(results, start=1):
            for message in result.error_messages():
                rejected.append(f"Expression {index}: {message}")
        if rejected:
            raise DaxFormatterSyntaxError(rejected, path=MULTIPLE_FORMAT_PATH)
        return results
