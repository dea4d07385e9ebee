"""
DAX Formatter MCP Configuration
-------------------------------
Centralized configuration for the gateway, the formatter client and logging.
Loads from environment variables and YAML config files.
"""

import logging
import math
import os
from typing import Optional
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger("DaxFormatter.Config")

DEFAULT_SERVICE_URL = "https://www.daxformatter.com"
DEFAULT_TIMEOUT_SEC = 30.0


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _parse_positive_float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
        if not math.isfinite(value) or value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive float. Using default of %s.",
            name,
            raw,
            default,
        )
        return default


def _parse_int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
        if value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected integer >= %d. Using default of %d.",
            name,
            raw,
            minimum,
            default,
        )
        return default


class ServiceConfig(BaseModel):
    """Remote DAX Formatter service configuration."""
    model_config = ConfigDict(validate_assignment=True)

    base_url: str = DEFAULT_SERVICE_URL
    timeout: float = DEFAULT_TIMEOUT_SEC
    max_retries: int = 0

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str) -> str:
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v


class GatewayConfig(BaseModel):
    """stdio gateway behaviour."""
    server_name: str = "dax-formatter-mcp"
    batch_fallback: bool = True
    tool_response_max_chars: int = 100_000
    tool_call_warn_ms: float = 20_000.0


class LoggingConfig(BaseModel):
    """Diagnostics side channel. Never stdout."""
    level: str = "INFO"
    file: Optional[str] = None


class DaxFormatterConfig(BaseModel):
    """Root configuration."""
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "DaxFormatterConfig":
        """Load configuration from environment variables."""
        return cls(
            service=ServiceConfig(
                base_url=os.environ.get("DAXFMT_SERVICE_URL", DEFAULT_SERVICE_URL),
                timeout=_parse_positive_float_env("DAXFMT_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC),
                max_retries=_parse_int_env("DAXFMT_MAX_RETRIES", 0),
            ),
            gateway=GatewayConfig(
                batch_fallback=_env_flag("DAXFMT_BATCH_FALLBACK", True),
                tool_response_max_chars=_parse_int_env("DAXFMT_TOOL_RESPONSE_MAX_CHARS", 100_000, minimum=256),
                tool_call_warn_ms=_parse_positive_float_env("DAXFMT_TOOL_CALL_WARN_MS", 20_000.0),
            ),
            logging=LoggingConfig(
                level=os.environ.get("DAXFMT_LOG_LEVEL", "INFO").upper(),
                file=os.environ.get("DAXFMT_LOG_FILE") or None,
            ),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "DaxFormatterConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning("Config file not found: %s; using environment", path)
            return cls.from_env()
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level")
        return cls(**data)
