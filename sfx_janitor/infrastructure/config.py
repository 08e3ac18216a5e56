"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file and the environment
- Provides typed access to all janitor settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- SignalFx credentials come from SFX_TOKEN / SFX_ORG_ID and are checked
  explicitly with require_credentials() so that tests can load config
  without them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

from sfx_janitor.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

TOKEN_ENV = "SFX_TOKEN"
ORG_ID_ENV = "SFX_ORG_ID"

_SECTIONS = ("api", "resolve", "telemetry")
_MAX_STALE_MINUTES = timedelta.max // timedelta(minutes=1)


@dataclass(frozen=True)
class ApiConfig:
    """SignalFx API endpoint configuration."""
    base_url: str = "https://api.signalfx.com/"
    timeout_seconds: float = 0.0  # 0 keeps the HTTP library default
    page_limit: int = 500


@dataclass(frozen=True)
class ResolveConfig:
    """Stale incident resolution configuration."""
    stale_after_minutes: int = 30
    fail_fast: bool = True


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class CredentialsConfig:
    token: str = field(default="", repr=False)
    org_id: str = ""


@dataclass(frozen=True)
class JanitorConfig:
    """Root configuration for the janitor."""
    api: ApiConfig = field(default_factory=ApiConfig)
    resolve: ResolveConfig = field(default_factory=ResolveConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    log_level: str = "INFO"

    def require_credentials(self) -> CredentialsConfig:
        """Return credentials, failing if either value is missing."""
        if not self.credentials.token:
            raise ConfigurationError(f"env var {TOKEN_ENV} is required")
        if not self.credentials.org_id:
            raise ConfigurationError(f"env var {ORG_ID_ENV} is required")
        return self.credentials


def _env_override(data: dict, prefix: str = "JANITOR") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern JANITOR_SECTION_KEY.
    For example: JANITOR_API_PAGE_LIMIT=100, JANITOR_RESOLVE_FAIL_FAST=false
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        parts = key[len(prefix) + 1:].lower().split("_", 1)
        if len(parts) == 2 and parts[0] in _SECTIONS:
            section, field_name = parts
            if section not in data:
                data[section] = {}
            data[section][field_name] = value
        elif "_".join(parts) == "log_level":
            data["log_level"] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    # Convert string values from the environment to the declared type
    for f in dataclasses.fields(cls):
        if f.name in filtered and isinstance(filtered[f.name], str):
            try:
                if f.type == "int":
                    filtered[f.name] = int(filtered[f.name])
                elif f.type == "float":
                    filtered[f.name] = float(filtered[f.name])
                elif f.type == "bool":
                    filtered[f.name] = filtered[f.name].lower() in ("true", "1", "yes")
            except ValueError as e:
                raise ConfigurationError(
                    f"invalid value for {cls.__name__}.{f.name}: {filtered[f.name]!r}"
                ) from e

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "JANITOR",
) -> JanitorConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (JANITOR_SECTION_KEY)
    2. Config file values
    3. Defaults

    Credentials are always read from SFX_TOKEN and SFX_ORG_ID.

    Args:
        path: Path to config file (JSON). Defaults to janitor.json in CWD.
        env_prefix: Environment variable prefix. Defaults to JANITOR.
    """
    config_path = Path(path) if path else Path("janitor.json")
    data = _parse_config_file(config_path)
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a JSON object, ignoring", config_path)
        data = {}
    for section in _SECTIONS:
        if not isinstance(data.get(section, {}), dict):
            raise ConfigurationError(
                f"config section {section!r} must be a JSON object"
            )
    data = _env_override(data, env_prefix)

    config = JanitorConfig(
        api=_build_sub_config(ApiConfig, data.get("api", {})),
        resolve=_build_sub_config(ResolveConfig, data.get("resolve", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
        credentials=CredentialsConfig(
            token=os.environ.get(TOKEN_ENV, ""),
            org_id=os.environ.get(ORG_ID_ENV, ""),
        ),
        log_level=str(data.get("log_level", "INFO")),
    )
    _validate(config)
    return config


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate(config: JanitorConfig) -> None:
    """Reject values the janitor cannot run with."""
    minutes = config.resolve.stale_after_minutes
    if not _is_number(minutes) or not 0 < minutes <= _MAX_STALE_MINUTES:
        raise ConfigurationError(
            f"resolve.stale_after_minutes must be a positive number, got {minutes!r}"
        )
    limit = config.api.page_limit
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        raise ConfigurationError(
            f"api.page_limit must be a positive integer, got {limit!r}"
        )
    timeout = config.api.timeout_seconds
    if not _is_number(timeout) or not 0 <= timeout < float("inf"):
        raise ConfigurationError(
            f"api.timeout_seconds must be zero or a positive number, got {timeout!r}"
        )
