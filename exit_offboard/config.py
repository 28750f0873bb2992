"""Configuration loading utilities for the exit offboarding toolkit."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = Path("config/settings.yaml")
ENV_CONFIG_PATH = "OFFBOARD_CONFIG"
ENV_PREFIX = "OFFBOARD_"

DEFAULT_DISPLAY_NAME_PREFIX = "xEM - "
DEFAULT_LOG_FILE = Path("logs/offboarding.log")


@dataclass
class GraphConfig:
    """Settings for the Microsoft Graph directory integration."""

    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authority_host: str = "https://login.microsoftonline.com"

    @property
    def has_credentials(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


@dataclass
class ExchangeConfig:
    """Settings for Exchange Online mailbox conversion.

    ``organization`` is the tenant's primary domain (``contoso.onmicrosoft.com``).
    When the app registration differs from the Graph one, ``client_id`` and
    ``client_secret`` may be set here; otherwise the Graph credentials are reused.
    """

    organization: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    shell: str = "pwsh"
    timeout: int = 300


@dataclass
class RunConfig:
    """Settings that shape a single offboarding run."""

    display_name_prefix: str = DEFAULT_DISPLAY_NAME_PREFIX
    log_file: Path = field(default_factory=lambda: DEFAULT_LOG_FILE)


@dataclass
class AppConfig:
    """Aggregate configuration for the application."""

    graph: GraphConfig = field(default_factory=GraphConfig)
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    run: RunConfig = field(default_factory=RunConfig)


class ConfigurationError(RuntimeError):
    """Raised when the configuration file or environment variables are invalid."""


def _load_from_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file '{path}' does not exist. "
            "Create it from 'config/settings.example.yaml' or set environment variables."
        )
    with path.open("r", encoding="utf-8") as file:
        try:
            payload = yaml.safe_load(file) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping.")
    return payload


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Override configuration values with environment variables."""

    overrides: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == ENV_CONFIG_PATH:
            continue
        path = key[len(ENV_PREFIX) :].lower().split("__")
        node = overrides
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value

    if overrides:
        config_dict = _deep_merge(config_dict, overrides)
    return config_dict


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            result[key] = _deep_merge(base[key], value)
        else:
            result[key] = value
    return result


def _resolve_config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _load_config_dict(path: Optional[Path] = None) -> Dict[str, Any]:
    resolved_path = _resolve_config_path(path)
    if resolved_path == DEFAULT_CONFIG_PATH and not resolved_path.exists():
        # Defaults plus environment are enough for an unattended run.
        config_dict: Dict[str, Any] = {}
    else:
        config_dict = _load_from_file(resolved_path)
    return _apply_environment_overrides(config_dict)


def _section(config_dict: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = config_dict.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Configuration section '{key}' must be a mapping.")
    return value


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    return int(value)


def _optional_path(raw: Any) -> Optional[Path]:
    """Convert a raw config value to ``Path`` if set, otherwise ``None``."""

    if raw is None:
        return None
    if isinstance(raw, Path):
        return raw
    if isinstance(raw, str):
        stripped = raw.strip()
        if not stripped:
            return None
        return Path(stripped)
    return Path(raw)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from disk and environment variables."""

    config_dict = _load_config_dict(path)

    graph_section = _section(config_dict, "graph")
    default_graph = GraphConfig()
    graph_config = GraphConfig(
        tenant_id=_optional_str(graph_section.get("tenant_id")),
        client_id=_optional_str(graph_section.get("client_id")),
        client_secret=_optional_str(graph_section.get("client_secret")),
        authority_host=_optional_str(graph_section.get("authority_host"))
        or default_graph.authority_host,
    )

    exchange_section = _section(config_dict, "exchange")
    default_exchange = ExchangeConfig()
    try:
        timeout = _to_int(exchange_section.get("timeout", default_exchange.timeout))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid exchange timeout: {exc}.") from exc
    exchange_config = ExchangeConfig(
        organization=_optional_str(exchange_section.get("organization")),
        client_id=_optional_str(exchange_section.get("client_id")),
        client_secret=_optional_str(exchange_section.get("client_secret")),
        shell=_optional_str(exchange_section.get("shell")) or default_exchange.shell,
        timeout=timeout,
    )

    run_section = _section(config_dict, "run")
    # The prefix is compared verbatim, so trailing spaces are significant.
    prefix = run_section.get("display_name_prefix")
    if prefix is None or str(prefix) == "":
        prefix = DEFAULT_DISPLAY_NAME_PREFIX
    run_config = RunConfig(
        display_name_prefix=str(prefix),
        log_file=_optional_path(run_section.get("log_file")) or DEFAULT_LOG_FILE,
    )

    return AppConfig(graph=graph_config, exchange=exchange_config, run=run_config)


__all__ = [
    "AppConfig",
    "ConfigurationError",
    "DEFAULT_DISPLAY_NAME_PREFIX",
    "DEFAULT_LOG_FILE",
    "ExchangeConfig",
    "GraphConfig",
    "RunConfig",
    "load_config",
]
