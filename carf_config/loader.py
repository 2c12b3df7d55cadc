"""
Configuration Loader (``carf_config.loader``).

Responsibility
--------------
Reads YAML files with ``yaml.safe_load``, deep-merges them over the bundled
defaults, applies ``CARF_*`` environment overrides and parses the result
into ``carf_config.schema`` dataclasses.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from carf_config.schema import (
    CarfConfig,
    DatabaseConfig,
    DownstreamConfig,
    LoggingConfig,
    MessagingConfig,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

TRANSPORTS = frozenset({"http", "smtp"})

# Environment variable -> (section, key); section None means top level.
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "CARF_GLOBAL_URL": (None, "global_url"),
    "CARF_DATABASE_URL": ("database", "url"),
    "CARF_TRANSPORT": ("messaging", "transport"),
    "CARF_RELAY_URL": ("messaging", "relay_url"),
    "CARF_SMTP_HOST": ("messaging", "smtp_host"),
    "CARF_SMTP_PORT": ("messaging", "smtp_port"),
    "CARF_SMTP_USERNAME": ("messaging", "smtp_username"),
    "CARF_SMTP_PASSWORD": ("messaging", "smtp_password"),
    "CARF_DOWNSTREAM_URL": ("downstream", "base_url"),
    "CARF_LOG_LEVEL": ("logging", "level"),
}

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "messaging": MessagingConfig,
    "downstream": DownstreamConfig,
    "logging": LoggingConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    result = dict(data)
    for var, (section, key) in ENV_OVERRIDES.items():
        if var not in environ:
            continue
        if section is None:
            result[key] = environ[var]
        else:
            result[section] = dict(result.get(section) or {}, **{key: environ[var]})
    return result


def parse_config(data: Mapping[str, Any]) -> CarfConfig:
    """Build a validated ``CarfConfig`` from merged raw data."""
    unknown = set(data) - {"global_url", *_SECTIONS}
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

    sections = {
        name: _parse_section(cls, data.get(name) or {}, name)
        for name, cls in _SECTIONS.items()
    }
    config = CarfConfig(global_url=str(data.get("global_url") or ""), **sections)

    if config.messaging.transport not in TRANSPORTS:
        raise ValueError(
            f"messaging.transport must be one of {sorted(TRANSPORTS)}, "
            f"got {config.messaging.transport!r}"
        )
    if config.messaging.transport == "smtp" and not config.messaging.smtp_host:
        raise ValueError("messaging.smtp_host is required for the smtp transport")
    if not isinstance(logging.getLevelName(config.logging.level), int):
        raise ValueError(f"Unknown logging.level {config.logging.level!r}")
    return config


def _parse_section(cls: type, raw: Mapping[str, Any], name: str) -> Any:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Section {name!r} must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = set(raw) - set(known)
    if unknown:
        raise ValueError(f"Unknown keys in {name!r}: {sorted(unknown)}")
    values = {}
    for key, value in raw.items():
        default = getattr(cls(), key)
        values[key] = _coerce(value, type(default), f"{name}.{key}")
    return cls(**values)


def _coerce(value: Any, target: type, label: str) -> Any:
    if value is None:
        raise ValueError(f"{label} must not be null")
    if target is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{label} must be a boolean, got {value!r}")
    if target in (int, float):
        try:
            return target(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{label} must be a number, got {value!r}") from exc
    if target is str and label == "logging.level":
        return str(value).upper()
    return str(value)
