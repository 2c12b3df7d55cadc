"""
carf_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration.  No
    other component reads configuration files or ``CARF_*`` environment
    variables.

Architecture position:
    Configuration.  Sits above ``carf_kernel``; the kernel never imports
    from here.  ``carf_services.wiring`` turns a ``CarfConfig`` into a
    running workflow.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from carf_config.loader import (
    DEFAULTS_PATH,
    apply_env_overrides,
    deep_merge,
    load_yaml_file,
    parse_config,
)
from carf_config.schema import (
    CarfConfig,
    DatabaseConfig,
    DownstreamConfig,
    LoggingConfig,
    MessagingConfig,
)

_logger = logging.getLogger("carf.config")


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> CarfConfig:
    """The ONLY public configuration entrypoint.

    Layers, later wins: bundled ``defaults.yaml``, the optional file at
    ``path``, then ``CARF_*`` environment variables.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data = deep_merge(data, load_yaml_file(Path(path)))
    data = apply_env_overrides(data, os.environ if environ is None else environ)
    config = parse_config(data)

    _logger.info(
        "carf_config_loaded",
        extra={
            "config_path": str(path) if path is not None else None,
            "transport": config.messaging.transport,
            "database_backend": config.database.url.split(":", 1)[0],
        },
    )
    return config


__all__ = [
    "CarfConfig",
    "DatabaseConfig",
    "DownstreamConfig",
    "LoggingConfig",
    "MessagingConfig",
    "get_active_config",
]
