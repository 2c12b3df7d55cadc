"""
CARF runtime configuration schema.

Frozen dataclasses populated by ``carf_config.loader`` from YAML and
environment overrides.  Nothing outside ``carf_config`` constructs these
from raw files.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///carf.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


@dataclass(frozen=True)
class MessagingConfig:
    """Notification transport selection."""

    transport: str = "http"  # http | smtp
    relay_url: str = ""
    timeout_seconds: float = 10.0
    smtp_host: str = ""
    smtp_port: int = 25
    smtp_sender: str = "noreply@carf.local"
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = False


@dataclass(frozen=True)
class DownstreamConfig:
    base_url: str = ""
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class CarfConfig:
    """Complete runtime configuration."""

    global_url: str = ""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    downstream: DownstreamConfig = field(default_factory=DownstreamConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
