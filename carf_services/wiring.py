"""
carf_services.wiring -- Build a running workflow from ``CarfConfig``.

The only place that turns configuration into concrete adapters: the
database engine, the messaging transport and the downstream client.
"""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from carf_config.schema import CarfConfig, DownstreamConfig, MessagingConfig
from carf_kernel.db.engine import get_session_factory, init_engine_from_url, session_scope
from carf_kernel.domain.clock import Clock
from carf_kernel.domain.ports import DownstreamClient, MessagingTransport
from carf_kernel.logging_config import configure_logging, get_logger
from carf_kernel.selectors.actor_selector import ActorSelector
from carf_services.downstream_client import HttpDownstreamClient
from carf_services.transports import HttpRelayTransport, SmtpTransport
from carf_services.workflow_orchestrator import ApprovalWorkflow

logger = get_logger("services.wiring")


def directory_email_lookup(session_factory: sessionmaker[Session]):
    """Return a callable resolving an identity to its email on file."""

    def lookup(identity: str) -> str | None:
        with session_scope(session_factory) as session:
            return ActorSelector(session).emails_for([identity]).get(identity)

    return lookup


def build_transport(
    config: MessagingConfig, session_factory: sessionmaker[Session],
) -> MessagingTransport:
    if config.transport == "smtp":
        return SmtpTransport(
            host=config.smtp_host,
            email_lookup=directory_email_lookup(session_factory),
            port=config.smtp_port,
            sender=config.smtp_sender,
            username=config.smtp_username,
            password=config.smtp_password,
            starttls=config.smtp_starttls,
            timeout=config.timeout_seconds,
        )
    return HttpRelayTransport(config.relay_url, timeout=config.timeout_seconds)


def build_downstream_client(config: DownstreamConfig) -> DownstreamClient:
    return HttpDownstreamClient(config.base_url, timeout=config.timeout_seconds)


def build_workflow(config: CarfConfig, clock: Clock | None = None) -> ApprovalWorkflow:
    """Initialize the engine and assemble an ``ApprovalWorkflow``."""
    configure_logging(level=config.logging.level)
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    session_factory = get_session_factory()
    workflow = ApprovalWorkflow(
        session_factory,
        build_transport(config.messaging, session_factory),
        build_downstream_client(config.downstream),
        clock=clock,
        global_url=config.global_url,
    )
    logger.info(
        "workflow_built",
        extra={"transport": config.messaging.transport},
    )
    return workflow
