"""Kernel services: flush-only writers over the CARF tables."""

from carf_kernel.services.base import BaseService
from carf_kernel.services.notification_log import NotificationLogService
from carf_kernel.services.request_store import RequestStore

__all__ = [
    "BaseService",
    "NotificationLogService",
    "RequestStore",
]
