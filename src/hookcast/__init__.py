"""Hookcast: outbound webhooks you can verify.

Fans application events out to registered HTTP endpoints with HMAC-SHA256
signatures, exponential backoff retry, endpoint health tracking and a
bounded delivery log.

Quick Start:
    from hookcast import WebhookService

    async with WebhookService.create() as hooks:
        endpoint = await hooks.add_endpoint(
            "https://partner.example.com/hooks",
            events=["transaction.completed"],
        )
        hooks.publish("transaction.completed", {"transactionId": "tx_1"})
"""

__version__ = "0.1.0"

# Configuration
from .clock import Clock, ManualClock, SystemClock
from .config import Settings

# Events
from .events import ALL_EVENT_TYPES, Event

# Exceptions
from .exceptions import (
    ConfigurationError,
    DeliveryError,
    EmptyEventSetError,
    HookcastError,
    InvalidURLError,
    NotFoundError,
    StorageError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    unbind_context,
)

# Models
from .models import (
    DeliveryStats,
    DeliveryTask,
    Endpoint,
    EndpointUpdate,
    LedgerEntry,
)

# Service
from .service import WebhookService

# Storage
from .storage import InMemoryStore, JsonFileStore, Store

__all__ = [
    "__version__",
    # Configuration
    "Clock",
    "ManualClock",
    "Settings",
    "SystemClock",
    # Events
    "ALL_EVENT_TYPES",
    "Event",
    # Exceptions
    "ConfigurationError",
    "DeliveryError",
    "EmptyEventSetError",
    "HookcastError",
    "InvalidURLError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # Logging
    "bind_context",
    "clear_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "unbind_context",
    # Models
    "DeliveryStats",
    "DeliveryTask",
    "Endpoint",
    "EndpointUpdate",
    "LedgerEntry",
    # Service
    "WebhookService",
    # Storage
    "InMemoryStore",
    "JsonFileStore",
    "Store",
]
