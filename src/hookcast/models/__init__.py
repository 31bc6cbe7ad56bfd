"""Models for Hookcast.

Registry Types:
    - Endpoint: A registered webhook target with its health state
    - EndpointUpdate: Partial update applied by the management API

Delivery Types:
    - DeliveryTask: One event being delivered to one endpoint
    - LedgerEntry: Immutable archived delivery outcome
    - DeliveryStats: Aggregate counts for operators
"""

from .base import generate_id, validate_events, validate_url
from .delivery import (
    DeliveryStats,
    DeliveryStatus,
    DeliveryTask,
    LedgerEntry,
    OutcomeStatus,
)
from .endpoint import Endpoint, EndpointUpdate

__all__ = [
    # Helpers
    "generate_id",
    "validate_events",
    "validate_url",
    # Registry
    "Endpoint",
    "EndpointUpdate",
    # Delivery
    "DeliveryStats",
    "DeliveryStatus",
    "DeliveryTask",
    "LedgerEntry",
    "OutcomeStatus",
]
