"""Webhook delivery system for Hookcast.

Provides HMAC-signed webhook delivery with exponential backoff retry,
endpoint health tracking and a bounded delivery ledger.

Example:
    ```python
    from hookcast.webhooks import compute_signature, verify_signature

    # Receiving side: recompute the signature from the body's "data" field
    ok = verify_signature(body["data"], secret, headers["X-Webhook-Signature"])
    ```
"""

from .dispatcher import EventDispatcher
from .health import HealthTracker
from .ledger import DeliveryLedger
from .registry import EndpointRegistry
from .scheduler import RetryScheduler
from .signing import (
    EVENT_HEADER,
    ID_HEADER,
    SIGNATURE_HEADER,
    build_body,
    build_headers,
    canonical_payload,
    compute_signature,
    generate_secret,
    verify_signature,
)
from .worker import DeliveryWorker, abandon_task, exponential_backoff

__all__ = [
    "EVENT_HEADER",
    "ID_HEADER",
    "SIGNATURE_HEADER",
    "DeliveryLedger",
    "DeliveryWorker",
    "EndpointRegistry",
    "EventDispatcher",
    "HealthTracker",
    "RetryScheduler",
    "abandon_task",
    "build_body",
    "build_headers",
    "canonical_payload",
    "compute_signature",
    "exponential_backoff",
    "generate_secret",
    "verify_signature",
]
