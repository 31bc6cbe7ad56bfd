"""HMAC-SHA256 signing of webhook payloads.

The signature covers the canonical serialization of the event payload, not
the full request body, so a receiver can recompute it from the ``data``
field alone:

    expected = compute_signature(body["data"], secret)
    hmac.compare_digest(expected, request.headers["X-Webhook-Signature"])
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
from typing import TYPE_CHECKING, Any

from hookcast.exceptions import ValidationError

if TYPE_CHECKING:
    from hookcast.models import DeliveryTask

SIGNATURE_HEADER = "X-Webhook-Signature"
EVENT_HEADER = "X-Webhook-Event"
ID_HEADER = "X-Webhook-ID"


def canonical_payload(payload: Any) -> str:
    """Serialize a payload deterministically as JSON text.

    Strings and bytes holding JSON text are treated as already-serialized
    opaque blobs and passed through. Other strings become JSON string
    literals. Anything else is rendered as compact JSON with sorted keys, so
    equal payloads always produce identical text.

    Raises:
        ValidationError: If the payload cannot be represented as JSON.
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("payload", "bytes payload must be UTF-8 encoded") from e
    if isinstance(payload, str):
        try:
            json.loads(payload)
        except ValueError:
            return json.dumps(payload, ensure_ascii=False)
        return payload
    try:
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError("payload", f"not JSON-serializable: {e}") from e


def payload_text(task: DeliveryTask) -> str:
    """The serialized payload of ``task``, computed once at publish time."""
    if task.payload_text is not None:
        return task.payload_text
    return canonical_payload(task.payload)


def compute_signature(payload: Any, secret: str) -> str:
    """Compute HMAC-SHA256 signature for a webhook payload.

    Args:
        payload: Event payload, or its already-serialized form.
        secret: Shared secret for HMAC.

    Returns:
        Signature in format "sha256=<hex_digest>".
    """
    signature = hmac.new(
        key=secret.encode("utf-8"),
        msg=canonical_payload(payload).encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"sha256={signature}"


def verify_signature(payload: Any, secret: str, signature: str) -> bool:
    """Verify HMAC-SHA256 signature for a webhook payload.

    Args:
        payload: Payload that was signed.
        secret: Shared secret for HMAC.
        signature: Signature to verify (format: "sha256=<hex_digest>").

    Returns:
        True if signature is valid, False otherwise.
    """
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected, signature)


def build_headers(task: DeliveryTask, secret: str) -> dict[str, str]:
    """Headers sent with every delivery attempt of ``task``."""
    return {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: compute_signature(payload_text(task), secret),
        EVENT_HEADER: task.event_type,
        ID_HEADER: task.id,
    }


def build_body(task: DeliveryTask) -> str:
    """JSON request body: ``{id, event, data, timestamp}``.

    ``data`` is the exact text that was signed, embedded as raw JSON.
    """
    return (
        f'{{"id":{json.dumps(task.id)},'
        f'"event":{json.dumps(task.event_type, ensure_ascii=False)},'
        f'"data":{payload_text(task)},'
        f'"timestamp":{json.dumps(task.created_at.isoformat())}}}'
    )


def generate_secret() -> str:
    """Generate a random shared secret for a new endpoint."""
    return secrets.token_hex(32)
