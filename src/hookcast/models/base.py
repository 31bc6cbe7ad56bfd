"""Base helpers shared by Hookcast models."""

from __future__ import annotations

from uuid import uuid4

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from hookcast.exceptions import EmptyEventSetError, InvalidURLError, ValidationError

_http_url = TypeAdapter(HttpUrl)


def generate_id(prefix: str) -> str:
    """Generate a unique ID with the given prefix.

    Examples:
        generate_id("whk") -> "whk_a1b2c3d4e5f6"
        generate_id("dlv") -> "dlv_a1b2c3d4e5f6"
    """
    return f"{prefix}_{uuid4().hex[:12]}"


def validate_url(url: str) -> str:
    """Check that ``url`` is a well-formed http(s) URL.

    Returns the URL unchanged; pydantic's normalized form is only used for
    validation so that the stored URL is exactly what the caller registered.

    Raises:
        InvalidURLError: If the URL is malformed or not http(s).
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(str(url))
    try:
        _http_url.validate_python(url)
    except PydanticValidationError as e:
        raise InvalidURLError(url) from e
    return url


def validate_events(events: object) -> set[str]:
    """Normalize an event subscription list into a non-empty set.

    Raises:
        EmptyEventSetError: If no event types are given.
        ValidationError: If an event type is not a non-empty string.
    """
    if events is None:
        raise EmptyEventSetError()
    if isinstance(events, str):
        events = [events]
    normalized: set[str] = set()
    for event in events:  # type: ignore[attr-defined]
        if not isinstance(event, str) or not event.strip():
            raise ValidationError("events", f"invalid event type: {event!r}")
        normalized.add(event.strip())
    if not normalized:
        raise EmptyEventSetError()
    return normalized
