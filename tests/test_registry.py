"""Tests for the endpoint registry."""

from __future__ import annotations

from datetime import timedelta

import pytest

from hookcast.clock import ManualClock
from hookcast.exceptions import (
    ConfigurationError,
    EmptyEventSetError,
    InvalidURLError,
    NotFoundError,
    ValidationError,
)
from hookcast.models import EndpointUpdate
from hookcast.storage import ENDPOINTS_NAMESPACE, InMemoryStore
from hookcast.webhooks import EndpointRegistry, HealthTracker


@pytest.fixture
def registry(store: InMemoryStore, clock: ManualClock) -> EndpointRegistry:
    return EndpointRegistry(store, clock=clock)


class TestAddEndpoint:
    """Tests for endpoint registration."""

    @pytest.mark.asyncio
    async def test_add_endpoint(self, registry: EndpointRegistry, clock: ManualClock) -> None:
        """New endpoints are active with no failures and a generated secret."""
        endpoint = await registry.add_endpoint(
            "https://example.com/hook", ["user.registered", "user.suspended"]
        )

        assert endpoint.id.startswith("whk_")
        assert endpoint.url == "https://example.com/hook"
        assert endpoint.events == {"user.registered", "user.suspended"}
        assert endpoint.active is True
        assert endpoint.consecutive_failures == 0
        assert len(endpoint.secret) == 64
        assert endpoint.created_at == clock.now()
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_explicit_secret(self, registry: EndpointRegistry) -> None:
        """A caller-provided secret is kept."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"], secret="s1")
        assert endpoint.secret == "s1"

    @pytest.mark.asyncio
    async def test_duplicate_events_collapse(self, registry: EndpointRegistry) -> None:
        """Subscriptions behave as a set."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a", "a", "b"])
        assert endpoint.events == {"a", "b"}

    @pytest.mark.asyncio
    async def test_ids_unique(self, registry: EndpointRegistry) -> None:
        """Each registration gets a distinct id."""
        first = await registry.add_endpoint("https://example.com/one", ["a"])
        second = await registry.add_endpoint("https://example.com/two", ["a"])
        assert first.id != second.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not-a-url", "", "ftp://example.com/hook", "http://"])
    async def test_invalid_url(self, registry: EndpointRegistry, url: str) -> None:
        """Malformed URLs are rejected and nothing is stored."""
        with pytest.raises(InvalidURLError):
            await registry.add_endpoint(url, ["a"])
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_empty_events(self, registry: EndpointRegistry) -> None:
        """At least one event type is required."""
        with pytest.raises(EmptyEventSetError):
            await registry.add_endpoint("https://example.com/hook", [])
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_blank_event_type(self, registry: EndpointRegistry) -> None:
        """Blank event types are invalid."""
        with pytest.raises(ValidationError):
            await registry.add_endpoint("https://example.com/hook", ["  "])

    @pytest.mark.asyncio
    async def test_duplicate_url_rejected(self, registry: EndpointRegistry) -> None:
        """A URL can only be registered once by default."""
        await registry.add_endpoint("https://example.com/hook", ["a"])
        with pytest.raises(ConfigurationError):
            await registry.add_endpoint("https://example.com/hook", ["b"])
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_duplicate_url_allowed(self, store: InMemoryStore) -> None:
        """Duplicates can be enabled explicitly."""
        registry = EndpointRegistry(store, allow_duplicate_urls=True)
        await registry.add_endpoint("https://example.com/hook", ["a"])
        await registry.add_endpoint("https://example.com/hook", ["a"])
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_persisted(self, registry: EndpointRegistry, store: InMemoryStore) -> None:
        """Registration writes through to the store."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["b", "a"])
        record = await store.get(ENDPOINTS_NAMESPACE, endpoint.id)

        assert record is not None
        assert record["url"] == "https://example.com/hook"
        assert record["events"] == ["a", "b"]


class TestRemoveEndpoint:
    """Tests for endpoint removal."""

    @pytest.mark.asyncio
    async def test_remove(self, registry: EndpointRegistry, store: InMemoryStore) -> None:
        """Removed endpoints disappear from the registry and the store."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])

        removed = await registry.remove_endpoint(endpoint.id)

        assert removed.id == endpoint.id
        assert registry.get_endpoint(endpoint.id) is None
        assert await store.get(ENDPOINTS_NAMESPACE, endpoint.id) is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_remove_unknown(self, registry: EndpointRegistry) -> None:
        """Removing an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await registry.remove_endpoint("whk_missing")

    @pytest.mark.asyncio
    async def test_url_reusable_after_remove(self, registry: EndpointRegistry) -> None:
        """A removed endpoint's URL can be registered again."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        await registry.remove_endpoint(endpoint.id)
        await registry.add_endpoint("https://example.com/hook", ["a"])
        assert len(registry) == 1


class TestUpdateEndpoint:
    """Tests for partial updates."""

    @pytest.mark.asyncio
    async def test_update_fields(self, registry: EndpointRegistry, clock: ManualClock) -> None:
        """Only provided fields change; updated_at moves forward."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"], secret="s1")
        clock.advance(5)

        updated = await registry.update_endpoint(
            endpoint.id, EndpointUpdate(events=["b", "c"])
        )

        assert updated.events == {"b", "c"}
        assert updated.url == endpoint.url
        assert updated.secret == "s1"
        assert updated.updated_at == endpoint.updated_at + timedelta(seconds=5)
        assert updated.created_at == endpoint.created_at

    @pytest.mark.asyncio
    async def test_update_url_and_secret(self, registry: EndpointRegistry) -> None:
        """URL and secret can be rotated."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        updated = await registry.update_endpoint(
            endpoint.id, EndpointUpdate(url="https://example.com/v2", secret="new")
        )
        assert updated.url == "https://example.com/v2"
        assert updated.secret == "new"

    @pytest.mark.asyncio
    async def test_update_invalid_url(self, registry: EndpointRegistry) -> None:
        """Invalid values are rejected and the endpoint is unchanged."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        with pytest.raises(InvalidURLError):
            await registry.update_endpoint(endpoint.id, EndpointUpdate(url="nope"))
        assert registry.get_endpoint(endpoint.id).url == "https://example.com/hook"

    @pytest.mark.asyncio
    async def test_update_empty_events(self, registry: EndpointRegistry) -> None:
        """An update cannot empty the subscription set."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        with pytest.raises(EmptyEventSetError):
            await registry.update_endpoint(endpoint.id, EndpointUpdate(events=[]))

    @pytest.mark.asyncio
    async def test_update_duplicate_url(self, registry: EndpointRegistry) -> None:
        """Moving onto another endpoint's URL is rejected."""
        await registry.add_endpoint("https://example.com/one", ["a"])
        second = await registry.add_endpoint("https://example.com/two", ["a"])
        with pytest.raises(ConfigurationError):
            await registry.update_endpoint(second.id, EndpointUpdate(url="https://example.com/one"))

    @pytest.mark.asyncio
    async def test_update_unknown(self, registry: EndpointRegistry) -> None:
        """Updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await registry.update_endpoint("whk_missing", EndpointUpdate(active=False))

    @pytest.mark.asyncio
    async def test_reactivation_resets_failures(self, store: InMemoryStore) -> None:
        """Manually reactivating an endpoint clears its failure counter."""
        registry = EndpointRegistry(store, health=HealthTracker(failure_threshold=2))
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        await registry.record_failure(endpoint.id)
        assert await registry.record_failure(endpoint.id) is True
        assert registry.get_endpoint(endpoint.id).active is False

        updated = await registry.update_endpoint(endpoint.id, EndpointUpdate(active=True))

        assert updated.active is True
        assert updated.consecutive_failures == 0


class TestQueries:
    """Tests for read operations."""

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, registry: EndpointRegistry) -> None:
        """Mutating a returned endpoint does not affect the registry."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        copy = registry.get_endpoint(endpoint.id)
        copy.active = False
        copy.events.add("b")

        stored = registry.get_endpoint(endpoint.id)
        assert stored.active is True
        assert stored.events == {"a"}

    @pytest.mark.asyncio
    async def test_get_unknown(self, registry: EndpointRegistry) -> None:
        """Unknown ids return None."""
        assert registry.get_endpoint("whk_missing") is None

    @pytest.mark.asyncio
    async def test_list_endpoints(self, registry: EndpointRegistry) -> None:
        """All endpoints are listed, active or not."""
        first = await registry.add_endpoint("https://example.com/one", ["a"])
        await registry.add_endpoint("https://example.com/two", ["a"])
        await registry.update_endpoint(first.id, EndpointUpdate(active=False))

        assert len(registry.list_endpoints()) == 2

    @pytest.mark.asyncio
    async def test_matching_active_endpoints(self, registry: EndpointRegistry) -> None:
        """Only active endpoints subscribed to the type match."""
        subscribed = await registry.add_endpoint("https://example.com/one", ["a", "b"])
        await registry.add_endpoint("https://example.com/two", ["b"])
        inactive = await registry.add_endpoint("https://example.com/three", ["a"])
        await registry.update_endpoint(inactive.id, EndpointUpdate(active=False))

        matches = registry.matching_active_endpoints("a")

        assert [e.id for e in matches] == [subscribed.id]
        assert registry.matching_active_endpoints("unknown") == []


class TestHealthRecording:
    """Tests for delivery outcome recording."""

    @pytest.mark.asyncio
    async def test_record_success(self, registry: EndpointRegistry, clock: ManualClock) -> None:
        """Success resets the counter and stamps last_used_at."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        await registry.record_failure(endpoint.id)
        await registry.record_failure(endpoint.id)

        await registry.record_success(endpoint.id)

        stored = registry.get_endpoint(endpoint.id)
        assert stored.consecutive_failures == 0
        assert stored.last_used_at == clock.now()

    @pytest.mark.asyncio
    async def test_record_failure_deactivates_at_threshold(
        self, registry: EndpointRegistry
    ) -> None:
        """The tenth consecutive failure deactivates the endpoint."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])

        results = [await registry.record_failure(endpoint.id) for _ in range(10)]

        assert results == [False] * 9 + [True]
        stored = registry.get_endpoint(endpoint.id)
        assert stored.active is False
        assert stored.consecutive_failures == 10
        assert registry.matching_active_endpoints("a") == []

    @pytest.mark.asyncio
    async def test_record_for_removed_endpoint(self, registry: EndpointRegistry) -> None:
        """Outcomes for removed endpoints are ignored."""
        await registry.record_success("whk_missing")
        assert await registry.record_failure("whk_missing") is False

    @pytest.mark.asyncio
    async def test_health_persisted(
        self, registry: EndpointRegistry, store: InMemoryStore
    ) -> None:
        """Health changes are written through to the store."""
        endpoint = await registry.add_endpoint("https://example.com/hook", ["a"])
        await registry.record_failure(endpoint.id)

        record = await store.get(ENDPOINTS_NAMESPACE, endpoint.id)
        assert record["consecutive_failures"] == 1


class TestLoad:
    """Tests for restoring state."""

    @pytest.mark.asyncio
    async def test_load_restores_endpoints(self, store: InMemoryStore) -> None:
        """A new registry over the same store sees the same endpoints."""
        first = EndpointRegistry(store)
        endpoint = await first.add_endpoint("https://example.com/hook", ["a", "b"], secret="s")
        await first.record_failure(endpoint.id)

        second = EndpointRegistry(store)
        assert await second.load() == 1

        restored = second.get_endpoint(endpoint.id)
        assert restored.events == {"a", "b"}
        assert restored.secret == "s"
        assert restored.consecutive_failures == 1
