"""Test configuration and fixtures."""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from app.adapters.base import RegistrarAdapter
from app.core.config import settings
from app.core.resilience import CircuitBreaker, CircuitConfig, ResilientHttpClient, RetryPolicy
from app.schemas.domain import AvailabilityCheck, DomainProvider, RegistrantContact
from app.services.price_cache import PriceCache
from app.services.provider_selector import ProviderSelector


@pytest.fixture
def namecheap_credentials(monkeypatch):
    """Configure Namecheap credentials for the duration of a test."""
    monkeypatch.setattr(settings, "NAMECHEAP_API_USER", "apiuser")
    monkeypatch.setattr(settings, "NAMECHEAP_API_KEY", "secret-key")
    monkeypatch.setattr(settings, "NAMECHEAP_USERNAME", "apiuser")
    monkeypatch.setattr(settings, "NAMECHEAP_CLIENT_IP", "10.0.0.1")
    monkeypatch.setattr(settings, "NAMECHEAP_SANDBOX", False)


@pytest.fixture
def cloudflare_credentials(monkeypatch):
    """Configure Cloudflare credentials for the duration of a test."""
    monkeypatch.setattr(settings, "CLOUDFLARE_API_TOKEN", "cf-token")
    monkeypatch.setattr(settings, "CLOUDFLARE_ZONE_ID", "zone123")
    monkeypatch.setattr(settings, "CLOUDFLARE_ACCOUNT_ID", "acct456")


@pytest.fixture
def no_credentials(monkeypatch):
    """Clear every registrar credential."""
    for name in (
        "NAMECHEAP_API_USER",
        "NAMECHEAP_API_KEY",
        "NAMECHEAP_USERNAME",
        "CLOUDFLARE_API_TOKEN",
        "CLOUDFLARE_ZONE_ID",
        "CLOUDFLARE_ACCOUNT_ID",
    ):
        monkeypatch.setattr(settings, name, "")


@pytest.fixture
def mock_client_factory():
    """
    Build ResilientHttpClient instances backed by httpx.MockTransport.

    Retries are disabled and the circuit never opens, so each test sees
    exactly the responses its handler returns.
    """
    clients = []

    def factory(handler):
        client = ResilientHttpClient(
            timeout_seconds=5,
            retry_policy=RetryPolicy(max_attempts=1),
            circuit_breaker=CircuitBreaker(CircuitConfig(failure_threshold=1000)),
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    return factory


@pytest.fixture
def fresh_price_cache():
    """Price cache isolated from the shared process-wide instance."""
    return PriceCache(ttl_seconds=3600)


@pytest.fixture
def sample_registrant():
    """Registrant contact with a North American phone number."""
    return RegistrantContact(
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        phone="+1 (916) 555-1234",
        address1="1 Main St",
        city="Sacramento",
        state_province="CA",
        postal_code="95814",
        country="US",
    )


def make_fake_adapter(provider: DomainProvider):
    """Mock adapter with async operations, bound to ``provider``."""
    adapter = Mock(spec=RegistrarAdapter)
    adapter.provider = provider
    adapter.check_availability = AsyncMock()
    adapter.search = AsyncMock(return_value=[])
    adapter.register_domain = AsyncMock()
    adapter.setup_dns = AsyncMock(return_value=True)
    adapter.get_domain_info = AsyncMock(return_value=None)
    adapter.aclose = AsyncMock()
    return adapter


@pytest.fixture
def fake_namecheap():
    return make_fake_adapter(DomainProvider.NAMECHEAP)


@pytest.fixture
def fake_cloudflare():
    return make_fake_adapter(DomainProvider.CLOUDFLARE)


@pytest.fixture
def selector(fake_namecheap, fake_cloudflare):
    """ProviderSelector that hands out the fake adapters (default: namecheap)."""
    return ProviderSelector(
        default=DomainProvider.NAMECHEAP,
        factories={
            DomainProvider.NAMECHEAP: lambda: fake_namecheap,
            DomainProvider.CLOUDFLARE: lambda: fake_cloudflare,
        },
    )


class TestDataFactory:
    """Factory for creating test data."""

    @staticmethod
    def availability(domain: str, available: bool = True, price: str | None = "9.99", **overrides):
        """AvailabilityCheck with optional overrides."""
        data = {
            "domain": domain,
            "available": available,
            "price": Decimal(price) if price is not None else None,
        }
        data.update(overrides)
        return AvailabilityCheck(**data)

    @staticmethod
    def purchase_request(**overrides):
        """Purchase request body (snake_case) with optional overrides."""
        data = {
            "domain": "goldcasino.com",
            "price": Decimal("12.99"),
            "user_id": "user-123",
        }
        data.update(overrides)
        return data


@pytest.fixture
def test_data_factory():
    """Test data factory fixture."""
    return TestDataFactory()
