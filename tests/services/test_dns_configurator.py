"""Test cases for DNS configuration."""

import pytest

from app.core.exceptions import (
    DNSRecordRejectedException,
    ProviderHTTPException,
    ValidationException,
)
from app.schemas.domain import DomainProvider
from app.services.dns_configurator import DNSConfigurator


class TestDNSConfigurator:
    """Test cases for DNSConfigurator.setup_dns."""

    @pytest.fixture
    def configurator(self, selector):
        return DNSConfigurator(selector)

    @pytest.mark.asyncio
    async def test_cloudflare_points_to_target(self, configurator, fake_cloudflare):
        """A Cloudflare CNAME makes the domain point at the target."""
        result = await configurator.setup_dns(
            "GoldCasino.site", "app.example.net", provider="cloudflare"
        )

        assert result.success is True
        assert result.points_to_target is True
        assert result.warning is None
        assert result.domain == "goldcasino.site"
        assert result.provider == DomainProvider.CLOUDFLARE
        fake_cloudflare.setup_dns.assert_awaited_once_with(
            "goldcasino.site", "app.example.net"
        )

    @pytest.mark.asyncio
    async def test_namecheap_parks_with_warning(self, configurator, fake_namecheap):
        """Namecheap success is reported, but not as pointing at the target."""
        result = await configurator.setup_dns("goldcasino.com", "app.example.net")

        assert result.success is True
        assert result.points_to_target is False
        assert "app.example.net" in result.warning
        assert result.provider == DomainProvider.NAMECHEAP

    @pytest.mark.asyncio
    async def test_rejected_change(self, configurator, fake_cloudflare):
        fake_cloudflare.setup_dns.return_value = False

        result = await configurator.setup_dns(
            "goldcasino.site", "app.example.net", provider="cloudflare"
        )

        assert result.success is False
        assert result.points_to_target is False
        assert result.warning

    @pytest.mark.asyncio
    async def test_rejection_reason_reaches_warning(self, configurator, fake_cloudflare):
        """Cloudflare's refusal text is surfaced to the caller."""
        fake_cloudflare.setup_dns.side_effect = DNSRecordRejectedException(
            "Cloudflare", "A CNAME record with that host already exists."
        )

        result = await configurator.setup_dns(
            "goldcasino.site", "app.example.net", provider="cloudflare"
        )

        assert result.success is False
        assert result.points_to_target is False
        assert result.warning == (
            "Cloudflare: A CNAME record with that host already exists."
        )

    @pytest.mark.asyncio
    async def test_transport_failure_reported(self, configurator, fake_namecheap):
        """Registrar failures become an unsuccessful result with the reason."""
        fake_namecheap.setup_dns.side_effect = ProviderHTTPException(
            "Namecheap", "namecheap.domains.dns.setDefault failed: ConnectError"
        )

        result = await configurator.setup_dns("goldcasino.com", "app.example.net")

        assert result.success is False
        assert "ConnectError" in result.warning

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("domain", "target"),
        [("not a domain", "app.example.net"), ("goldcasino.com", "  ")],
    )
    async def test_invalid_input(self, configurator, fake_namecheap, domain, target):
        with pytest.raises(ValidationException):
            await configurator.setup_dns(domain, target)

        fake_namecheap.setup_dns.assert_not_awaited()
