"""Test cases for the Cloudflare registrar adapter."""

import json
from decimal import Decimal

import httpx
import pytest

from app.adapters.cloudflare_adapter import CLOUDFLARE_SEARCH_TLDS, CloudflareAdapter
from app.core.exceptions import (
    CredentialsMissingException,
    DNSRecordRejectedException,
    ProviderHTTPException,
    ProviderParseException,
    RegistrationException,
)


class RecordingHandler:
    """MockTransport handler returning one canned response and recording requests."""

    def __init__(self, status=200, payload=None, text=None):
        self.status = status
        self.payload = payload
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.payload)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


class TestCredentials:
    """Test cases for credential validation."""

    def test_missing_credentials(self, no_credentials):
        """Token, zone and account are all required."""
        with pytest.raises(CredentialsMissingException) as exc_info:
            CloudflareAdapter()

        assert exc_info.value.provider == "cloudflare"
        assert set(exc_info.value.details["missing"]) == {
            "CLOUDFLARE_API_TOKEN",
            "CLOUDFLARE_ZONE_ID",
            "CLOUDFLARE_ACCOUNT_ID",
        }


class TestSearch:
    """Test cases for the batched domains/check call."""

    @pytest.mark.asyncio
    async def test_batched_check_sends_all_candidates(
        self, cloudflare_credentials, mock_client_factory
    ):
        """One POST carries all 20 candidates; results map 1:1, unavailable kept."""
        handler = RecordingHandler(
            payload={
                "success": True,
                "result": [
                    {"name": "goldcasino.com", "available": False},
                    {"name": "goldcasino.site", "available": True, "price": 2.5},
                ],
            }
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        checks = await adapter.search("goldcasino")

        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/client/v4/domains/check"
        assert request.headers["Authorization"] == "Bearer cf-token"
        assert handler.last_body["domains"] == [
            f"goldcasino.{tld}" for tld in CLOUDFLARE_SEARCH_TLDS
        ]
        assert len(CLOUDFLARE_SEARCH_TLDS) == 20

        assert [c.domain for c in checks] == ["goldcasino.com", "goldcasino.site"]
        assert checks[0].available is False
        assert checks[1].price == Decimal("2.5")

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_raises_parse_error(
        self, cloudflare_credentials, mock_client_factory
    ):
        """success == false surfaces the joined error messages."""
        handler = RecordingHandler(
            status=400,
            payload={"success": False, "errors": [{"code": 1, "message": "bad query"}]},
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        with pytest.raises(ProviderParseException) as exc_info:
            await adapter.search("goldcasino")

        assert "bad query" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_body(self, cloudflare_credentials, mock_client_factory):
        """A 200 without JSON is a parse error."""
        handler = RecordingHandler(text="<html>oops</html>")
        adapter = CloudflareAdapter(mock_client_factory(handler))

        with pytest.raises(ProviderParseException):
            await adapter.search("goldcasino")

    @pytest.mark.asyncio
    async def test_server_error(self, cloudflare_credentials, mock_client_factory):
        """A 5xx is a transport-level failure."""
        handler = RecordingHandler(status=500, text="internal")
        adapter = CloudflareAdapter(mock_client_factory(handler))

        with pytest.raises(ProviderHTTPException) as exc_info:
            await adapter.search("goldcasino")

        assert exc_info.value.status == 500


class TestRegisterDomain:
    """Test cases for account domain registration."""

    @pytest.mark.asyncio
    async def test_registration_returns_expiry_verbatim(
        self, cloudflare_credentials, mock_client_factory, sample_registrant
    ):
        """expires_at from the registrar is passed through unchanged."""
        handler = RecordingHandler(
            payload={
                "success": True,
                "result": {
                    "id": "reg-789",
                    "name": "goldcasino.site",
                    "expires_at": "2027-03-01T12:00:00Z",
                },
            }
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        receipt = await adapter.register_domain("goldcasino.site", sample_registrant)

        assert receipt.transaction_id == "reg-789"
        assert receipt.expires_at == "2027-03-01T12:00:00Z"
        assert handler.requests[0].url.path == "/client/v4/accounts/acct456/domains"
        assert handler.last_body == {
            "name": "goldcasino.site",
            "privacy": True,
            "auto_renew": True,
        }

    @pytest.mark.asyncio
    async def test_refused_registration(self, cloudflare_credentials, mock_client_factory):
        """success == false raises RegistrationException with registrar messages."""
        handler = RecordingHandler(
            status=409,
            payload={
                "success": False,
                "errors": [{"message": "Domain unavailable"}, {"message": "Try later"}],
            },
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        with pytest.raises(RegistrationException) as exc_info:
            await adapter.register_domain("goldcasino.site", None)

        assert exc_info.value.message == "Domain unavailable; Try later"
        assert len(handler.requests) == 1


class TestSetupDns:
    """Test cases for CNAME creation."""

    @pytest.mark.asyncio
    async def test_cname_points_to_target(self, cloudflare_credentials, mock_client_factory):
        """The record content is exactly the target host; proxied with auto TTL."""
        handler = RecordingHandler(payload={"success": True, "result": {"id": "rec1"}})
        adapter = CloudflareAdapter(mock_client_factory(handler))

        assert await adapter.setup_dns("goldcasino.site", "app.example.net") is True

        assert handler.requests[0].url.path == "/client/v4/zones/zone123/dns_records"
        assert handler.last_body == {
            "type": "CNAME",
            "name": "goldcasino.site",
            "content": "app.example.net",
            "ttl": 1,
            "proxied": True,
        }

    @pytest.mark.asyncio
    async def test_rejected_record(self, cloudflare_credentials, mock_client_factory):
        """An unsuccessful envelope raises with Cloudflare's own reason."""
        handler = RecordingHandler(
            status=400,
            payload={
                "success": False,
                "errors": [
                    {"code": 81053, "message": "A CNAME record with that host already exists."}
                ],
            },
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        with pytest.raises(DNSRecordRejectedException) as exc_info:
            await adapter.setup_dns("goldcasino.site", "app.example.net")

        assert exc_info.value.reason == "A CNAME record with that host already exists."
        assert exc_info.value.error_code == "DNS_RECORD_REJECTED"


class TestGetDomainInfo:
    """Test cases for account domain lookup."""

    @pytest.mark.asyncio
    async def test_found(self, cloudflare_credentials, mock_client_factory):
        handler = RecordingHandler(
            payload={"success": True, "result": {"available": False, "price": "9.77"}}
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        check = await adapter.get_domain_info("goldcasino.site")

        assert check.domain == "goldcasino.site"
        assert check.price == Decimal("9.77")
        assert handler.requests[0].method == "GET"

    @pytest.mark.asyncio
    async def test_not_found_is_none(self, cloudflare_credentials, mock_client_factory):
        handler = RecordingHandler(
            status=404, payload={"success": False, "errors": [{"message": "not found"}]}
        )
        adapter = CloudflareAdapter(mock_client_factory(handler))

        assert await adapter.get_domain_info("goldcasino.site") is None
