from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from app.adapters.base import RegistrarAdapter
from app.core.config import settings
from app.core.exceptions import (
    DNSRecordRejectedException,
    ExternalServiceException,
    ProviderHTTPException,
    ProviderParseException,
    RegistrationException,
)
from app.core.resilience import ResilientHttpClient
from app.schemas.domain import (
    AvailabilityCheck,
    DomainProvider,
    RegistrantContact,
    RegistrationReceipt,
)
from app.utils.validators import split_domain

logger = logging.getLogger(__name__)

# Candidates checked in a single batched domains/check call
CLOUDFLARE_SEARCH_TLDS = (
    "com", "net", "org", "site", "online", "app", "io", "co", "me", "tv",
    "cc", "ws", "casino", "bet", "games", "club", "vip", "xyz", "top", "win",
)

# Cloudflare answers these with a JSON envelope whose errors[] we want to keep
ENVELOPE_STATUSES = (400, 401, 403, 404, 409, 422)

AUTO_TTL = 1


def _parse_price(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    return price if price >= 0 else None


def _error_text(payload: dict[str, Any], default: str) -> str:
    errors = payload.get("errors") or []
    messages = [
        str(e.get("message")) if isinstance(e, dict) else str(e)
        for e in errors
        if e
    ]
    return "; ".join(m for m in messages if m) or default


class CloudflareAdapter(RegistrarAdapter):
    """Adapter for the Cloudflare REST API (Bearer token)"""

    provider = DomainProvider.CLOUDFLARE

    def __init__(self, client: ResilientHttpClient | None = None):
        super().__init__(client)
        self.base_url = settings.CLOUDFLARE_API_BASE.rstrip("/")
        self.account_id = settings.CLOUDFLARE_ACCOUNT_ID
        self.zone_id = settings.CLOUDFLARE_ZONE_ID

    def required_credentials(self) -> dict[str, str]:
        return {
            "CLOUDFLARE_API_TOKEN": settings.CLOUDFLARE_API_TOKEN,
            "CLOUDFLARE_ZONE_ID": settings.CLOUDFLARE_ZONE_ID,
            "CLOUDFLARE_ACCOUNT_ID": settings.CLOUDFLARE_ACCOUNT_ID,
        }

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.CLOUDFLARE_API_TOKEN}",
            "Content-Type": "application/json",
        }

    async def _call(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        idempotent: bool = True,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = await self.client.request(
                method,
                url,
                headers=self._headers,
                json=json,
                allowed_statuses=ENVELOPE_STATUSES,
                circuit_key="cloudflare_api",
                idempotent=idempotent,
            )
        except httpx.HTTPStatusError as e:
            raise ProviderHTTPException(
                "Cloudflare",
                f"{method} {path} returned HTTP {e.response.status_code}",
                status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderHTTPException(
                "Cloudflare", f"{method} {path} failed: {type(e).__name__}"
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderParseException(
                "Cloudflare", f"{method} {path} returned a non-JSON body"
            ) from e
        if not isinstance(payload, dict):
            raise ProviderParseException(
                "Cloudflare", f"{method} {path} returned an unexpected body"
            )
        return payload

    def _to_check(self, item: dict[str, Any]) -> AvailabilityCheck:
        return AvailabilityCheck(
            domain=item["name"],
            available=bool(item.get("available", False)),
            price=_parse_price(item.get("price")),
            is_premium=False,  # Cloudflare does not flag premium names
        )

    async def search(self, query: str) -> list[AvailabilityCheck]:
        """Check all candidate TLDs for ``query`` in one batched call"""
        candidates = [f"{query}.{tld}" for tld in CLOUDFLARE_SEARCH_TLDS]
        logger.info(f"Cloudflare: checking {len(candidates)} candidates for {query}")

        payload = await self._call("POST", "domains/check", json={"domains": candidates})
        if not payload.get("success"):
            raise ProviderParseException(
                "Cloudflare", _error_text(payload, "Failed to search domains")
            )

        results: list[AvailabilityCheck] = []
        for item in payload.get("result") or []:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            try:
                results.append(self._to_check(item))
            except ValueError as e:
                logger.warning(f"Cloudflare: skipping malformed result {item!r}: {e}")
        return results

    async def check_availability(self, name: str, tld: str) -> AvailabilityCheck:
        domain = f"{name}.{tld}".lower()
        payload = await self._call("POST", "domains/check", json={"domains": [domain]})
        if not payload.get("success"):
            raise ProviderParseException(
                "Cloudflare", _error_text(payload, "Failed to check domain")
            )
        for item in payload.get("result") or []:
            if isinstance(item, dict) and str(item.get("name", "")).lower() == domain:
                return self._to_check(item)
        return AvailabilityCheck(domain=domain, available=False)

    async def register_domain(
        self,
        domain: str,
        registrant: RegistrantContact | None,
        client_ip: str | None = None,
    ) -> RegistrationReceipt:
        # Cloudflare uses the account's contact on file; registrant is ignored
        split_domain(domain)
        logger.info(f"Cloudflare: registering {domain}")

        payload = await self._call(
            "POST",
            f"accounts/{self.account_id}/domains",
            json={"name": domain, "privacy": True, "auto_renew": True},
            idempotent=False,
        )
        result = payload.get("result")
        if not payload.get("success") or not isinstance(result, dict):
            message = _error_text(payload, "Failed to purchase domain")
            logger.error(f"Cloudflare: registration of {domain} refused: {message}")
            raise RegistrationException(message)

        return RegistrationReceipt(
            transaction_id=result.get("id"),
            domain=result.get("name") or domain,
            expires_at=result.get("expires_at"),
        )

    async def setup_dns(self, domain: str, target_host: str) -> bool:
        """Create a proxied CNAME for ``domain`` pointing at ``target_host``"""
        record = {
            "type": "CNAME",
            "name": domain,
            "content": target_host,
            "ttl": AUTO_TTL,
            "proxied": True,
        }
        logger.info(f"Cloudflare: creating CNAME {domain} -> {target_host}")
        payload = await self._call(
            "POST",
            f"zones/{self.zone_id}/dns_records",
            json=record,
            idempotent=False,
        )
        if not payload.get("success"):
            message = _error_text(payload, "DNS record rejected")
            logger.error(f"Cloudflare: DNS setup for {domain} failed: {message}")
            raise DNSRecordRejectedException("Cloudflare", message)
        return True

    async def get_domain_info(self, domain: str) -> AvailabilityCheck | None:
        try:
            payload = await self._call(
                "GET", f"accounts/{self.account_id}/domains/{domain}"
            )
        except ExternalServiceException as e:
            logger.warning(f"Cloudflare: domain info for {domain} unavailable: {e}")
            return None

        result = payload.get("result")
        if not payload.get("success") or not isinstance(result, dict):
            logger.info(
                f"Cloudflare: no domain info for {domain}: "
                f"{_error_text(payload, 'not found')}"
            )
            return None
        try:
            return self._to_check({"name": domain, **result})
        except ValueError as e:
            logger.warning(f"Cloudflare: malformed domain info for {domain}: {e}")
            return None
