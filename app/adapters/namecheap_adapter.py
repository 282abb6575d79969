from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import httpx

from app.adapters import namecheap_xml
from app.adapters.base import RegistrarAdapter
from app.core.config import settings
from app.core.exceptions import (
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
from app.services.price_cache import PriceCache, price_cache
from app.utils.validators import format_phone_for_registrar, split_domain

logger = logging.getLogger(__name__)

# Fallback registration prices, used when the pricing call fails or has no match
CHEAP_TLDS = frozenset(
    {
        "xyz", "top", "site", "online", "tech", "space", "website", "digital",
        "click", "link", "live", "studio", "design", "art", "blog", "news",
        "shop", "store", "app", "dev",
    }
)
PREMIUM_TLDS = frozenset(
    {
        "casino", "bet", "games", "club", "vip", "win", "lucky", "fortune",
        "gold", "silver", "diamond", "royal", "elite", "premium", "luxury",
    }
)
CHEAP_PRICE = Decimal("1.99")
PREMIUM_PRICE = Decimal("25.99")
STANDARD_PRICE = Decimal("12.99")

PREMIUM_NAME_MULTIPLIER = 3
REGISTRATION_YEARS = 1

CONTACT_ROLES = ("Registrant", "Tech", "Admin", "Billing")


def default_price_for_tld(tld: str) -> Decimal:
    tld = tld.lower()
    if tld in CHEAP_TLDS:
        return CHEAP_PRICE
    if tld in PREMIUM_TLDS:
        return PREMIUM_PRICE
    return STANDARD_PRICE


def build_contact_params(registrant: RegistrantContact) -> dict[str, str]:
    """Registrant, Tech, Admin and Billing contacts, all copied from one registrant"""
    phone = format_phone_for_registrar(registrant.phone)
    params: dict[str, str] = {}
    for role in CONTACT_ROLES:
        params[f"{role}FirstName"] = registrant.first_name
        params[f"{role}LastName"] = registrant.last_name
        params[f"{role}Address1"] = registrant.address1
        params[f"{role}City"] = registrant.city
        params[f"{role}StateProvince"] = registrant.state_province
        params[f"{role}PostalCode"] = registrant.postal_code
        params[f"{role}Country"] = registrant.country
        params[f"{role}Phone"] = phone
        params[f"{role}EmailAddress"] = registrant.email
        if registrant.address2:
            params[f"{role}Address2"] = registrant.address2
        if registrant.organization:
            params[f"{role}OrganizationName"] = registrant.organization
    return params


class NamecheapAdapter(RegistrarAdapter):
    """Adapter for the Namecheap XML API (query-string authenticated)"""

    provider = DomainProvider.NAMECHEAP

    def __init__(
        self,
        client: ResilientHttpClient | None = None,
        cache: PriceCache | None = None,
    ):
        super().__init__(client)
        self.endpoint = settings.namecheap_endpoint
        self.cache = cache if cache is not None else price_cache

    def required_credentials(self) -> dict[str, str]:
        return {
            "NAMECHEAP_API_USER": settings.NAMECHEAP_API_USER,
            "NAMECHEAP_API_KEY": settings.NAMECHEAP_API_KEY,
            "NAMECHEAP_USERNAME": settings.NAMECHEAP_USERNAME,
        }

    def _params(
        self, command: str, client_ip: str | None = None, **extra: str
    ) -> dict[str, Any]:
        return {
            "ApiUser": settings.NAMECHEAP_API_USER,
            "ApiKey": settings.NAMECHEAP_API_KEY,
            "UserName": settings.NAMECHEAP_USERNAME,
            "Command": command,
            "ClientIp": client_ip or settings.NAMECHEAP_CLIENT_IP or "127.0.0.1",
            **extra,
        }

    async def _call(
        self,
        params: dict[str, Any],
        method: str = "GET",
        idempotent: bool = True,
    ) -> str:
        try:
            response = await self.client.request(
                method,
                self.endpoint,
                params=params,
                circuit_key="namecheap_api",
                idempotent=idempotent,
            )
        except httpx.HTTPStatusError as e:
            raise ProviderHTTPException(
                "Namecheap",
                f"{params['Command']} returned HTTP {e.response.status_code}",
                status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderHTTPException(
                "Namecheap", f"{params['Command']} failed: {type(e).__name__}"
            ) from e
        return response.text

    async def get_domain_price(self, tld: str) -> Decimal:
        """
        Registration price for a TLD.

        Cached prices short-circuit the network. On a cache miss the pricing
        endpoint is queried; if that fails or has no price for the TLD, the
        tier default is used instead. Either value is cached.
        """
        tld = tld.lower().lstrip(".")
        cached = self.cache.get(tld)
        if cached is not None:
            return cached

        price: Decimal | None = None
        try:
            xml_text = await self._call(
                self._params(
                    "namecheap.users.getPricing",
                    ProductType="DOMAIN",
                    ActionName="REGISTER",
                    ProductName=tld,
                )
            )
            price = namecheap_xml.extract_price(xml_text, tld)
            if price is None:
                logger.warning(f"Namecheap: no price for .{tld} in pricing response")
        except ExternalServiceException as e:
            logger.warning(f"Namecheap: pricing lookup for .{tld} failed: {e}")

        if price is None:
            price = default_price_for_tld(tld)
            logger.info(f"Namecheap: using default price {price} for .{tld}")

        self.cache.set(tld, price)
        return price

    async def check_availability(self, name: str, tld: str) -> AvailabilityCheck:
        domain = f"{name}.{tld}".lower()
        logger.debug(f"Namecheap: checking {domain}")

        xml_text = await self._call(
            self._params("namecheap.domains.check", DomainList=domain)
        )
        if not namecheap_xml.is_success(xml_text):
            _, message = namecheap_xml.extract_error(xml_text)
            raise ProviderParseException("Namecheap", f"domains.check: {message}")

        available = namecheap_xml.is_available(xml_text, domain)
        premium = namecheap_xml.is_premium(xml_text, domain)
        price = await self.get_domain_price(tld)

        return AvailabilityCheck(
            domain=domain,
            available=available,
            price=price,
            is_premium=premium,
            premium_price=price * PREMIUM_NAME_MULTIPLIER if premium else None,
        )

    async def register_domain(
        self,
        domain: str,
        registrant: RegistrantContact | None,
        client_ip: str | None = None,
    ) -> RegistrationReceipt:
        if registrant is None:
            raise RegistrationException(
                "Registrant contact is required for Namecheap registrations"
            )
        split_domain(domain)

        logger.info(f"Namecheap: registering {domain}")
        params = self._params(
            "namecheap.domains.create",
            client_ip=client_ip,
            DomainName=domain,
            Years=str(REGISTRATION_YEARS),
            **build_contact_params(registrant),
        )
        xml_text = await self._call(params, method="POST", idempotent=False)

        if not namecheap_xml.is_success(xml_text):
            error_number, message = namecheap_xml.extract_error(xml_text)
            logger.error(
                f"Namecheap: registration of {domain} refused",
                extra={"error_number": error_number, "error_message": message},
            )
            if error_number:
                message = f"Error {error_number}: {message}"
            raise RegistrationException(message, error_number)

        transaction_id = namecheap_xml.extract_transaction_id(xml_text)
        logger.info(
            f"Namecheap: registered {domain}",
            extra={"transaction_id": transaction_id},
        )
        # Namecheap does not reliably report an expiry; callers derive it
        return RegistrationReceipt(transaction_id=transaction_id, domain=domain)

    async def setup_dns(self, domain: str, target_host: str) -> bool:
        """
        Reset the domain to Namecheap default DNS (registrar parking).

        The target host is not used: setDefault always points at Namecheap's
        own hosts.
        """
        sld, tld = split_domain(domain)
        logger.info(
            f"Namecheap: setting default DNS for {domain}",
            extra={"ignored_target_host": target_host},
        )
        xml_text = await self._call(
            self._params("namecheap.domains.dns.setDefault", SLD=sld, TLD=tld),
            idempotent=False,
        )
        return namecheap_xml.is_success(xml_text)

    async def get_domain_info(self, domain: str) -> AvailabilityCheck | None:
        name, tld = split_domain(domain)
        try:
            return await self.check_availability(name, tld)
        except ExternalServiceException as e:
            logger.warning(f"Namecheap: domain info for {domain} unavailable: {e}")
            return None
