from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal

from app.adapters.base import RegistrarAdapter
from app.core.config import settings
from app.core.exceptions import (
    BaseAPIException,
    CredentialsMissingException,
    ExternalServiceException,
)
from app.schemas.domain import (
    DomainProvider,
    DomainPurchaseRequest,
    DomainPurchaseResult,
    RegistrantContact,
    RegistrationReceipt,
)
from app.services.provider_selector import ProviderSelector, provider_selector
from app.utils.validators import split_domain

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = Decimal("0.01")


def add_one_year(moment: datetime) -> datetime:
    """Same date next year; Feb 29 becomes Feb 28"""
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        return moment.replace(year=moment.year + 1, month=2, day=28)


def default_registrant() -> RegistrantContact | None:
    """Registrant from DEFAULT_REGISTRANT_* settings, if fully configured"""
    fields = {
        "first_name": settings.DEFAULT_REGISTRANT_FIRST_NAME,
        "last_name": settings.DEFAULT_REGISTRANT_LAST_NAME,
        "email": settings.DEFAULT_REGISTRANT_EMAIL,
        "phone": settings.DEFAULT_REGISTRANT_PHONE,
        "address1": settings.DEFAULT_REGISTRANT_ADDRESS1,
        "city": settings.DEFAULT_REGISTRANT_CITY,
        "state_province": settings.DEFAULT_REGISTRANT_STATE_PROVINCE,
        "postal_code": settings.DEFAULT_REGISTRANT_POSTAL_CODE,
        "country": settings.DEFAULT_REGISTRANT_COUNTRY,
    }
    if not all(fields.values()):
        return None
    return RegistrantContact(**fields)


class PurchaseCoordinator:
    """
    Drives one domain purchase through the selected registrar.

    Outcomes are always returned as a DomainPurchaseResult; only missing
    credentials raise. Purchases are never retried and nothing is persisted
    here: recording the domain is the caller's job.
    """

    def __init__(
        self,
        selector: ProviderSelector | None = None,
        revalidate: bool | None = None,
    ):
        self.name = "PurchaseCoordinator"
        self.selector = selector or provider_selector
        self.revalidate = settings.PURCHASE_REVALIDATE if revalidate is None else revalidate

    async def purchase(self, request: DomainPurchaseRequest) -> DomainPurchaseResult:
        provider = self.selector.resolve(request.provider)
        adapter = self.selector.get_adapter(provider)

        logger.info(
            f"{self.name}: purchasing {request.domain} via {provider.value}",
            extra={"user_id": request.user_id, "domain": request.domain},
        )

        try:
            registrant = request.registrant
            if provider == DomainProvider.NAMECHEAP and registrant is None:
                registrant = default_registrant()
                if registrant is None:
                    return DomainPurchaseResult.failure(
                        "Registrant contact is required for Namecheap registrations",
                        provider,
                    )

            if self.revalidate:
                problem = await self._revalidate(adapter, request)
                if problem:
                    logger.warning(
                        f"{self.name}: {request.domain} failed re-validation: {problem}"
                    )
                    return DomainPurchaseResult.failure(problem, provider)

            receipt = await adapter.register_domain(
                request.domain, registrant, request.client_ip
            )
        except CredentialsMissingException:
            raise
        except BaseAPIException as e:
            logger.error(
                f"{self.name}: purchase of {request.domain} failed: {e.message}",
                extra={"error_code": e.error_code, "user_id": request.user_id},
            )
            return DomainPurchaseResult.failure(self._error_text(e), provider)

        result = DomainPurchaseResult(
            success=True,
            transaction_id=receipt.transaction_id,
            domain=receipt.domain or request.domain,
            expiry_date=self._expiry_date(provider, receipt),
            provider=provider,
        )
        logger.info(
            f"{self.name}: purchased {result.domain}",
            extra={
                "transaction_id": result.transaction_id,
                "expiry_date": result.expiry_date,
                "user_id": request.user_id,
            },
        )
        return result

    async def _revalidate(
        self, adapter: RegistrarAdapter, request: DomainPurchaseRequest
    ) -> str | None:
        """Re-check availability and price; returns a failure message or None"""
        name, tld = split_domain(request.domain)
        check = await adapter.check_availability(name, tld)

        if not check.available:
            return "Domain is no longer available"

        # Search results quote the list price, premium or not
        current = check.price
        if current is not None and abs(current - request.price) > PRICE_TOLERANCE:
            return f"Price mismatch. Current price: ${current}"
        return None

    @staticmethod
    def _expiry_date(provider: DomainProvider, receipt: RegistrationReceipt) -> str:
        if provider == DomainProvider.CLOUDFLARE and receipt.expires_at:
            return receipt.expires_at
        # Namecheap registrations are always one-year terms (Years=1)
        return add_one_year(datetime.now(UTC)).isoformat()

    @staticmethod
    def _error_text(error: BaseAPIException) -> str:
        if isinstance(error, ExternalServiceException):
            return f"{error.service_name}: {error.reason}"
        return error.message
