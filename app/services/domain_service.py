from __future__ import annotations

import logging

from app.core.exceptions import ValidationException
from app.schemas.domain import (
    DNSSetupResult,
    DomainProvider,
    DomainPurchaseRequest,
    DomainPurchaseResult,
    DomainSearchResult,
    normalize_domain,
)
from app.services.dns_configurator import DNSConfigurator
from app.services.orchestrators import DomainSearchOrchestrator
from app.services.provider_selector import ProviderSelector, provider_selector
from app.services.purchase_coordinator import PurchaseCoordinator
from app.utils.validators import split_domain

logger = logging.getLogger(__name__)


class DomainService:
    """
    Service facade for the domain search, purchase and DNS workflow.

    All collaborators share one ProviderSelector, so switching the default
    provider here affects search, purchase and DNS alike.
    """

    def __init__(
        self,
        selector: ProviderSelector | None = None,
        search_orchestrator: DomainSearchOrchestrator | None = None,
        purchase_coordinator: PurchaseCoordinator | None = None,
        dns_configurator: DNSConfigurator | None = None,
    ):
        self.selector = selector or provider_selector
        self.search_orchestrator = search_orchestrator or DomainSearchOrchestrator(
            self.selector
        )
        self.purchase_coordinator = purchase_coordinator or PurchaseCoordinator(
            self.selector
        )
        self.dns_configurator = dns_configurator or DNSConfigurator(self.selector)

    async def search_domains(
        self, query: str, provider: DomainProvider | str | None = None
    ) -> list[DomainSearchResult]:
        return await self.search_orchestrator.search_domains(query, provider)

    async def purchase_domain(
        self, request: DomainPurchaseRequest
    ) -> DomainPurchaseResult:
        return await self.purchase_coordinator.purchase(request)

    async def setup_dns(
        self,
        domain: str,
        target_host: str,
        provider: DomainProvider | str | None = None,
    ) -> DNSSetupResult:
        return await self.dns_configurator.setup_dns(domain, target_host, provider)

    async def get_domain_info(
        self, domain: str, provider: DomainProvider | str | None = None
    ) -> DomainSearchResult | None:
        """Current availability and price of a single domain, if known"""
        domain = self._normalize(domain)
        resolved = self.selector.resolve(provider)
        adapter = self.selector.get_adapter(resolved)

        check = await adapter.get_domain_info(domain)
        if check is None:
            return None
        return DomainSearchResult.from_check(check, resolved)

    async def check_availability(
        self, domain: str, provider: DomainProvider | str | None = None
    ) -> bool:
        """True only when the registrar reports the domain as available"""
        info = await self.get_domain_info(domain, provider)
        return bool(info and info.available)

    def get_provider(self) -> DomainProvider:
        return self.selector.get_provider()

    def set_provider(self, provider: DomainProvider | str) -> DomainProvider:
        return self.selector.set_provider(provider)

    @staticmethod
    def _normalize(domain: str) -> str:
        try:
            domain = normalize_domain(domain)
        except ValueError as e:
            raise ValidationException(str(e), details={"domain": domain}) from e
        split_domain(domain)
        return domain


domain_service = DomainService()
