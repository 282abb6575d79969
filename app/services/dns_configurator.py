from __future__ import annotations

import logging

from app.core.exceptions import ExternalServiceException, ValidationException
from app.schemas.domain import DNSSetupResult, DomainProvider, normalize_domain
from app.services.provider_selector import ProviderSelector, provider_selector

logger = logging.getLogger(__name__)

NAMECHEAP_PARKING_WARNING = (
    "Namecheap default DNS was applied; the domain is parked at the registrar "
    "and does not point to {target}"
)


class DNSConfigurator:
    """
    Points a purchased domain at a target host.

    Cloudflare creates a proxied CNAME to the target. Namecheap can only
    reset the domain to its default (parking) DNS, so its results report
    ``points_to_target=False`` with a warning instead of claiming success
    for something that did not happen.
    """

    def __init__(self, selector: ProviderSelector | None = None):
        self.name = "DNSConfigurator"
        self.selector = selector or provider_selector

    async def setup_dns(
        self,
        domain: str,
        target_host: str,
        provider: DomainProvider | str | None = None,
    ) -> DNSSetupResult:
        try:
            domain = normalize_domain(domain)
        except ValueError as e:
            raise ValidationException(str(e), details={"domain": domain}) from e
        if not target_host or not target_host.strip():
            raise ValidationException(
                "Target host is required", details={"target_host": target_host}
            )
        target_host = target_host.strip()

        resolved = self.selector.resolve(provider)
        adapter = self.selector.get_adapter(resolved)

        logger.info(f"{self.name}: configuring DNS for {domain} via {resolved.value}")

        warning: str | None = None
        try:
            success = await adapter.setup_dns(domain, target_host)
        except ExternalServiceException as e:
            logger.error(f"{self.name}: DNS setup for {domain} failed: {e}")
            success = False
            warning = f"{e.service_name}: {e.reason}"

        if not success and warning is None:
            warning = f"{resolved.value} rejected the DNS change for {domain}"

        points_to_target = success and resolved == DomainProvider.CLOUDFLARE
        if success and not points_to_target:
            warning = NAMECHEAP_PARKING_WARNING.format(target=target_host)
            logger.warning(f"{self.name}: {domain} parked, target {target_host} not applied")

        return DNSSetupResult(
            success=success,
            domain=domain,
            target_host=target_host,
            provider=resolved,
            points_to_target=points_to_target,
            warning=warning,
        )
