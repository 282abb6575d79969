from __future__ import annotations

import asyncio
import logging
from decimal import Decimal

from app.adapters.base import RegistrarAdapter
from app.core.config import settings
from app.core.exceptions import ExternalServiceException
from app.schemas.domain import AvailabilityCheck, DomainProvider, DomainSearchResult
from app.services.provider_selector import ProviderSelector, provider_selector
from app.utils.validators import normalize_search_query

logger = logging.getLogger(__name__)

# Namecheap candidates, grouped by price tier
NAMECHEAP_CHEAP_TLDS = (
    "xyz", "top", "site", "online", "tech", "space",
    "website", "store", "shop", "live", "click", "link",
)
NAMECHEAP_STANDARD_TLDS = (
    "com", "net", "org", "io", "co", "me",
    "tv", "cc", "ws", "info", "biz", "us",
)
NAMECHEAP_PREMIUM_TLDS = (
    "casino", "bet", "games", "club", "vip", "win",
    "lucky", "gold", "royal", "fortune", "luxury",
)
NAMECHEAP_SEARCH_TLDS = (
    NAMECHEAP_CHEAP_TLDS + NAMECHEAP_STANDARD_TLDS + NAMECHEAP_PREMIUM_TLDS
)

# Cloudflare results on these TLDs are flagged as recommended
RECOMMENDED_TLDS = frozenset({"site", "online"})


def _price_sort_key(result: DomainSearchResult) -> tuple[bool, Decimal]:
    # Unpriced results go last
    return (result.price is None, result.price or Decimal(0))


class DomainSearchOrchestrator:
    """Fans a name out across candidate TLDs on the selected registrar"""

    def __init__(self, selector: ProviderSelector | None = None):
        self.name = "DomainSearchOrchestrator"
        self.selector = selector or provider_selector

    async def search_domains(
        self, query: str, provider: DomainProvider | str | None = None
    ) -> list[DomainSearchResult]:
        """
        Search for registrable domains matching ``query``.

        Only input validation and missing credentials raise; registrar
        failures degrade to an empty or partial list.
        """
        name = normalize_search_query(query)
        resolved = self.selector.resolve(provider)
        adapter = self.selector.get_adapter(resolved)

        logger.info(f"{self.name}: searching '{name}' via {resolved.value}")

        if resolved == DomainProvider.CLOUDFLARE:
            return await self._search_batched(adapter, name)
        return await self._search_fan_out(adapter, name, NAMECHEAP_SEARCH_TLDS)

    async def _search_batched(
        self, adapter: RegistrarAdapter, name: str
    ) -> list[DomainSearchResult]:
        """One call for all candidates; unavailable results are kept"""
        try:
            checks = await adapter.search(name)
        except ExternalServiceException as e:
            logger.error(f"{self.name}: batched search for '{name}' failed: {e}")
            return []

        results = [
            DomainSearchResult.from_check(
                check,
                adapter.provider,
                recommended=check.domain.rsplit(".", 1)[-1] in RECOMMENDED_TLDS,
            )
            for check in checks
        ]
        logger.info(
            f"{self.name}: batched search for '{name}' returned {len(results)} results"
        )
        return results

    async def _check_one(
        self, adapter: RegistrarAdapter, name: str, tld: str
    ) -> tuple[AvailabilityCheck, bool]:
        """Check one TLD; a failure becomes an unavailable placeholder"""
        try:
            return await adapter.check_availability(name, tld), True
        except Exception as e:
            logger.warning(
                f"{self.name}: check for {name}.{tld} failed: {e}",
                extra={"tld": tld, "exception": type(e).__name__},
            )
            return AvailabilityCheck(domain=f"{name}.{tld}", available=False), False

    async def _search_fan_out(
        self, adapter: RegistrarAdapter, name: str, tlds: tuple[str, ...]
    ) -> list[DomainSearchResult]:
        """Concurrent per-TLD checks; keep the cheapest available results"""
        outcomes = await asyncio.gather(
            *(self._check_one(adapter, name, tld) for tld in tlds)
        )

        failed = sum(1 for _, ok in outcomes if not ok)
        available = [
            DomainSearchResult.from_check(check, adapter.provider)
            for check, _ in outcomes
            if check.available
        ]
        available.sort(key=_price_sort_key)
        results = available[: settings.SEARCH_RESULT_LIMIT]

        logger.info(
            f"{self.name}: '{name}' checked {len(tlds)} TLDs, "
            f"{len(available)} available, {failed} failed, returning {len(results)}"
        )
        return results
