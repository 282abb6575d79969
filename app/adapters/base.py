from __future__ import annotations

import abc
import logging

from app.core.exceptions import CredentialsMissingException
from app.core.resilience import ResilientHttpClient
from app.schemas.domain import (
    AvailabilityCheck,
    DomainProvider,
    RegistrantContact,
    RegistrationReceipt,
)

logger = logging.getLogger(__name__)


class RegistrarAdapter(abc.ABC):
    """
    Base adapter interface for domain registrar APIs.

    Each adapter translates one registrar's wire format into the shared
    schemas; callers never see XML or registrar JSON. Credentials are checked
    on construction, so an adapter that exists is always configured.

    Failure contract:
    - transport errors and non-2xx responses -> ProviderHTTPException
    - a response without the registrar's success marker -> ProviderParseException
    - a refused registration -> RegistrationException
    """

    provider: DomainProvider

    def __init__(self, client: ResilientHttpClient | None = None):
        self.name = self.__class__.__name__
        self.validate_credentials()
        self.client = client or ResilientHttpClient()

    def required_credentials(self) -> dict[str, str]:
        """Mapping of setting name -> configured value"""
        return {}

    def validate_credentials(self) -> None:
        missing = [name for name, value in self.required_credentials().items() if not value]
        if missing:
            logger.error(
                f"{self.name}: credentials not configured",
                extra={"missing": missing},
            )
            raise CredentialsMissingException(self.provider.value, missing)

    @abc.abstractmethod
    async def check_availability(self, name: str, tld: str) -> AvailabilityCheck:
        """Check whether ``name.tld`` can be registered and at what price"""

    async def search(self, query: str) -> list[AvailabilityCheck]:
        """Batched check across the registrar's own candidate list"""
        raise NotImplementedError(f"{self.name} has no batched search")

    @abc.abstractmethod
    async def register_domain(
        self,
        domain: str,
        registrant: RegistrantContact | None,
        client_ip: str | None = None,
    ) -> RegistrationReceipt:
        """Register a domain; raises RegistrationException when refused"""

    @abc.abstractmethod
    async def setup_dns(self, domain: str, target_host: str) -> bool:
        """Configure DNS for a purchased domain"""

    @abc.abstractmethod
    async def get_domain_info(self, domain: str) -> AvailabilityCheck | None:
        """Look up a single domain, or None when the registrar has nothing"""

    async def aclose(self) -> None:
        await self.client.aclose()
