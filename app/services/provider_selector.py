from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from app.adapters.base import RegistrarAdapter
from app.adapters.cloudflare_adapter import CloudflareAdapter
from app.adapters.namecheap_adapter import NamecheapAdapter
from app.core.config import settings
from app.schemas.domain import DomainProvider

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[], RegistrarAdapter]


def _default_factories() -> dict[DomainProvider, AdapterFactory]:
    return {
        DomainProvider.NAMECHEAP: NamecheapAdapter,
        DomainProvider.CLOUDFLARE: CloudflareAdapter,
    }


class ProviderSelector:
    """
    Chooses the registrar adapter behind each call.

    The default provider is process-wide and can be switched at runtime, but
    every operation resolves its provider once, at call start, and an
    explicit provider argument always wins. A call never changes registrar
    half-way because another caller switched the default.
    """

    def __init__(
        self,
        default: DomainProvider | str | None = None,
        factories: dict[DomainProvider, AdapterFactory] | None = None,
    ):
        self._default = DomainProvider(default or settings.DOMAIN_PROVIDER)
        self._factories = factories or _default_factories()
        self._adapters: dict[DomainProvider, RegistrarAdapter] = {}
        self._lock = threading.Lock()

    def get_provider(self) -> DomainProvider:
        return self._default

    def set_provider(self, provider: DomainProvider | str) -> DomainProvider:
        provider = DomainProvider(provider)
        if provider != self._default:
            logger.info(
                f"Default domain provider switched: {self._default.value} -> {provider.value}"
            )
        self._default = provider
        return provider

    def resolve(self, provider: DomainProvider | str | None = None) -> DomainProvider:
        return DomainProvider(provider) if provider else self._default

    def get_adapter(
        self, provider: DomainProvider | str | None = None
    ) -> RegistrarAdapter:
        """
        Adapter for ``provider`` (or the current default).

        Raises:
            CredentialsMissingException: If the registrar is not configured.
                Raised synchronously, before any network call.
        """
        resolved = self.resolve(provider)
        with self._lock:
            adapter = self._adapters.get(resolved)
            if adapter is None:
                adapter = self._factories[resolved]()
                self._adapters[resolved] = adapter
        return adapter

    async def aclose(self) -> None:
        with self._lock:
            adapters = list(self._adapters.values())
            self._adapters.clear()
        for adapter in adapters:
            await adapter.aclose()


# Shared process-wide selector
provider_selector = ProviderSelector()
