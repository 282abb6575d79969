# Orchestrators package
# Business-level orchestrators that coordinate registrar adapters

from app.services.orchestrators.domain_search_orchestrator import (
    DomainSearchOrchestrator,
)

__all__ = [
    "DomainSearchOrchestrator",
]
