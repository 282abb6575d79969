"""
Domain API Endpoints

Thin HTTP layer over DomainService. Registrar failures come back as result
objects, so these handlers only translate them to status codes; missing
credentials and invalid input surface through the global exception handlers.

Endpoints:
- POST /search - Search registrable domains for a name
- POST /purchase - Register a domain
- POST /dns - Point a purchased domain at a host
- GET /info/{domain} - Availability and price of one domain
- GET /provider, PUT /provider - Read or switch the default registrar
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from app.core.exceptions import NotFoundException
from app.schemas.domain import (
    DNSSetupRequest,
    DNSSetupResult,
    DomainPurchaseRequest,
    DomainPurchaseResult,
    DomainSearchRequest,
    DomainSearchResult,
    ProviderInfo,
    ProviderSelectRequest,
)
from app.schemas.response import BaseResponse, SuccessResponse
from app.services.domain_service import DomainService, domain_service

router = APIRouter()
logger = logging.getLogger(__name__)


def get_domain_service() -> DomainService:
    return domain_service


def get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/search", response_model=SuccessResponse[list[DomainSearchResult]])
async def search_domains(
    payload: DomainSearchRequest,
    service: DomainService = Depends(get_domain_service),
):
    """
    Search for registrable domains.

    Namecheap results are available-only, cheapest first; Cloudflare results
    include unavailable candidates and flag recommended TLDs.
    """
    results = await service.search_domains(payload.query, payload.provider)
    return SuccessResponse[list[DomainSearchResult]](
        data=results, message=f"Found {len(results)} domains"
    )


@router.post("/purchase", response_model=BaseResponse[DomainPurchaseResult])
async def purchase_domain(
    payload: DomainPurchaseRequest,
    request: Request,
    response: Response,
    service: DomainService = Depends(get_domain_service),
):
    """Register a domain. A refused purchase is a 400 carrying the result."""
    if not payload.client_ip:
        payload = payload.model_copy(update={"client_ip": get_client_ip(request)})

    result = await service.purchase_domain(payload)
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
        return BaseResponse[DomainPurchaseResult](
            success=False, message=result.error or "Purchase failed", data=result
        )

    return BaseResponse[DomainPurchaseResult](
        success=True, message=f"Domain {result.domain} purchased", data=result
    )


@router.post("/dns", response_model=BaseResponse[DNSSetupResult])
async def setup_dns(
    payload: DNSSetupRequest,
    service: DomainService = Depends(get_domain_service),
):
    result = await service.setup_dns(
        payload.domain, payload.target_host, payload.provider
    )
    message = result.warning or f"DNS configured for {result.domain}"
    return BaseResponse[DNSSetupResult](
        success=result.success, message=message, data=result
    )


@router.get("/info/{domain}", response_model=SuccessResponse[DomainSearchResult])
async def get_domain_info(
    domain: str,
    service: DomainService = Depends(get_domain_service),
):
    info = await service.get_domain_info(domain)
    if info is None:
        raise NotFoundException("Domain", domain)
    return SuccessResponse[DomainSearchResult](
        data=info, message="Domain info retrieved successfully"
    )


@router.get("/provider", response_model=SuccessResponse[ProviderInfo])
async def get_provider(service: DomainService = Depends(get_domain_service)):
    return SuccessResponse[ProviderInfo](
        data=ProviderInfo(provider=service.get_provider()),
        message="Current domain provider",
    )


@router.put("/provider", response_model=SuccessResponse[ProviderInfo])
async def set_provider(
    payload: ProviderSelectRequest,
    service: DomainService = Depends(get_domain_service),
):
    provider = service.set_provider(payload.provider)
    return SuccessResponse[ProviderInfo](
        data=ProviderInfo(provider=provider),
        message=f"Domain provider set to {provider.value}",
    )
