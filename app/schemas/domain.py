"""Domain search, purchase and DNS schemas shared by services and endpoints."""

from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# Prices are Decimal internally and plain numbers on the wire
Price = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]

DOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.[a-z0-9-]{2,63}$")


class DomainProvider(str, Enum):
    """Registrar backing a search, purchase or DNS call"""

    NAMECHEAP = "namecheap"
    CLOUDFLARE = "cloudflare"


def normalize_domain(value: str) -> str:
    """Lowercase a domain and check it is ``name.tld`` with a single dot."""
    domain = value.strip().lower().rstrip(".")
    if not DOMAIN_PATTERN.match(domain):
        raise ValueError(f"Invalid domain '{value}': expected name.tld")
    return domain


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AvailabilityCheck(CamelModel):
    """Availability and price of one candidate, as reported by a registrar"""

    domain: str
    available: bool
    price: Price | None = None
    premium_price: Price | None = None
    is_premium: bool = False

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return normalize_domain(v)


class DomainSearchResult(CamelModel):
    domain: str = Field(..., description="Normalized name.tld")
    available: bool
    price: Price | None = None
    premium_price: Price | None = None
    is_premium: bool = False
    recommended: bool = False
    provider: DomainProvider

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return normalize_domain(v)

    @classmethod
    def from_check(
        cls,
        check: AvailabilityCheck,
        provider: DomainProvider,
        recommended: bool = False,
    ) -> DomainSearchResult:
        return cls(
            domain=check.domain,
            available=check.available,
            price=check.price,
            premium_price=check.premium_price,
            is_premium=check.is_premium,
            recommended=recommended,
            provider=provider,
        )


class RegistrantContact(CamelModel):
    """Legal contact a registrar requires to register a domain"""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    address1: str = Field(..., min_length=1)
    address2: str | None = None
    city: str = Field(..., min_length=1)
    state_province: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2)
    organization: str | None = None


class DomainPurchaseRequest(CamelModel):
    domain: str
    price: Price
    user_id: str = Field(..., min_length=1, description="Opaque buyer identifier")
    provider: DomainProvider | None = Field(
        None, description="Registrar to buy from; defaults to the selected provider"
    )
    registrant: RegistrantContact | None = None
    client_ip: str | None = None

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return normalize_domain(v)


class RegistrationReceipt(BaseModel):
    """What a registrar hands back after a successful registration"""

    transaction_id: str | None = None
    domain: str
    expires_at: str | None = None


class DomainPurchaseResult(CamelModel):
    success: bool
    transaction_id: str | None = None
    domain: str | None = None
    expiry_date: str | None = Field(None, description="ISO-8601 timestamp")
    error: str | None = None
    provider: DomainProvider | None = None

    @model_validator(mode="after")
    def check_outcome_fields(self) -> DomainPurchaseResult:
        if self.success and self.error is not None:
            raise ValueError("A successful purchase cannot carry an error")
        if not self.success:
            if not self.error:
                raise ValueError("A failed purchase must carry an error")
            if self.transaction_id or self.expiry_date:
                raise ValueError("A failed purchase cannot carry success fields")
        return self

    @classmethod
    def failure(
        cls, error: str, provider: DomainProvider | None = None
    ) -> DomainPurchaseResult:
        return cls(success=False, error=error, provider=provider)


class DNSSetupResult(CamelModel):
    success: bool
    domain: str
    target_host: str
    provider: DomainProvider
    points_to_target: bool = Field(
        False, description="Whether DNS now resolves the domain to target_host"
    )
    warning: str | None = None


class DomainSearchRequest(CamelModel):
    query: str = Field(..., min_length=2, max_length=63)
    provider: DomainProvider | None = None


class DNSSetupRequest(CamelModel):
    domain: str
    target_host: str = Field(..., min_length=1)
    provider: DomainProvider | None = None

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return normalize_domain(v)


class ProviderSelectRequest(BaseModel):
    provider: DomainProvider


class ProviderInfo(BaseModel):
    provider: DomainProvider
