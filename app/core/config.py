from __future__ import annotations

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API configuration
    API_V1_STR: str = "/api"
    PROJECT_NAME: str = "Domain Acquisition Service"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_PATH: Path = Path("logs")
    LOG_BACKUP_COUNT: int = 30  # Keep 30 days of logs

    # External API configuration
    EXTERNAL_API_TIMEOUT: int = 30
    MAX_CONCURRENT_REQUESTS: int = 10

    # Resilience configuration
    CB_FAILURE_THRESHOLD: int = int(os.getenv("CB_FAILURE_THRESHOLD", 3))
    CB_RECOVERY_TIMEOUT_SECONDS: int = int(os.getenv("CB_RECOVERY_TIMEOUT_SECONDS", 60))
    CB_HALF_OPEN_PROBE_ATTEMPTS: int = int(os.getenv("CB_HALF_OPEN_PROBE_ATTEMPTS", 1))

    RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", 3))
    RETRY_INITIAL_BACKOFF_SECONDS: float = float(
        os.getenv("RETRY_INITIAL_BACKOFF_SECONDS", 0.2)
    )
    RETRY_BACKOFF_MULTIPLIER: float = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", 2.0))
    RETRY_JITTER_RATIO: float = float(os.getenv("RETRY_JITTER_RATIO", 0.2))

    # Domain provider selection ("namecheap" or "cloudflare")
    DOMAIN_PROVIDER: str = os.getenv("DOMAIN_PROVIDER", "namecheap")

    # Namecheap API configuration
    NAMECHEAP_API_USER: str = os.getenv("NAMECHEAP_API_USER", "")
    NAMECHEAP_API_KEY: str = os.getenv("NAMECHEAP_API_KEY", "")
    NAMECHEAP_USERNAME: str = os.getenv("NAMECHEAP_USERNAME", "")
    NAMECHEAP_CLIENT_IP: str = os.getenv("NAMECHEAP_CLIENT_IP", "127.0.0.1")
    NAMECHEAP_SANDBOX: bool = os.getenv("NAMECHEAP_SANDBOX", "false").lower() in (
        "true",
        "1",
        "yes",
    )
    NAMECHEAP_API_URL: str = "https://api.namecheap.com/xml.response"
    NAMECHEAP_SANDBOX_API_URL: str = "https://api.sandbox.namecheap.com/xml.response"

    # Cloudflare API configuration
    CLOUDFLARE_API_TOKEN: str = os.getenv("CLOUDFLARE_API_TOKEN", "")
    CLOUDFLARE_ZONE_ID: str = os.getenv("CLOUDFLARE_ZONE_ID", "")
    CLOUDFLARE_ACCOUNT_ID: str = os.getenv("CLOUDFLARE_ACCOUNT_ID", "")
    CLOUDFLARE_API_BASE: str = "https://api.cloudflare.com/client/v4"

    # Domain search / purchase behaviour
    PRICE_CACHE_TTL_SECONDS: int = int(os.getenv("PRICE_CACHE_TTL_SECONDS", 3600))
    SEARCH_RESULT_LIMIT: int = 10
    PURCHASE_REVALIDATE: bool = os.getenv("PURCHASE_REVALIDATE", "true").lower() in (
        "true",
        "1",
        "yes",
    )

    # Fallback registrant used for Namecheap when the request carries none.
    # Left empty, registrations without a registrant are rejected.
    DEFAULT_REGISTRANT_FIRST_NAME: str = os.getenv("DEFAULT_REGISTRANT_FIRST_NAME", "")
    DEFAULT_REGISTRANT_LAST_NAME: str = os.getenv("DEFAULT_REGISTRANT_LAST_NAME", "")
    DEFAULT_REGISTRANT_EMAIL: str = os.getenv("DEFAULT_REGISTRANT_EMAIL", "")
    DEFAULT_REGISTRANT_PHONE: str = os.getenv("DEFAULT_REGISTRANT_PHONE", "")
    DEFAULT_REGISTRANT_ADDRESS1: str = os.getenv("DEFAULT_REGISTRANT_ADDRESS1", "")
    DEFAULT_REGISTRANT_CITY: str = os.getenv("DEFAULT_REGISTRANT_CITY", "")
    DEFAULT_REGISTRANT_STATE_PROVINCE: str = os.getenv(
        "DEFAULT_REGISTRANT_STATE_PROVINCE", ""
    )
    DEFAULT_REGISTRANT_POSTAL_CODE: str = os.getenv("DEFAULT_REGISTRANT_POSTAL_CODE", "")
    DEFAULT_REGISTRANT_COUNTRY: str = os.getenv("DEFAULT_REGISTRANT_COUNTRY", "")

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list | str):
            return v
        raise ValueError(v)

    @field_validator("DOMAIN_PROVIDER")
    @classmethod
    def normalize_domain_provider(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in ("namecheap", "cloudflare"):
            raise ValueError(f"Unsupported domain provider: {v}")
        return value

    @property
    def namecheap_endpoint(self) -> str:
        if self.NAMECHEAP_SANDBOX:
            return self.NAMECHEAP_SANDBOX_API_URL
        return self.NAMECHEAP_API_URL

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()
