"""Validation utilities used across the domain services."""

import re

from app.core.exceptions import ValidationException

SEARCH_QUERY_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")


def format_phone_for_registrar(phone: str) -> str:
    """
    Normalize a phone number the way the Namecheap contact fields expect it.

    All non-digits are stripped; an 11-digit number with a leading North
    American country code ``1`` loses that ``1``.

    Args:
        phone: Phone number in any human format ("+1 (916) 555-1234")

    Returns:
        Digits only, e.g. "9165551234"
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def normalize_search_query(query: str) -> str:
    """
    Validate a free-text domain search query and return its normalized form.

    Args:
        query: Candidate second-level name without TLD

    Returns:
        Lowercased, stripped query

    Raises:
        ValidationException: If the query is too short or has invalid characters
    """
    value = (query or "").strip().lower()

    if len(value) < 2:
        raise ValidationException(
            "Domain query must be at least 2 characters", details={"query": query}
        )
    if len(value) > 63:
        raise ValidationException(
            "Domain query must be at most 63 characters", details={"query": query}
        )
    if not SEARCH_QUERY_PATTERN.match(value):
        raise ValidationException(
            "Domain can only contain letters, numbers, and hyphens",
            details={"query": query},
        )
    return value


def split_domain(domain: str) -> tuple[str, str]:
    """
    Split ``name.tld`` into its second-level name and TLD.

    Raises:
        ValidationException: If the domain does not have exactly one dot
    """
    parts = domain.strip().lower().split(".")
    if len(parts) != 2 or not all(parts):
        raise ValidationException(
            "Invalid domain format", details={"domain": domain}
        )
    return parts[0], parts[1]
