"""
Token decoding for Namecheap XML API responses.

Responses are matched against a handful of exact tokens instead of being
parsed as a document. These helpers are pure functions over the raw body so
the adapter stays free of pattern details.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

UNKNOWN_ERROR = "Unknown error occurred"

SUCCESS_TOKEN = 'Status="OK"'
TRANSACTION_ID_PATTERN = re.compile(r'TransactionID="(\d+)"')

# Tried in order; the first match wins
NUMBERED_ERROR_PATTERN = re.compile(r'<Error Number="(\d+)">(.*?)</Error>', re.S)
PLAIN_ERROR_PATTERN = re.compile(r"<Error>(.*?)</Error>", re.S)
MESSAGE_PATTERN = re.compile(r"<Message>(.*?)</Message>", re.S)


def is_success(xml_text: str) -> bool:
    return SUCCESS_TOKEN in xml_text


def is_available(xml_text: str, domain: str) -> bool:
    return f'Domain="{domain}" Available="true"' in xml_text


def is_premium(xml_text: str, domain: str) -> bool:
    return f'Domain="{domain}" IsPremiumName="true"' in xml_text


def extract_transaction_id(xml_text: str) -> str | None:
    match = TRANSACTION_ID_PATTERN.search(xml_text)
    return match.group(1) if match else None


def extract_price(xml_text: str, tld: str) -> Decimal | None:
    """Price attribute following ``Name="{tld}"`` on the same element"""
    pattern = re.compile(rf'Name="{re.escape(tld)}"[^>]*Price="([^"]*)"', re.I)
    match = pattern.search(xml_text)
    if not match:
        return None
    try:
        price = Decimal(match.group(1))
    except InvalidOperation:
        return None
    if price < 0:
        return None
    return price


def extract_error(xml_text: str) -> tuple[str | None, str]:
    """
    Pull the error number and message out of a failed response.

    Returns:
        (error_number or None, message); the message falls back to
        "Unknown error occurred" when no pattern matches.
    """
    match = NUMBERED_ERROR_PATTERN.search(xml_text)
    if match:
        return match.group(1), match.group(2).strip()

    match = PLAIN_ERROR_PATTERN.search(xml_text)
    if match:
        return None, match.group(1).strip()

    match = MESSAGE_PATTERN.search(xml_text)
    if match:
        return None, match.group(1).strip()

    return None, UNKNOWN_ERROR
