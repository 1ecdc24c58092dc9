"""Shared validation utilities"""

import re
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (the storage convention for all DateTime columns)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC.

    Offset-aware values are converted to UTC and stripped of tzinfo;
    naive values are assumed to already be UTC.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Ten-digit numbers without a country code are treated as US numbers.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+XXXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    has_plus = phone.strip().startswith("+")

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if not has_plus:
        # Handle US numbers with or without the leading 1
        if digits.startswith("1") and len(digits) == 11:
            digits = digits[1:]
        if len(digits) != 10:
            raise ValueError("Phone number must be 10 digits for US numbers")
        return f"+1{digits}"

    if not 8 <= len(digits) <= 15:
        raise ValueError("Phone number must have between 8 and 15 digits")

    return f"+{digits}"


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[A-Za-z]{2,}$")


def normalize_email(email: str) -> str:
    """Lowercased, trimmed recipient address; ValueError if it cannot be delivered to"""
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError(f"{email!r} is not a deliverable address")
    return email
