"""Shared validation utilities"""

import re
from datetime import datetime
from typing import Optional


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_date_string(value: Optional[str]) -> Optional[str]:
    """Validate a YYYY-MM-DD calendar date"""
    if value is None:
        return value
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise ValueError("Date must be in YYYY-MM-DD format") from e
    return value


def validate_time_string(value: Optional[str]) -> Optional[str]:
    """Validate a 24-hour HH:MM time of day"""
    if value is None:
        return value
    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$", value):
        raise ValueError("Time must be in HH:MM format")
    return value


def validate_verification_code(value: str) -> str:
    """Six digit numeric code, surrounding whitespace ignored"""
    value = value.strip()
    if not re.match(r"^\d{6}$", value):
        raise ValueError("Verification code must be 6 digits")
    return value
