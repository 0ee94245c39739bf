"""Shared validation utilities"""

import re
from datetime import datetime, timezone
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


def require_text(value: Optional[str], field: str, min_length: int = 1) -> str:
    """
    Strip a text field and enforce a minimum length.

    Raises:
        ValueError: If the stripped value is shorter than min_length
    """
    text = (value or "").strip()
    if len(text) < min_length:
        if min_length <= 1:
            raise ValueError(f"{field} is required")
        raise ValueError(f"{field} must be at least {min_length} characters")
    return text


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC (storage format)"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_safe_filename(filename: Optional[str], allowed_extensions: tuple) -> str:
    """
    Validate an uploaded filename used as part of a storage key.

    Raises:
        ValueError: On path traversal characters, bad extension or excessive length
    """
    if not filename:
        raise ValueError("Filename is required")

    dangerous_chars = ["..", "/", "\\", "<", ">", ":", '"', "|", "?", "*"]
    for char in dangerous_chars:
        if char in filename:
            raise ValueError(f"Invalid filename - contains dangerous character '{char}'")

    if not filename.lower().endswith(allowed_extensions):
        raise ValueError("Invalid filename - unsupported file extension")

    if len(filename) > 255:
        raise ValueError("Filename too long - maximum 255 characters")

    return filename
