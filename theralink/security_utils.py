"""
Security utilities for user-submitted content
"""

import logging
from typing import Optional

import bleach

logger = logging.getLogger(__name__)


def sanitize_text(value: Optional[str]) -> str:
    """
    Strip all HTML from free text (contact messages, notes shown to staff)

    Args:
        value: Raw user input

    Returns:
        Plain text with tags removed and surrounding whitespace trimmed
    """
    if not value:
        return ""
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def mask_email(email: str) -> str:
    """Mask an email address for logs: j***@example.com"""
    if not email or "@" not in email:
        return "****"
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"
