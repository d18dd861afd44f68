"""Shared validation utilities"""

import re
from typing import Optional
from urllib.parse import urlparse

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_slug(slug: str) -> str:
    """
    Validate a booking link slug.

    Slugs are part of the public booking URL, so only lowercase letters,
    digits, hyphens and underscores are accepted.

    Raises:
        ValueError: If the slug is too short or not URL-safe
    """
    slug = (slug or "").strip()
    if len(slug) < 2:
        raise ValueError("Slug must be at least 2 characters")
    if len(slug) > 100:
        raise ValueError("Slug must be at most 100 characters")
    if not SLUG_PATTERN.match(slug):
        raise ValueError("Slug may only contain lowercase letters, numbers, '-' and '_'")
    return slug


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")

    return email


def validate_required_email(email: Optional[str]) -> str:
    """Like validate_email, but a missing or blank address is an error"""
    if not email or not email.strip():
        raise ValueError("Email is required")
    return validate_email(email)


def validate_profile_url(url: Optional[str]) -> Optional[str]:
    """Accept empty values or absolute http(s) URLs (LinkedIn profile etc.)"""
    if not url:
        return url
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Profile URL must be an absolute http(s) URL")
    return url
