"""URL validation for the configured API base URL.

The base URL comes from operator-edited settings, so it is sanitized and
checked before any request path is appended to it.
"""

import re
from typing import Optional
from urllib.parse import quote, urlparse

__all__ = [
    "URLValidationError",
    "sanitize_url",
    "validate_base_url",
    "build_endpoint",
    "is_valid_base_url",
]


class URLValidationError(Exception):
    """Raised when URL validation fails."""
    pass


# Schemes that must never reach the HTTP layer
DANGEROUS_SCHEMES = {"javascript", "data", "vbscript", "file"}

SUSPICIOUS_PATTERNS = [
    r"\.\./",            # Path traversal
    r"%2e%2e",           # Encoded path traversal
    r"<script",          # XSS attempt
]


def sanitize_url(url: Optional[str]) -> str:
    """Strip whitespace, control characters and null bytes."""
    if not url:
        return ""

    url = url.strip()
    url = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", url)
    return url.replace("%00", "")


def validate_base_url(url: Optional[str]) -> str:
    """Validate an API base URL.

    Args:
        url: Base URL such as 'https://api.example.com' (trailing slash allowed)

    Returns:
        Sanitized base URL without trailing slash

    Raises:
        URLValidationError: If the URL is empty, not http(s), or has no host
    """
    url = sanitize_url(url)
    if not url:
        raise URLValidationError("URL is empty")

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Failed to parse URL: {e}") from e

    scheme = parsed.scheme.lower()
    if scheme in DANGEROUS_SCHEMES:
        raise URLValidationError(f"Dangerous URL scheme: {scheme}")
    if scheme not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme: {scheme or '(none)'}")

    if not parsed.netloc or not parsed.hostname:
        raise URLValidationError("URL has no domain")

    if parsed.query or parsed.fragment:
        raise URLValidationError("Base URL must not carry a query or fragment")

    url_lower = url.lower()
    for pattern in SUSPICIOUS_PATTERNS:
        if re.search(pattern, url_lower):
            raise URLValidationError(f"URL contains suspicious pattern: {pattern}")

    return url.rstrip("/")


def build_endpoint(base_url: str, *segments: object) -> str:
    """Join a validated base URL with quoted path segments.

    >>> build_endpoint("https://api.example.com/", "product", 7)
    'https://api.example.com/product/7'
    """
    base = validate_base_url(base_url)
    path = "/".join(quote(str(segment), safe="") for segment in segments)
    return f"{base}/{path}" if path else base


def is_valid_base_url(url: Optional[str]) -> bool:
    """Check a base URL without raising."""
    try:
        validate_base_url(url)
        return True
    except URLValidationError:
        return False
