"""Validation utility functions."""

import re
from typing import Union
from urllib.parse import urlparse

from projecthub_ai.constants import LinkType

LINK_PATTERNS = {
    LinkType.GITHUB_REPO: re.compile(r"^https?://(www\.)?github\.com/[\w.-]+/[\w.-]+", re.IGNORECASE),
    LinkType.GITHUB_COMMIT: re.compile(r"^https?://(www\.)?github\.com/[\w.-]+/[\w.-]+/commit/", re.IGNORECASE),
    LinkType.GITHUB_PR: re.compile(r"^https?://(www\.)?github\.com/[\w.-]+/[\w.-]+/pull/\d+", re.IGNORECASE),
    LinkType.DEPLOYED_URL: re.compile(r"^https?://.+", re.IGNORECASE),
    LinkType.DESIGN_LINK: re.compile(r"^https?://(www\.)?(figma\.com|excalidraw\.com)", re.IGNORECASE),
    LinkType.DOC_LINK: re.compile(r"^https?://(www\.)?(docs\.google\.com|notion\.so)", re.IGNORECASE),
    LinkType.SCREENSHOT_LINK: re.compile(
        r"^https?://(www\.)?(imgur\.com|i\.imgur\.com|postimg\.cc|i\.postimg\.cc)", re.IGNORECASE
    ),
    LinkType.ANY: re.compile(r"^https?://.+", re.IGNORECASE),
}


def validate_url(url: str) -> bool:
    """
    Check that a string is an absolute http(s) URL.

    Args:
        url: URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False
    try:
        result = urlparse(url.strip())
    except ValueError:
        return False
    return result.scheme in ("http", "https") and bool(result.netloc)


def validate_link(url: str, link_type: Union[LinkType, str, None]) -> bool:
    """
    Check an artifact submission link against its expected link type.

    Unknown link types are validated as plain http(s) URLs.

    Args:
        url: Submitted URL
        link_type: Expected link type

    Returns:
        True if the link is acceptable for the type
    """
    if not validate_url(url):
        return False

    try:
        kind = LinkType(link_type) if link_type else LinkType.ANY
    except ValueError:
        kind = LinkType.ANY

    return bool(LINK_PATTERNS[kind].match(url.strip()))
